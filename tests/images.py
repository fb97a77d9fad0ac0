import base64
import io

from PIL import Image


def png_bytes(width: int, height: int, color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(width: int, height: int, color=(255, 0, 0, 255)) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(width, height, color)).decode("ascii")
