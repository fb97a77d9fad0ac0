import asyncio
import base64

from photobooth.infrastructure.loader.image_loader import ImageLoader
from tests.images import png_bytes, png_data_url


def test_loads_data_url_and_bare_base64():
    loader = ImageLoader()
    raw = png_bytes(4, 4)
    assert asyncio.run(loader.load_bytes(png_data_url(4, 4))) == raw
    assert asyncio.run(loader.load_bytes(base64.b64encode(raw).decode("ascii"))) == raw


def test_loads_local_file(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes(4, 4))
    assert asyncio.run(ImageLoader().load_bytes(str(path))) == png_bytes(4, 4)


def test_http_timeout_returns_none(monkeypatch):
    async def slow_fetch(self, url, session):
        raise asyncio.TimeoutError()

    monkeypatch.setattr(ImageLoader, "_fetch", slow_fetch)
    assert asyncio.run(ImageLoader().load_bytes("https://booth.example/photo.png")) is None
