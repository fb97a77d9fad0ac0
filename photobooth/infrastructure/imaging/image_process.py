# photobooth/infrastructure/imaging/image_process.py
import math
from io import BytesIO
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from photobooth.domain.models import Gradient
from photobooth.infrastructure.imaging.colors import parse_color

Box = Tuple[float, float, float, float]


def calculate_center_crop(source_size: Tuple[int, int], target_w: int, target_h: int) -> Box:
    """Largest centered box of the target aspect ratio inside the source.

    Returns ``(crop_x, crop_y, crop_w, crop_h)`` in source pixels (floats).
    """
    src_w, src_h = source_size
    target_ratio = target_w / target_h
    src_ratio = src_w / src_h

    if src_ratio > target_ratio:
        crop_h = src_h
        crop_w = crop_h * target_ratio
        crop_x = (src_w - crop_w) / 2
        crop_y = 0.0
    else:
        crop_w = src_w
        crop_h = crop_w / target_ratio
        crop_x = 0.0
        crop_y = (src_h - crop_h) / 2

    return (crop_x, crop_y, crop_w, crop_h)


def crop_to_fill(image_pil: Image.Image, target_w: int, target_h: int) -> Image.Image:
    crop_x, crop_y, crop_w, crop_h = calculate_center_crop(image_pil.size, target_w, target_h)
    # Image.resize(box=...) samples the float region directly, no intermediate crop.
    return image_pil.resize(
        (target_w, target_h),
        Image.Resampling.LANCZOS,
        box=(crop_x, crop_y, crop_x + crop_w, crop_y + crop_h),
    )


def linear_gradient(size: Tuple[int, int], gradient: Gradient) -> Image.Image:
    w, h = size
    x0, y0 = gradient.start.x / 100 * w, gradient.start.y / 100 * h
    x1, y1 = gradient.end.x / 100 * w, gradient.end.y / 100 * h
    vx, vy = x1 - x0, y1 - y0
    length_sq = vx * vx + vy * vy or 1.0

    xs = np.arange(w, dtype=np.float64) + 0.5
    ys = np.arange(h, dtype=np.float64)[:, None] + 0.5
    t = ((xs - x0) * vx + (ys - y0) * vy) / length_sq
    t = np.clip(t, 0.0, 1.0)

    stops = sorted(gradient.stops, key=lambda s: s[0])
    offsets = np.array([s[0] for s in stops], dtype=np.float64)
    colors = np.array([parse_color(s[1]) for s in stops], dtype=np.float64)

    channels = [np.interp(t, offsets, colors[:, c]) for c in range(4)]
    pixels = np.stack(channels, axis=-1)
    return Image.fromarray(np.round(pixels).astype(np.uint8))


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.FreeTypeFont:
    size = max(1, int(round(size)))
    if font_path:
        return ImageFont.truetype(font_path, size)
    return ImageFont.load_default(size=size)


def draw_dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    box: Box,
    fill,
    width: int = 2,
    dash: Sequence[float] = (5, 5),
) -> None:
    x1, y1, x2, y2 = box
    for start, end in (((x1, y1), (x2, y1)), ((x2, y1), (x2, y2)), ((x2, y2), (x1, y2)), ((x1, y2), (x1, y1))):
        _draw_dashed_line(draw, start, end, fill, width, dash)


def _draw_dashed_line(draw, start, end, fill, width, dash) -> None:
    (sx, sy), (ex, ey) = start, end
    length = math.hypot(ex - sx, ey - sy)
    if length == 0:
        return
    ux, uy = (ex - sx) / length, (ey - sy) / length
    on, off = dash
    pos = 0.0
    while pos < length:
        seg_end = min(pos + on, length)
        draw.line(
            [(sx + ux * pos, sy + uy * pos), (sx + ux * seg_end, sy + uy * seg_end)],
            fill=fill,
            width=width,
        )
        pos += on + off


def composite_layer(surface: Image.Image, layer: Image.Image, position: Tuple[int, int]) -> Image.Image:
    """Alpha-composite ``layer`` onto ``surface`` at ``position``; out-of-bounds parts are clipped."""
    canvas = Image.new("RGBA", surface.size, (0, 0, 0, 0))
    canvas.paste(layer.convert("RGBA"), position)
    return Image.alpha_composite(surface, canvas)


def encode_image(img: Image.Image, fmt: str = "png", quality: int = 88) -> Tuple[bytes, str]:
    """Encode to bytes. Returns ``(data, normalized_extension)``."""
    fmt = (fmt or "png").lower()
    # Map to a valid Pillow format string
    if fmt in ("jpg", "jpeg"):
        ext = "jpeg"
        # JPEG can't have alpha
        if img.mode != "RGB":
            img = img.convert("RGB")
        save_kwargs = dict(format="JPEG", quality=quality, optimize=True)
    elif fmt == "png":
        ext = "png"
        # PNG supports alpha; keep mode as-is
        save_kwargs = dict(format="PNG", optimize=True)
    else:
        raise ValueError(f"Unsupported export format '{fmt}'")

    buf = BytesIO()
    img.save(buf, **save_kwargs)
    return buf.getvalue(), ext

