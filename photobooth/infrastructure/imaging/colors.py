# photobooth/infrastructure/imaging/colors.py
import re
from enum import Enum
from typing import Dict, Tuple

from PIL import ImageColor

RGBA = Tuple[int, int, int, int]


class ColorFormat(str, Enum):
    HEX = "hex"
    RGB = "rgb"
    HSL = "hsl"
    INVALID = "invalid"


_HEX_RE = re.compile(r"^#(?:[0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})$")
_RGB_RE = re.compile(r"^rgb\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*\)$")
_RGBA_RE = re.compile(r"^rgba\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*(0?\.\d+|1(\.0+)?|0)\s*\)$")
_HSL_RE = re.compile(r"^hsl\(\s*\d{1,3}\s*,\s*\d{1,3}%\s*,\s*\d{1,3}%\s*\)$")
_HSLA_RE = re.compile(r"^hsla\(\s*\d{1,3}\s*,\s*\d{1,3}%\s*,\s*\d{1,3}%\s*,\s*(0?\.\d+|1(\.0+)?|0)\s*\)$")


def color_format(color: str) -> ColorFormat:
    cleaned = color.strip().lower()
    if _HEX_RE.match(cleaned):
        return ColorFormat.HEX
    if _RGB_RE.match(cleaned) or _RGBA_RE.match(cleaned):
        return ColorFormat.RGB
    if _HSL_RE.match(cleaned) or _HSLA_RE.match(cleaned):
        return ColorFormat.HSL
    return ColorFormat.INVALID


def parse_color(color: str) -> RGBA:
    """CSS colour string to an RGBA tuple. Raises ValueError when unparseable."""
    cleaned = color.strip().lower()
    # Pillow does not understand the alpha channel of rgba()/hsla() as 0-1 floats
    alpha = 255
    m = re.match(r"^(rgba|hsla)\((.*),\s*([0-9.]+)\s*\)$", cleaned)
    if m:
        alpha = round(float(m.group(3)) * 255)
        cleaned = f"{m.group(1)[:3]}({m.group(2)})"
    rgba = ImageColor.getcolor(cleaned, "RGBA")
    if alpha != 255:
        rgba = (rgba[0], rgba[1], rgba[2], alpha)
    return rgba


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{max(0, min(255, int(n))):02x}" for n in (r, g, b))


def rgb_to_hsl(r: int, g: int, b: int) -> Tuple[float, float, float]:
    r, g, b = r / 255, g / 255, b / 255
    high, low = max(r, g, b), min(r, g, b)
    h = s = 0.0
    l = (high + low) / 2

    if high != low:
        d = high - low
        s = d / (2 - high - low) if l > 0.5 else d / (high + low)
        if high == r:
            h = (g - b) / d + (6 if g < b else 0)
        elif high == g:
            h = (b - r) / d + 2
        else:
            h = (r - g) / d + 4
        h /= 6

    return (h * 360, s * 100, l * 100)


def contrast_color(color: str) -> str:
    """Black or white, whichever reads better on top of ``color``."""
    r, g, b, _ = parse_color(color)
    luminance = (0.299 * r + 0.587 * g + 0.114 * b) / 255
    return "#000000" if luminance > 0.5 else "#FFFFFF"


def describe_color(color: str) -> Dict[str, object]:
    """Format, normalized hex/hsl and contrast colour for a CSS colour string."""
    fmt = color_format(color)
    if fmt is ColorFormat.INVALID:
        raise ValueError(f"Unsupported colour: {color!r}")
    r, g, b, a = parse_color(color)
    h, s, l = rgb_to_hsl(r, g, b)
    return {
        "format": fmt.value,
        "hex": rgb_to_hex(r, g, b),
        "rgba": [r, g, b, a],
        "hsl": [round(h), round(s), round(l)],
        "contrast": contrast_color(color),
    }
