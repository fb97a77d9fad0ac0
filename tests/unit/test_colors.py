import pytest

from photobooth.domain.backgrounds import GRADIENT_PRESETS, BackgroundChoice, get_gradient
from photobooth.infrastructure.imaging.colors import (
    ColorFormat,
    color_format,
    contrast_color,
    describe_color,
    parse_color,
    rgb_to_hex,
    rgb_to_hsl,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("#fff", ColorFormat.HEX),
        ("#FF000080", ColorFormat.HEX),
        ("rgb(1, 2, 3)", ColorFormat.RGB),
        ("rgba(1,2,3,0.5)", ColorFormat.RGB),
        ("hsl(120, 50%, 50%)", ColorFormat.HSL),
        ("hsla(120, 50%, 50%, 1)", ColorFormat.HSL),
        ("banana", ColorFormat.INVALID),
    ],
)
def test_color_format(value, expected):
    assert color_format(value) is expected


def test_parse_color():
    assert parse_color("#ff0000") == (255, 0, 0, 255)
    assert parse_color("rgb(0, 128, 255)") == (0, 128, 255, 255)
    assert parse_color("rgba(0, 0, 0, 0.5)") == (0, 0, 0, 128)
    assert parse_color("hsl(0, 100%, 50%)") == (255, 0, 0, 255)
    with pytest.raises(ValueError):
        parse_color("not a colour")


def test_conversions():
    assert rgb_to_hex(23, 234, 217) == "#17ead9"
    assert rgb_to_hsl(255, 0, 0) == pytest.approx((0, 100, 50))
    assert rgb_to_hsl(128, 128, 128)[:2] == (0, 0)


def test_describe_color():
    info = describe_color("hsl(120, 100%, 25%)")
    assert info["format"] == "hsl"
    assert info["hex"] == "#008000"
    assert info["hsl"] == [120, 100, 25]
    assert info["contrast"] == "#FFFFFF"
    with pytest.raises(ValueError):
        describe_color("red")


def test_background_rejects_named_colours():
    with pytest.raises(ValueError):
        BackgroundChoice(fill="red")
    assert BackgroundChoice(fill="rgb(1, 2, 3)").fill == "rgb(1, 2, 3)"


def test_contrast_color():
    assert contrast_color("#000000") == "#FFFFFF"
    assert contrast_color("#FFFFFF") == "#000000"
    assert contrast_color("#FCE38A") == "#000000"


def test_gradient_presets():
    assert len(GRADIENT_PRESETS) == 10
    assert get_gradient("gradient-1").stops[0] == (0.0, "#FCE38A")
    with pytest.raises(KeyError):
        get_gradient("gradient-99")
