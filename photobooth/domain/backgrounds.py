# photobooth/domain/backgrounds.py
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from photobooth.domain.models import Gradient
from photobooth.infrastructure.imaging.colors import ColorFormat, color_format, parse_color


def _preset(index: int, start: str, end: str) -> Gradient:
    return Gradient(id=f"gradient-{index}", stops=((0.0, start), (1.0, end)))


GRADIENT_PRESETS: List[Gradient] = [
    _preset(1, "#FCE38A", "#F38181"),
    _preset(2, "#F54EA2", "#FF7676"),
    _preset(3, "#17EAD9", "#6078EA"),
    _preset(4, "#622774", "#C53364"),
    _preset(5, "#7117EA", "#EA6060"),
    _preset(6, "#42E695", "#3BB2B8"),
    _preset(7, "#F02FC2", "#6094EA"),
    _preset(8, "#65799B", "#5E2563"),
    _preset(9, "#184E68", "#57CA85"),
    _preset(10, "#5B247A", "#1BCEDF"),
]

_PRESETS_BY_ID: Dict[str, Gradient] = {g.id: g for g in GRADIENT_PRESETS}


def get_gradient(gradient_id: str) -> Gradient:
    try:
        return _PRESETS_BY_ID[gradient_id]
    except KeyError:
        raise KeyError(f"Gradient '{gradient_id}' tidak ditemukan.") from None


class BackgroundChoice(BaseModel):
    """What the user picked for the frame: a fill, and optionally an image on top of it.

    ``image`` is an opaque source reference (data URL, path or URL); the
    editor decodes it through the image pipeline.
    """
    model_config = ConfigDict(frozen=True)

    fill: Union[str, Gradient] = "#000000"
    image: Optional[str] = None

    @field_validator("fill")
    @classmethod
    def _check_color(cls, value):
        if isinstance(value, str):
            if color_format(value) is ColorFormat.INVALID:
                raise ValueError(f"Unsupported colour: {value!r}")
            parse_color(value)
        return value
