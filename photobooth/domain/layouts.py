# photobooth/domain/layouts.py
"""Layout catalog.

Layouts are declared in physical units (inches) and turned into pixel
rectangles once, at import time. The arrangement rule mirrors the printed
strip: every side gets a thin border, and the side reserved for the date
stamp (bottom for portrait strips, right for landscape ones) gets an extra
inch.
"""
import math
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel

from photobooth.config.settings import settings
from photobooth.domain.models import Arrangement, CanvasSize, Layout, Padding, Rectangle

BORDER_IN = 0.15
DATE_SPACE_IN = 1.15
DEFAULT_GAP_IN = 0.1


class LayoutDefinition(BaseModel):
    id: int
    max_photos: int
    width_in: float
    height_in: float
    arrangement: Arrangement
    gap_in: float = DEFAULT_GAP_IN
    columns: Optional[int] = None

    @property
    def name(self) -> str:
        plural = "s" if self.max_photos > 1 else ""
        return f"{self.max_photos} Photo{plural} ({self.arrangement.capitalize()})"


LAYOUT_DEFINITIONS: List[LayoutDefinition] = [
    LayoutDefinition(id=1, max_photos=4, width_in=3, height_in=9, arrangement="vertical"),
    LayoutDefinition(id=2, max_photos=3, width_in=3, height_in=9, arrangement="vertical"),
    LayoutDefinition(id=3, max_photos=2, width_in=3, height_in=9, arrangement="vertical"),
    LayoutDefinition(id=4, max_photos=3, width_in=9, height_in=3, arrangement="horizontal"),
    LayoutDefinition(id=5, max_photos=4, width_in=6, height_in=9, arrangement="grid", columns=2),
    LayoutDefinition(id=6, max_photos=2, width_in=9, height_in=6, arrangement="grid", columns=2),
]


def padding_for(arrangement: str, width_in: float, height_in: float) -> Padding:
    """Border per side, in inches."""
    top = right = bottom = left = BORDER_IN
    if arrangement == "vertical":
        bottom = DATE_SPACE_IN
    elif arrangement == "horizontal":
        right = DATE_SPACE_IN
    elif width_in / height_in <= 1:
        bottom = DATE_SPACE_IN
    else:
        right = DATE_SPACE_IN
    return Padding(top=top, right=right, bottom=bottom, left=left)


def arrange_rectangles(
    arrangement: str,
    count: int,
    canvas_w: float,
    canvas_h: float,
    padding: Padding,
    gap: float,
    columns: Optional[int] = None,
) -> List[Rectangle]:
    """Derive ``count`` slot rectangles from an arrangement rule.

    All inputs are in pixels. Edges are rounded individually so the
    rectangles tile the content area without drifting.
    """
    if count <= 0:
        raise ValueError("Layout membutuhkan minimal satu slot foto.")

    content_w = canvas_w - padding.left - padding.right
    content_h = canvas_h - padding.top - padding.bottom

    if arrangement == "vertical":
        cols, rows = 1, count
    elif arrangement == "horizontal":
        cols, rows = count, 1
    elif arrangement == "grid":
        cols = columns or math.ceil(math.sqrt(count))
        rows = math.ceil(count / cols)
    else:
        raise ValueError(f"Unknown arrangement '{arrangement}'")

    cell_w = (content_w - (cols - 1) * gap) / cols
    cell_h = (content_h - (rows - 1) * gap) / rows
    if cell_w <= 0 or cell_h <= 0:
        raise ValueError(f"Paddings and gaps leave no room for {count} photos.")

    rects = []
    for index in range(count):
        row, col = divmod(index, cols)
        x = padding.left + col * (cell_w + gap)
        y = padding.top + row * (cell_h + gap)
        x1, y1 = round(x), round(y)
        rects.append(Rectangle(x=x1, y=y1, width=round(x + cell_w) - x1, height=round(y + cell_h) - y1))
    return rects


def build_layout(definition: LayoutDefinition, ppi: int) -> Layout:
    pad_in = padding_for(definition.arrangement, definition.width_in, definition.height_in)
    padding = Padding(
        top=pad_in.top * ppi,
        right=pad_in.right * ppi,
        bottom=pad_in.bottom * ppi,
        left=pad_in.left * ppi,
    )
    canvas_w = definition.width_in * ppi
    canvas_h = definition.height_in * ppi
    rects = arrange_rectangles(
        definition.arrangement,
        definition.max_photos,
        canvas_w,
        canvas_h,
        padding,
        definition.gap_in * ppi,
        definition.columns,
    )
    return Layout(
        id=definition.id,
        name=definition.name,
        canvas_size=CanvasSize(width=round(canvas_w), height=round(canvas_h)),
        rectangles=tuple(rects),
        arrangement=definition.arrangement,
    )


class LayoutCatalog:
    def __init__(self, layouts: List[Layout]):
        self._layouts: Dict[int, Layout] = {layout.id: layout for layout in layouts}

    @classmethod
    def from_definitions(cls, definitions: List[LayoutDefinition], ppi: int) -> "LayoutCatalog":
        return cls([build_layout(d, ppi) for d in definitions])

    def get(self, layout_id: int) -> Layout:
        try:
            return self._layouts[layout_id]
        except KeyError:
            raise KeyError(f"Layout {layout_id} tidak ditemukan.") from None

    def __contains__(self, layout_id: object) -> bool:
        return layout_id in self._layouts

    def __iter__(self) -> Iterator[Layout]:
        return iter(sorted(self._layouts.values(), key=lambda l: l.id))

    def __len__(self) -> int:
        return len(self._layouts)


LAYOUT_CATALOG = LayoutCatalog.from_definitions(LAYOUT_DEFINITIONS, settings.PIXELS_PER_INCH)
