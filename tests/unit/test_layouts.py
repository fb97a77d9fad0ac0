import pytest

from photobooth.domain.layouts import (
    LAYOUT_CATALOG,
    LayoutCatalog,
    LayoutDefinition,
    arrange_rectangles,
    build_layout,
    padding_for,
)
from photobooth.domain.models import Padding


def test_catalog_has_all_layouts_sorted_by_id():
    ids = [layout.id for layout in LAYOUT_CATALOG]
    assert ids == [1, 2, 3, 4, 5, 6]
    assert len(LAYOUT_CATALOG) == 6


def test_unknown_layout_raises_key_error():
    with pytest.raises(KeyError):
        LAYOUT_CATALOG.get(99)
    assert 99 not in LAYOUT_CATALOG
    assert 1 in LAYOUT_CATALOG


def test_four_photo_strip_geometry():
    layout = LAYOUT_CATALOG.get(1)
    assert layout.name == "4 Photos (Vertical)"
    assert (layout.canvas_size.width, layout.canvas_size.height) == (288, 864)
    assert layout.max_photos == 4

    first = layout.rectangles[0]
    assert (first.x, first.y, first.width, first.height) == (14, 14, 260, 178)


@pytest.mark.parametrize("layout", list(LAYOUT_CATALOG), ids=lambda l: str(l.id))
def test_rectangles_fit_canvas_and_do_not_overlap(layout):
    w, h = layout.canvas_size.width, layout.canvas_size.height
    rects = layout.rectangles
    for rect in rects:
        assert rect.x >= 0 and rect.y >= 0
        assert rect.x + rect.width <= w
        assert rect.y + rect.height <= h
    for i, a in enumerate(rects):
        for b in rects[i + 1:]:
            ax1, ay1, ax2, ay2 = a.box
            bx1, by1, bx2, by2 = b.box
            assert ax2 <= bx1 or bx2 <= ax1 or ay2 <= by1 or by2 <= ay1


def test_date_space_side_follows_orientation():
    assert padding_for("vertical", 3, 9).bottom > padding_for("vertical", 3, 9).top
    assert padding_for("horizontal", 9, 3).right > padding_for("horizontal", 9, 3).left
    assert padding_for("grid", 6, 9).bottom > padding_for("grid", 6, 9).right
    assert padding_for("grid", 9, 6).right > padding_for("grid", 9, 6).bottom


def test_grid_fills_rows_left_to_right():
    rects = arrange_rectangles("grid", 4, 200, 200, Padding(), 0, columns=2)
    assert [(r.x, r.y) for r in rects] == [(0, 0), (100, 0), (0, 100), (100, 100)]


def test_arrange_rejects_bad_input():
    with pytest.raises(ValueError):
        arrange_rectangles("vertical", 0, 100, 100, Padding(), 0)
    with pytest.raises(ValueError):
        arrange_rectangles("diagonal", 2, 100, 100, Padding(), 0)
    with pytest.raises(ValueError):
        arrange_rectangles("vertical", 3, 100, 100, Padding(top=60, bottom=60), 0)


def test_custom_catalog_from_definitions():
    definition = LayoutDefinition(id=7, max_photos=1, width_in=2, height_in=2, arrangement="vertical")
    catalog = LayoutCatalog.from_definitions([definition], ppi=100)
    layout = catalog.get(7)
    assert layout.name == "1 Photo (Vertical)"
    assert layout == build_layout(definition, 100)
