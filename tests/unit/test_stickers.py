import math

import pytest

from photobooth.domain.stickers import DragMode, HandleGeometry, Sticker, StickerTransformEngine


def make_engine(sticker_image, *rows):
    stickers = [Sticker(image=sticker_image, x=x, y=y, width=w, height=h, rotation=r) for x, y, w, h, r in rows]
    return StickerTransformEngine(stickers=stickers), stickers


@pytest.mark.parametrize("rotation", range(0, 360, 15))
def test_center_always_hits(sticker_image, rotation):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, rotation))
    hit_sticker, hit = engine.sticker_at(100, 100)
    assert hit_sticker is sticker
    assert hit.in_body
    assert engine.pointer_down(100, 100) is DragMode.MOVE


def test_miss_clears_selection(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.selected_sticker_id = sticker.id
    assert engine.pointer_down(400, 400) is DragMode.IDLE
    assert engine.selected_sticker_id is None


def test_topmost_sticker_wins(sticker_image):
    engine, (bottom, top) = make_engine(sticker_image, (100, 100, 100, 50, 0), (110, 100, 100, 50, 0))
    engine.pointer_down(105, 100)
    assert engine.selected_sticker_id == top.id


def test_resize_top_right_keeps_aspect_and_anchor(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    bottom_left = sticker.corner(3)

    assert engine.pointer_down(150, 75) is DragMode.RESIZE
    assert engine.pointer_move(170, 75)
    engine.pointer_up()

    assert sticker.width == pytest.approx(120)
    assert sticker.height == pytest.approx(60)
    assert sticker.corner(3) == pytest.approx(bottom_left)


def test_move_is_rotation_invariant(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 90))
    assert engine.pointer_down(100, 100) is DragMode.MOVE
    engine.pointer_move(110, 100)
    assert (sticker.x, sticker.y) == pytest.approx((110, 100))


@pytest.mark.parametrize("rotation", [0, 30, 135, 270])
def test_resize_keeps_opposite_corner_fixed_when_rotated(sticker_image, rotation):
    engine, (sticker,) = make_engine(sticker_image, (200, 200, 100, 50, rotation))
    top_left = sticker.corner(0)
    bx, by = sticker.corner(2)

    assert engine.pointer_down(bx, by) is DragMode.RESIZE
    engine.pointer_move(bx + 15, by + 7)

    assert sticker.corner(0) == pytest.approx(top_left)
    assert sticker.aspect_ratio == pytest.approx(2.0)


def test_resize_clamps_to_minimum(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.pointer_down(150, 75)
    engine.pointer_move(-1000, 75)
    assert sticker.width == pytest.approx(40)
    assert sticker.height == pytest.approx(20)


def test_full_turn_returns_to_zero(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    rx, ry = sticker.to_canvas(*HandleGeometry().rotate_handle(sticker))
    assert engine.pointer_down(rx, ry) is DragMode.ROTATE

    radius = math.hypot(rx - 100, ry - 100)
    start = math.atan2(ry - 100, rx - 100)
    for step in range(1, 13):
        angle = start + math.radians(30 * step)
        engine.pointer_move(100 + radius * math.cos(angle), 100 + radius * math.sin(angle))

    assert 0 <= sticker.rotation < 360
    assert min(sticker.rotation, 360 - sticker.rotation) == pytest.approx(0, abs=1e-6)


def test_rotation_is_normalized():
    sticker = Sticker(image=None, x=0, y=0, width=10, height=10, rotation=360)
    assert sticker.rotation == 0
    assert Sticker(image=None, x=0, y=0, width=10, height=10, rotation=-90).rotation == 270


def test_non_positive_size_rejected():
    with pytest.raises(ValueError):
        Sticker(image=None, x=0, y=0, width=0, height=10)


def test_delete_handle_removes_and_clears_selection(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.selected_sticker_id = sticker.id
    dx, dy = sticker.to_canvas(*HandleGeometry().delete_handle(sticker))

    assert engine.pointer_down(dx, dy) is DragMode.IDLE
    assert engine.stickers == []
    assert engine.selected_sticker_id is None


def test_unknown_ids_are_no_ops(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    assert engine.delete(999) is False
    assert engine.duplicate(999) is None
    assert engine.bring_to_front(999) is False
    assert engine.send_to_back(999) is False
    assert engine.stickers == [sticker]
    assert not engine.can_undo


def test_reorder_is_list_order(sticker_image):
    engine, (a, b, c) = make_engine(
        sticker_image, (10, 10, 20, 20, 0), (50, 50, 20, 20, 0), (90, 90, 20, 20, 0)
    )
    engine.bring_to_front(a.id)
    assert engine.stickers == [b, c, a]
    engine.send_to_back(c.id)
    assert engine.stickers == [c, b, a]


def test_add_sticker_uses_image_aspect(sticker_image):
    engine = StickerTransformEngine()
    sticker = engine.add_sticker(sticker_image, 50, 60)
    assert (sticker.width, sticker.height) == (100, 50)
    assert engine.selected_sticker_id == sticker.id


def test_duplicate_offsets_and_selects_copy(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 45))
    clone = engine.duplicate(sticker.id)
    assert clone.id != sticker.id
    assert (clone.x, clone.y, clone.rotation) == (110, 110, 45)
    assert clone.image is sticker.image
    assert engine.stickers[-1] is clone
    assert engine.selected_sticker_id == clone.id


def test_plain_click_adds_no_history(sticker_image):
    engine, _ = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.pointer_down(100, 100)
    engine.pointer_up()
    assert not engine.can_undo


def test_undo_restores_gesture_start(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.pointer_down(100, 100)
    engine.pointer_move(120, 110)
    engine.pointer_move(140, 120)
    engine.pointer_up()

    assert engine.undo()
    (restored,) = engine.stickers
    assert (restored.x, restored.y) == (100, 100)
    assert not engine.undo()


def test_undo_add_and_delete(sticker_image):
    engine = StickerTransformEngine()
    sticker = engine.add_sticker(sticker_image, 50, 50)
    engine.delete(sticker.id)
    assert engine.stickers == []
    engine.undo()
    assert [s.id for s in engine.stickers] == [sticker.id]
    engine.undo()
    assert engine.stickers == []


def test_undo_depth_is_bounded(sticker_image):
    engine = StickerTransformEngine(undo_limit=3)
    for i in range(5):
        engine.add_sticker(sticker_image, i, i)
    undone = 0
    while engine.undo():
        undone += 1
    assert undone == 3
    assert len(engine.stickers) == 2


def test_pointer_leave_ends_gesture(sticker_image):
    engine, (sticker,) = make_engine(sticker_image, (100, 100, 100, 50, 0))
    engine.pointer_down(100, 100)
    engine.pointer_leave()
    assert engine.mode is DragMode.IDLE
    assert engine.pointer_move(200, 200) is False
    assert (sticker.x, sticker.y) == (100, 100)
