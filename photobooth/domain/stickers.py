# photobooth/domain/stickers.py
"""Sticker list, selection and direct-manipulation gestures.

Sticker geometry lives in unscaled layout pixels: ``x``/``y`` is the center,
``rotation`` is clockwise degrees in ``[0, 360)`` (y grows downward, as on a
canvas). Handle positions are expressed in the sticker's local, un-rotated
frame and shared with the renderer through :class:`HandleGeometry`.

List order is z-order: the last sticker is drawn on top and is hit first.
"""
import dataclasses
import itertools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from PIL import Image

from photobooth.config.settings import settings

logger = logging.getLogger(__name__)

# Resize corners, clockwise from top-left, as (x sign, y sign) in the local frame.
CORNER_SIGNS: Tuple[Tuple[int, int], ...] = ((-1, -1), (1, -1), (1, 1), (-1, 1))

_sticker_ids = itertools.count(1)


def next_sticker_id() -> int:
    return next(_sticker_ids)


def normalize_rotation(degrees: float) -> float:
    degrees %= 360
    # float modulo of a tiny negative number rounds up to 360.0
    return 0.0 if degrees >= 360 else degrees


@dataclass(eq=False)
class Sticker:
    image: Image.Image
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    id: int = dataclasses.field(default_factory=next_sticker_id)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Ukuran sticker harus lebih besar dari nol.")
        self.rotation = normalize_rotation(self.rotation)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def to_local(self, px: float, py: float) -> Tuple[float, float]:
        """Canvas point -> sticker frame (origin at center, axes un-rotated)."""
        theta = math.radians(-self.rotation)
        dx, dy = px - self.x, py - self.y
        return (dx * math.cos(theta) - dy * math.sin(theta), dx * math.sin(theta) + dy * math.cos(theta))

    def to_canvas(self, lx: float, ly: float) -> Tuple[float, float]:
        theta = math.radians(self.rotation)
        return (
            self.x + lx * math.cos(theta) - ly * math.sin(theta),
            self.y + lx * math.sin(theta) + ly * math.cos(theta),
        )

    def corner(self, index: int) -> Tuple[float, float]:
        sx, sy = CORNER_SIGNS[index]
        return self.to_canvas(sx * self.width / 2, sy * self.height / 2)

    def copy(self, **changes) -> "Sticker":
        """Shallow copy sharing the bitmap; keeps the id unless one is given."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class HandleGeometry:
    handle_size: float = settings.HANDLE_SIZE
    rotate_offset: float = settings.ROTATE_HANDLE_OFFSET
    delete_offset: float = settings.DELETE_HANDLE_OFFSET
    delete_radius: float = settings.DELETE_HANDLE_RADIUS

    def corners(self, sticker: Sticker) -> List[Tuple[float, float]]:
        return [(sx * sticker.width / 2, sy * sticker.height / 2) for sx, sy in CORNER_SIGNS]

    def rotate_handle(self, sticker: Sticker) -> Tuple[float, float]:
        return (sticker.width / 2, -sticker.height / 2 - self.rotate_offset)

    def delete_handle(self, sticker: Sticker) -> Tuple[float, float]:
        return (-sticker.width / 2 - self.delete_offset, -sticker.height / 2 - self.delete_offset)


@dataclass(frozen=True)
class HitResult:
    in_body: bool = False
    resize_corner: Optional[int] = None
    at_rotate: bool = False
    at_delete: bool = False

    @property
    def any(self) -> bool:
        return self.in_body or self.resize_corner is not None or self.at_rotate or self.at_delete


class DragMode(str, Enum):
    IDLE = "idle"
    MOVE = "move"
    RESIZE = "resize"
    ROTATE = "rotate"


class StickerTransformEngine:
    def __init__(
        self,
        stickers: Optional[List[Sticker]] = None,
        handles: Optional[HandleGeometry] = None,
        min_size: float = settings.MIN_STICKER_SIZE,
        undo_limit: int = settings.UNDO_LIMIT,
    ):
        self.stickers: List[Sticker] = list(stickers or [])
        self.handles = handles or HandleGeometry()
        self.min_size = min_size
        self.undo_limit = undo_limit
        self.selected_sticker_id: Optional[int] = None
        self.mode = DragMode.IDLE
        self._start: Tuple[float, float] = (0.0, 0.0)
        self._corner: Optional[int] = None
        self._aspect: float = 1.0
        self._history: List[Tuple[List[Sticker], Optional[int]]] = []
        # Recorded on pointer-down, pushed only once the gesture actually mutates.
        self._gesture_snapshot: Optional[Tuple[List[Sticker], Optional[int]]] = None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def find(self, sticker_id: Optional[int]) -> Optional[Sticker]:
        if sticker_id is None:
            return None
        return next((s for s in self.stickers if s.id == sticker_id), None)

    @property
    def selected(self) -> Optional[Sticker]:
        return self.find(self.selected_sticker_id)

    def hit_test(self, px: float, py: float, sticker: Sticker) -> HitResult:
        lx, ly = sticker.to_local(px, py)
        half_w, half_h = sticker.width / 2, sticker.height / 2
        size = self.handles.handle_size

        in_body = -half_w <= lx <= half_w and -half_h <= ly <= half_h

        resize_corner = None
        for index, (cx, cy) in enumerate(self.handles.corners(sticker)):
            if abs(lx - cx) < size and abs(ly - cy) < size:
                resize_corner = index
                break

        rx, ry = self.handles.rotate_handle(sticker)
        at_rotate = abs(lx - rx) < size and abs(ly - ry) < size

        dx, dy = self.handles.delete_handle(sticker)
        at_delete = math.hypot(lx - dx, ly - dy) < self.handles.delete_radius

        return HitResult(in_body=in_body, resize_corner=resize_corner, at_rotate=at_rotate, at_delete=at_delete)

    def sticker_at(self, px: float, py: float) -> Tuple[Optional[Sticker], HitResult]:
        for sticker in reversed(self.stickers):
            hit = self.hit_test(px, py, sticker)
            if hit.any:
                return sticker, hit
        return None, HitResult()

    # ------------------------------------------------------------------
    # Pointer gestures
    # ------------------------------------------------------------------
    def pointer_down(self, px: float, py: float) -> DragMode:
        self.mode = DragMode.IDLE
        self._corner = None
        sticker, hit = self.sticker_at(px, py)

        if sticker is None:
            self.selected_sticker_id = None
            return self.mode

        if hit.at_delete:
            self.delete(sticker.id)
            self.selected_sticker_id = None
            return self.mode

        self._gesture_snapshot = (self.snapshot(), self.selected_sticker_id)
        self.selected_sticker_id = sticker.id
        self._start = (px, py)
        if hit.resize_corner is not None:
            self.mode = DragMode.RESIZE
            self._corner = hit.resize_corner
            self._aspect = sticker.aspect_ratio
        elif hit.at_rotate:
            self.mode = DragMode.ROTATE
        else:
            self.mode = DragMode.MOVE
        return self.mode

    def pointer_move(self, px: float, py: float) -> bool:
        """Apply one step of the active gesture. Returns True if a sticker changed."""
        if self.mode is DragMode.IDLE:
            return False
        sticker = self.selected
        if sticker is None:
            self.mode = DragMode.IDLE
            return False

        if self._gesture_snapshot is not None:
            self._record(self._gesture_snapshot)
            self._gesture_snapshot = None

        sx, sy = self._start
        dx, dy = px - sx, py - sy

        if self.mode is DragMode.MOVE:
            sticker.x += dx
            sticker.y += dy
        elif self.mode is DragMode.RESIZE:
            self._resize(sticker, dx, dy)
        elif self.mode is DragMode.ROTATE:
            start_angle = math.atan2(sy - sticker.y, sx - sticker.x)
            current_angle = math.atan2(py - sticker.y, px - sticker.x)
            sticker.rotation = normalize_rotation(sticker.rotation + math.degrees(current_angle - start_angle))

        self._start = (px, py)
        return True

    def pointer_up(self) -> None:
        self.mode = DragMode.IDLE
        self._corner = None
        self._gesture_snapshot = None

    # A lost pointer-up would otherwise leave the gesture running.
    pointer_leave = pointer_up

    def _resize(self, sticker: Sticker, dx: float, dy: float) -> None:
        theta = math.radians(sticker.rotation)
        rotated_dx = dx * math.cos(theta) + dy * math.sin(theta)
        sign_x, sign_y = CORNER_SIGNS[self._corner]

        min_width = max(self.min_size, self.min_size * self._aspect)
        new_width = max(min_width, sticker.width + sign_x * rotated_dx)
        new_height = new_width / self._aspect

        # Shift the center toward the dragged corner so the opposite one stays put.
        shift_x = sign_x * (new_width - sticker.width) / 2
        shift_y = sign_y * (new_height - sticker.height) / 2
        sticker.x += shift_x * math.cos(theta) - shift_y * math.sin(theta)
        sticker.y += shift_x * math.sin(theta) + shift_y * math.cos(theta)
        sticker.width = new_width
        sticker.height = new_height

    # ------------------------------------------------------------------
    # List operations
    # ------------------------------------------------------------------
    def add_sticker(self, image: Image.Image, x: float, y: float, width: Optional[float] = None) -> Sticker:
        width = width or settings.DEFAULT_STICKER_WIDTH
        img_w, img_h = image.size
        height = width * img_h / img_w if img_w and img_h else width
        self._push_history()
        sticker = Sticker(image=image, x=x, y=y, width=width, height=height)
        self.stickers.append(sticker)
        self.selected_sticker_id = sticker.id
        return sticker

    def delete(self, sticker_id: int) -> bool:
        sticker = self.find(sticker_id)
        if sticker is None:
            return False
        self._push_history()
        self.stickers.remove(sticker)
        logger.debug(f"Sticker {sticker_id} dihapus ({len(self.stickers)} tersisa).")
        if self.selected_sticker_id == sticker_id:
            self.selected_sticker_id = None
        self.mode = DragMode.IDLE
        return True

    def delete_selected(self) -> bool:
        if self.selected_sticker_id is None:
            return False
        return self.delete(self.selected_sticker_id)

    def duplicate(self, sticker_id: int, offset: float = settings.DUPLICATE_OFFSET) -> Optional[Sticker]:
        sticker = self.find(sticker_id)
        if sticker is None:
            return None
        self._push_history()
        clone = sticker.copy(id=next_sticker_id(), x=sticker.x + offset, y=sticker.y + offset)
        self.stickers.append(clone)
        self.selected_sticker_id = clone.id
        return clone

    def bring_to_front(self, sticker_id: int) -> bool:
        return self._splice(sticker_id, front=True)

    def send_to_back(self, sticker_id: int) -> bool:
        return self._splice(sticker_id, front=False)

    def _splice(self, sticker_id: int, front: bool) -> bool:
        sticker = self.find(sticker_id)
        if sticker is None:
            return False
        self._push_history()
        self.stickers.remove(sticker)
        if front:
            self.stickers.append(sticker)
        else:
            self.stickers.insert(0, sticker)
        return True

    def clear(self) -> None:
        if self.stickers:
            self._push_history()
        self.stickers = []
        self.selected_sticker_id = None
        self.mode = DragMode.IDLE

    # ------------------------------------------------------------------
    # Undo (in-memory only)
    # ------------------------------------------------------------------
    def snapshot(self) -> List[Sticker]:
        return [s.copy() for s in self.stickers]

    def _push_history(self) -> None:
        self._record((self.snapshot(), self.selected_sticker_id))

    def _record(self, entry: Tuple[List[Sticker], Optional[int]]) -> None:
        self._history.append(entry)
        if len(self._history) > self.undo_limit:
            del self._history[0]

    def undo(self) -> bool:
        if not self._history:
            return False
        self.stickers, selected = self._history.pop()
        self.selected_sticker_id = selected if self.find(selected) else None
        self.mode = DragMode.IDLE
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._history)
