# photobooth/domain/editor.py
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from PIL import Image

from photobooth.config.settings import settings
from photobooth.domain.backgrounds import BackgroundChoice
from photobooth.domain.image_pipeline import DecodeError, ImagePreparationPipeline, SourceRef
from photobooth.domain.layouts import LAYOUT_CATALOG, LayoutCatalog
from photobooth.domain.models import Layout, Photo
from photobooth.domain.renderer import CompositeRenderer, CompositeState
from photobooth.domain.stickers import DragMode, Sticker, StickerTransformEngine

# --- PENGATURAN LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [EDITOR] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


class PhotoLimitExceeded(ValueError):
    """More photos than the active layout has slots."""


class LayoutLocked(ValueError):
    """Layout change requested while photos are committed."""


class PhotoStripEditor:
    """One editing session: layout, photos, decorations and stickers.

    Photo, background and foreground decodes are scheduled on the running
    event loop as soon as they are set. Each completed decode notifies the
    listeners so the composite converges slot by slot; results whose photo
    or layout has since been replaced are dropped.
    """

    def __init__(
        self,
        layout_id: int = settings.DEFAULT_LAYOUT_ID,
        catalog: LayoutCatalog = LAYOUT_CATALOG,
        pipeline: Optional[ImagePreparationPipeline] = None,
        renderer: Optional[CompositeRenderer] = None,
        engine: Optional[StickerTransformEngine] = None,
        date_text: Optional[str] = None,
    ):
        self.session_id = uuid.uuid4().hex
        self.catalog = catalog
        self.layout: Layout = catalog.get(layout_id)
        self.pipeline = pipeline if pipeline is not None else ImagePreparationPipeline()
        self.renderer = renderer if renderer is not None else CompositeRenderer()
        self.engine = engine if engine is not None else StickerTransformEngine()
        self.date_text = date_text if date_text is not None else datetime.now().strftime(settings.DATE_FORMAT)

        self.photos: List[Photo] = []
        self.background = BackgroundChoice(fill=settings.DEFAULT_FRAME_COLOR)
        self.foreground: Optional[str] = None

        self._bitmaps: Dict[str, Image.Image] = {}
        self._failed: Set[str] = set()
        self._background_image: Optional[Image.Image] = None
        self._foreground_image: Optional[Image.Image] = None
        self._generation = 0
        self._pending: Set[asyncio.Future] = set()
        self._listeners: List[Callable[["PhotoStripEditor"], None]] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------
    def add_listener(self, callback: Callable[["PhotoStripEditor"], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    def _spawn(self, coro) -> asyncio.Future:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Tugas decode gagal tak terduga: {task.exception()}", exc_info=task.exception())

    async def settle(self, timeout: Optional[float] = None) -> None:
        """Wait until every scheduled decode has resolved (or failed).

        Raises ``asyncio.TimeoutError`` once ``timeout`` elapses; the pending
        decodes keep running and still apply their results afterwards.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._pending:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            _, not_done = await asyncio.wait(set(self._pending), timeout=remaining)
            if not_done:
                raise asyncio.TimeoutError(f"{len(not_done)} decode belum selesai setelah {timeout}s.")

    @property
    def pending(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Layout & photos
    # ------------------------------------------------------------------
    def set_layout(self, layout_id: int) -> Layout:
        """Switch layouts. Only allowed while no photos are committed."""
        layout = self.catalog.get(layout_id)
        if self.photos:
            raise LayoutLocked(
                f"Layout tidak dapat diganti: {len(self.photos)} foto sudah ada. Hapus foto atau reset sesi dahulu."
            )
        self.layout = layout
        self._generation += 1
        self._bitmaps.clear()
        self._failed.clear()
        logger.info(f"Sesi {self.session_id[:8]}: layout diganti ke {self.layout.id} ({self.layout.name}).")
        self._notify()
        return self.layout

    def add_photo(self, photo: Union[Photo, str]) -> Photo:
        if isinstance(photo, str):
            photo = Photo(url=photo)
        if len(self.photos) >= self.layout.max_photos:
            raise PhotoLimitExceeded(f"Layout {self.layout.id} hanya menampung {self.layout.max_photos} foto.")
        self.photos.append(photo)
        self._schedule_photo(len(self.photos) - 1, photo)
        self._notify()
        return photo

    def set_photos(self, photos: Sequence[Photo]) -> None:
        if len(photos) > self.layout.max_photos:
            raise PhotoLimitExceeded(
                f"{len(photos)} foto melebihi kapasitas layout {self.layout.id} ({self.layout.max_photos})."
            )
        previous = self.photos
        self.photos = list(photos)
        keep = {p.id for p in self.photos}
        self._bitmaps = {k: v for k, v in self._bitmaps.items() if k in keep}
        self._failed &= keep
        self._evict_unused(p.url for p in previous if p.id not in keep)

        for index, photo in enumerate(self.photos):
            bitmap = self._bitmaps.get(photo.id)
            if bitmap is not None and bitmap.size == self._slot_size(index):
                continue
            # Moved to a slot of a different size: crop again.
            self._bitmaps.pop(photo.id, None)
            self._schedule_photo(index, photo)
        self._notify()

    def remove_photo(self, photo_id: str) -> bool:
        remaining = [p for p in self.photos if p.id != photo_id]
        if len(remaining) == len(self.photos):
            return False
        self.set_photos(remaining)
        return True

    def _slot_size(self, index: int) -> Tuple[int, int]:
        rect = self.layout.rectangles[index]
        return (rect.width, rect.height)

    def _sources_in_use(self) -> Set[str]:
        sources = {p.url for p in self.photos}
        sources.update(s for s in (self.background.image, self.foreground) if s)
        return sources

    def _evict_unused(self, sources: Iterable[Optional[str]]) -> None:
        in_use = self._sources_in_use()
        for source in set(sources):
            if source and source not in in_use:
                self.pipeline.evict(source)

    def _schedule_photo(self, index: int, photo: Photo) -> None:
        self._failed.discard(photo.id)
        rect = self.layout.rectangles[index]
        handle = self.pipeline.get_or_crop(photo.url, rect)
        self._spawn(self._apply_photo(photo, handle, self._generation, (rect.width, rect.height)))

    async def _apply_photo(self, photo: Photo, handle, generation: int, size: Tuple[int, int]) -> None:
        try:
            bitmap = await handle.wait()
        except DecodeError as e:
            if self._is_current(photo, generation, size):
                logger.warning(f"Foto {photo.id[:8]} gagal diproses, slot ditampilkan kosong: {e}")
                self._failed.add(photo.id)
                self._notify()
            return

        if not self._is_current(photo, generation, size):
            logger.debug(f"Hasil crop usang untuk foto {photo.id[:8]} dibuang.")
            return
        self._bitmaps[photo.id] = bitmap
        self._notify()

    def _is_current(self, photo: Photo, generation: int, size: Tuple[int, int]) -> bool:
        """Same layout, photo still present, and still in a slot of the cropped size."""
        if generation != self._generation:
            return False
        for index, current in enumerate(self.photos):
            if current.id == photo.id:
                return self._slot_size(index) == size
        return False

    def photo_status(self) -> List[str]:
        statuses = []
        for photo in self.photos:
            if photo.id in self._bitmaps:
                statuses.append("ready")
            elif photo.id in self._failed:
                statuses.append("failed")
            else:
                statuses.append("pending")
        return statuses

    # ------------------------------------------------------------------
    # Background & foreground
    # ------------------------------------------------------------------
    def set_background(self, choice: BackgroundChoice) -> None:
        previous = self.background.image
        self.background = choice
        self._background_image = None
        self._evict_unused([previous])
        if choice.image:
            self._spawn(self._apply_decoration("background", choice.image))
        self._notify()

    def set_foreground(self, source: Optional[str]) -> None:
        previous = self.foreground
        self.foreground = source
        self._foreground_image = None
        self._evict_unused([previous])
        if source:
            self._spawn(self._apply_decoration("foreground", source))
        self._notify()

    def _decoration_source(self, kind: str) -> Optional[str]:
        return self.background.image if kind == "background" else self.foreground

    async def _apply_decoration(self, kind: str, source: str) -> None:
        try:
            image = await self.pipeline.get_or_load(source).wait()
        except DecodeError as e:
            if self._decoration_source(kind) == source:
                logger.warning(f"Gambar {kind} tidak dapat dimuat: {e}")
            return
        if self._decoration_source(kind) != source:
            logger.debug(f"Gambar {kind} usang dibuang.")
            return
        if kind == "background":
            self._background_image = image
        else:
            self._foreground_image = image
        self._notify()

    # ------------------------------------------------------------------
    # Stickers
    # ------------------------------------------------------------------
    @property
    def stickers(self) -> List[Sticker]:
        return self.engine.stickers

    @property
    def selected_sticker_id(self) -> Optional[int]:
        return self.engine.selected_sticker_id

    async def add_sticker(
        self,
        source: SourceRef,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
    ) -> Sticker:
        image = await self.pipeline.get_or_load(source).wait()
        canvas = self.layout.canvas_size
        sticker = self.engine.add_sticker(
            image,
            x if x is not None else canvas.width / 2,
            y if y is not None else canvas.height / 2,
            width,
        )
        self._notify()
        return sticker

    def pointer_down(self, x: float, y: float) -> DragMode:
        count, selected = len(self.engine.stickers), self.engine.selected_sticker_id
        mode = self.engine.pointer_down(x, y)
        if mode is not DragMode.IDLE or count != len(self.engine.stickers) or selected != self.engine.selected_sticker_id:
            self._notify()
        return mode

    def pointer_move(self, x: float, y: float) -> bool:
        changed = self.engine.pointer_move(x, y)
        if changed:
            self._notify()
        return changed

    def pointer_up(self) -> None:
        self.engine.pointer_up()

    def pointer_leave(self) -> None:
        self.engine.pointer_leave()

    def delete_sticker(self, sticker_id: int) -> bool:
        changed = self.engine.delete(sticker_id)
        if changed:
            self._notify()
        return changed

    def duplicate_sticker(self, sticker_id: int) -> Optional[Sticker]:
        clone = self.engine.duplicate(sticker_id)
        if clone is not None:
            self._notify()
        return clone

    def reorder_sticker(self, sticker_id: int, front: bool = True) -> bool:
        if front:
            changed = self.engine.bring_to_front(sticker_id)
        else:
            changed = self.engine.send_to_back(sticker_id)
        if changed:
            self._notify()
        return changed

    def undo(self) -> bool:
        changed = self.engine.undo()
        if changed:
            self._notify()
        return changed

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def composite_state(self, include_selection: bool = True, snapshot: bool = False) -> CompositeState:
        """Collect the inputs of one render pass.

        ``snapshot`` copies the sticker geometry so the state can be rendered
        off the event loop while gestures keep mutating the live list.
        """
        stickers = self.engine.snapshot() if snapshot else list(self.engine.stickers)
        return CompositeState(
            background_fill=self.background.fill,
            background_image=self._background_image,
            photos=[self._bitmaps.get(p.id) for p in self.photos],
            foreground=self._foreground_image,
            stickers=stickers,
            selected_sticker_id=self.engine.selected_sticker_id if include_selection else None,
            date_text=self.date_text,
        )

    def render(self, scale: float = 1.0, include_selection: bool = True) -> Image.Image:
        return self.renderer.redraw(self.layout, self.composite_state(include_selection), scale)

    def reset(self) -> None:
        self._generation += 1
        self.photos = []
        self._bitmaps.clear()
        self._failed.clear()
        self.background = BackgroundChoice(fill=settings.DEFAULT_FRAME_COLOR)
        self.foreground = None
        self._background_image = None
        self._foreground_image = None
        self.engine.clear()
        # Sticker sources included; in-flight decodes are cancelled.
        self.pipeline.clear()
        if settings.DEFAULT_LAYOUT_ID in self.catalog:
            self.layout = self.catalog.get(settings.DEFAULT_LAYOUT_ID)
        logger.info(f"Sesi {self.session_id[:8]} direset.")
        self._notify()
