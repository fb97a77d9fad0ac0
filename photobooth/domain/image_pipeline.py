# photobooth/domain/image_pipeline.py
import asyncio
import hashlib
import io
import logging
from concurrent.futures import Executor
from typing import Dict, Hashable, Optional, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from photobooth.config.settings import settings
from photobooth.domain.models import Rectangle
from photobooth.infrastructure.imaging import image_process
from photobooth.infrastructure.loader.image_loader import ImageLoader

# --- PENGATURAN LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [PIPELINE] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

SourceRef = Union[str, bytes, Image.Image]


class DecodeError(Exception):
    """Source image data is missing, malformed or not an image."""


def source_key(source: SourceRef) -> Hashable:
    """Cache identity of a source reference."""
    if isinstance(source, Image.Image):
        return ("image", id(source))
    if isinstance(source, str):
        source = source.encode("utf-8")
    return ("bytes", hashlib.sha1(source).hexdigest())


def decode_image(data: Optional[bytes], max_side: int = settings.MAX_DECODE_SIDE) -> Image.Image:
    if not data:
        raise DecodeError("Sumber gambar kosong atau tidak dapat dimuat.")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Gagal decode gambar: {type(e).__name__}") from e

    img = ImageOps.exif_transpose(img).convert("RGBA")
    longest = max(img.size)
    if longest > max_side:
        scale = max_side / longest
        img = img.resize((max(1, int(img.width * scale)), max(1, int(img.height * scale))), Image.Resampling.LANCZOS)
    return img


class ImageHandle:
    """Pending-or-ready result of a cached decode/crop."""

    def __init__(self, key: Hashable, task: "asyncio.Future[Image.Image]"):
        self.key = key
        self._task = task
        # Mark failures as retrieved; callers that only poll `ready` never await.
        task.add_done_callback(lambda t: t.cancelled() or t.exception())

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def ready(self) -> bool:
        return self._task.done() and not self._task.cancelled() and self._task.exception() is None

    @property
    def failed(self) -> bool:
        return self._task.done() and (self._task.cancelled() or self._task.exception() is not None)

    @property
    def image(self) -> Optional[Image.Image]:
        return self._task.result() if self.ready else None

    async def wait(self) -> Image.Image:
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._task.cancelled():
                raise DecodeError("Decode dibatalkan.") from None
            raise

    def cancel(self) -> None:
        self._task.cancel()


class ImagePreparationPipeline:
    """Decodes sources and center-crops them into layout slots.

    Decoded sources and cropped bitmaps are cached by source identity, so
    repeated requests share one decode. Decoding and resampling run in an
    executor; the event loop only coordinates.
    """

    def __init__(
        self,
        loader: Optional[ImageLoader] = None,
        executor: Optional[Executor] = None,
        max_side: int = settings.MAX_DECODE_SIDE,
    ):
        self.loader = loader or ImageLoader()
        self.executor = executor
        self.max_side = max_side
        self._decoded: Dict[Hashable, ImageHandle] = {}
        self._cropped: Dict[Tuple[Hashable, int, int], ImageHandle] = {}

    def get_or_load(self, source: SourceRef) -> ImageHandle:
        key = source_key(source)
        handle = self._decoded.get(key)
        if handle is None or handle.failed:
            task = asyncio.ensure_future(self._load(source))
            handle = ImageHandle(key, task)
            self._decoded[key] = handle
        return handle

    def get_or_crop(self, source: SourceRef, rect: Rectangle) -> ImageHandle:
        key = (source_key(source), rect.width, rect.height)
        handle = self._cropped.get(key)
        if handle is None or handle.failed:
            task = asyncio.ensure_future(self.crop_to_rectangle(source, rect))
            handle = ImageHandle(key, task)
            self._cropped[key] = handle
        return handle

    async def crop_to_rectangle(self, source: SourceRef, rect: Rectangle) -> Image.Image:
        decoded = source if isinstance(source, Image.Image) else await self.get_or_load(source).wait()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, image_process.crop_to_fill, decoded, rect.width, rect.height
        )

    async def _load(self, source: SourceRef) -> Image.Image:
        if isinstance(source, Image.Image):
            return source.convert("RGBA")
        data = await self.loader.load_bytes(source)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self.executor, decode_image, data, self.max_side)
        except DecodeError as e:
            logger.warning(f"{e} (sumber: '{str(source)[:40]}...')")
            raise

    def evict(self, source: SourceRef) -> None:
        key = source_key(source)
        self._decoded.pop(key, None)
        for crop_key in [k for k in self._cropped if k[0] == key]:
            del self._cropped[crop_key]

    def clear(self) -> None:
        for handle in list(self._decoded.values()) + list(self._cropped.values()):
            if not handle.done:
                handle.cancel()
        self._decoded.clear()
        self._cropped.clear()

    def __len__(self) -> int:
        return len(self._decoded)
