# photobooth/domain/export.py
import asyncio
import logging
import os
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable, Optional

import aiofiles
import psutil

from photobooth.config.settings import settings
from photobooth.domain.editor import PhotoStripEditor
from photobooth.domain.models import Layout
from photobooth.domain.renderer import CompositeRenderer, CompositeState
from photobooth.infrastructure.imaging import image_process

# --- PENGATURAN LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [EXPORT] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

CONTENT_TYPES = {"png": "image/png", "jpeg": "image/jpeg"}


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content_type: str
    data: bytes
    width: int
    height: int
    url: Optional[str] = None

    @property
    def public_id(self) -> str:
        return os.path.splitext(self.filename)[0]


def export_filename(ext: str, now_ms: int) -> str:
    return f"photobooth_{now_ms}.{ext}"


class ExportStage:
    """Rasterizes the composite at a supersampling scale and encodes it."""

    def __init__(
        self,
        renderer: Optional[CompositeRenderer] = None,
        clock: Callable[[], float] = time.time,
        max_scale: float = settings.MAX_EXPORT_SCALE,
        quality: int = settings.JPEG_QUALITY,
    ):
        self.renderer = renderer if renderer is not None else CompositeRenderer()
        self.clock = clock
        self.max_scale = max_scale
        self.quality = quality

    def _check_scale(self, scale: Optional[float]) -> float:
        scale = settings.EXPORT_SCALE if scale is None else scale
        if not 0 < scale <= self.max_scale:
            raise ValueError(f"Scale ekspor harus di antara 0 dan {self.max_scale}, bukan {scale}.")
        return scale

    def rasterize(self, layout: Layout, state: CompositeState, scale: float, fmt: str) -> ExportResult:
        img = self.renderer.redraw(layout, state, scale)
        data, ext = image_process.encode_image(img, fmt, self.quality)
        now_ms = int(self.clock() * 1000)
        return ExportResult(
            filename=export_filename(ext, now_ms),
            content_type=CONTENT_TYPES[ext],
            data=data,
            width=img.width,
            height=img.height,
        )

    def export(
        self,
        surface: Optional[PhotoStripEditor],
        scale: Optional[float] = None,
        fmt: str = settings.EXPORT_FORMAT,
    ) -> Optional[ExportResult]:
        if surface is None:
            logger.warning("Export dipanggil sebelum surface siap; dilewati.")
            return None
        scale = self._check_scale(scale)
        state = surface.composite_state(include_selection=False)
        result = self.rasterize(surface.layout, state, scale, fmt)
        logger.info(f"Export {result.filename}: {result.width}x{result.height} ({len(result.data) / 1024:.0f}KB).")
        return result

    async def export_async(
        self,
        surface: Optional[PhotoStripEditor],
        scale: Optional[float] = None,
        fmt: str = settings.EXPORT_FORMAT,
        executor: Optional[Executor] = None,
        settle_timeout: Optional[float] = settings.EXPORT_SETTLE_TIMEOUT,
    ) -> Optional[ExportResult]:
        """Wait for pending decodes, then render a snapshot off the event loop."""
        if surface is None:
            logger.warning("Export dipanggil sebelum surface siap; dilewati.")
            return None
        scale = self._check_scale(scale)
        try:
            await surface.settle(settle_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Decode belum selesai setelah {settle_timeout}s; slot yang tertunda diekspor kosong.")

        process = psutil.Process(os.getpid())
        start = time.perf_counter()
        logger.info(f"Memory usage before export: {process.memory_info().rss / 1024 / 1024:.1f}MB")

        state = surface.composite_state(include_selection=False, snapshot=True)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(executor, self.rasterize, surface.layout, state, scale, fmt)

        logger.info(
            f"Export {result.filename}: {result.width}x{result.height} selesai dalam "
            f"{time.perf_counter() - start:.2f}s (memory {process.memory_info().rss / 1024 / 1024:.1f}MB)."
        )
        return result

    async def save(self, result: ExportResult, directory: Optional[str] = None) -> str:
        directory = directory or settings.EXPORT_DIR
        if not directory:
            raise ValueError("EXPORT_DIR belum dikonfigurasi.")
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, result.filename)
        async with aiofiles.open(path, "wb") as f:
            await f.write(result.data)
        logger.info(f"Export disimpan ke {path}")
        return path

    async def upload(self, result: ExportResult, executor: Optional[Executor] = None) -> ExportResult:
        from photobooth.infrastructure.cloudinary.upload_file import upload_image_bytes

        loop = asyncio.get_running_loop()
        ext = result.filename.rsplit(".", 1)[-1]
        url = await loop.run_in_executor(executor, upload_image_bytes, result.data, result.public_id, ext)
        logger.info(f"Export {result.filename} diunggah: {url}")
        return ExportResult(
            filename=result.filename,
            content_type=result.content_type,
            data=result.data,
            width=result.width,
            height=result.height,
            url=url,
        )
