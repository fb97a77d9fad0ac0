# photobooth/infrastructure/loader/image_loader.py
import asyncio
import base64
import binascii
import logging
import os
from typing import Optional, Union

import aiofiles
import aiohttp

from photobooth.config.settings import settings

logger = logging.getLogger(__name__)

ImageSource = Union[str, bytes]


class ImageLoader:
    """Fetches raw image bytes from whatever reference the client sent.

    Supported: raw bytes, ``data:image/...`` URLs, bare base64, local file
    paths and http(s) URLs. Returns ``None`` when the source cannot be read;
    decoding is the pipeline's job.
    """

    def __init__(self, timeout: int = settings.REQUEST_TIMEOUT):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def load_bytes(self, src: ImageSource, session: Optional[aiohttp.ClientSession] = None) -> Optional[bytes]:
        if isinstance(src, (bytes, bytearray)):
            return bytes(src)
        try:
            if src.startswith(("http://", "https://")):
                if session is not None:
                    return await self._fetch(src, session)
                async with aiohttp.ClientSession(timeout=self.timeout) as own_session:
                    return await self._fetch(src, own_session)
            if src.startswith("data:image"):
                _, encoded = src.split(",", 1)
                return base64.b64decode(encoded + "===")
            if os.path.isfile(src):
                async with aiofiles.open(src, "rb") as f:
                    return await f.read()
            return base64.b64decode(src + "===", validate=False)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError, binascii.Error) as e:
            logger.warning(f"Gagal memuat gambar dari sumber '{src[:70]}...': {type(e).__name__}")
            return None

    async def _fetch(self, url: str, session: aiohttp.ClientSession) -> bytes:
        async with session.get(url) as response:
            response.raise_for_status()
            return await response.read()

