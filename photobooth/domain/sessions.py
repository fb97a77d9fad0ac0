# photobooth/domain/sessions.py
import logging
import threading
import time
from concurrent.futures import Executor
from typing import Callable, Dict, Optional

from photobooth.config.settings import settings
from photobooth.domain.editor import PhotoStripEditor
from photobooth.domain.image_pipeline import ImagePreparationPipeline
from photobooth.domain.layouts import LAYOUT_CATALOG, LayoutCatalog

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory editor sessions keyed by session id.

    Sessions untouched for ``ttl`` seconds are pruned whenever a new one is
    created, and their decoded bitmaps are released.
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        catalog: LayoutCatalog = LAYOUT_CATALOG,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.executor = executor
        self.catalog = catalog
        self.ttl = ttl if ttl is not None else settings.SESSION_TTL_SECONDS
        self._clock = clock
        self._sessions: Dict[str, PhotoStripEditor] = {}
        self._touched: Dict[str, float] = {}
        self._lock = threading.Lock()

    def create(self, layout_id: Optional[int] = None, date_text: Optional[str] = None) -> PhotoStripEditor:
        self.prune()
        editor = PhotoStripEditor(
            layout_id=layout_id if layout_id is not None else settings.DEFAULT_LAYOUT_ID,
            catalog=self.catalog,
            pipeline=ImagePreparationPipeline(executor=self.executor),
            date_text=date_text,
        )
        with self._lock:
            self._sessions[editor.session_id] = editor
            self._touched[editor.session_id] = self._clock()
        logger.info(f"Sesi {editor.session_id[:8]} dibuat dengan layout {editor.layout.id}.")
        return editor

    def get(self, session_id: str) -> PhotoStripEditor:
        with self._lock:
            editor = self._sessions.get(session_id)
            if editor is not None:
                self._touched[session_id] = self._clock()
        if editor is None:
            raise KeyError(f"Sesi {session_id} tidak ditemukan.")
        return editor

    def delete(self, session_id: str) -> None:
        with self._lock:
            editor = self._sessions.pop(session_id, None)
            self._touched.pop(session_id, None)
        if editor is None:
            raise KeyError(f"Sesi {session_id} tidak ditemukan.")
        editor.pipeline.clear()
        logger.info(f"Sesi {session_id[:8]} dihapus.")

    def prune(self) -> int:
        """Drop sessions idle past the TTL. Returns how many were dropped."""
        if self.ttl <= 0:
            return 0
        cutoff = self._clock() - self.ttl
        with self._lock:
            expired = [sid for sid, touched in self._touched.items() if touched < cutoff]
            editors = [self._sessions.pop(sid) for sid in expired]
            for sid in expired:
                del self._touched[sid]
        for editor in editors:
            editor.pipeline.clear()
        if expired:
            logger.info(f"[SESSIONS] {len(expired)} sesi kedaluwarsa dihapus.")
        return len(expired)

    def close(self) -> None:
        with self._lock:
            editors = list(self._sessions.values())
            self._sessions.clear()
            self._touched.clear()
        for editor in editors:
            editor.pipeline.clear()

    def __len__(self) -> int:
        return len(self._sessions)
