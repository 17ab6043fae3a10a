"""
Wiring of the customization pipeline for one application instance.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from frame_studio.blob_store import BlobStore, create_blob_store
from frame_studio.composite import CompositeEngine, create_composite_engine
from frame_studio.config import AppConfig
from frame_studio.errors import SessionNotFoundError
from frame_studio.export import ArtifactExporter
from frame_studio.frame_overlay import FrameOverlayEngine
from frame_studio.images import ImageLoader
from frame_studio.preview import PreviewRenderer
from frame_studio.retry import RetryPolicy
from frame_studio.session import EditorSession, InteractionController
from frame_studio.store import CustomizationStore


class SessionRegistry:
    """Open editor sessions by id; the oldest are evicted past `limit`."""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._sessions: "OrderedDict[str, EditorSession]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, session: EditorSession) -> EditorSession:
        with self._lock:
            self._sessions[session.session_id] = session
            while len(self._sessions) > self.limit:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info(f"Evicted idle editor session {evicted}")
        return session

    def get(self, session_id: str) -> EditorSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            self._sessions.move_to_end(session_id)
            return session

    def close(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass
class Services:
    config: AppConfig
    loader: ImageLoader
    compositor: CompositeEngine
    frame_engine: FrameOverlayEngine
    controller: InteractionController
    store: CustomizationStore
    exporter: ArtifactExporter
    preview: PreviewRenderer
    sessions: SessionRegistry


def build_services(config: AppConfig, blob_store: Optional[BlobStore] = None,
                   retry_sleep: Optional[Callable[[float], None]] = None) -> Services:
    loader = ImageLoader(
        timeout=config.IMAGE_FETCH_TIMEOUT,
        local_roots=[config.LOCAL_BLOB_DIR, *config.LOCAL_IMAGE_ROOTS]
    )
    compositor = create_composite_engine(config.FIT_RATIO)
    frame_engine = FrameOverlayEngine(loader, cache_size=config.FRAME_CACHE_SIZE)
    store = CustomizationStore(config.STORE_PATH, namespace=config.STORE_NAMESPACE)

    return Services(
        config=config,
        loader=loader,
        compositor=compositor,
        frame_engine=frame_engine,
        controller=InteractionController(config, compositor, frame_engine, loader),
        store=store,
        exporter=ArtifactExporter(
            blob_store or create_blob_store(config),
            store,
            retry_policy=RetryPolicy.from_config(config, sleep=retry_sleep)
        ),
        preview=PreviewRenderer(compositor, frame_engine, loader, max_size=config.PREVIEW_MAX_SIZE),
        sessions=SessionRegistry(limit=config.MAX_SESSIONS),
    )
