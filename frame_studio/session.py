"""
Interaction Controller for the frame editor.

An EditorSession holds everything one open editor owns: the canvas, the
frame overlay, the uploaded photo, the in-progress transform and the two
surfaces kept painted for export. InteractionController turns drag, slider
and reset input into transform changes on a session handed to it, and
repaints both surfaces after every change.
"""

import math
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from PIL import Image
from loguru import logger

from frame_studio.composite import CompositeEngine, CompositeMode
from frame_studio.config import AppConfig
from frame_studio.errors import ImageLoadError, ValidationError
from frame_studio.frame_overlay import FrameOverlay, FrameOverlayEngine
from frame_studio.images import ImageLoader, ImageSource
from frame_studio.models import CanvasDimensions, Transform


class EditorState(str, Enum):
    EMPTY = 'empty'
    IDLE = 'idle'
    DRAGGING = 'dragging'
    SAVED = 'saved'


@dataclass
class EditorSession:
    """State of one open customization editor."""
    product_id: str
    product_handle: str
    canvas: CanvasDimensions
    frame: FrameOverlay
    transform: Transform
    composite_surface: Image.Image
    crop_surface: Image.Image
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_image: Optional[Image.Image] = None
    state: EditorState = EditorState.EMPTY
    drag_offset: Optional[Tuple[float, float]] = None
    notices: List[str] = field(default_factory=list)
    listeners: List[Callable[['EditorSession'], None]] = field(default_factory=list, repr=False)
    repaint_count: int = 0
    # Held by every mutation and repaint, and while a save rasterizes the surfaces
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def has_image(self) -> bool:
        return self.user_image is not None

    @property
    def is_dragging(self) -> bool:
        return self.state == EditorState.DRAGGING

    @property
    def frame_image_url(self) -> str:
        return self.frame.source_url

    @property
    def frame_degraded(self) -> bool:
        return self.frame.degraded

    def subscribe(self, listener: Callable[['EditorSession'], None]) -> None:
        """Register a callback run after every repaint."""
        self.listeners.append(listener)

    def notify(self, message: str) -> None:
        self.notices.append(message)

    def summary(self) -> dict:
        with self.lock:
            return {
                'sessionId': self.session_id,
                'productId': self.product_id,
                'state': self.state.value,
                'hasImage': self.has_image,
                'canvasDimensions': self.canvas.model_dump(),
                'imageState': self.transform.model_dump(),
                'frameImageUrl': self.frame_image_url,
                'frameDegraded': self.frame_degraded,
                'notices': list(self.notices),
            }


class InteractionController:
    """Applies editor input to sessions and keeps their surfaces painted."""

    def __init__(self, config: AppConfig, compositor: CompositeEngine,
                 frame_engine: FrameOverlayEngine, loader: ImageLoader):
        self.config = config
        self.compositor = compositor
        self.frame_engine = frame_engine
        self.loader = loader

    def open_session(self, product_id: str, product_handle: str, frame_url: Optional[str]) -> EditorSession:
        """Load the product's frame overlay, size the canvas and paint the empty editor."""
        overlay = self.frame_engine.load_overlay(frame_url)
        canvas = self.frame_engine.canvas_for(
            overlay,
            minimum=self.config.CANVAS_MIN_SIZE,
            maximum=self.config.CANVAS_MAX_SIZE,
            default=self.config.CANVAS_DEFAULT_SIZE
        )

        session = EditorSession(
            product_id=product_id,
            product_handle=product_handle,
            canvas=canvas,
            frame=overlay,
            transform=Transform.centered(canvas),
            composite_surface=self.compositor.create_surface(canvas.size, CompositeMode.FULL),
            crop_surface=self.compositor.create_surface(canvas.size, CompositeMode.CROP),
        )
        if overlay.degraded:
            session.notify(overlay.message)

        logger.info(f"Opened editor session {session.session_id} for {product_handle} "
                    f"({canvas.width}x{canvas.height}, frame={'placeholder' if overlay.is_placeholder else 'loaded'})")
        self.repaint(session)
        return session

    def load_user_image(self, session: EditorSession, source: ImageSource) -> bool:
        """
        Decode the user's photo into the session and centre it.

        Returns False when the photo cannot be loaded; the session keeps its
        previous photo (or the frame-only state) and gets a notice.
        """
        try:
            image = self.loader.load(source, apply_exif=True)
        except ImageLoadError as e:
            logger.warning(f"Session {session.session_id}: user image failed to load: {e.reason}")
            with session.lock:
                session.notify(ImageLoadError.user_message)
                self.repaint(session)
            return False

        with session.lock:
            session.user_image = image
            session.drag_offset = None
            session.state = EditorState.IDLE
            session.transform = Transform.centered(session.canvas)
            self.repaint(session)
        logger.info(f"Session {session.session_id}: user image loaded ({image.width}x{image.height})")
        return True

    def start_drag(self, session: EditorSession, pointer_x: float, pointer_y: float) -> bool:
        """Anchor a drag at the pointer; no-op without a photo."""
        with session.lock:
            if not session.has_image:
                return False
            pointer_x, pointer_y = _finite(pointer_x, 'x'), _finite(pointer_y, 'y')
            session.drag_offset = (pointer_x - session.transform.x, pointer_y - session.transform.y)
            session.state = EditorState.DRAGGING
        logger.debug(f"Session {session.session_id}: drag started at ({pointer_x:.1f}, {pointer_y:.1f})")
        return True

    def drag_to(self, session: EditorSession, pointer_x: float, pointer_y: float) -> bool:
        """Move the photo so the anchor stays under the pointer. Positions are not clamped."""
        with session.lock:
            if not session.is_dragging or not session.has_image:
                return False

            offset_x, offset_y = session.drag_offset
            pointer_x, pointer_y = _finite(pointer_x, 'x'), _finite(pointer_y, 'y')
            self._apply(session, session.transform.moved_to(pointer_x - offset_x, pointer_y - offset_y))
        return True

    def end_drag(self, session: EditorSession) -> None:
        with session.lock:
            if session.is_dragging:
                session.state = EditorState.IDLE
                session.drag_offset = None
                logger.debug(f"Session {session.session_id}: drag ended at "
                             f"({session.transform.x:.1f}, {session.transform.y:.1f})")

    def set_scale(self, session: EditorSession, value: float) -> float:
        scale = _clamp(_finite(value, 'scale'), self.config.SCALE_MIN, self.config.SCALE_MAX)
        with session.lock:
            self._apply(session, session.transform.with_scale(scale))
        return scale

    def set_rotation(self, session: EditorSession, value: float) -> float:
        rotation = _clamp(_finite(value, 'rotation'), self.config.ROTATION_MIN, self.config.ROTATION_MAX)
        with session.lock:
            self._apply(session, session.transform.with_rotation(rotation))
        return rotation

    def reset(self, session: EditorSession) -> Transform:
        """Centre the photo, unscaled and unrotated."""
        with session.lock:
            self._apply(session, Transform.centered(session.canvas))
            logger.debug(f"Session {session.session_id}: position reset")
            return session.transform

    def repaint(self, session: EditorSession) -> None:
        """Repaint the full composite and the crop-only layer, then notify listeners."""
        with session.lock:
            for surface, mode in ((session.composite_surface, CompositeMode.FULL),
                                  (session.crop_surface, CompositeMode.CROP)):
                self.compositor.composite(surface, session.user_image, session.frame.image,
                                          session.transform, session.canvas, mode)
            session.repaint_count += 1

            for listener in session.listeners:
                try:
                    listener(session)
                except Exception as e:
                    logger.error(f"Session {session.session_id}: change listener failed: {e}")

    def _apply(self, session: EditorSession, transform: Transform) -> None:
        with session.lock:
            session.transform = transform
            if session.state == EditorState.SAVED:
                session.state = EditorState.IDLE
            self.repaint(session)


def _finite(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", details={name: value})
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite", details={name: str(value)})
    return number


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)
