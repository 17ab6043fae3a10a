"""
Frame Overlay module for Frame Studio.

This module handles:
- Loading frame overlay assets from product metadata URLs
- Caching decoded overlays per URL
- Generating placeholder frames when an overlay is missing or broken
- Deriving the editor canvas size from the overlay's aspect ratio
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple
from PIL import Image, ImageDraw, ImageFont
from loguru import logger

from frame_studio.errors import FrameLoadError
from frame_studio.images import ImageLoader
from frame_studio.models import CanvasDimensions

# Product metadata uses this URL to mean "no frame configured"
PLACEHOLDER_FRAME_URL = 'https://via.placeholder.com/400x600/transparent'

DEFAULT_PLACEHOLDER_TEXT = "Your Image Here"
DEGRADED_PLACEHOLDER_TEXT = "Frame Area"


@dataclass
class FrameOverlay:
    """A frame overlay ready for compositing."""
    image: Optional[Image.Image]
    source_url: str = ''
    is_placeholder: bool = False
    degraded: bool = False
    message: Optional[str] = None

    @property
    def aspect(self) -> Optional[float]:
        if self.image is None or self.is_placeholder:
            return None
        return self.image.width / self.image.height


def create_placeholder_frame(size: Tuple[int, int], degraded: bool = False) -> Image.Image:
    """
    Draw a placeholder frame: an outlined border with a dashed inner window.

    The window sits at 1/8 of the width and 1/6 of the height and spans 3/4 by
    2/3 of the canvas. The default placeholder mattes the area outside the
    window with translucent white; the degraded one is outline only so the
    user's photo stays fully visible.
    """
    width, height = size
    frame = Image.new('RGBA', size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(frame)

    left, top = width / 8, height / 6
    right, bottom = left + width * 3 / 4, top + height * 2 / 3

    if not degraded:
        matte = (255, 255, 255, 204)
        draw.rectangle([0, 0, width - 1, top], fill=matte)
        draw.rectangle([0, bottom, width - 1, height - 1], fill=matte)
        draw.rectangle([0, top, left, bottom], fill=matte)
        draw.rectangle([right, top, width - 1, bottom], fill=matte)

    draw.rectangle([0, 0, width - 1, height - 1], outline=(204, 204, 204, 255), width=2)
    _draw_dashed_rectangle(draw, (left, top, right, bottom), fill=(153, 153, 153, 255),
                           dash=5, gap=5, width=1 if degraded else 2)

    text = DEGRADED_PLACEHOLDER_TEXT if degraded else DEFAULT_PLACEHOLDER_TEXT
    font = ImageFont.load_default()
    text_box = draw.textbbox((0, 0), text, font=font)
    text_w, text_h = text_box[2] - text_box[0], text_box[3] - text_box[1]
    text_fill = (153, 153, 153, 255) if degraded else (102, 102, 102, 255)
    draw.text(((width - text_w) / 2, (height - text_h) / 2), text, fill=text_fill, font=font)

    return frame


def _draw_dashed_rectangle(draw: ImageDraw.ImageDraw, box, fill, dash: int, gap: int, width: int):
    left, top, right, bottom = box
    step = dash + gap

    x = left
    while x < right:
        end = min(x + dash, right)
        draw.line([(x, top), (end, top)], fill=fill, width=width)
        draw.line([(x, bottom), (end, bottom)], fill=fill, width=width)
        x += step

    y = top
    while y < bottom:
        end = min(y + dash, bottom)
        draw.line([(left, y), (left, end)], fill=fill, width=width)
        draw.line([(right, y), (right, end)], fill=fill, width=width)
        y += step


class FrameOverlayEngine:
    """Loads frame overlays and falls back to placeholders"""

    def __init__(self, loader: ImageLoader, cache_size: int = 32):
        self.loader = loader
        self.cache_size = cache_size
        self.available_frames: "OrderedDict[str, Image.Image]" = OrderedDict()  # LRU of loaded frames
        self._lock = threading.Lock()

    def load_overlay(self, url: Optional[str], canvas: Optional[CanvasDimensions] = None) -> FrameOverlay:
        """
        Load the overlay for a product, never raising.

        Args:
            url: Absolute overlay URL from product metadata (may be empty or broken)
            canvas: Size for a placeholder, if one is needed

        Returns:
            FrameOverlay; `degraded` is set when a real overlay failed to load
        """
        url = (url or '').strip()
        placeholder_size = (canvas or CanvasDimensions.default()).size

        if not url or url == PLACEHOLDER_FRAME_URL:
            logger.info("No frame overlay configured, using placeholder frame")
            return FrameOverlay(
                image=create_placeholder_frame(placeholder_size),
                source_url=url,
                is_placeholder=True
            )

        cached = self._cached(url)
        if cached is not None:
            return FrameOverlay(image=cached, source_url=url)

        try:
            image = self.loader.load(url, error_cls=FrameLoadError).convert('RGBA')
        except FrameLoadError as e:
            logger.warning(f"Failed to load frame overlay {url}: {e.reason}")
            return FrameOverlay(
                image=create_placeholder_frame(placeholder_size, degraded=True),
                source_url=url,
                is_placeholder=True,
                degraded=True,
                message=FrameLoadError.user_message
            )

        self._remember(url, image)
        logger.debug(f"Loaded frame overlay: {url} ({image.size})")
        return FrameOverlay(image=image, source_url=url)

    def _cached(self, url: str) -> Optional[Image.Image]:
        with self._lock:
            image = self.available_frames.get(url)
            if image is not None:
                self.available_frames.move_to_end(url)
            return image

    def _remember(self, url: str, image: Image.Image) -> None:
        with self._lock:
            self.available_frames[url] = image
            self.available_frames.move_to_end(url)
            while len(self.available_frames) > self.cache_size:
                evicted, _ = self.available_frames.popitem(last=False)
                logger.debug(f"Evicted frame overlay from cache: {evicted}")

    def canvas_for(self, overlay: FrameOverlay,
                   minimum: Tuple[int, int], maximum: Tuple[int, int],
                   default: Tuple[int, int]) -> CanvasDimensions:
        """Editor canvas for an overlay: aspect-fitted for real frames, default for placeholders"""
        if overlay.aspect is None:
            return CanvasDimensions(width=default[0], height=default[1])
        return CanvasDimensions.for_frame(overlay.aspect, minimum=minimum, maximum=maximum)
