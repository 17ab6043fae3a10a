"""
Preview Renderer
Rebuilds a saved customization at any output size for thumbnails, cart and product pages
"""

from typing import Optional

import numpy as np
from PIL import Image
from loguru import logger

from frame_studio.composite import CompositeEngine, CompositeMode
from frame_studio.errors import ImageLoadError, ValidationError
from frame_studio.frame_overlay import FrameOverlayEngine
from frame_studio.images import ImageLoader
from frame_studio.models import CanvasDimensions, CustomizationRecord


class PreviewRenderer:
    """Replays stored customizations through the compositor"""

    def __init__(self, compositor: CompositeEngine, frame_engine: FrameOverlayEngine,
                 loader: ImageLoader, max_size: int = 2048):
        self.compositor = compositor
        self.frame_engine = frame_engine
        self.loader = loader
        self.max_size = max_size

    def render(self, width: int, height: int,
               record: Optional[CustomizationRecord] = None,
               fallback_image_url: Optional[str] = None) -> Image.Image:
        """
        Render a customization at width x height.

        The user layer comes from the cropped artifact, which already carries
        the placement in editor-canvas space and is stretched by the per-axis
        factors width / canvas.width and height / canvas.height. When that
        artifact cannot be loaded, the original upload is replayed through
        the stored transform with the same factors. The frame overlay goes on
        top under the usual placeholder policy.

        Args:
            width: Output width in pixels
            height: Output height in pixels
            record: Saved customization, or None for an uncustomized product
            fallback_image_url: Plain product image shown when there is no record

        Returns:
            RGBA surface of the requested size
        """
        size = self._validate_size(width, height)
        surface = self.compositor.create_surface(size, CompositeMode.FULL)

        if record is None:
            if fallback_image_url:
                self._draw_product_image(surface, fallback_image_url)
            return surface

        if not self._draw_cropped_layer(surface, record):
            self._draw_original(surface, record)

        overlay = self.frame_engine.load_overlay(record.frame_image_url,
                                                 canvas=CanvasDimensions(width=size[0], height=size[1]))
        if overlay.image is not None:
            self.compositor.draw_canvas_layer(surface, overlay.image)

        logger.debug(f"Rendered preview {size[0]}x{size[1]} from {record.canvas_dimensions.width}x"
                     f"{record.canvas_dimensions.height} canvas"
                     f"{' (placeholder frame)' if overlay.is_placeholder else ''}")
        return surface

    def _validate_size(self, width, height):
        try:
            size = (int(width), int(height))
        except (TypeError, ValueError):
            raise ValidationError("Preview size must be whole numbers",
                                  details={'width': width, 'height': height})
        if not all(0 < value <= self.max_size for value in size):
            raise ValidationError(f"Preview size must be between 1 and {self.max_size} pixels",
                                  details={'width': width, 'height': height})
        return size

    def _draw_cropped_layer(self, surface: Image.Image, record: CustomizationRecord) -> bool:
        if not record.cropped_image_url:
            return False
        try:
            layer = self.loader.load(record.cropped_image_url)
        except ImageLoadError as e:
            logger.warning(f"Cropped layer unavailable ({e.reason}), replaying original upload")
            return False
        self.compositor.draw_canvas_layer(surface, layer)
        return True

    def _draw_original(self, surface: Image.Image, record: CustomizationRecord) -> bool:
        try:
            original = self.loader.load(record.original_image_url, apply_exif=True)
        except ImageLoadError as e:
            logger.warning(f"Original upload unavailable ({e.reason}), rendering frame only")
            return False
        self.compositor.draw_user_image(surface, original, record.image_state, record.canvas_dimensions)
        return True

    def _draw_product_image(self, surface: Image.Image, url: str) -> None:
        try:
            product = self.loader.load(url)
        except ImageLoadError as e:
            logger.warning(f"Product image unavailable for preview: {e.reason}")
            return
        self.compositor.draw_canvas_layer(surface, product)


def max_pixel_difference(first: Image.Image, second: Image.Image) -> int:
    """Largest per-channel difference between two same-sized images (RGBA)."""
    if first.size != second.size:
        raise ValueError(f"Size mismatch: {first.size} vs {second.size}")
    a = np.asarray(first.convert('RGBA'), dtype=np.int16)
    b = np.asarray(second.convert('RGBA'), dtype=np.int16)
    return int(np.abs(a - b).max()) if a.size else 0
