"""
Composite module for Frame Studio.

This module handles:
- Placing the user's photo on the canvas (translate, rotate, scale, fit)
- Laying the frame overlay on top, stretched to the full canvas
- The frame-less crop layer used for export
- Rescaling the same placement to arbitrary output sizes for previews
"""

import math
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from PIL import Image
from loguru import logger

from frame_studio.models import CanvasDimensions, Transform

WHITE = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)

AffineData = Tuple[float, float, float, float, float, float]


class CompositeMode(str, Enum):
    """Layer order for a repaint."""
    FULL = 'full'   # white fill, user photo, frame overlay
    CROP = 'crop'   # transparent fill, user photo only


def fit_draw_size(image_size: Tuple[int, int], canvas: CanvasDimensions,
                  fit_ratio: float = 0.8) -> Tuple[float, float]:
    """
    Size the photo is drawn at before the user's scale is applied.

    The aspect ratio is preserved and the binding axis is filled to
    `fit_ratio` of the canvas: width when the photo is flatter than the
    canvas, height otherwise.
    """
    image_width, image_height = image_size
    image_aspect = image_width / image_height

    if image_aspect > canvas.aspect:
        draw_width = canvas.width * fit_ratio
        draw_height = draw_width / image_aspect
    else:
        draw_height = canvas.height * fit_ratio
        draw_width = draw_height * image_aspect

    return draw_width, draw_height


def placement_matrix(image_size: Tuple[int, int], transform: Transform, canvas: CanvasDimensions,
                     surface_size: Tuple[int, int], fit_ratio: float = 0.8) -> AffineData:
    """
    Inverse affine coefficients mapping surface pixels back to photo pixels.

    Forward, a point q in the centred draw rectangle lands on the canvas at
    T + scale * R(rotation) * q, and the canvas is stretched onto the surface
    by (surface.width / canvas.width, surface.height / canvas.height).
    Pillow's AFFINE transform wants the inverse of that chain.
    """
    image_width, image_height = image_size
    draw_width, draw_height = fit_draw_size(image_size, canvas, fit_ratio)

    sx = surface_size[0] / canvas.width
    sy = surface_size[1] / canvas.height
    radians = math.radians(transform.rotation)
    cos_r, sin_r = math.cos(radians), math.sin(radians)
    scale = transform.scale
    tx, ty = transform.x, transform.y

    kx = image_width / draw_width
    ky = image_height / draw_height

    a = kx * cos_r / (scale * sx)
    b = kx * sin_r / (scale * sy)
    c = kx * (draw_width / 2 - (cos_r * tx + sin_r * ty) / scale)
    d = -ky * sin_r / (scale * sx)
    e = ky * cos_r / (scale * sy)
    f = ky * (draw_height / 2 + (sin_r * tx - cos_r * ty) / scale)
    return (a, b, c, d, e, f)


class CompositeEngine:
    """Deterministic compositor for one user photo plus one frame overlay."""

    def __init__(self, fit_ratio: float = 0.8,
                 resample: Image.Resampling = Image.Resampling.BICUBIC):
        self.fit_ratio = fit_ratio
        self.resample = resample

    def create_surface(self, size: Tuple[int, int], mode: CompositeMode = CompositeMode.FULL) -> Image.Image:
        """Create a new surface filled for the given mode."""
        return Image.new('RGBA', size, WHITE if mode == CompositeMode.FULL else TRANSPARENT)

    def composite(self,
                  surface: Image.Image,
                  user_image: Optional[Image.Image],
                  frame_image: Optional[Image.Image],
                  transform: Transform,
                  canvas: CanvasDimensions,
                  mode: CompositeMode = CompositeMode.FULL) -> None:
        """
        Repaint `surface` in place.

        The surface may be larger or smaller than the editor canvas; all
        placement is rescaled per axis to the surface size.
        """
        if surface.mode != 'RGBA':
            raise ValueError(f"Composite surface must be RGBA, got {surface.mode}")

        surface.paste(WHITE if mode == CompositeMode.FULL else TRANSPARENT, (0, 0) + surface.size)

        if user_image is not None:
            self.draw_user_image(surface, user_image, transform, canvas)

        if mode == CompositeMode.FULL and frame_image is not None:
            self.draw_canvas_layer(surface, frame_image)

        logger.debug(f"Composited {mode.value} surface {surface.size} "
                     f"(photo={'yes' if user_image is not None else 'no'}, "
                     f"frame={'yes' if frame_image is not None and mode == CompositeMode.FULL else 'no'}, "
                     f"x={transform.x:.1f}, y={transform.y:.1f}, scale={transform.scale:.2f}, "
                     f"rotation={transform.rotation:.1f})")

    def render(self,
               user_image: Optional[Image.Image],
               frame_image: Optional[Image.Image],
               transform: Transform,
               canvas: CanvasDimensions,
               mode: CompositeMode = CompositeMode.FULL,
               size: Optional[Tuple[int, int]] = None) -> Image.Image:
        """Pure variant of `composite`: returns a new surface."""
        surface = self.create_surface(size or canvas.size, mode)
        self.composite(surface, user_image, frame_image, transform, canvas, mode)
        return surface

    def draw_user_image(self, surface: Image.Image, user_image: Image.Image,
                        transform: Transform, canvas: CanvasDimensions) -> None:
        """Draw the photo centred on the transformed origin."""
        data = placement_matrix(user_image.size, transform, canvas, surface.size, self.fit_ratio)
        layer = user_image.convert('RGBA').transform(
            surface.size,
            Image.Transform.AFFINE,
            data,
            resample=self.resample
        )
        surface.alpha_composite(layer)

    def draw_canvas_layer(self, surface: Image.Image, layer: Image.Image) -> None:
        """Draw an untransformed canvas-space layer stretched over the whole surface."""
        layer = layer.convert('RGBA')
        if layer.size != surface.size:
            layer = layer.resize(surface.size, Image.Resampling.LANCZOS)
        surface.alpha_composite(layer)


def render_composite(user_image: Optional[Image.Image],
                     frame_image: Optional[Image.Image],
                     transform: Transform,
                     canvas: CanvasDimensions,
                     mode: CompositeMode = CompositeMode.FULL,
                     size: Optional[Tuple[int, int]] = None,
                     fit_ratio: float = 0.8) -> Image.Image:
    """Render a composite without holding an engine."""
    return CompositeEngine(fit_ratio=fit_ratio).render(user_image, frame_image, transform, canvas, mode, size)


def visible_coverage(layer: Image.Image) -> float:
    """Fraction of the layer's pixels that are not fully transparent."""
    alpha = np.asarray(layer.convert('RGBA'))[:, :, 3]
    if alpha.size == 0:
        return 0.0
    return float(np.count_nonzero(alpha)) / alpha.size


def create_composite_engine(fit_ratio: float = None) -> CompositeEngine:
    """Factory function to create a CompositeEngine from configuration."""
    if fit_ratio is None:
        from frame_studio.config import get_config
        fit_ratio = get_config().FIT_RATIO
    return CompositeEngine(fit_ratio=fit_ratio)
