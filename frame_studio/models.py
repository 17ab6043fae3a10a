"""
Data model for frame customizations.

Transform and CanvasDimensions describe where the user's photo sits inside
the editor canvas; CustomizationRecord is the persisted result of a
completed editing session.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CANVAS_SIZE = (400, 600)


class Transform(BaseModel):
    """Placement of the user photo: center point, uniform scale and rotation in degrees."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    x: float
    y: float
    scale: float = Field(default=1.0, gt=0)
    rotation: float = 0.0

    @classmethod
    def centered(cls, canvas: 'CanvasDimensions') -> 'Transform':
        return cls(x=canvas.width / 2, y=canvas.height / 2, scale=1.0, rotation=0.0)

    def moved_to(self, x: float, y: float) -> 'Transform':
        return Transform(x=x, y=y, scale=self.scale, rotation=self.rotation)

    def with_scale(self, scale: float) -> 'Transform':
        return Transform(x=self.x, y=self.y, scale=scale, rotation=self.rotation)

    def with_rotation(self, rotation: float) -> 'Transform':
        return Transform(x=self.x, y=self.y, scale=self.scale, rotation=rotation)


class CanvasDimensions(BaseModel):
    """Editor canvas size in pixels, fixed for one customization session."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @classmethod
    def default(cls) -> 'CanvasDimensions':
        return cls(width=DEFAULT_CANVAS_SIZE[0], height=DEFAULT_CANVAS_SIZE[1])

    @classmethod
    def for_frame(cls, aspect: float,
                  minimum: Tuple[int, int] = (300, 400),
                  maximum: Tuple[int, int] = (500, 700)) -> 'CanvasDimensions':
        """
        Derive canvas dimensions from a frame overlay's aspect ratio.

        The frame is fitted inside the maximum envelope, then each axis is
        clamped into [minimum, maximum]. Extreme aspect ratios therefore lose
        a little of their proportion rather than producing an unusable canvas.
        """
        if not aspect or aspect <= 0:
            return cls.default()

        width = float(maximum[0])
        height = width / aspect
        if height > maximum[1]:
            height = float(maximum[1])
            width = height * aspect

        width = min(max(width, minimum[0]), maximum[0])
        height = min(max(height, minimum[1]), maximum[1])
        return cls(width=int(round(width)), height=int(round(height)))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CustomizationRecord(BaseModel):
    """
    Persisted customization for one product.

    Field names follow the stored JSON layout (camelCase). Unknown fields are
    ignored so newer writers stay readable; records written before the canvas
    size was stored are upgraded to the default 400x600 editor canvas.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    original_image_url: str = Field(alias='originalImageUrl', min_length=1)
    rendered_image_url: str = Field(alias='renderedImageUrl', min_length=1)
    cropped_image_url: Optional[str] = Field(default=None, alias='croppedImageUrl')
    frame_image_url: Optional[str] = Field(default=None, alias='frameImageUrl')
    image_state: Transform = Field(alias='imageState')
    canvas_dimensions: CanvasDimensions = Field(default_factory=CanvasDimensions.default,
                                                alias='canvasDimensions')
    created_at: Optional[datetime] = Field(default=None, alias='createdAt')

    @model_validator(mode='before')
    @classmethod
    def _upgrade_legacy(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in ('canvasDimensions', 'canvas_dimensions', 'croppedImageUrl',
                        'frameImageUrl', 'createdAt'):
                if key in data and data[key] in (None, ''):
                    del data[key]
        return data

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json')

    def artifact_urls(self) -> Dict[str, Optional[str]]:
        return {
            'original': self.original_image_url,
            'rendered': self.rendered_image_url,
            'cropped': self.cropped_image_url,
        }
