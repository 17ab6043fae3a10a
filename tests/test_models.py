"""
Unit tests for the customization data model.
"""

import math

import pytest
from pydantic import ValidationError as ModelValidationError

from frame_studio.models import CanvasDimensions, CustomizationRecord, Transform


def record_payload(**overrides):
    payload = {
        'originalImageUrl': 'https://cdn.example.com/photo-original-1.png',
        'renderedImageUrl': 'https://cdn.example.com/photo-rendered-1.png',
        'croppedImageUrl': 'https://cdn.example.com/photo-cropped-1.png',
        'frameImageUrl': 'https://cdn.example.com/frame.png',
        'imageState': {'x': 120.5, 'y': 300, 'scale': 1.25, 'rotation': -15},
        'canvasDimensions': {'width': 450, 'height': 700},
        'createdAt': '2026-01-05T10:00:00Z',
    }
    payload.update(overrides)
    return payload


class TestTransform:
    """Test the Transform value object."""

    def test_centered(self):
        """A centred transform sits at the canvas midpoint, unscaled and unrotated."""
        transform = Transform.centered(CanvasDimensions(width=400, height=600))

        assert (transform.x, transform.y) == (200, 300)
        assert transform.scale == 1.0
        assert transform.rotation == 0.0

    def test_updates_return_new_values(self):
        """Helpers return new transforms and leave the original untouched."""
        original = Transform(x=10, y=20, scale=1.0, rotation=0)

        moved = original.moved_to(-50, 700)
        scaled = original.with_scale(2.5)
        rotated = original.with_rotation(90)

        assert (moved.x, moved.y) == (-50, 700)
        assert scaled.scale == 2.5 and (scaled.x, scaled.y) == (10, 20)
        assert rotated.rotation == 90
        assert original == Transform(x=10, y=20, scale=1.0, rotation=0)

    @pytest.mark.parametrize('bad', [0, -1])
    def test_scale_must_be_positive(self, bad):
        """Non-positive scale is rejected."""
        with pytest.raises(ModelValidationError):
            Transform(x=0, y=0, scale=bad)

    @pytest.mark.parametrize('bad', [math.nan, math.inf, -math.inf])
    def test_rejects_non_finite(self, bad):
        """NaN and infinities never reach a transform."""
        with pytest.raises(ModelValidationError):
            Transform(x=bad, y=0)
        with pytest.raises(ModelValidationError):
            Transform(x=0, y=0).with_rotation(bad)


class TestCanvasDimensions:
    """Test canvas sizing from frame aspect ratios."""

    def test_default(self):
        assert CanvasDimensions.default().size == (400, 600)

    def test_portrait_frame_binds_on_height(self):
        """A 2:3 frame fitted in 500x700 is limited by the height."""
        canvas = CanvasDimensions.for_frame(2 / 3)

        assert canvas.height == 700
        assert canvas.width == 467

    def test_wide_frame_is_clamped_to_minimum_height(self):
        """A landscape frame would be too short, so its height is clamped to 400."""
        canvas = CanvasDimensions.for_frame(16 / 9)

        assert canvas.width == 500
        assert canvas.height == 400

    def test_square_frame(self):
        canvas = CanvasDimensions.for_frame(1.0)

        assert canvas.size == (500, 500)

    def test_invalid_aspect_falls_back_to_default(self):
        assert CanvasDimensions.for_frame(0).size == (400, 600)

    def test_size_must_be_positive(self):
        with pytest.raises(ModelValidationError):
            CanvasDimensions(width=0, height=600)


class TestCustomizationRecord:
    """Test record parsing and serialization."""

    def test_parse_camel_case(self):
        """Records parse from the stored camelCase layout."""
        record = CustomizationRecord.model_validate(record_payload())

        assert record.original_image_url.endswith('photo-original-1.png')
        assert record.image_state == Transform(x=120.5, y=300, scale=1.25, rotation=-15)
        assert record.canvas_dimensions.size == (450, 700)
        assert record.created_at.year == 2026

    def test_json_round_trip_keeps_layout(self):
        """to_json_dict writes camelCase keys that parse back to the same record."""
        record = CustomizationRecord.model_validate(record_payload())
        data = record.to_json_dict()

        assert set(data) >= {'originalImageUrl', 'renderedImageUrl', 'croppedImageUrl',
                             'imageState', 'canvasDimensions', 'createdAt'}
        assert CustomizationRecord.model_validate(data) == record

    def test_legacy_record_gets_default_canvas(self):
        """Records written before the canvas size was stored assume 400x600."""
        payload = record_payload()
        del payload['canvasDimensions']

        record = CustomizationRecord.model_validate(payload)

        assert record.canvas_dimensions.size == (400, 600)

    def test_null_optional_fields(self):
        """Null or empty optional fields are treated as absent."""
        record = CustomizationRecord.model_validate(
            record_payload(croppedImageUrl=None, canvasDimensions=None, frameImageUrl='', createdAt=None)
        )

        assert record.cropped_image_url is None
        assert record.frame_image_url is None
        assert record.canvas_dimensions.size == (400, 600)

    def test_unknown_fields_are_ignored(self):
        """Fields added by newer writers do not break reading."""
        record = CustomizationRecord.model_validate(record_payload(printSize='8x10', rev=3))

        assert 'printSize' not in record.to_json_dict()

    def test_original_url_required(self):
        with pytest.raises(ModelValidationError):
            CustomizationRecord.model_validate(record_payload(originalImageUrl=''))

    def test_artifact_urls(self):
        record = CustomizationRecord.model_validate(record_payload())

        urls = record.artifact_urls()

        assert set(urls) == {'original', 'rendered', 'cropped'}
        assert urls['cropped'].endswith('photo-cropped-1.png')
