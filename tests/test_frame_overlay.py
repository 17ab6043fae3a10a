"""
Unit tests for frame overlay loading and placeholder frames.
"""

from unittest.mock import patch

import pytest

from frame_studio.errors import FrameLoadError
from frame_studio.frame_overlay import (
    PLACEHOLDER_FRAME_URL, FrameOverlay, FrameOverlayEngine, create_placeholder_frame
)
from frame_studio.images import ImageLoader
from frame_studio.models import CanvasDimensions
from tests.conftest import make_frame


@pytest.fixture
def frame_engine():
    return FrameOverlayEngine(ImageLoader())


class TestPlaceholderFrame:
    """Test generated placeholder frames."""

    def test_default_placeholder(self):
        """The default placeholder mattes outside the window and leaves it clear."""
        frame = create_placeholder_frame((400, 600))

        assert frame.size == (400, 600)
        assert frame.mode == 'RGBA'
        assert frame.getpixel((0, 0)) == (204, 204, 204, 255)
        assert frame.getpixel((20, 300)) == (255, 255, 255, 204)
        assert frame.getpixel((120, 250))[3] == 0

    def test_degraded_placeholder_is_outline_only(self):
        """The degraded placeholder keeps the area around the window transparent."""
        frame = create_placeholder_frame((400, 600), degraded=True)

        assert frame.getpixel((0, 0)) == (204, 204, 204, 255)
        assert frame.getpixel((20, 300))[3] == 0
        assert frame.getpixel((120, 250))[3] == 0

    def test_follows_requested_size(self):
        frame = create_placeholder_frame((800, 1200))

        assert frame.size == (800, 1200)
        assert frame.getpixel((40, 600)) == (255, 255, 255, 204)


class TestFrameOverlayEngine:
    """Test overlay loading with placeholder fallback."""

    @pytest.mark.parametrize('url', [None, '', '   ', PLACEHOLDER_FRAME_URL])
    def test_missing_url_uses_placeholder(self, frame_engine, url):
        overlay = frame_engine.load_overlay(url)

        assert overlay.is_placeholder
        assert not overlay.degraded
        assert overlay.message is None
        assert overlay.image.size == (400, 600)

    def test_placeholder_uses_canvas_size(self, frame_engine):
        overlay = frame_engine.load_overlay(None, canvas=CanvasDimensions(width=250, height=500))

        assert overlay.image.size == (250, 500)

    def test_broken_url_degrades(self, frame_engine, tmp_path):
        """A frame that cannot be loaded gives a degraded placeholder and a notice."""
        url = (tmp_path / 'missing-frame.png').as_uri()

        overlay = frame_engine.load_overlay(url)

        assert overlay.is_placeholder
        assert overlay.degraded
        assert overlay.message == FrameLoadError.user_message
        assert overlay.source_url == url
        assert url not in frame_engine.available_frames

    def test_undecodable_frame_degrades(self, frame_engine, tmp_path):
        path = tmp_path / 'frame.png'
        path.write_bytes(b'not an image')

        overlay = frame_engine.load_overlay(str(path))

        assert overlay.degraded

    def test_loads_and_caches_frame(self, frame_engine, sample_frame_url):
        """A loaded frame is converted to RGBA and cached by URL."""
        overlay = frame_engine.load_overlay(sample_frame_url)

        assert not overlay.is_placeholder
        assert overlay.image.mode == 'RGBA'
        assert overlay.aspect == pytest.approx(400 / 600)
        assert sample_frame_url in frame_engine.available_frames

        with patch.object(frame_engine.loader, 'load') as load:
            again = frame_engine.load_overlay(sample_frame_url)

        load.assert_not_called()
        assert again.image is overlay.image

    def test_cache_evicts_least_recently_used(self, asset_dir):
        engine = FrameOverlayEngine(ImageLoader(), cache_size=2)
        urls = []
        for i in range(3):
            path = asset_dir / f'frame-{i}.png'
            make_frame().save(path)
            urls.append(path.resolve().as_uri())

        engine.load_overlay(urls[0])
        engine.load_overlay(urls[1])
        engine.load_overlay(urls[0])
        engine.load_overlay(urls[2])

        assert list(engine.available_frames) == [urls[0], urls[2]]

    def test_canvas_for_real_frame(self, frame_engine, sample_frame_url):
        overlay = frame_engine.load_overlay(sample_frame_url)

        canvas = frame_engine.canvas_for(overlay, (300, 400), (500, 700), (400, 600))

        assert canvas.size == (467, 700)

    def test_canvas_for_placeholder_is_default(self, frame_engine):
        overlay = frame_engine.load_overlay(None)

        canvas = frame_engine.canvas_for(overlay, (300, 400), (500, 700), (400, 600))

        assert canvas.size == (400, 600)

    def test_aspect_is_none_without_image(self):
        assert FrameOverlay(image=None).aspect is None
