"""
Pytest configuration and fixtures for Frame Studio tests.

Provides shared fixtures, test configuration, and utilities
for running tests across the entire application.
"""

import io
import threading
from pathlib import Path
from typing import Dict, List

import pytest
from PIL import Image, ImageDraw

from frame_studio import create_app
from frame_studio.blob_store import BlobStore
from frame_studio.config import AppConfig
from frame_studio.services import build_services


class FakeBlobStore(BlobStore):
    """In-memory blob store; failures are scripted per artifact kind."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.calls: List[str] = []
        self.failures: Dict[str, List[Exception]] = {}
        self._lock = threading.Lock()

    def fail(self, kind: str, *errors: Exception):
        """Queue errors raised by the next uploads whose filename contains `-{kind}-`."""
        self.failures.setdefault(kind, []).extend(errors)

    def upload(self, data: bytes, filename: str) -> str:
        with self._lock:
            self.calls.append(filename)
            for kind, errors in self.failures.items():
                if f"-{kind}-" in filename and errors:
                    raise errors.pop(0)
            self.blobs[filename] = data
        return f"memory://{filename}.png"

    def image(self, filename: str) -> Image.Image:
        return Image.open(io.BytesIO(self.blobs[filename]))


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def sleeps():
    """Delays requested by the retry policy (nothing actually sleeps)."""
    return []


@pytest.fixture
def asset_dir(tmp_path) -> Path:
    """Directory of local frames and photos the services may read."""
    directory = tmp_path / 'assets'
    directory.mkdir()
    return directory


@pytest.fixture
def test_config(tmp_path, asset_dir):
    """Application configuration pointing at temporary directories."""
    return AppConfig(
        SECRET_KEY='test-key',
        FLASK_ENV='testing',
        DEBUG=False,
        LOG_FILE=str(tmp_path / 'logs' / 'app.log'),
        STORE_PATH=str(tmp_path / 'customizations.json'),
        LOCAL_BLOB_DIR=str(tmp_path / 'blobs'),
        LOCAL_IMAGE_ROOTS=[str(asset_dir)],
    )


@pytest.fixture
def services(test_config, blob_store, sleeps):
    """The wired customization pipeline without Flask."""
    return build_services(test_config, blob_store=blob_store, retry_sleep=sleeps.append)


@pytest.fixture
def app(tmp_path, asset_dir, blob_store, sleeps):
    """Create and configure a test Flask application."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-key',
        'DEBUG': False,
        'LOG_FILE': str(tmp_path / 'logs' / 'app.log'),
        'STORE_PATH': str(tmp_path / 'customizations.json'),
        'LOCAL_BLOB_DIR': str(tmp_path / 'blobs'),
        'LOCAL_IMAGE_ROOTS': [str(asset_dir)],
        'MAX_UPLOAD_SIZE': 2 * 1024 * 1024,
    }, blob_store=blob_store, retry_sleep=sleeps.append)

    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


def make_photo(size=(300, 200)) -> Image.Image:
    """Opaque RGB photo with four coloured quadrants."""
    width, height = size
    img = Image.new('RGB', size, color=(200, 40, 40))
    draw = ImageDraw.Draw(img)
    draw.rectangle([width // 2, 0, width, height // 2], fill=(40, 160, 40))
    draw.rectangle([0, height // 2, width // 2, height], fill=(40, 40, 200))
    draw.rectangle([width // 2, height // 2, width, height], fill=(230, 200, 30))
    return img


def make_frame(size=(400, 600), border=40) -> Image.Image:
    """Brown frame with a transparent window."""
    width, height = size
    img = Image.new('RGBA', size, color=(139, 69, 19, 255))
    draw = ImageDraw.Draw(img)
    draw.rectangle([border, border, width - border - 1, height - border - 1], fill=(0, 0, 0, 0))
    return img


def png_bytes(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def sample_photo():
    """A landscape photo wider than the default canvas aspect."""
    return make_photo()


@pytest.fixture
def sample_photo_bytes(sample_photo):
    return png_bytes(sample_photo)


@pytest.fixture
def sample_photo_file(asset_dir, sample_photo) -> Path:
    path = asset_dir / 'photo.jpg'
    sample_photo.save(path, 'JPEG', quality=95)
    return path


@pytest.fixture
def sample_frame_file(asset_dir) -> Path:
    """A 400x600 frame overlay saved as PNG."""
    path = asset_dir / 'frame.png'
    make_frame().save(path, 'PNG')
    return path


@pytest.fixture
def sample_frame_url(sample_frame_file) -> str:
    return sample_frame_file.resolve().as_uri()
