"""
Image loading for Frame Studio.

Decodes user uploads and frame overlays from URLs, data URIs, local files
or raw bytes into Pillow images. Every failure surfaces as ImageLoadError so
callers can fall back instead of aborting.
"""

import base64
import binascii
import io
from pathlib import Path
from typing import Any, Iterable, Optional, Union
from urllib.parse import unquote_to_bytes, urlparse
from urllib.request import url2pathname

import requests
from PIL import Image, ImageOps
from loguru import logger

from frame_studio.errors import ImageLoadError

ImageSource = Union[str, Path, bytes, bytearray, Any]


class ImageLoader:
    """
    Loads images from any of the sources the storefront hands around.

    With `local_roots` set, filesystem paths and file:// URIs are only read
    when they resolve inside one of those directories; an empty list turns
    local reads off entirely. None leaves local reads unrestricted.
    """

    def __init__(self, timeout: Optional[float] = None, http: Optional[requests.Session] = None,
                 local_roots: Optional[Iterable[Union[str, Path]]] = None):
        self.timeout = timeout
        self.http = http or requests.Session()
        self.local_roots = None if local_roots is None else [Path(root).resolve() for root in local_roots]

    def load(self, source: ImageSource, error_cls=ImageLoadError, apply_exif: bool = False) -> Image.Image:
        """
        Load and fully decode an image.

        Args:
            source: URL, data URI, file:// URI, filesystem path, bytes or a binary file object
            error_cls: ImageLoadError subclass to raise on failure
            apply_exif: Rotate according to the EXIF orientation tag (user photos)

        Returns:
            Decoded Pillow image
        """
        data = self._read(source, error_cls)

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise error_cls(_label(source), f"not a decodable image ({e})")

        if apply_exif:
            image = ImageOps.exif_transpose(image)

        if image.width <= 0 or image.height <= 0:
            raise error_cls(_label(source), "image has no pixels")

        logger.debug(f"Loaded image {_label(source)[:80]} ({image.width}x{image.height}, {image.mode})")
        return image

    def _read(self, source: ImageSource, error_cls) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            if not source:
                raise error_cls('<bytes>', "empty image data")
            return bytes(source)

        if hasattr(source, 'read'):
            data = source.read()
            if not data:
                raise error_cls(getattr(source, 'filename', None) or '<stream>', "empty image data")
            return data

        if isinstance(source, Path):
            return self._read_file(source, error_cls)

        text = (source or '').strip() if isinstance(source, str) else ''
        if not text:
            raise error_cls('', "no image source given")

        if text.startswith('data:'):
            return self._read_data_uri(text, error_cls)

        parsed = urlparse(text)
        if parsed.scheme in ('http', 'https'):
            return self._fetch(text, error_cls)
        if parsed.scheme == 'file':
            return self._read_file(Path(url2pathname(parsed.path)), error_cls)
        if parsed.scheme and len(parsed.scheme) > 1:
            raise error_cls(text, f"unsupported URL scheme '{parsed.scheme}'")

        return self._read_file(Path(text), error_cls)

    def _fetch(self, url: str, error_cls) -> bytes:
        try:
            response = self.http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise error_cls(url, f"network error ({e})")

        if response.status_code != 200:
            raise error_cls(url, f"HTTP {response.status_code}", details={'status_code': response.status_code})
        if not response.content:
            raise error_cls(url, "empty response body")
        return response.content

    def is_local_allowed(self, path: Path) -> bool:
        if self.local_roots is None:
            return True
        resolved = Path(path).resolve()
        return any(resolved == root or root in resolved.parents for root in self.local_roots)

    def _read_file(self, path: Path, error_cls) -> bytes:
        if not self.is_local_allowed(path):
            logger.warning(f"Refused local image outside allowed directories: {path}")
            raise error_cls(str(path), "local file access not allowed")
        if not path.is_file():
            raise error_cls(str(path), "file not found")
        try:
            return path.read_bytes()
        except OSError as e:
            raise error_cls(str(path), f"unreadable file ({e})")

    def _read_data_uri(self, uri: str, error_cls) -> bytes:
        header, sep, payload = uri.partition(',')
        if not sep:
            raise error_cls(uri, "malformed data URI")
        try:
            if header.endswith(';base64'):
                return base64.b64decode(payload, validate=True)
            return unquote_to_bytes(payload)
        except (binascii.Error, ValueError) as e:
            raise error_cls(uri, f"malformed data URI ({e})")


def _label(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return '<bytes>'
    if hasattr(source, 'read'):
        return getattr(source, 'filename', None) or '<stream>'
    return str(source)


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format='PNG', compress_level=6)
    return buffer.getvalue()
