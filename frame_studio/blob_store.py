"""
Blob store clients used to publish exported artifacts.

A blob store takes `(data, filename)` and returns a URL that stays
resolvable until the customization is removed.
"""

from pathlib import Path
from typing import Optional

import requests
from loguru import logger

from frame_studio.errors import RetryableUploadError, UploadError

TERMINAL_STATUS_CODES = (400, 413)


class BlobStore:
    """Interface for artifact uploads."""

    def upload(self, data: bytes, filename: str) -> str:
        raise NotImplementedError


class HttpBlobStore(BlobStore):
    """Uploads to an image hosting endpoint with a multipart POST."""

    def __init__(self, endpoint: str, upload_preset: Optional[str] = None,
                 folder: Optional[str] = None, timeout: float = 60.0,
                 http: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.upload_preset = upload_preset
        self.folder = folder
        self.timeout = timeout
        self.http = http or requests.Session()

    def upload(self, data: bytes, filename: str) -> str:
        form = {'filename': filename, 'public_id': filename}
        if self.upload_preset:
            form['upload_preset'] = self.upload_preset
        if self.folder:
            form['folder'] = self.folder

        logger.debug(f"Uploading {filename} ({len(data):,} bytes) to {self.endpoint}")
        try:
            response = self.http.post(
                self.endpoint,
                data=form,
                files={'file': (f"{filename}.png", data, 'image/png')},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RetryableUploadError(f"Network error uploading {filename}: {e}", filename=filename)

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            text = f"Upload of {filename} failed: {response.status_code} {message}"
            if response.status_code >= 500:
                raise RetryableUploadError(text, status_code=response.status_code, filename=filename)
            suggestions = None
            if response.status_code in TERMINAL_STATUS_CODES:
                suggestions = ["Try a smaller photo", "Re-export the image as JPG or PNG"]
            raise UploadError(text, status_code=response.status_code, filename=filename,
                              suggestions=suggestions)

        try:
            body = response.json()
        except ValueError:
            raise UploadError(f"Malformed upload response for {filename}",
                              status_code=response.status_code, filename=filename)

        url = None
        if isinstance(body, dict):
            url = body.get('secure_url') or body.get('url')
        if not url:
            raise UploadError(f"Upload response for {filename} has no URL",
                              status_code=response.status_code, filename=filename)

        logger.info(f"Uploaded {filename}: {url}")
        return url


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or '').strip()[:200]
    if isinstance(body, dict):
        error = body.get('error')
        if isinstance(error, dict):
            error = error.get('message')
        return str(error or body.get('message') or body.get('details') or '')
    return str(body)[:200]


class LocalBlobStore(BlobStore):
    """Writes artifacts to a local directory and returns file:// URLs."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def upload(self, data: bytes, filename: str) -> str:
        path = self.directory / f"{Path(filename).name}.png"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Could not write {path}: {e}", filename=filename)

        logger.info(f"Saved artifact locally: {path} ({len(data):,} bytes)")
        return path.resolve().as_uri()


def create_blob_store(config) -> BlobStore:
    """Pick the remote store when an endpoint is configured, else save locally."""
    if config.UPLOAD_ENDPOINT:
        return HttpBlobStore(
            config.UPLOAD_ENDPOINT,
            upload_preset=config.UPLOAD_PRESET,
            folder=config.UPLOAD_FOLDER,
            timeout=config.UPLOAD_TIMEOUT
        )
    logger.warning("Upload endpoint not configured, artifacts will be saved locally")
    return LocalBlobStore(config.LOCAL_BLOB_DIR)
