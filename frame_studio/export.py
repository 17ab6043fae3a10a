"""
Artifact Exporter: turns a finished editor session into three uploaded
images and a stored CustomizationRecord.
"""

import concurrent.futures
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from frame_studio.blob_store import BlobStore
from frame_studio.composite import visible_coverage
from frame_studio.errors import (
    FrameStudioError, NoImageUploadedError, ValidationError,
    create_error_recovery_suggestions
)
from frame_studio.images import encode_png
from frame_studio.models import CanvasDimensions, CustomizationRecord, Transform
from frame_studio.retry import RetryPolicy
from frame_studio.session import EditorSession, EditorState
from frame_studio.store import CustomizationStore

ARTIFACT_KINDS = ('rendered', 'cropped', 'original')

PNG_MODES = ('1', 'L', 'LA', 'P', 'RGB', 'RGBA', 'I', 'I;16')


@dataclass
class SaveResult:
    """Outcome of a save, always returned rather than raised."""
    success: bool
    message: str
    record: Optional[CustomizationRecord] = None
    error: Optional[Dict[str, Any]] = None
    warnings: List[str] = field(default_factory=list)
    exception: Optional[Exception] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'record': self.record.to_json_dict() if self.record else None,
            'error': self.error,
            'warnings': list(self.warnings),
        }


@dataclass
class ArtifactSnapshot:
    """Exported PNGs together with the placement they were rendered from."""
    blobs: Dict[str, bytes]
    transform: Transform
    canvas: CanvasDimensions
    frame_image_url: Optional[str] = None


def artifact_filename(product_handle: str, kind: str, timestamp_ms: int) -> str:
    return f"{product_handle}-{kind}-{timestamp_ms}"


class ArtifactExporter:
    """Rasterizes, uploads and records a customization."""

    def __init__(self, blob_store: BlobStore, store: CustomizationStore,
                 retry_policy: Optional[RetryPolicy] = None,
                 clock: Callable[[], float] = time.time):
        self.blob_store = blob_store
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.clock = clock

    def export_artifacts(self, session: EditorSession) -> Dict[str, bytes]:
        """PNG bytes for the rendered composite, the crop layer and the untouched original."""
        return self.snapshot(session).blobs

    def snapshot(self, session: EditorSession) -> ArtifactSnapshot:
        """Rasterize the artifacts and capture the placement they show, as one step."""
        with session.lock:
            if not session.has_image:
                raise NoImageUploadedError(session.product_id)

            original = session.user_image
            if original.mode not in PNG_MODES:
                original = original.convert('RGBA')

            return ArtifactSnapshot(
                blobs={
                    'rendered': encode_png(session.composite_surface),
                    'cropped': encode_png(session.crop_surface),
                    'original': encode_png(original),
                },
                transform=session.transform,
                canvas=session.canvas,
                frame_image_url=session.frame_image_url or None,
            )

    def save(self, session: EditorSession) -> SaveResult:
        """
        Export, upload and persist the session's customization.

        The record is written only after all three uploads succeed; on any
        failure the product's previous record is left as it was. The stored
        placement is the one the uploaded images were rendered from, even if
        the session is edited while the uploads run.
        """
        with session.lock:
            warnings = self._warnings_for(session)

        try:
            snapshot = self.snapshot(session)
            timestamp_ms = int(self.clock() * 1000)
            urls = self._upload_all(session.product_handle, snapshot.blobs, timestamp_ms)

            record = CustomizationRecord(
                original_image_url=urls['original'],
                rendered_image_url=urls['rendered'],
                cropped_image_url=urls['cropped'],
                frame_image_url=snapshot.frame_image_url,
                image_state=snapshot.transform,
                canvas_dimensions=snapshot.canvas,
                created_at=datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc),
            )
            self.store.save(session.product_id, record)

        except ValidationError as e:
            logger.warning(f"Save rejected for {session.product_id}: {e}")
            return self._failure(e, warnings)
        except FrameStudioError as e:
            logger.error(f"Save failed for {session.product_id}: {e}")
            return self._failure(e, warnings)
        except Exception as e:
            logger.exception(f"Unexpected error saving {session.product_id}: {e}")
            return SaveResult(
                success=False,
                message="Failed to save customization: unexpected error",
                error={'error_type': type(e).__name__, 'message': str(e)},
                warnings=warnings,
                exception=e
            )

        with session.lock:
            if session.transform == snapshot.transform:
                session.state = EditorState.SAVED
        logger.info(f"Customization saved for {session.product_id} ({session.product_handle})")
        return SaveResult(
            success=True,
            message="Customization saved successfully!",
            record=record,
            warnings=warnings
        )

    def _upload_all(self, product_handle: str, blobs: Dict[str, bytes], timestamp_ms: int) -> Dict[str, str]:
        """Upload every artifact concurrently and wait for all of them."""
        urls: Dict[str, str] = {}
        errors: Dict[str, Exception] = {}

        with ThreadPoolExecutor(max_workers=len(blobs)) as executor:
            future_to_kind = {}
            for kind in ARTIFACT_KINDS:
                filename = artifact_filename(product_handle, kind, timestamp_ms)
                upload = partial(self.blob_store.upload, blobs[kind], filename)
                future = executor.submit(self.retry_policy.call, upload, f"Upload {filename}")
                future_to_kind[future] = kind

            for future in concurrent.futures.as_completed(future_to_kind):
                kind = future_to_kind[future]
                try:
                    urls[kind] = future.result()
                except Exception as e:
                    errors[kind] = e

        if errors:
            failed = [kind for kind in ARTIFACT_KINDS if kind in errors]
            logger.error(f"{len(failed)} of {len(ARTIFACT_KINDS)} uploads failed: {', '.join(failed)}")
            first = errors[failed[0]]
            if isinstance(first, FrameStudioError):
                first.details['failed_artifacts'] = failed
                first.details['uploaded_artifacts'] = sorted(urls)
            raise first

        return urls

    def _failure(self, error: FrameStudioError, warnings: List[str]) -> SaveResult:
        context = {'failed_uploads': len(error.details.get('failed_artifacts', []))}
        payload = error.to_dict()
        payload['suggestions'] = create_error_recovery_suggestions(error, context)
        return SaveResult(
            success=False,
            message=f"Failed to save customization: {error.user_message}",
            error=payload,
            warnings=warnings,
            exception=error
        )

    def _warnings_for(self, session: EditorSession) -> List[str]:
        warnings = []
        if session.frame_degraded:
            warnings.append("Frame image could not be loaded; the placeholder frame was used")
        if session.has_image and visible_coverage(session.crop_surface) == 0.0:
            # Fully off-canvas saves are flagged, not blocked
            logger.warning(f"Session {session.session_id}: photo is entirely outside the canvas")
            warnings.append("Your photo is not visible inside the frame")
        return warnings
