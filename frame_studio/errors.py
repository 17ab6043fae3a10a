"""
Error handling for Frame Studio.

Provides specific exception types for the failure modes of the frame
customization pipeline and the context needed for user feedback.
"""

from typing import Dict, List, Optional, Any


class FrameStudioError(Exception):
    """Base exception for all Frame Studio errors."""

    user_message = "Something went wrong while customizing your frame"

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'user_message': self.user_message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class ValidationError(FrameStudioError):
    """Raised when required user input is missing or invalid."""
    user_message = "Please check your input and try again"


class ImageLoadError(FrameStudioError):
    """Raised when a user photo or frame overlay cannot be decoded."""
    user_message = "Failed to load image"

    def __init__(self, source: str, reason: str, details: Dict[str, Any] = None,
                 suggestions: List[str] = None):
        details = dict(details or {})
        details.setdefault('source', _describe_source(source))
        details.setdefault('reason', reason)
        super().__init__(
            f"Could not load image from {_describe_source(source)}: {reason}",
            details=details,
            suggestions=suggestions or [
                "Check that the file is a valid JPG, PNG or GIF image",
                "Try uploading the image again"
            ]
        )
        self.source = source
        self.reason = reason


class FrameLoadError(ImageLoadError):
    """Raised when a frame overlay cannot be loaded."""
    user_message = "Failed to load frame image. Using placeholder."


class UploadError(FrameStudioError):
    """Raised when an artifact upload to the blob store fails."""
    user_message = "Failed to upload your customization"
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None,
                 filename: Optional[str] = None, details: Dict[str, Any] = None,
                 suggestions: List[str] = None):
        details = dict(details or {})
        details.setdefault('status_code', status_code)
        details.setdefault('filename', filename)
        super().__init__(message, details=details, suggestions=suggestions)
        self.status_code = status_code
        self.filename = filename


class RetryableUploadError(UploadError):
    """Upload failure caused by the network or a 5xx response."""
    retryable = True


class PersistenceError(FrameStudioError):
    """Raised when the customization store cannot be written."""
    user_message = "Could not save your customization on this device"


class SessionNotFoundError(FrameStudioError):
    """Raised when an editor session id is unknown."""
    user_message = "Your editing session has expired"

    def __init__(self, session_id: str):
        super().__init__(
            f"Editor session not found: {session_id}",
            details={'session_id': session_id},
            suggestions=["Reopen the customization editor"]
        )


# Specific error classes for common failure modes

class NoImageUploadedError(ValidationError):
    """Raised when save is requested before a photo was uploaded."""
    user_message = "Please upload an image first"

    def __init__(self, product_id: str = None):
        super().__init__(
            "No image uploaded",
            details={'product_id': product_id},
            suggestions=["Upload a photo before saving your customization"]
        )


class InvalidImageFormatError(ValidationError):
    """Raised when uploaded image format is invalid."""

    def __init__(self, filename: str, detected_type: str = None):
        super().__init__(
            f"Invalid image format: {filename}",
            details={
                'filename': filename,
                'detected_type': detected_type
            },
            suggestions=[
                "Use JPG, PNG or GIF format images",
                "Convert the file to a supported format",
                "Ensure the file is not corrupted"
            ]
        )


class FileTooLargeError(ValidationError):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, filename: str, size_mb: float, limit_mb: float):
        super().__init__(
            f"File too large: {filename} ({size_mb:.1f}MB exceeds {limit_mb:.1f}MB limit)",
            details={
                'filename': filename,
                'size_mb': size_mb,
                'limit_mb': limit_mb
            },
            suggestions=[
                f"Reduce file size to under {limit_mb:.1f}MB",
                "Compress the image using image editing software"
            ]
        )


def _describe_source(source: Any) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    text = str(source)
    if text.startswith('data:'):
        return text[:32] + '...'
    return text or '<empty>'


def create_error_recovery_suggestions(error: Exception, context: Dict[str, Any] = None) -> List[str]:
    """Generate contextual recovery suggestions for any error."""
    suggestions = []

    if isinstance(error, FrameStudioError):
        suggestions.extend(error.suggestions)

    if context:
        if context.get('frame_degraded'):
            suggestions.append("The frame could not be loaded; your photo placement is still saved")

        if context.get('failed_uploads', 0) > 0:
            suggestions.append("Check your internet connection and try saving again")

    if isinstance(error, RetryableUploadError):
        suggestions.append("The upload service may be busy, try again in a moment")

    if not suggestions:
        suggestions = [
            "Try again",
            "Reload the page if the problem persists"
        ]

    return suggestions
