"""
Error taxonomy for the upload pipeline.

Validation errors are raised before any network call and are fully
recoverable by the caller. Timeouts are retry-eligible; cancellations are
caller-initiated and never retried automatically. Backend errors carry the
storage backend's message and end the current attempt.
"""

from typing import Optional

UNSUPPORTED_TYPE = "unsupported-type"
TOO_LARGE = "too-large"
UNKNOWN_CATEGORY = "unknown-category"


class UploadError(Exception):
    """Base class for upload pipeline failures."""

    retryable = False


class UploadValidationError(UploadError):
    """
    The file does not satisfy its category policy.

    Attributes:
        reason: One of UNSUPPORTED_TYPE, TOO_LARGE, UNKNOWN_CATEGORY
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class UnknownCategoryError(UploadValidationError):
    """The upload category is not part of the closed category set."""

    def __init__(self, message: str) -> None:
        super().__init__(UNKNOWN_CATEGORY, message)


class UploadTimeoutError(UploadError):
    """The storage write exceeded the upload time bound."""

    retryable = True

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Upload exceeded {timeout_seconds:g}s time limit")
        self.timeout_seconds = timeout_seconds


class UploadCancelledError(UploadError):
    """The caller cancelled the upload while it was in flight."""

    def __init__(self, message: str = "Upload cancelled by caller") -> None:
        super().__init__(message)


class BackendError(UploadError):
    """The storage backend rejected or failed the operation."""

    def __init__(self, message: str, operation: str = "upload", cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.cause = cause
