"""
Upload file validation against a category policy.

Pure checks only: no I/O, no network. The declared mime type is checked
before the size so a disallowed type is reported as such regardless of how
large the payload is.
"""

from dataclasses import dataclass, field
from typing import Optional

from src.errors import TOO_LARGE, UNSUPPORTED_TYPE, UploadValidationError
from src.utils.logging import get_logger, log_function_call
from src.validator.policy import MB, UploadPolicy

logger = get_logger(__name__)


@dataclass
class ImageFile:
    """
    Binary payload submitted for upload.

    Attributes:
        data: Raw file bytes
        filename: Original client-side file name
        content_type: Declared mime type
        size: Declared byte size (defaults to len(data))
    """

    data: bytes = field(repr=False)
    filename: str
    content_type: str
    size: Optional[int] = None

    def __post_init__(self) -> None:
        self.content_type = self.content_type.strip().lower()
        if self.size is None:
            self.size = len(self.data)


@log_function_call
def validate_file(file: ImageFile, policy: UploadPolicy) -> None:
    """
    Check ``file`` against ``policy``.

    Args:
        file: File to validate
        policy: Resolved category policy

    Raises:
        UploadValidationError: reason ``unsupported-type`` or ``too-large``

    Example:
        >>> validate_file(ImageFile(b"...", "rex.jpg", "image/jpeg"), DEFAULT_POLICIES[Category.PETS])
    """
    if not policy.allows(file.content_type):
        logger.warning(
            f"Rejected {file.filename}: type {file.content_type} not in {list(policy.allowed_types)}"
        )
        raise UploadValidationError(
            UNSUPPORTED_TYPE,
            f"File type not allowed: {file.content_type}. "
            f"Accepted types: {', '.join(policy.allowed_types)}",
        )

    # The payload length is authoritative; a declared size can only make the check stricter
    size = max(file.size, len(file.data))
    if size != file.size:
        logger.warning(f"{file.filename} declared {file.size} bytes but carries {len(file.data)}")

    if size > policy.max_size:
        max_size_mb = policy.max_size / MB
        logger.warning(f"Rejected {file.filename}: {size} > {policy.max_size} bytes")
        raise UploadValidationError(
            TOO_LARGE,
            f"File too large: {size} bytes. Maximum size: {max_size_mb:.1f}MB",
        )

    logger.debug(f"Validated {file.filename} ({size} bytes, {file.content_type})")
