"""
Storage key generation.

Keys are laid out as ``{category}/{owner}/{name}-{millis}-{random}.{ext}``.
The millisecond timestamp plus 32 random bits make collisions between two
uploads negligible, so no existence check against the backend is made.
"""

import re
import time
import uuid
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from src.utils.logging import get_logger
from src.validator.policy import Category, coerce_category

logger = get_logger(__name__)

MAX_NAME_LENGTH = 20
DEFAULT_NAME = "image"
DEFAULT_EXTENSION = "jpg"
PUBLIC_OWNER = "public"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def _clean_name(original_name: Optional[str]) -> str:
    if not original_name:
        return DEFAULT_NAME
    base = _EXTENSION_RE.sub("", original_name)
    cleaned = _NON_ALNUM_RE.sub("-", base).lower()[:MAX_NAME_LENGTH]
    return cleaned or DEFAULT_NAME


def _extension(original_name: Optional[str]) -> str:
    if not original_name or "." not in original_name:
        return DEFAULT_EXTENSION
    ext = original_name.rsplit(".", 1)[1].lower()
    ext = _NON_ALNUM_RE.sub("", ext)
    return ext or DEFAULT_EXTENSION


def generate_file_path(
    category: Union[str, Category],
    owner_id: Optional[str] = None,
    original_name: Optional[str] = None,
) -> str:
    """
    Build a collision-resistant storage key for an upload.

    Args:
        category: Upload category (first path segment)
        owner_id: Owning user/organization id ("public" when absent)
        original_name: Client-side file name

    Example:
        >>> generate_file_path("pets", "u-42", "Rex Photo.JPG")
        'pets/u-42/rex-photo-1760870415123-9f2c41ab.jpg'
    """
    category_name = coerce_category(category).value
    timestamp_ms = time.time_ns() // 1_000_000
    token = uuid.uuid4().hex[:8]

    path = (
        f"{category_name}/{owner_id or PUBLIC_OWNER}/"
        f"{_clean_name(original_name)}-{timestamp_ms}-{token}.{_extension(original_name)}"
    )
    logger.debug(f"Generated storage path: {path}")
    return path


def extract_path_from_url(
    url_or_path: str, bucket_name: str, public_base_url: Optional[str] = None
) -> str:
    """
    Return the storage key for a public URL, or the input if it is already a key.

    Example:
        >>> extract_path_from_url(
        ...     "https://storage.googleapis.com/petadot-images/pets/u1/rex.jpg",
        ...     "petadot-images",
        ... )
        'pets/u1/rex.jpg'

    Raises:
        ValueError: If a URL does not reference ``bucket_name``
    """
    if public_base_url:
        base = public_base_url.rstrip("/") + "/"
        if url_or_path.startswith(base):
            return unquote(url_or_path[len(base):].split("?", 1)[0])

    if "://" not in url_or_path:
        return url_or_path.lstrip("/")

    parsed_path = unquote(urlparse(url_or_path).path)
    marker = f"/{bucket_name}/"
    if marker in parsed_path:
        return parsed_path.split(marker, 1)[1]

    raise ValueError(f"Could not extract storage path for bucket '{bucket_name}' from URL: {url_or_path}")
