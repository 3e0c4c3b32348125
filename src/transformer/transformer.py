"""
Best-effort image rescaling with Pillow.

Images larger than the policy bounding box are scaled down, keeping their
aspect ratio, and re-encoded in their original format at the policy
quality. Images already inside the box pass through untouched.

A decode or encode failure never aborts an upload: the outcome carries a
warning and the original bytes, and the caller carries on with those.

Example usage:
    >>> outcome = await transform_image(file, 1200, 1200, 0.8)
    >>> if outcome.warning:
    ...     print(f"Kept original bytes: {outcome.warning}")
"""

import asyncio
import io
from dataclasses import dataclass, field
from typing import Optional, Tuple

from PIL import Image

from src.utils.logging import get_logger
from src.utils.metrics import get_metrics
from src.validator.validator import ImageFile

logger = get_logger(__name__)

metrics = get_metrics()

# Pillow encoder names for the raster types we re-encode
PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


@dataclass
class TransformOutcome:
    """
    Result of a transform attempt.

    Attributes:
        data: Bytes to upload (rescaled, or the original on pass-through/fallback)
        content_type: Mime type of ``data``
        resized: Whether the image was rescaled
        original_size: (width, height) decoded from the input, if decoding succeeded
        final_size: (width, height) of ``data``, if known
        warning: Why the original bytes were kept after a failure (None if ok)
    """

    data: bytes = field(repr=False)
    content_type: str
    resized: bool = False
    original_size: Optional[Tuple[int, int]] = None
    final_size: Optional[Tuple[int, int]] = None
    warning: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.warning is None


def compute_target_size(
    width: int, height: int, max_width: int, max_height: int
) -> Optional[Tuple[int, int]]:
    """
    Return the scaled-down size for an image, or None if it already fits.

    Example:
        >>> compute_target_size(1600, 1600, 400, 400)
        (400, 400)
        >>> compute_target_size(300, 200, 400, 400) is None
        True
    """
    if width <= max_width and height <= max_height:
        return None
    # Integer cross-multiplication keeps floor(dim * scale) exact
    if width * max_height >= height * max_width:
        return max_width, max(1, height * max_width // width)
    return max(1, width * max_height // height), max_height


def _encode(image: Image.Image, pil_format: str, quality: float) -> bytes:
    buffer = io.BytesIO()
    if pil_format == "JPEG":
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(buffer, format="JPEG", quality=round(quality * 100), optimize=True)
    elif pil_format == "WEBP":
        image.save(buffer, format="WEBP", quality=round(quality * 100))
    else:
        image.save(buffer, format=pil_format, optimize=True)
    return buffer.getvalue()


def _transform_sync(
    file: ImageFile, max_width: int, max_height: int, quality: float
) -> TransformOutcome:
    pil_format = PIL_FORMATS.get(file.content_type)
    if pil_format is None:
        # Vector formats (svg) have no pixel dimensions to bound
        return TransformOutcome(data=file.data, content_type=file.content_type)

    with Image.open(io.BytesIO(file.data)) as image:
        image.load()
        original_size = image.size
        target = compute_target_size(*original_size, max_width, max_height)
        if target is None:
            return TransformOutcome(
                data=file.data,
                content_type=file.content_type,
                original_size=original_size,
                final_size=original_size,
            )

        resized = image.resize(target, Image.Resampling.LANCZOS)
        data = _encode(resized, pil_format, quality)

    return TransformOutcome(
        data=data,
        content_type=file.content_type,
        resized=True,
        original_size=original_size,
        final_size=target,
    )


async def transform_image(
    file: ImageFile, max_width: int, max_height: int, quality: float
) -> TransformOutcome:
    """
    Rescale ``file`` into the bounding box, re-encoding at ``quality``.

    Decoding and encoding run in a worker thread. Never raises for bad image
    data: failures come back as an outcome with ``warning`` set and the
    original bytes.

    Args:
        file: Validated file
        max_width: Bounding box width in pixels
        max_height: Bounding box height in pixels
        quality: Re-encode quality in (0, 1]
    """
    try:
        outcome = await asyncio.to_thread(_transform_sync, file, max_width, max_height, quality)
    except Exception as e:
        warning = f"Resize failed for {file.filename}, using original file: {e}"
        logger.warning(warning)
        metrics.record_transform_fallback(reason=type(e).__name__)
        return TransformOutcome(data=file.data, content_type=file.content_type, warning=warning)

    if outcome.resized:
        logger.info(
            f"Resized {file.filename} from {outcome.original_size} to {outcome.final_size} "
            f"({len(file.data)} -> {len(outcome.data)} bytes)"
        )
    else:
        logger.debug(f"{file.filename} within {max_width}x{max_height}, passing through")
    return outcome
