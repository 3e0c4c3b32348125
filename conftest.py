"""Pytest configuration."""

import io
import sys
from pathlib import Path

import pytest

# Add src to path for imports
project_root = Path(__file__).parent
src_path = project_root / "src"
if str(src_path.parent) not in sys.path:
    sys.path.insert(0, str(src_path.parent))

from PIL import Image  # noqa: E402


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    """Encode a solid-colour test image."""
    buffer = io.BytesIO()
    color = (200, 120, 40, 255) if mode == "RGBA" else (200, 120, 40)
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    """Factory fixture building encoded images of a given size."""
    return make_image_bytes
