"""
Image transform module.

Scales oversized images into their category bounding box before upload,
degrading to the original bytes when an image cannot be decoded or encoded.
"""

from .transformer import TransformOutcome, compute_target_size, transform_image

__all__ = ["TransformOutcome", "compute_target_size", "transform_image"]
