"""
Upload validation module.

Holds the closed per-category policy table and the pure file checks run
before any transform or network call.
"""

from .policy import (
    DEFAULT_POLICIES,
    Category,
    PolicyConfigError,
    UploadPolicy,
    coerce_category,
    resolve_policy,
    validate_policy_table,
)
from .validator import ImageFile, validate_file

__all__ = [
    "DEFAULT_POLICIES",
    "Category",
    "ImageFile",
    "PolicyConfigError",
    "UploadPolicy",
    "coerce_category",
    "resolve_policy",
    "validate_file",
    "validate_policy_table",
]
