"""
Per-category upload policies.

Each upload category maps to a fixed policy describing the largest payload,
the accepted mime types, the bounding box images are scaled into and the
re-encode quality. The table is closed: categories outside ``Category`` are
rejected before any validation runs.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from src.utils.logging import get_logger

logger = get_logger(__name__)

MB = 1024 * 1024

JPEG_TYPES = ("image/jpeg", "image/jpg")
RASTER_TYPES = JPEG_TYPES + ("image/png", "image/webp")


class Category(str, Enum):
    """Closed classification of an upload's intended use."""

    PETS = "pets"
    EVENTS = "events"
    AVATARS = "avatars"
    ONGS = "ongs"
    TEMP = "temp"


@dataclass(frozen=True)
class UploadPolicy:
    """
    Size, type and dimension limits for one upload category.

    Attributes:
        max_size: Largest accepted payload in bytes (inclusive)
        allowed_types: Accepted declared mime types
        max_width: Width of the bounding box images are scaled into
        max_height: Height of the bounding box images are scaled into
        quality: Re-encode quality in (0, 1]
    """

    max_size: int
    allowed_types: Tuple[str, ...]
    max_width: int
    max_height: int
    quality: float

    def allows(self, content_type: str) -> bool:
        return content_type.lower() in self.allowed_types


class PolicyConfigError(ValueError):
    """Raised when a policy or policy table is malformed."""


DEFAULT_POLICIES: Dict[Category, UploadPolicy] = {
    Category.PETS: UploadPolicy(
        max_size=5 * MB,
        allowed_types=RASTER_TYPES,
        max_width=1200,
        max_height=1200,
        quality=0.8,
    ),
    Category.EVENTS: UploadPolicy(
        max_size=8 * MB,
        allowed_types=RASTER_TYPES,
        max_width=1920,
        max_height=1080,
        quality=0.85,
    ),
    Category.AVATARS: UploadPolicy(
        max_size=2 * MB,
        allowed_types=JPEG_TYPES + ("image/png",),
        max_width=400,
        max_height=400,
        quality=0.9,
    ),
    Category.ONGS: UploadPolicy(
        max_size=3 * MB,
        allowed_types=JPEG_TYPES + ("image/png", "image/svg+xml"),
        max_width=800,
        max_height=800,
        quality=0.9,
    ),
    Category.TEMP: UploadPolicy(
        max_size=10 * MB,
        allowed_types=RASTER_TYPES,
        max_width=2000,
        max_height=2000,
        quality=0.8,
    ),
}

POLICY_FIELDS = tuple(f.name for f in fields(UploadPolicy))


def policy_problems(policy: UploadPolicy) -> List[str]:
    """Return a description of every invalid field in ``policy``."""
    problems: List[str] = []
    if not isinstance(policy.max_size, int) or policy.max_size <= 0:
        problems.append(f"max_size must be a positive integer (got: {policy.max_size!r})")
    if not policy.allowed_types:
        problems.append("allowed_types must not be empty")
    elif any(not isinstance(t, str) or "/" not in t for t in policy.allowed_types):
        problems.append(f"allowed_types must be mime types (got: {list(policy.allowed_types)})")
    for name in ("max_width", "max_height"):
        value = getattr(policy, name)
        if not isinstance(value, int) or value <= 0:
            problems.append(f"{name} must be a positive integer (got: {value!r})")
    if not isinstance(policy.quality, (int, float)) or not 0 < policy.quality <= 1:
        problems.append(f"quality must be in (0, 1] (got: {policy.quality!r})")
    return problems


def validate_policy_table(table: Mapping[Category, UploadPolicy]) -> None:
    """
    Check that ``table`` covers every category with a well-formed policy.

    Raises:
        PolicyConfigError: Listing every problem found
    """
    problems: List[str] = []
    missing = [c.value for c in Category if c not in table]
    if missing:
        problems.append(f"missing policies for categories: {missing}")
    for category, policy in table.items():
        problems.extend(f"{Category(category).value}.{p}" for p in policy_problems(policy))

    if problems:
        raise PolicyConfigError("Invalid upload policy table: " + "; ".join(problems))


def coerce_category(category: Union[str, Category]) -> Category:
    """
    Map a category name onto ``Category``.

    Raises:
        ValueError: If the category is not part of the closed set
    """
    if isinstance(category, Category):
        return category
    try:
        return Category(str(category).strip().lower())
    except ValueError:
        valid = [c.value for c in Category]
        raise ValueError(f"Unknown upload category '{category}' (valid: {valid})") from None


def resolve_policy(
    category: Union[str, Category],
    override: Optional[Mapping[str, Any]] = None,
    table: Optional[Mapping[Category, UploadPolicy]] = None,
) -> UploadPolicy:
    """
    Return the policy for ``category``, optionally merged with a partial override.

    Args:
        category: Upload category
        override: Subset of policy fields replacing the category defaults
        table: Policy table to resolve against (defaults to DEFAULT_POLICIES)

    Raises:
        ValueError: Unknown category
        PolicyConfigError: Unknown override field or invalid merged policy

    Example:
        >>> resolve_policy("avatars", {"max_size": 1024 * 1024}).max_size
        1048576
    """
    policies = table if table is not None else DEFAULT_POLICIES
    policy = policies[coerce_category(category)]

    if not override:
        return policy

    unknown = sorted(set(override) - set(POLICY_FIELDS))
    if unknown:
        raise PolicyConfigError(f"Unknown policy override fields: {unknown}")

    changes = dict(override)
    if "allowed_types" in changes:
        changes["allowed_types"] = tuple(t.lower() for t in changes["allowed_types"])
    merged = replace(policy, **changes)

    problems = policy_problems(merged)
    if problems:
        raise PolicyConfigError("Invalid policy override: " + "; ".join(problems))

    logger.debug(f"Policy for {category} overridden with {sorted(override)}")
    return merged


# Checked once at import so a broken default table fails at startup
validate_policy_table(DEFAULT_POLICIES)
