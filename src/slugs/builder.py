"""
Deterministic slug construction.

A slug is built from an entity's identifying attributes, joined with
hyphens in a fixed order, and ends with a short prefix of the entity id:

    pet      {name}-{type}-{city}-{state}-{yyyy}-{id5}
    event    {name}-{city}-{state}-{dd}-{mm}-{yyyy}-{id5}
    ong      {name}-{city}-{state}-{id5}
    partner  {name}-{city}-{state}-{id5}

Empty segments are dropped. ``build_slug`` never reads the clock: the year
or date only comes from ``SlugAttributes.date``, so the same inputs always
produce the same slug.

Example usage:
    >>> attrs = SlugAttributes(name="Rex", type="lost", city="São Paulo",
    ...                        state="SP", date="2024-05-01")
    >>> build_slug("pet", attrs, "a1b2c3d4-5e6f-4a1b-8c2d-3e4f5a6b7c8d")
    'rex-lost-sao-paulo-sp-2024-a1b2c'
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from src.slugs.errors import SlugInputError

UUID_PREFIX_LENGTH = 5
DEFAULT_PET_TYPE = "unknown"

_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")
_ID_NOISE_RE = re.compile(r"[^0-9a-zA-Z]")

DateLike = Union[date, datetime, str]


class EntityKind(str, Enum):
    """Kinds of record that carry a slug."""

    PET = "pet"
    ONG = "ong"
    EVENT = "event"
    PARTNER = "partner"


KIND_ALIASES = {
    "evento": EntityKind.EVENT,
    "parceiro": EntityKind.PARTNER,
}

DEFAULT_NAMES = {
    EntityKind.PET: "pet",
    EntityKind.ONG: "ong",
    EntityKind.EVENT: "evento",
    EntityKind.PARTNER: "parceiro",
}


@dataclass(frozen=True)
class SlugAttributes:
    """
    Identifying attributes of an entity.

    Attributes:
        name: Display name or title
        type: Pet listing type or species (pets only)
        city: City name
        state: State code or name
        date: Year source for pets, full date for events (date, datetime or ISO string)
    """

    name: Optional[str] = None
    type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    date: Optional[DateLike] = None


def coerce_kind(kind: Union[str, EntityKind]) -> EntityKind:
    """
    Map a kind name (or Portuguese alias) onto ``EntityKind``.

    Raises:
        SlugInputError: Unknown kind
    """
    if isinstance(kind, EntityKind):
        return kind
    name = str(kind).strip().lower()
    if name in KIND_ALIASES:
        return KIND_ALIASES[name]
    try:
        return EntityKind(name)
    except ValueError:
        raise SlugInputError(f"Unknown entity kind: {kind!r}") from None


def normalize_text(text: Optional[str]) -> str:
    """
    Reduce free text to a lowercase, hyphenated ASCII segment.

    Example:
        >>> normalize_text("  Águas de São Pedro!! ")
        'aguas-de-sao-pedro'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _DISALLOWED_RE.sub("", stripped.lower())
    hyphenated = _HYPHENS_RE.sub("-", _WHITESPACE_RE.sub("-", cleaned))
    return hyphenated.strip("-")


def uuid_prefix(entity_id: str, length: int = UUID_PREFIX_LENGTH) -> str:
    """First ``length`` characters of ``entity_id`` with dashes removed, lowercased."""
    return _ID_NOISE_RE.sub("", str(entity_id or "")).lower()[:length]


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Coerce a date, datetime or ISO-8601 string to a ``date``.

    Raises:
        SlugInputError: Unparsable string or unsupported type
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            raise SlugInputError(f"Unparsable date: {value!r}") from None
    raise SlugInputError(f"Unsupported date value: {value!r}")


def build_slug(
    kind: Union[str, EntityKind],
    attrs: SlugAttributes,
    entity_id: str,
) -> str:
    """
    Compose the candidate slug for an entity.

    Args:
        kind: pet, ong, event or partner ("evento" and "parceiro" accepted)
        attrs: Identifying attributes
        entity_id: Record id; its first five characters end the slug

    Returns:
        Candidate slug (uniqueness is not checked here)

    Raises:
        SlugInputError: Unknown kind, missing id or unparsable date
    """
    entity_kind = coerce_kind(kind)
    suffix = uuid_prefix(entity_id)
    if not suffix:
        raise SlugInputError(f"Entity id is required to build a slug (got: {entity_id!r})")

    when = parse_date(attrs.date)

    segments = [normalize_text(attrs.name) or DEFAULT_NAMES[entity_kind]]
    if entity_kind is EntityKind.PET:
        segments.append(normalize_text(attrs.type) or DEFAULT_PET_TYPE)
    segments.append(normalize_text(attrs.city))
    segments.append(normalize_text(attrs.state))

    if when is not None:
        if entity_kind is EntityKind.PET:
            segments.append(str(when.year))
        elif entity_kind is EntityKind.EVENT:
            segments.append(f"{when.day:02d}-{when.month:02d}-{when.year}")

    segments.append(suffix)
    return "-".join(segment for segment in segments if segment)
