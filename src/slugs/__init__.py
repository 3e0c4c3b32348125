"""
Slug generation module.

Builds stable, human-readable identifiers for persisted records and keeps
them unique within each table.
"""

from .backfill import (
    TABLE_SLUG_CONFIGS,
    BackfillReport,
    TableSlugConfig,
    assign_slug,
    populate_missing_slugs,
)
from .builder import EntityKind, SlugAttributes, build_slug, normalize_text, uuid_prefix
from .errors import SlugCollisionExhausted, SlugError, SlugInputError, SlugProbeError
from .records import InMemoryRecordStore, RecordStore, SupabaseRecordStore, create_record_store
from .resolver import resolve_unique_slug

__all__ = [
    "TABLE_SLUG_CONFIGS",
    "BackfillReport",
    "TableSlugConfig",
    "assign_slug",
    "populate_missing_slugs",
    "EntityKind",
    "SlugAttributes",
    "build_slug",
    "normalize_text",
    "uuid_prefix",
    "SlugCollisionExhausted",
    "SlugError",
    "SlugInputError",
    "SlugProbeError",
    "InMemoryRecordStore",
    "RecordStore",
    "SupabaseRecordStore",
    "create_record_store",
    "resolve_unique_slug",
]
