"""
Slug assignment for persisted records.

``assign_slug`` is the single entry point used when a record is created or
its identifying attributes change: build the candidate, resolve it against
the table (ignoring the record itself) and persist the result.

``populate_missing_slugs`` walks every record of a table that has no slug
yet and assigns one, collecting per-record errors instead of stopping.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from src.slugs.builder import EntityKind, SlugAttributes, build_slug
from src.slugs.records import RecordStore
from src.slugs.resolver import resolve_unique_slug
from src.utils.config import DEFAULT_SLUG_MAX_ATTEMPTS, DEFAULT_SLUG_PROBE_ATTEMPTS
from src.utils.logging import correlation_scope, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TableSlugConfig:
    """Where a table keeps the attributes its slugs are built from."""

    kind: EntityKind
    name_field: str = "name"
    type_field: Optional[str] = None
    default_type: Optional[str] = None
    city_field: str = "city"
    state_field: str = "state"
    date_field: str = "created_at"
    default_city: str = "brasil"
    default_state: str = "br"


TABLE_SLUG_CONFIGS: Dict[str, TableSlugConfig] = {
    "pets": TableSlugConfig(EntityKind.PET, type_field="species", default_type="pet"),
    "pets_lost": TableSlugConfig(EntityKind.PET, type_field="species", default_type="perdido"),
    "pets_found": TableSlugConfig(EntityKind.PET, type_field="species", default_type="encontrado"),
    "ongs": TableSlugConfig(EntityKind.ONG),
    "events": TableSlugConfig(EntityKind.EVENT, date_field="date"),
    "partners": TableSlugConfig(EntityKind.PARTNER),
}


@dataclass
class BackfillReport:
    """
    Outcome of a backfill run over one table.

    Attributes:
        table: Table processed
        updated: Number of records that received a slug
        slugs: Assigned slug per record id
        errors: One message per record that could not be updated
    """

    table: str
    updated: int = 0
    slugs: Dict[str, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def attributes_for(
    config: TableSlugConfig, record: Mapping[str, Any], today: date
) -> SlugAttributes:
    """Read slug attributes from ``record`` using the table's field mapping."""
    type_value = None
    if config.type_field:
        type_value = record.get(config.type_field) or config.default_type

    return SlugAttributes(
        name=record.get(config.name_field),
        type=type_value,
        city=record.get(config.city_field) or config.default_city,
        state=record.get(config.state_field) or config.default_state,
        date=record.get(config.date_field) or record.get("created_at") or today,
    )


async def assign_slug(
    table: str,
    record_id: str,
    kind: Union[str, EntityKind],
    attrs: SlugAttributes,
    *,
    records: RecordStore,
    max_attempts: int = DEFAULT_SLUG_MAX_ATTEMPTS,
    probe_attempts: int = DEFAULT_SLUG_PROBE_ATTEMPTS,
    probe_base_delay: float = 0.2,
) -> str:
    """
    Build, resolve and persist the slug for one record.

    When ``attrs.date`` is not set, today's date is used so pet slugs carry
    the creation year.

    Returns:
        The slug written to the record

    Raises:
        SlugError: Invalid input, failing probe or exhausted candidates
    """
    if attrs.date is None:
        attrs = SlugAttributes(attrs.name, attrs.type, attrs.city, attrs.state, date.today())

    candidate = build_slug(kind, attrs, record_id)
    slug = await resolve_unique_slug(
        candidate,
        table,
        exclude_id=record_id,
        records=records,
        max_attempts=max_attempts,
        probe_attempts=probe_attempts,
        probe_base_delay=probe_base_delay,
    )
    await records.update_slug(table, record_id, slug)
    logger.info(f"Assigned slug {slug} to {table}/{record_id}")
    return slug


async def populate_missing_slugs(
    table: str,
    *,
    records: RecordStore,
    today: Optional[date] = None,
    max_attempts: int = DEFAULT_SLUG_MAX_ATTEMPTS,
    probe_attempts: int = DEFAULT_SLUG_PROBE_ATTEMPTS,
    probe_base_delay: float = 0.2,
) -> BackfillReport:
    """
    Assign slugs to every record in ``table`` that lacks one.

    Records are processed one after another so each resolution sees the
    slugs assigned before it.

    Raises:
        ValueError: If ``table`` has no slug configuration
    """
    config = TABLE_SLUG_CONFIGS.get(table)
    if config is None:
        raise ValueError(f"No slug configuration for table '{table}' (valid: {sorted(TABLE_SLUG_CONFIGS)})")

    today = today or date.today()
    report = BackfillReport(table=table)

    with correlation_scope("backfill"):
        pending = await records.find_without_slug(table)
        if not pending:
            logger.info(f"No records without slugs in {table}")
            return report

        logger.info(f"Generating slugs for {len(pending)} records in {table}")

        for record in pending:
            record_id = str(record.get("id", ""))
            try:
                attrs = attributes_for(config, record, today)
                slug = await assign_slug(
                    table,
                    record_id,
                    config.kind,
                    attrs,
                    records=records,
                    max_attempts=max_attempts,
                    probe_attempts=probe_attempts,
                    probe_base_delay=probe_base_delay,
                )
            except Exception as e:
                message = f"Error updating {table} with ID {record_id}: {e}"
                logger.error(message)
                report.errors.append(message)
                continue

            report.slugs[record_id] = slug
            report.updated += 1

        logger.info(f"Generated {report.updated} slugs for {table} ({len(report.errors)} errors)")
        return report
