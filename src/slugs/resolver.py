"""
Slug uniqueness resolution.

Probes the owning table for the candidate, then ``{candidate}-1``,
``{candidate}-2`` and so on until a free value is found. Probes run one at a
time and the loop is bounded by ``max_attempts``.

A failed probe says nothing about whether the slug is taken. It is retried
with backoff and, if it keeps failing, surfaced as ``SlugProbeError`` rather
than being read as "free" or "taken".

Two concurrent resolutions of the same candidate can both see it as free;
the table's unique constraint is the final arbiter in that case.
"""

from typing import Optional

from src.slugs.errors import SlugCollisionExhausted, SlugInputError, SlugProbeError
from src.slugs.records import RecordStore
from src.utils.config import DEFAULT_SLUG_MAX_ATTEMPTS, DEFAULT_SLUG_PROBE_ATTEMPTS
from src.utils.logging import get_logger, log_function_call
from src.utils.metrics import get_metrics
from src.utils.retry import retry_with_backoff

logger = get_logger(__name__)

metrics = get_metrics()


@log_function_call
async def resolve_unique_slug(
    candidate: str,
    table: str,
    exclude_id: Optional[str] = None,
    *,
    records: RecordStore,
    max_attempts: int = DEFAULT_SLUG_MAX_ATTEMPTS,
    probe_attempts: int = DEFAULT_SLUG_PROBE_ATTEMPTS,
    probe_base_delay: float = 0.2,
) -> str:
    """
    Return ``candidate`` or its first free numbered variant in ``table``.

    Args:
        candidate: Slug produced by ``build_slug``
        table: Table whose slugs must stay unique
        exclude_id: Record being updated; its own current slug never counts as a collision
        records: Record store to probe
        max_attempts: Number of values tried (the candidate plus suffixes)
        probe_attempts: Tries per probe before giving up
        probe_base_delay: Initial backoff between probe tries, in seconds

    Returns:
        A slug no other live record in ``table`` held at probe time

    Raises:
        SlugInputError: Empty candidate
        SlugProbeError: A probe kept failing (retryable)
        SlugCollisionExhausted: Every value up to ``max_attempts`` is taken

    Example:
        >>> await resolve_unique_slug("rex-lost-sp-2024-a1b2c", "pets", records=store)
        'rex-lost-sp-2024-a1b2c-1'
    """
    if not candidate:
        raise SlugInputError("Cannot resolve an empty slug")
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1 (got: {max_attempts})")

    @retry_with_backoff(
        max_attempts=probe_attempts,
        base_delay=probe_base_delay,
        on_retry=lambda attempt, error, delay: metrics.record_slug_probe_retry(table),
    )
    async def probe(slug: str) -> bool:
        return await records.find_one(table, slug, id_not_equals=exclude_id) is not None

    for attempt in range(max_attempts):
        slug = candidate if attempt == 0 else f"{candidate}-{attempt}"
        try:
            taken = await probe(slug)
        except Exception as e:
            metrics.record_slug_resolution(table=table, outcome="probe_error")
            raise SlugProbeError(table, slug, e) from e

        if not taken:
            outcome = "unique" if attempt == 0 else "suffixed"
            metrics.record_slug_resolution(table=table, outcome=outcome)
            if attempt:
                logger.info(f"Slug {candidate} taken in {table}, using {slug}")
            return slug

    metrics.record_slug_resolution(table=table, outcome="exhausted")
    logger.error(f"Exhausted {max_attempts} slug candidates for {candidate} in {table}")
    raise SlugCollisionExhausted(table, candidate, max_attempts)
