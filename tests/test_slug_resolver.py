"""
Unit tests for slug uniqueness resolution.

Probes run against the in-memory record store; failing probes are
simulated with AsyncMock.
"""

from unittest.mock import AsyncMock

import pytest

from src.slugs import (
    InMemoryRecordStore,
    SlugCollisionExhausted,
    SlugInputError,
    SlugProbeError,
    resolve_unique_slug,
)

CANDIDATE = "rex-lost-sao-paulo-sp-2024-a1b2c"


class TestResolveUniqueSlug:
    """Test resolve_unique_slug."""

    @pytest.mark.asyncio
    async def test_free_candidate_returned(self):
        records = InMemoryRecordStore({"pets": []})
        assert await resolve_unique_slug(CANDIDATE, "pets", records=records) == CANDIDATE

    @pytest.mark.asyncio
    async def test_taken_candidate_gets_suffix(self):
        """Scenario: an existing slug pushes the candidate to -1."""
        records = InMemoryRecordStore({"pets": [{"id": "other", "slug": CANDIDATE}]})

        assert await resolve_unique_slug(CANDIDATE, "pets", records=records) == f"{CANDIDATE}-1"

    @pytest.mark.asyncio
    async def test_skips_every_taken_suffix(self):
        rows = [{"id": f"r{i}", "slug": CANDIDATE if i == 0 else f"{CANDIDATE}-{i}"} for i in range(4)]
        records = InMemoryRecordStore({"pets": rows})

        slug = await resolve_unique_slug(CANDIDATE, "pets", records=records)

        assert slug == f"{CANDIDATE}-4"
        assert await records.find_one("pets", slug) is None

    @pytest.mark.asyncio
    async def test_uniqueness_is_per_table(self):
        records = InMemoryRecordStore({"pets_lost": [{"id": "x", "slug": CANDIDATE}], "pets": []})
        assert await resolve_unique_slug(CANDIDATE, "pets", records=records) == CANDIDATE

    @pytest.mark.asyncio
    async def test_own_slug_not_a_collision(self):
        """Test that an update never collides with the record's own slug."""
        records = InMemoryRecordStore({"pets": [{"id": "self", "slug": CANDIDATE}]})

        slug = await resolve_unique_slug(CANDIDATE, "pets", exclude_id="self", records=records)

        assert slug == CANDIDATE

    @pytest.mark.asyncio
    async def test_bounded_attempts(self):
        rows = [{"id": f"r{i}", "slug": CANDIDATE if i == 0 else f"{CANDIDATE}-{i}"} for i in range(3)]
        records = InMemoryRecordStore({"pets": rows})

        with pytest.raises(SlugCollisionExhausted) as exc_info:
            await resolve_unique_slug(CANDIDATE, "pets", records=records, max_attempts=3)

        assert exc_info.value.attempts == 3
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_transient_probe_error_retried(self):
        records = AsyncMock()
        records.find_one.side_effect = [ConnectionError("reset"), None]

        slug = await resolve_unique_slug(CANDIDATE, "pets", records=records, probe_base_delay=0)

        assert slug == CANDIDATE
        assert records.find_one.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_probe_error_is_retryable_failure(self):
        """Test that a failing probe is never read as free or taken."""
        records = AsyncMock()
        records.find_one.side_effect = ConnectionError("database unavailable")

        with pytest.raises(SlugProbeError) as exc_info:
            await resolve_unique_slug(CANDIDATE, "pets", records=records, probe_attempts=3, probe_base_delay=0)

        assert exc_info.value.retryable is True
        assert exc_info.value.slug == CANDIDATE
        assert isinstance(exc_info.value.cause, ConnectionError)
        assert records.find_one.await_count == 3

    @pytest.mark.asyncio
    async def test_probe_passes_exclude_id(self):
        records = AsyncMock()
        records.find_one.return_value = None

        await resolve_unique_slug(CANDIDATE, "pets", exclude_id="abc", records=records)

        records.find_one.assert_awaited_once_with("pets", CANDIDATE, id_not_equals="abc")

    @pytest.mark.asyncio
    async def test_empty_candidate(self):
        with pytest.raises(SlugInputError):
            await resolve_unique_slug("", "pets", records=InMemoryRecordStore())

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            await resolve_unique_slug(CANDIDATE, "pets", records=InMemoryRecordStore(), max_attempts=0)
