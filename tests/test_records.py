"""
Unit tests for record stores.

The Supabase store is exercised against a MagicMock client that mirrors the
PostgREST query builder chain.
"""

from unittest.mock import MagicMock, patch

import pytest

from src.slugs import InMemoryRecordStore, SupabaseRecordStore, create_record_store
from src.utils.config import IngestConfig


class TestInMemoryRecordStore:
    """Test the dict-backed store."""

    @pytest.mark.asyncio
    async def test_find_one(self):
        store = InMemoryRecordStore({"pets": [{"id": "1", "slug": "rex"}, {"id": "2", "slug": None}]})

        assert (await store.find_one("pets", "rex"))["id"] == "1"
        assert await store.find_one("pets", "rex", id_not_equals="1") is None
        assert await store.find_one("ongs", "rex") is None

    @pytest.mark.asyncio
    async def test_find_without_slug(self):
        store = InMemoryRecordStore({"pets": [{"id": "1", "slug": "rex"}, {"id": "2"}, {"id": "3", "slug": ""}]})

        missing = await store.find_without_slug("pets")

        assert [r["id"] for r in missing] == ["2", "3"]

    @pytest.mark.asyncio
    async def test_update_slug(self):
        store = InMemoryRecordStore()
        store.add("pets", {"id": "1"})

        await store.update_slug("pets", "1", "rex")

        assert store.tables["pets"][0]["slug"] == "rex"

    @pytest.mark.asyncio
    async def test_update_missing_record(self):
        with pytest.raises(KeyError):
            await InMemoryRecordStore({"pets": []}).update_slug("pets", "404", "rex")

    def test_initial_rows_copied(self):
        rows = [{"id": "1"}]
        store = InMemoryRecordStore({"pets": rows})
        store.tables["pets"][0]["slug"] = "changed"

        assert "slug" not in rows[0]


class TestSupabaseRecordStore:
    """Test the Supabase-backed store."""

    @pytest.mark.asyncio
    async def test_find_one_with_exclusion(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.neq.return_value.limit.return_value.execute.return_value.data = [{"id": "9", "slug": "rex"}]

        record = await SupabaseRecordStore(client).find_one("pets", "rex", id_not_equals="1")

        assert record == {"id": "9", "slug": "rex"}
        client.table.assert_called_once_with("pets")
        client.table.return_value.select.assert_called_once_with("id, slug")
        client.table.return_value.select.return_value.eq.assert_called_once_with("slug", "rex")
        query.neq.assert_called_once_with("id", "1")
        query.neq.return_value.limit.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_find_one_no_match(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.limit.return_value.execute.return_value.data = []

        assert await SupabaseRecordStore(client).find_one("pets", "rex") is None
        query.neq.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_one_propagates_errors(self):
        client = MagicMock()
        client.table.side_effect = RuntimeError("connection refused")

        with pytest.raises(RuntimeError, match="connection refused"):
            await SupabaseRecordStore(client).find_one("pets", "rex")

    @pytest.mark.asyncio
    async def test_find_without_slug(self):
        client = MagicMock()
        select = client.table.return_value.select
        select.return_value.is_.return_value.execute.return_value.data = [{"id": "1", "slug": None}]

        rows = await SupabaseRecordStore(client).find_without_slug("ongs")

        assert rows == [{"id": "1", "slug": None}]
        select.assert_called_once_with("*")
        select.return_value.is_.assert_called_once_with("slug", "null")

    @pytest.mark.asyncio
    async def test_update_slug(self):
        client = MagicMock()

        await SupabaseRecordStore(client).update_slug("events", "42", "feira-recife-a1b2c")

        client.table.assert_called_once_with("events")
        client.table.return_value.update.assert_called_once_with({"slug": "feira-recife-a1b2c"})
        client.table.return_value.update.return_value.eq.assert_called_once_with("id", "42")


class TestCreateRecordStore:
    """Test create_record_store."""

    def test_requires_credentials(self):
        config = IngestConfig(gcs_bucket="b")

        with pytest.raises(ValueError, match="SUPABASE_URL"):
            create_record_store(config)

    def test_builds_client(self):
        config = IngestConfig(
            gcs_bucket="b",
            supabase_url="https://project.supabase.co",
            supabase_service_role_key="service-key",
        )

        with patch("supabase.create_client") as create_client:
            store = create_record_store(config)

        create_client.assert_called_once_with("https://project.supabase.co", "service-key")
        assert store.client is create_client.return_value
