"""
Record stores consulted by slug resolution.

``SupabaseRecordStore`` talks to the platform database through supabase-py;
the client is synchronous, so each query runs in a worker thread.
``InMemoryRecordStore`` keeps rows in a dict and is used for dry runs and
tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Protocol

from src.utils.config import IngestConfig
from src.utils.logging import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]


class RecordStore(Protocol):
    """Async accessor contract for slugged tables."""

    async def find_one(
        self, table: str, slug: str, id_not_equals: Optional[str] = None
    ) -> Optional[Record]:
        """Return a live record in ``table`` holding ``slug``, or None."""
        ...

    async def find_without_slug(self, table: str) -> List[Record]:
        ...

    async def update_slug(self, table: str, record_id: str, slug: str) -> None:
        ...


class SupabaseRecordStore:
    """
    Record store backed by a Supabase (PostgREST) client.

    Args:
        client: ``supabase.Client`` authenticated with the service role key
    """

    def __init__(self, client) -> None:
        self.client = client

    async def find_one(
        self, table: str, slug: str, id_not_equals: Optional[str] = None
    ) -> Optional[Record]:
        def _query() -> Optional[Record]:
            query = self.client.table(table).select("id, slug").eq("slug", slug)
            if id_not_equals:
                query = query.neq("id", id_not_equals)
            response = query.limit(1).execute()
            return response.data[0] if response.data else None

        return await asyncio.to_thread(_query)

    async def find_without_slug(self, table: str) -> List[Record]:
        def _query() -> List[Record]:
            response = self.client.table(table).select("*").is_("slug", "null").execute()
            return list(response.data or [])

        return await asyncio.to_thread(_query)

    async def update_slug(self, table: str, record_id: str, slug: str) -> None:
        def _update() -> None:
            self.client.table(table).update({"slug": slug}).eq("id", record_id).execute()

        await asyncio.to_thread(_update)
        logger.debug(f"Persisted slug {slug} for {table}/{record_id}")


class InMemoryRecordStore:
    """
    Dict-backed record store.

    Args:
        tables: Initial rows per table; every row needs an ``id``
    """

    def __init__(self, tables: Optional[Dict[str, List[Record]]] = None) -> None:
        self.tables: Dict[str, List[Record]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def add(self, table: str, record: Record) -> Record:
        row = dict(record)
        self.tables.setdefault(table, []).append(row)
        return row

    async def find_one(
        self, table: str, slug: str, id_not_equals: Optional[str] = None
    ) -> Optional[Record]:
        for row in self.tables.get(table, []):
            if row.get("slug") == slug and (id_not_equals is None or row.get("id") != id_not_equals):
                return row
        return None

    async def find_without_slug(self, table: str) -> List[Record]:
        return [dict(row) for row in self.tables.get(table, []) if not row.get("slug")]

    async def update_slug(self, table: str, record_id: str, slug: str) -> None:
        for row in self.tables.get(table, []):
            if row.get("id") == record_id:
                row["slug"] = slug
                return
        raise KeyError(f"No record {record_id} in {table}")


def create_record_store(config: IngestConfig) -> SupabaseRecordStore:
    """
    Build a Supabase-backed record store from configuration.

    Raises:
        ValueError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing
    """
    if not config.supabase_url or not config.supabase_service_role_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the record store"
        )

    from supabase import create_client

    client = create_client(config.supabase_url, config.supabase_service_role_key)
    logger.info(f"Connected record store to {config.supabase_url}")
    return SupabaseRecordStore(client)
