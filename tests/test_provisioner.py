"""Unit tests for best-effort bucket provisioning."""

from unittest.mock import AsyncMock

import pytest

from src.uploader import BucketProvisioner, InMemoryStorageBackend


class TestBucketProvisioner:
    """Test BucketProvisioner.ensure."""

    @pytest.mark.asyncio
    async def test_existing_bucket(self):
        storage = InMemoryStorageBackend("images")
        admin = AsyncMock()

        outcome = await BucketProvisioner(storage, admin).ensure()

        assert outcome.ok is True
        assert outcome.created is False
        admin.create_container.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_bucket_created_by_admin(self):
        storage = InMemoryStorageBackend("images", containers=[])
        admin = InMemoryStorageBackend("images", containers=[])

        outcome = await BucketProvisioner(storage, admin).ensure()

        assert outcome.ok is True
        assert outcome.created is True
        assert "images" in admin.containers

    @pytest.mark.asyncio
    async def test_probe_error_delegates_to_admin(self):
        """Test that a failing probe is treated as inconclusive, not fatal."""
        storage = InMemoryStorageBackend("images")
        storage.container_exists = AsyncMock(side_effect=PermissionError("403"))
        admin = AsyncMock()
        admin.create_container.return_value = True

        outcome = await BucketProvisioner(storage, admin).ensure()

        assert outcome.ok is True
        admin.create_container.assert_awaited_once_with("images")

    @pytest.mark.asyncio
    async def test_no_admin_backend_warns(self):
        storage = InMemoryStorageBackend("images", containers=[])

        outcome = await BucketProvisioner(storage).ensure()

        assert outcome.ok is False
        assert "attempting upload anyway" in outcome.warning

    @pytest.mark.asyncio
    async def test_admin_failure_warns(self):
        storage = InMemoryStorageBackend("images", containers=[])
        admin = AsyncMock()
        admin.create_container.side_effect = RuntimeError("quota exceeded")

        outcome = await BucketProvisioner(storage, admin).ensure()

        assert outcome.ok is False
        assert "quota exceeded" in outcome.warning

    @pytest.mark.asyncio
    async def test_admin_returns_false_warns(self):
        storage = InMemoryStorageBackend("images", containers=[])
        admin = AsyncMock()
        admin.create_container.return_value = False

        outcome = await BucketProvisioner(storage, admin).ensure()

        assert outcome.ok is False
        assert outcome.warning is not None
