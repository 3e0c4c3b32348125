"""Integration tests for end-to-end ingestion workflows.

These tests verify that all components work together correctly:
- Policy file → validate → resize → store → remove
- Multi-image submissions uploaded concurrently
- Record creation → slug assignment → backfill
"""

import asyncio
import io
from pathlib import Path

import pytest
from PIL import Image

from src.slugs import InMemoryRecordStore, SlugAttributes, assign_slug, populate_missing_slugs
from src.uploader import InMemoryStorageBackend, UploadState, list_files, remove_image, upload
from src.utils.config_loader import load_policy_table
from src.validator import ImageFile


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    """Policy file shrinking the pets bounding box."""
    path = tmp_path / "policies.yaml"
    path.write_text(
        """
version: "1.0"
policies:
  pets:
    max_width: 640
    max_height: 480
    quality: 0.75
"""
    )
    return path


class TestImageIngestion:
    """End-to-end upload workflows against the in-memory backend."""

    @pytest.mark.asyncio
    async def test_policy_file_drives_resize(self, policy_file, image_bytes):
        storage = InMemoryStorageBackend("petadot-images", containers=[])
        admin = InMemoryStorageBackend("petadot-images", containers=[])
        policies = load_policy_table(policy_file)
        file = ImageFile(image_bytes(1920, 1080), "Rex at the park.jpg", "image/jpeg")

        result = await upload(file, "pets", "u-7", storage=storage, admin_storage=admin, policies=policies)

        assert result.success, result.error_message
        assert result.path.startswith("pets/u-7/rex-at-the-park-")
        with Image.open(io.BytesIO(storage.objects[result.path].data)) as image:
            assert image.size == (640, 360)

        assert await list_files("pets", "u-7", storage=storage) == [result.path]
        assert await remove_image(result.url, storage=storage) is True
        assert await list_files("pets", storage=storage) == []

    @pytest.mark.asyncio
    async def test_multi_image_submission(self, image_bytes):
        """Test a mixed batch: one invalid file fails alone, the rest are stored."""
        storage = InMemoryStorageBackend()
        files = [
            ImageFile(image_bytes(800, 600), "front.jpg", "image/jpeg"),
            ImageFile(image_bytes(2400, 2400, fmt="PNG"), "side.png", "image/png"),
            ImageFile(b"GIF89a", "funny.gif", "image/gif"),
        ]

        results = await asyncio.gather(*(upload(f, "events", "ong-1", storage=storage) for f in files))

        assert [r.state for r in results] == [
            UploadState.COMPLETED,
            UploadState.COMPLETED,
            UploadState.FAILED,
        ]
        assert len(storage.objects) == 2
        with Image.open(io.BytesIO(storage.objects[results[1].path].data)) as image:
            assert image.size == (1080, 1080)

    @pytest.mark.asyncio
    async def test_retry_after_timeout(self, image_bytes):
        """Test that a caller can retry a timed-out upload with the same file."""
        storage = InMemoryStorageBackend(latency=0.5)
        file = ImageFile(image_bytes(100, 100), "rex.jpg", "image/jpeg")

        first = await upload(file, "temp", storage=storage, timeout_seconds=0.05)
        assert first.error.retryable

        storage.latency = 0
        second = await upload(file, "temp", storage=storage, timeout_seconds=0.05)

        assert second.success
        assert list(storage.objects) == [second.path]


class TestSlugLifecycle:
    """End-to-end slug workflows against the in-memory record store."""

    @pytest.mark.asyncio
    async def test_create_rename_and_backfill(self):
        records = InMemoryRecordStore(
            {
                "pets_lost": [
                    {"id": "a1b2c3d4-0001", "slug": "rex-lost-sao-paulo-sp-2024-a1b2c"},
                    {"id": "a1b2c3d4-0002"},
                    {"id": "f0e1d2c3-0003", "name": "Luna", "city": "Salvador", "state": "BA"},
                ]
            }
        )
        attrs = SlugAttributes(name="Rex", type="lost", city="São Paulo", state="SP", date="2024-04-02")

        created = await assign_slug("pets_lost", "a1b2c3d4-0002", "pet", attrs, records=records)
        assert created == "rex-lost-sao-paulo-sp-2024-a1b2c-1"

        renamed = await assign_slug(
            "pets_lost",
            "a1b2c3d4-0002",
            "pet",
            SlugAttributes(name="Rex II", type="lost", city="São Paulo", state="SP", date="2024-04-02"),
            records=records,
        )
        assert renamed == "rex-ii-lost-sao-paulo-sp-2024-a1b2c"

        report = await populate_missing_slugs("pets_lost", records=records)

        assert report.updated == 1
        assert report.slugs["f0e1d2c3-0003"].startswith("luna-perdido-salvador-ba-")
        slugs = [row["slug"] for row in records.tables["pets_lost"]]
        assert len(set(slugs)) == len(slugs)
