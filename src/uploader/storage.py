"""
Object storage backends.

Every backend exposes the same async surface, so the upload coordinator and
the bucket provisioner never depend on a concrete SDK. Backends are passed
in explicitly by the caller; nothing here holds a module-level client.

A cancelled ``put_object`` returns control to the caller at once and must
not leave an object behind: if the write still finishes, the backend removes
it in a background task. ``drain`` waits for those tasks before shutdown.
"""

import asyncio
import functools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set
from urllib.parse import quote

from src.utils.logging import get_logger

logger = get_logger(__name__)

GCS_PUBLIC_HOST = "https://storage.googleapis.com"
DEFAULT_CACHE_CONTROL = "public, max-age=3600"


class StorageBackend(Protocol):
    """Async object storage contract consumed by the upload pipeline."""

    bucket_name: str
    public_base_url: Optional[str]

    async def put_object(
        self, path: str, data: bytes, content_type: str, timeout: Optional[float] = None
    ) -> str:
        """Write ``data`` under ``path`` (overwriting); ``timeout`` caps the transfer."""
        ...

    def get_public_url(self, key: str) -> str:
        ...

    async def container_exists(self, name: str) -> bool:
        ...

    async def create_container(self, name: str) -> bool:
        """Create the container if missing; True when it exists afterwards."""
        ...

    async def delete_object(self, path: str) -> bool:
        """Remove ``path``; False if there was nothing to remove."""
        ...

    async def list_objects(self, prefix: str) -> List[str]:
        ...

    async def drain(self) -> None:
        """Wait for background cleanup of cancelled writes."""
        ...


# ============================================================================
# Google Cloud Storage
# ============================================================================

class GCSStorageBackend:
    """
    Google Cloud Storage backend built on google-cloud-storage.

    The SDK is synchronous, so every call runs in the default executor.

    Example:
        >>> storage = GCSStorageBackend("petadot-images")
        >>> key = await storage.put_object("pets/u1/rex.jpg", data, "image/jpeg")
        >>> storage.get_public_url(key)
        'https://storage.googleapis.com/petadot-images/pets/u1/rex.jpg'
    """

    def __init__(
        self,
        bucket_name: str,
        client=None,
        public_base_url: Optional[str] = None,
        cache_control: str = DEFAULT_CACHE_CONTROL,
        request_timeout: float = 60.0,
    ) -> None:
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url
        self.cache_control = cache_control
        self.request_timeout = request_timeout
        self._client = client
        self._pending_cleanups: Set["asyncio.Task[None]"] = set()

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage

            self._client = storage.Client()
        return self._client

    def _put_sync(self, path: str, data: bytes, content_type: str, timeout: float) -> str:
        blob = self.client.bucket(self.bucket_name).blob(path)
        blob.cache_control = self.cache_control
        blob.upload_from_string(data, content_type=content_type, timeout=timeout)
        return path

    def _delete_sync(self, path: str) -> bool:
        from google.api_core.exceptions import NotFound

        try:
            self.client.bucket(self.bucket_name).blob(path).delete(timeout=self.request_timeout)
        except NotFound:
            return False
        return True

    async def put_object(
        self, path: str, data: bytes, content_type: str, timeout: Optional[float] = None
    ) -> str:
        request_timeout = self.request_timeout if timeout is None else min(timeout, self.request_timeout)
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            None, functools.partial(self._put_sync, path, data, content_type, request_timeout)
        )
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; discard its write once it settles
            cleanup = asyncio.ensure_future(self._discard_late_write(future, path))
            self._pending_cleanups.add(cleanup)
            cleanup.add_done_callback(self._pending_cleanups.discard)
            raise

    async def _discard_late_write(self, future: "asyncio.Future[str]", path: str) -> None:
        await asyncio.wait([future])
        if future.cancelled() or future.exception() is not None:
            return
        logger.info(f"Discarding object written after cancellation: {path}")
        try:
            await asyncio.to_thread(self._delete_sync, path)
        except Exception as e:
            logger.warning(f"Could not discard late write {path}: {e}")

    async def drain(self) -> None:
        """Wait for writes abandoned by cancellation to be discarded."""
        if self._pending_cleanups:
            await asyncio.gather(*self._pending_cleanups, return_exceptions=True)

    def get_public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(key)}"
        return f"{GCS_PUBLIC_HOST}/{self.bucket_name}/{quote(key)}"

    async def container_exists(self, name: str) -> bool:
        return await asyncio.to_thread(lambda: self.client.lookup_bucket(name) is not None)

    async def create_container(self, name: str) -> bool:
        from google.api_core.exceptions import Conflict

        def _create() -> bool:
            try:
                self.client.create_bucket(name)
                logger.info(f"Created bucket: {name}")
            except Conflict:
                logger.debug(f"Bucket already exists: {name}")
            return True

        return await asyncio.to_thread(_create)

    async def delete_object(self, path: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, path)

    async def list_objects(self, prefix: str) -> List[str]:
        def _list() -> List[str]:
            return [blob.name for blob in self.client.list_blobs(self.bucket_name, prefix=prefix)]

        return await asyncio.to_thread(_list)


# ============================================================================
# In-memory backend
# ============================================================================

@dataclass
class StoredBlob:
    data: bytes = field(repr=False)
    content_type: str


class InMemoryStorageBackend:
    """
    Process-local backend for development runs and tests.

    Args:
        bucket_name: Name reported for the single container
        public_base_url: Prefix for public URLs
        containers: Containers that already exist
        latency: Seconds each write takes (simulated network transfer)
    """

    def __init__(
        self,
        bucket_name: str = "local-images",
        public_base_url: Optional[str] = "memory://local-images",
        containers: Optional[List[str]] = None,
        latency: float = 0.0,
    ) -> None:
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url
        self.containers = set(containers if containers is not None else [bucket_name])
        self.latency = latency
        self.objects: Dict[str, StoredBlob] = {}

    async def put_object(
        self, path: str, data: bytes, content_type: str, timeout: Optional[float] = None
    ) -> str:
        if self.latency:
            await asyncio.sleep(self.latency)
        self.objects[path] = StoredBlob(data=data, content_type=content_type)
        return path

    def get_public_url(self, key: str) -> str:
        return f"{(self.public_base_url or '').rstrip('/')}/{key}"

    async def container_exists(self, name: str) -> bool:
        return name in self.containers

    async def create_container(self, name: str) -> bool:
        self.containers.add(name)
        return True

    async def delete_object(self, path: str) -> bool:
        return self.objects.pop(path, None) is not None

    async def list_objects(self, prefix: str) -> List[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))

    async def drain(self) -> None:
        """Writes complete or raise in-line, so there is nothing to wait for."""
