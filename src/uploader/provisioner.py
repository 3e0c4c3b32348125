"""
Best-effort bucket provisioning.

Checks that the destination bucket exists before the first write. A probe
that comes back negative or fails under the regular credentials is treated
as inconclusive and handed to a privileged backend, whose create call is
idempotent. If neither confirms the bucket, the outcome carries a warning
and the upload goes ahead regardless.
"""

from dataclasses import dataclass
from typing import Optional

from src.uploader.storage import StorageBackend
from src.utils.logging import get_logger
from src.utils.metrics import get_metrics

logger = get_logger(__name__)

metrics = get_metrics()


@dataclass
class ProvisionOutcome:
    """
    Result of a bucket check.

    Attributes:
        ok: Whether the bucket is confirmed to exist
        created: Whether the privileged backend was asked to create it
        warning: Why the bucket could not be confirmed (None if ok)
    """

    ok: bool
    created: bool = False
    warning: Optional[str] = None


class BucketProvisioner:
    """
    Ensures the destination bucket exists.

    Args:
        storage: Backend used for uploads (regular credentials)
        admin_storage: Backend with rights to create buckets, if available
        bucket_name: Bucket to check (defaults to ``storage.bucket_name``)
    """

    def __init__(
        self,
        storage: StorageBackend,
        admin_storage: Optional[StorageBackend] = None,
        bucket_name: Optional[str] = None,
    ) -> None:
        self.storage = storage
        self.admin_storage = admin_storage
        self.bucket_name = bucket_name or storage.bucket_name

    async def ensure(self) -> ProvisionOutcome:
        """Confirm or create the bucket. Never raises."""
        try:
            if await self.storage.container_exists(self.bucket_name):
                logger.debug(f"Bucket already exists: {self.bucket_name}")
                return ProvisionOutcome(ok=True)
            logger.info(f"Bucket {self.bucket_name} not visible with current credentials")
        except Exception as e:
            logger.info(f"Bucket probe for {self.bucket_name} inconclusive: {e}")
            metrics.record_storage_error(operation="exists", error_type=type(e).__name__)

        if self.admin_storage is None:
            return self._warn("bucket not confirmed and no privileged backend configured")

        try:
            created = await self.admin_storage.create_container(self.bucket_name)
        except Exception as e:
            metrics.record_storage_error(operation="create_bucket", error_type=type(e).__name__)
            return self._warn(f"privileged create failed: {e}")

        if not created:
            return self._warn("privileged create returned no bucket")

        logger.info(f"Bucket verified/created: {self.bucket_name}")
        return ProvisionOutcome(ok=True, created=True)

    def _warn(self, reason: str) -> ProvisionOutcome:
        warning = f"Bucket {self.bucket_name} may not exist ({reason}); attempting upload anyway"
        logger.warning(warning)
        metrics.record_provision_warning()
        return ProvisionOutcome(ok=False, warning=warning)
