"""
Image upload coordinator.

Runs one upload through validate → provision → transform → path → write and
reports the outcome as an ``UploadResult``. Each stage is a separate method
so it can be exercised on its own; ``run`` strings them together and moves
the coordinator through its states:

    IDLE → VALIDATING → TRANSFORMING → UPLOADING → COMPLETED | FAILED | CANCELLED

Only the storage write is bounded by the timeout and observes the caller's
cancellation signal. Transform and provisioning failures are downgraded to
warnings. There is no automatic retry: one call makes at most one write.

Example usage:
    >>> storage = GCSStorageBackend("petadot-images")
    >>> file = ImageFile(data, "rex.jpg", "image/jpeg")
    >>> result = await upload(file, "pets", owner_id="u-42", storage=storage)
    >>> if result.success:
    ...     print(f"Uploaded to {result.url}")
    ... elif result.error.retryable:
    ...     print("Timed out, offer a retry")
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from src.errors import (
    BackendError,
    UnknownCategoryError,
    UploadCancelledError,
    UploadError,
    UploadTimeoutError,
)
from src.transformer.transformer import TransformOutcome, transform_image
from src.uploader.paths import extract_path_from_url, generate_file_path
from src.uploader.provisioner import BucketProvisioner, ProvisionOutcome
from src.uploader.storage import StorageBackend
from src.utils.config import DEFAULT_UPLOAD_TIMEOUT_SECONDS
from src.utils.logging import correlation_scope, get_logger, log_function_call
from src.utils.metrics import get_metrics
from src.validator.policy import Category, UploadPolicy, coerce_category, resolve_policy
from src.validator.validator import ImageFile, validate_file

logger = get_logger(__name__)

metrics = get_metrics()

# Upper bound on the delete issued after a timed-out or cancelled write
ABORT_CLEANUP_TIMEOUT_SECONDS = 5.0


class UploadState(str, Enum):
    """Lifecycle of a single upload."""

    IDLE = "idle"
    VALIDATING = "validating"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = (UploadState.COMPLETED, UploadState.FAILED, UploadState.CANCELLED)


@dataclass
class StorageObject:
    """
    A stored, publicly addressable upload.

    Attributes:
        path: Storage key
        url: Public URL derived from the key
        category: Upload category
        owner_id: Owning user/organization (None for public uploads)
        created_at: When the write completed (UTC)
    """

    path: str
    url: str
    category: str
    owner_id: Optional[str]
    created_at: datetime


@dataclass
class UploadResult:
    """
    Result of an upload.

    Attributes:
        success: Whether the object was stored
        state: Terminal coordinator state
        category: Requested category
        owner_id: Requested owner
        object: Stored object (None unless successful)
        error: Failure cause (None if successful)
        warnings: Degradations that did not stop the upload
        file_size_bytes: Bytes written (or submitted, on failure)
        duration_seconds: Wall time for the whole run
    """

    success: bool
    state: UploadState
    category: str
    owner_id: Optional[str]
    object: Optional[StorageObject] = None
    error: Optional[UploadError] = None
    warnings: List[str] = field(default_factory=list)
    file_size_bytes: int = 0
    duration_seconds: float = 0.0

    @property
    def url(self) -> Optional[str]:
        return self.object.url if self.object else None

    @property
    def path(self) -> Optional[str]:
        return self.object.path if self.object else None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error else None


class UploadCoordinator:
    """
    Single-use orchestrator for one upload.

    Args:
        storage: Backend receiving the write
        admin_storage: Privileged backend for bucket creation (optional)
        policies: Policy table (defaults to the built-in table)
        timeout_seconds: Bound on the storage write
    """

    def __init__(
        self,
        storage: StorageBackend,
        admin_storage: Optional[StorageBackend] = None,
        policies: Optional[Mapping[Category, UploadPolicy]] = None,
        timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self.storage = storage
        self.policies = policies
        self.timeout_seconds = timeout_seconds
        self.provisioner = BucketProvisioner(storage, admin_storage)
        self.state = UploadState.IDLE
        self.history: List[UploadState] = [UploadState.IDLE]
        self.warnings: List[str] = []

    def _transition(self, state: UploadState) -> None:
        logger.debug(f"Upload state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate(
        self,
        file: ImageFile,
        category: Union[str, Category],
        policy_override: Optional[Mapping[str, Any]] = None,
    ) -> UploadPolicy:
        """
        Resolve the category policy and check ``file`` against it.

        Raises:
            UploadValidationError: Unknown category, unsupported type or too large
            PolicyConfigError: Malformed ``policy_override``
        """
        self._transition(UploadState.VALIDATING)
        try:
            category = coerce_category(category)
        except ValueError as e:
            raise UnknownCategoryError(str(e)) from e
        policy = resolve_policy(category, policy_override, self.policies)
        validate_file(file, policy)
        return policy

    async def provision(self) -> ProvisionOutcome:
        outcome = await self.provisioner.ensure()
        if outcome.warning:
            self.warnings.append(outcome.warning)
        return outcome

    async def transform(self, file: ImageFile, policy: UploadPolicy) -> TransformOutcome:
        self._transition(UploadState.TRANSFORMING)
        outcome = await transform_image(file, policy.max_width, policy.max_height, policy.quality)
        if outcome.warning:
            self.warnings.append(outcome.warning)
        return outcome

    async def store(
        self,
        path: str,
        data: bytes,
        content_type: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Write ``data`` under ``path`` within the timeout.

        Raises:
            UploadCancelledError: ``cancel_event`` was set before the write finished
            UploadTimeoutError: The write did not finish within ``timeout_seconds``
            BackendError: The backend failed the write
        """
        self._transition(UploadState.UPLOADING)

        if cancel_event is not None and cancel_event.is_set():
            raise UploadCancelledError("Upload cancelled before transfer started")

        put_task = asyncio.ensure_future(
            self.storage.put_object(path, data, content_type, timeout=self.timeout_seconds)
        )
        waiters = {put_task}
        cancel_task = None
        if cancel_event is not None:
            cancel_task = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            with metrics.track_upload():
                done, _ = await asyncio.wait(
                    waiters, timeout=self.timeout_seconds, return_when=asyncio.FIRST_COMPLETED
                )
        except asyncio.CancelledError:
            await self._abort_write(put_task, path)
            raise
        finally:
            if cancel_task is not None:
                cancel_task.cancel()

        if put_task in done:
            try:
                return put_task.result()
            except Exception as e:
                metrics.record_storage_error(operation="upload", error_type=type(e).__name__)
                raise BackendError(f"Upload failed: {e}", operation="upload", cause=e) from e

        await self._abort_write(put_task, path)
        if cancel_task is not None and cancel_task in done:
            raise UploadCancelledError()
        raise UploadTimeoutError(self.timeout_seconds)

    async def _abort_write(self, put_task: "asyncio.Future[str]", path: str) -> None:
        """Cancel an in-flight write and make sure nothing stays published under ``path``."""
        put_task.cancel()
        await asyncio.gather(put_task, return_exceptions=True)
        cleanup_timeout = min(self.timeout_seconds, ABORT_CLEANUP_TIMEOUT_SECONDS)
        try:
            if await asyncio.wait_for(self.storage.delete_object(path), timeout=cleanup_timeout):
                logger.info(f"Removed partially written object: {path}")
        except asyncio.TimeoutError:
            logger.warning(f"Cleanup of {path} did not finish within {cleanup_timeout}s")
        except Exception as e:
            logger.warning(f"Could not clean up {path} after aborted upload: {e}")

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def run(
        self,
        file: ImageFile,
        category: Union[str, Category],
        owner_id: Optional[str] = None,
        policy_override: Optional[Mapping[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> UploadResult:
        """Run every stage once and return the terminal result."""
        if self.state is not UploadState.IDLE:
            raise RuntimeError(f"UploadCoordinator already used (state: {self.state.value})")

        with correlation_scope("upload"):
            return await self._run(file, category, owner_id, policy_override, cancel_event)

    async def _run(
        self,
        file: ImageFile,
        category: Union[str, Category],
        owner_id: Optional[str],
        policy_override: Optional[Mapping[str, Any]],
        cancel_event: Optional[asyncio.Event],
    ) -> UploadResult:
        start_time = time.monotonic()
        category_name = category.value if isinstance(category, Category) else str(category)
        logger.info(f"Starting upload of {file.filename} for category: {category_name}")

        def finish(state: UploadState, error: Optional[UploadError] = None, obj=None, size=0) -> UploadResult:
            self._transition(state)
            return UploadResult(
                success=state is UploadState.COMPLETED,
                state=state,
                category=category_name,
                owner_id=owner_id,
                object=obj,
                error=error,
                warnings=list(self.warnings),
                file_size_bytes=size,
                duration_seconds=time.monotonic() - start_time,
            )

        try:
            policy = self.validate(file, category, policy_override)
        except UploadError as e:
            logger.error(f"Validation failed for {file.filename}: {e}")
            metrics.record_upload_failure(category=category_name, status="invalid")
            return finish(UploadState.FAILED, error=e, size=file.size)

        category_name = coerce_category(category).value

        await self.provision()
        transformed = await self.transform(file, policy)
        path = generate_file_path(category_name, owner_id, file.filename)
        logger.info(f"Uploading {len(transformed.data)} bytes to {self.storage.bucket_name}/{path}")

        try:
            key = await self.store(path, transformed.data, transformed.content_type, cancel_event)
            url = self.storage.get_public_url(key)
            if not url:
                raise BackendError("Could not derive public URL", operation="public_url")
        except UploadCancelledError as e:
            logger.warning(f"Upload of {path} cancelled by caller")
            metrics.record_upload_failure(category=category_name, status="cancelled")
            return finish(UploadState.CANCELLED, error=e, size=len(transformed.data))
        except UploadError as e:
            status = "timeout" if isinstance(e, UploadTimeoutError) else "failed"
            logger.error(f"Upload of {path} failed: {e}")
            metrics.record_upload_failure(category=category_name, status=status)
            return finish(UploadState.FAILED, error=e, size=len(transformed.data))

        stored = StorageObject(
            path=key,
            url=url,
            category=category_name,
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
        )
        metrics.record_upload_success(bytes_uploaded=len(transformed.data), category=category_name)
        logger.info(f"Upload finished: {url}")
        return finish(UploadState.COMPLETED, obj=stored, size=len(transformed.data))


# ============================================================================
# Public API
# ============================================================================

@log_function_call
async def upload(
    file: ImageFile,
    category: Union[str, Category],
    owner_id: Optional[str] = None,
    policy_override: Optional[Mapping[str, Any]] = None,
    cancel_event: Optional[asyncio.Event] = None,
    *,
    storage: StorageBackend,
    admin_storage: Optional[StorageBackend] = None,
    policies: Optional[Mapping[Category, UploadPolicy]] = None,
    timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
) -> UploadResult:
    """
    Validate, resize and store one image.

    Args:
        file: Image payload
        category: Upload category (pets, events, avatars, ongs, temp)
        owner_id: Owning user/organization id
        policy_override: Partial policy replacing category defaults
        cancel_event: Set by the caller to cancel an in-flight write
        storage: Backend receiving the write
        admin_storage: Privileged backend used to create a missing bucket
        policies: Policy table (defaults to the built-in table)
        timeout_seconds: Bound on the storage write

    Returns:
        UploadResult; ``url`` and ``path`` are set on success, ``error`` otherwise

    Raises:
        PolicyConfigError: ``policy_override`` names unknown fields or holds invalid
            values. Raised rather than returned in the result.
    """
    coordinator = UploadCoordinator(
        storage,
        admin_storage=admin_storage,
        policies=policies,
        timeout_seconds=timeout_seconds,
    )
    return await coordinator.run(file, category, owner_id, policy_override, cancel_event)


async def remove_image(url_or_path: str, *, storage: StorageBackend) -> bool:
    """
    Delete a stored image by public URL or storage key.

    Returns:
        True if an object was removed, False otherwise
    """
    try:
        path = extract_path_from_url(url_or_path, storage.bucket_name, storage.public_base_url)
    except ValueError as e:
        logger.error(str(e))
        return False

    logger.info(f"Removing file: {path}")
    try:
        removed = await storage.delete_object(path)
    except Exception as e:
        logger.error(f"Error removing {path}: {e}")
        metrics.record_storage_error(operation="delete", error_type=type(e).__name__)
        return False

    if not removed:
        logger.warning(f"Nothing to remove at {path}")
    return removed


async def list_files(
    category: Union[str, Category],
    owner_id: Optional[str] = None,
    *,
    storage: StorageBackend,
) -> List[str]:
    """
    List stored keys for a category, optionally narrowed to one owner.

    Raises:
        BackendError: If the backend listing fails
    """
    category_name = coerce_category(category).value
    prefix = f"{category_name}/{owner_id}/" if owner_id else f"{category_name}/"
    try:
        return await storage.list_objects(prefix)
    except Exception as e:
        metrics.record_storage_error(operation="list", error_type=type(e).__name__)
        raise BackendError(f"Listing {prefix} failed: {e}", operation="list", cause=e) from e


async def upload_pet_image(file: ImageFile, owner_id: Optional[str] = None, **kwargs: Any) -> UploadResult:
    return await upload(file, Category.PETS, owner_id, **kwargs)


async def upload_event_image(file: ImageFile, owner_id: Optional[str] = None, **kwargs: Any) -> UploadResult:
    return await upload(file, Category.EVENTS, owner_id, **kwargs)


async def upload_user_avatar(file: ImageFile, user_id: str, **kwargs: Any) -> UploadResult:
    return await upload(file, Category.AVATARS, user_id, **kwargs)


async def upload_ong_logo(file: ImageFile, ong_id: str, **kwargs: Any) -> UploadResult:
    return await upload(file, Category.ONGS, ong_id, **kwargs)


async def upload_temp_image(file: ImageFile, **kwargs: Any) -> UploadResult:
    return await upload(file, Category.TEMP, **kwargs)
