"""
Image upload module.

Coordinates validation, resizing and the storage write for one upload, and
exposes storage backends (Google Cloud Storage and in-memory), bucket
provisioning and storage key generation.
"""

from .coordinator import (
    StorageObject,
    UploadCoordinator,
    UploadResult,
    UploadState,
    list_files,
    remove_image,
    upload,
    upload_event_image,
    upload_ong_logo,
    upload_pet_image,
    upload_temp_image,
    upload_user_avatar,
)
from .paths import extract_path_from_url, generate_file_path
from .provisioner import BucketProvisioner, ProvisionOutcome
from .storage import GCSStorageBackend, InMemoryStorageBackend, StorageBackend

__all__ = [
    "StorageObject",
    "UploadCoordinator",
    "UploadResult",
    "UploadState",
    "list_files",
    "remove_image",
    "upload",
    "upload_event_image",
    "upload_ong_logo",
    "upload_pet_image",
    "upload_temp_image",
    "upload_user_avatar",
    "extract_path_from_url",
    "generate_file_path",
    "BucketProvisioner",
    "ProvisionOutcome",
    "GCSStorageBackend",
    "InMemoryStorageBackend",
    "StorageBackend",
]
