#!/usr/bin/env python3
"""
Upload images to Google Cloud Storage.

CLI wrapper for the uploader module: validates each image against its
category policy, resizes it and stores it under a unique key.

Usage:
    python scripts/upload.py rex.jpg --category pets --owner u-42
    python scripts/upload.py logo.png --category ongs --owner ong-7
    python scripts/upload.py *.jpg --category events --timeout 60
    python scripts/upload.py photo.jpg --dry-run
"""

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import List

# Add src to path for imports (before other imports)
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from src.uploader import (  # noqa: E402
    GCSStorageBackend,
    InMemoryStorageBackend,
    UploadResult,
    upload,
)
from src.utils.config import DEFAULT_UPLOAD_TIMEOUT_SECONDS, get_config  # noqa: E402
from src.utils.config_loader import load_policy_table  # noqa: E402
from src.utils.logging import get_logger  # noqa: E402
from src.validator import Category, ImageFile  # noqa: E402

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Upload images to Google Cloud Storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload a pet photo for a user
  %(prog)s rex.jpg --category pets --owner u-42

  # Upload several event banners at once
  %(prog)s banner1.jpg banner2.png --category events

  # Use a custom policy file
  %(prog)s avatar.png --category avatars --owner u-42 --policy-file policies.yaml

  # Validate and resize without touching GCS
  %(prog)s photo.jpg --dry-run
        """,
    )

    parser.add_argument(
        "files",
        nargs="+",
        help="Image file(s) to upload",
    )

    parser.add_argument(
        "-c",
        "--category",
        default=Category.TEMP.value,
        choices=[c.value for c in Category],
        help="Upload category (default: temp)",
    )

    parser.add_argument(
        "-o",
        "--owner",
        help="Owning user/organization id (default: public)",
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        help="Upload timeout in seconds (default: from config)",
    )

    parser.add_argument(
        "--policy-file",
        help="YAML file overriding category policies (default: UPLOAD_POLICY_FILE)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Store into an in-memory bucket instead of GCS",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    return parser.parse_args()


def load_image(path: Path) -> ImageFile:
    """Read a local file into an ImageFile, guessing its mime type from the name."""
    content_type, _ = mimetypes.guess_type(path.name)
    return ImageFile(
        data=path.read_bytes(),
        filename=path.name,
        content_type=content_type or "application/octet-stream",
    )


async def upload_all(files: List[ImageFile], args, storage, policies, timeout: float) -> List[UploadResult]:
    """Upload every file concurrently."""
    try:
        return await asyncio.gather(
            *(
                upload(
                    file,
                    args.category,
                    args.owner,
                    storage=storage,
                    policies=policies,
                    timeout_seconds=timeout,
                )
                for file in files
            )
        )
    finally:
        await storage.drain()


def main():
    """Main entry point for upload CLI."""
    args = parse_args()

    # Configure logging verbosity
    if args.verbose:
        import logging

        logging.getLogger("src").setLevel(logging.DEBUG)

    timeout = args.timeout or DEFAULT_UPLOAD_TIMEOUT_SECONDS
    policy_file = args.policy_file

    if args.dry_run:
        storage = InMemoryStorageBackend()
        print("🧪 Dry run: storing into an in-memory bucket")
    else:
        # Load environment configuration
        try:
            env_config = get_config()
            logger.info(f"Using GCS bucket: {env_config.gcs_bucket}")
        except ValueError as e:
            print(f"❌ Configuration error: {e}")
            print("\nMake sure .env file exists with required variables:")
            print("  - GCS_BUCKET")
            return 1

        storage = GCSStorageBackend(env_config.gcs_bucket, public_base_url=env_config.public_base_url)
        timeout = args.timeout or env_config.upload_timeout_seconds
        policy_file = policy_file or env_config.policy_file

    try:
        policies = load_policy_table(policy_file)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Policy file error: {e}")
        return 1

    # Validate paths
    files_to_upload = []
    for file_pattern in args.files:
        file_path = Path(file_pattern)
        if file_path.exists() and file_path.is_file():
            files_to_upload.append(load_image(file_path))
        else:
            print(f"⚠️  Skipping (not found or not a file): {file_pattern}")

    if not files_to_upload:
        print("❌ No valid files to upload")
        return 1

    print(f"📤 Uploading {len(files_to_upload)} file(s)")
    print(f"   Bucket: {storage.bucket_name}")
    print(f"   Category: {args.category}")
    print(f"   Owner: {args.owner or 'public'}")
    print()

    try:
        results = asyncio.run(upload_all(files_to_upload, args, storage, policies, timeout))
    except KeyboardInterrupt:
        print("\n⚠️  Upload cancelled by user")
        return 130

    failed = 0
    for file, result in zip(files_to_upload, results):
        if result.success:
            print(f"✅ {file.filename}")
            print(f"  URL: {result.url}")
            print(f"  File size: {result.file_size_bytes:,} bytes")
            print(f"  Duration: {result.duration_seconds:.2f}s")
        else:
            failed += 1
            retry_hint = " (retryable)" if result.error is not None and result.error.retryable else ""
            print(f"❌ {file.filename}: {result.error_message}{retry_hint}")
        for warning in result.warnings:
            print(f"  ⚠️  {warning}")

    if len(results) > 1:
        print(f"\n📊 Upload Summary:")
        print(f"  Total: {len(results)}")
        print(f"  ✅ Successful: {len(results) - failed}")
        print(f"  ❌ Failed: {failed}")

    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
