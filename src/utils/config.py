"""
Environment configuration loader for the pet asset ingestion pipeline.

Loads configuration from a .env file or environment variables for Google
Cloud Storage, Supabase and the upload/slug stages.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_UPLOAD_TIMEOUT_SECONDS = 30.0
DEFAULT_SLUG_MAX_ATTEMPTS = 100
DEFAULT_SLUG_PROBE_ATTEMPTS = 3


@dataclass
class IngestConfig:
    """Pipeline environment configuration."""

    # Google Cloud Storage
    gcs_bucket: str
    public_base_url: Optional[str] = None
    google_credentials_path: Optional[str] = None

    # Supabase (record store for slugs)
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Upload settings
    upload_timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS
    policy_file: Optional[str] = None

    # Slug settings
    slug_max_attempts: int = DEFAULT_SLUG_MAX_ATTEMPTS
    slug_probe_attempts: int = DEFAULT_SLUG_PROBE_ATTEMPTS

    @classmethod
    def from_env(cls) -> "IngestConfig":
        """
        Load configuration from environment variables.

        Loads the project .env file if present, then reads from os.environ.

        Raises:
            ValueError: If required variables are missing or malformed
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        gcs_bucket = os.getenv("GCS_BUCKET")
        if not gcs_bucket:
            raise ValueError(
                "GCS_BUCKET environment variable is required. "
                "Set it in .env or export it."
            )

        upload_timeout = float(
            os.getenv("UPLOAD_TIMEOUT_SECONDS", str(DEFAULT_UPLOAD_TIMEOUT_SECONDS))
        )
        if upload_timeout <= 0:
            raise ValueError(
                f"UPLOAD_TIMEOUT_SECONDS must be positive (got: {upload_timeout})"
            )

        slug_max_attempts = int(
            os.getenv("SLUG_MAX_ATTEMPTS", str(DEFAULT_SLUG_MAX_ATTEMPTS))
        )
        if slug_max_attempts < 1:
            raise ValueError(
                f"SLUG_MAX_ATTEMPTS must be at least 1 (got: {slug_max_attempts})"
            )

        return cls(
            gcs_bucket=gcs_bucket,
            public_base_url=os.getenv("PUBLIC_BASE_URL"),
            google_credentials_path=os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            upload_timeout_seconds=upload_timeout,
            policy_file=os.getenv("UPLOAD_POLICY_FILE"),
            slug_max_attempts=slug_max_attempts,
            slug_probe_attempts=int(
                os.getenv("SLUG_PROBE_ATTEMPTS", str(DEFAULT_SLUG_PROBE_ATTEMPTS))
            ),
        )


# Global config instance (lazy-loaded)
_config: Optional[IngestConfig] = None


def get_config() -> IngestConfig:
    """
    Get or create the configuration singleton.

    Example:
        >>> config = get_config()
        >>> print(config.gcs_bucket)
        petadot-images
    """
    global _config
    if _config is None:
        _config = IngestConfig.from_env()
    return _config
