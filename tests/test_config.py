"""Tests for environment configuration module."""

import pytest

from src.utils.config import IngestConfig, get_config

OPTIONAL_VARS = (
    "PUBLIC_BASE_URL",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "UPLOAD_TIMEOUT_SECONDS",
    "UPLOAD_POLICY_FILE",
    "SLUG_MAX_ATTEMPTS",
    "SLUG_PROBE_ATTEMPTS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in OPTIONAL_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestIngestConfig:
    """Test IngestConfig dataclass and loading."""

    def test_config_creation(self):
        """Test direct IngestConfig instantiation."""
        config = IngestConfig(gcs_bucket="test-bucket")

        assert config.gcs_bucket == "test-bucket"
        assert config.upload_timeout_seconds == 30.0
        assert config.slug_max_attempts == 100
        assert config.slug_probe_attempts == 3
        assert config.supabase_url is None

    def test_from_env_missing_required(self, clean_env):
        """Test from_env raises ValueError when GCS_BUCKET is missing."""
        clean_env.delenv("GCS_BUCKET", raising=False)

        with pytest.raises(ValueError, match="GCS_BUCKET.*required"):
            IngestConfig.from_env()

    def test_from_env_with_required_only(self, clean_env):
        clean_env.setenv("GCS_BUCKET", "env-bucket")

        config = IngestConfig.from_env()

        assert config.gcs_bucket == "env-bucket"
        assert config.public_base_url is None
        assert config.policy_file is None
        assert config.upload_timeout_seconds == 30.0

    def test_from_env_with_all_vars(self, clean_env):
        """Test from_env loads all environment variables correctly."""
        clean_env.setenv("GCS_BUCKET", "petadot-images")
        clean_env.setenv("PUBLIC_BASE_URL", "https://cdn.example.org/images")
        clean_env.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/path/to/sa.json")
        clean_env.setenv("SUPABASE_URL", "https://project.supabase.co")
        clean_env.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
        clean_env.setenv("UPLOAD_TIMEOUT_SECONDS", "12.5")
        clean_env.setenv("UPLOAD_POLICY_FILE", "policies.yaml")
        clean_env.setenv("SLUG_MAX_ATTEMPTS", "20")
        clean_env.setenv("SLUG_PROBE_ATTEMPTS", "5")

        config = IngestConfig.from_env()

        assert config.public_base_url == "https://cdn.example.org/images"
        assert config.google_credentials_path == "/path/to/sa.json"
        assert config.supabase_url == "https://project.supabase.co"
        assert config.supabase_service_role_key == "service-key"
        assert config.upload_timeout_seconds == 12.5
        assert config.policy_file == "policies.yaml"
        assert config.slug_max_attempts == 20
        assert config.slug_probe_attempts == 5

    def test_non_positive_timeout_rejected(self, clean_env):
        clean_env.setenv("GCS_BUCKET", "b")
        clean_env.setenv("UPLOAD_TIMEOUT_SECONDS", "0")

        with pytest.raises(ValueError, match="UPLOAD_TIMEOUT_SECONDS"):
            IngestConfig.from_env()

    def test_invalid_slug_attempts_rejected(self, clean_env):
        clean_env.setenv("GCS_BUCKET", "b")
        clean_env.setenv("SLUG_MAX_ATTEMPTS", "0")

        with pytest.raises(ValueError, match="SLUG_MAX_ATTEMPTS"):
            IngestConfig.from_env()

    def test_get_config_singleton(self, clean_env):
        """Test get_config returns singleton instance."""
        clean_env.setenv("GCS_BUCKET", "singleton-bucket")

        # Reset global config to test fresh load
        import src.utils.config as config_module

        clean_env.setattr(config_module, "_config", None)

        config1 = get_config()
        config2 = get_config()

        assert config1 is config2
        assert config1.gcs_bucket == "singleton-bucket"
