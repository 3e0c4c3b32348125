"""Tests for CLI scripts."""

import os
import subprocess
import sys
from pathlib import Path

# Project paths
project_root = Path(__file__).parent.parent
scripts_dir = project_root / "scripts"


def _env_without(*names):
    env = dict(os.environ)
    for name in names:
        env.pop(name, None)
    return env


class TestUploadCLI:
    """Tests for upload.py CLI script."""

    def test_help_message(self):
        """Test that --help works."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "Upload images to Google Cloud Storage" in result.stdout
        assert "--category" in result.stdout
        assert "--dry-run" in result.stdout

    def test_missing_required_args(self):
        """Test that missing required arguments returns error."""
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py")],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "required" in result.stderr.lower()

    def test_invalid_category(self, tmp_path):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), "x.jpg", "--category", "documents"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "invalid choice" in result.stderr

    def test_dry_run_upload(self, tmp_path, image_bytes):
        """Test a full upload into the in-memory bucket."""
        image = tmp_path / "Rex.jpg"
        image.write_bytes(image_bytes(1600, 1600))

        result = subprocess.run(
            [
                sys.executable,
                str(scripts_dir / "upload.py"),
                str(image),
                "--category",
                "avatars",
                "--owner",
                "u-42",
                "--dry-run",
            ],
            capture_output=True,
            text=True,
            env=_env_without("GCS_BUCKET"),
        )
        assert result.returncode == 0, result.stderr
        assert "memory://local-images/avatars/u-42/rex-" in result.stdout

    def test_dry_run_rejects_oversized(self, tmp_path):
        image = tmp_path / "huge.png"
        image.write_bytes(b"\0" * (2 * 1024 * 1024 + 1))

        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), str(image), "-c", "avatars", "--dry-run"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 1
        assert "File too large" in result.stdout

    def test_missing_config(self, tmp_path, image_bytes):
        image = tmp_path / "rex.jpg"
        image.write_bytes(image_bytes(10, 10))

        result = subprocess.run(
            [sys.executable, str(scripts_dir / "upload.py"), str(image)],
            capture_output=True,
            text=True,
            env=_env_without("GCS_BUCKET"),
        )
        assert result.returncode == 1
        assert "Configuration error" in result.stdout


class TestSlugsCLI:
    """Tests for slugs.py CLI script."""

    def test_help_message(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "slugs.py"), "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "build" in result.stdout
        assert "backfill" in result.stdout

    def test_build_pet_slug(self):
        result = subprocess.run(
            [
                sys.executable,
                str(scripts_dir / "slugs.py"),
                "build",
                "pet",
                "--name",
                "Rex",
                "--type",
                "lost",
                "--city",
                "São Paulo",
                "--state",
                "SP",
                "--date",
                "2024-05-01",
                "--id",
                "a1b2c3d4-5e6f-4a1b-8c2d-3e4f5a6b7c8d",
            ],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "rex-lost-sao-paulo-sp-2024-a1b2c"

    def test_build_unknown_kind(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "slugs.py"), "build", "shelter", "--id", "abc12"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 1
        assert "Unknown entity kind" in result.stdout

    def test_backfill_unknown_table(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "slugs.py"), "backfill", "users"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0
        assert "invalid choice" in result.stderr

    def test_backfill_missing_config(self):
        result = subprocess.run(
            [sys.executable, str(scripts_dir / "slugs.py"), "backfill", "pets"],
            capture_output=True,
            text=True,
            env=_env_without("GCS_BUCKET", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"),
        )
        assert result.returncode == 1
        assert "Configuration error" in result.stdout
