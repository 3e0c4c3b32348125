"""
Pet Asset Ingest

Asset ingestion for an animal-welfare content platform: turns raw image
uploads into durably stored, publicly addressable objects, and derives
stable, unique slugs for adoption/lost/found pets, organizations, events and
partners.

This package provides modular components for each stage:
- validator: Per-category upload policies and file validation
- transformer: Image resizing with Pillow
- uploader: Upload coordination, storage backends and bucket provisioning
- slugs: Slug building, uniqueness resolution and backfill
- utils: Logging, configuration, metrics and retry helpers

See README.md for usage examples.
"""

__version__ = "0.1.0"

# Package-level imports
from src.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
