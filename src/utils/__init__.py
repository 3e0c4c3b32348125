"""
Utility modules for the pet asset ingestion pipeline.

This package provides shared utilities used across all pipeline stages:
- logging: Structured logging with entry/exit decorators
- config: Environment configuration
- config_loader: Upload policy file loading and validation
- retry: Backoff retries for idempotent reads
- metrics: Prometheus instrumentation
"""

from src.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
