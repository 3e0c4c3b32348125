"""
Upload policy file loader and validator.

Loads a YAML file overriding the built-in per-category upload policies and
validates it before the pipeline starts. Every category entry is optional
and partial: fields that are left out keep their built-in values.

Example config file (config/policies.yaml):
    ```yaml
    version: "1.0"

    policies:
      pets:
        max_size_mb: 6
        max_width: 1600
        max_height: 1600
      ongs:
        allowed_types: [image/jpeg, image/png]
    ```

Usage:
    >>> from src.utils.config_loader import load_config, validate_config
    >>> config = load_config("config/policies.yaml")
    >>> errors = validate_config(config)
    >>> if not errors:
    ...     table = build_policy_table(config)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from src.utils.logging import get_logger
from src.validator.policy import (
    DEFAULT_POLICIES,
    MB,
    POLICY_FIELDS,
    Category,
    PolicyConfigError,
    UploadPolicy,
    resolve_policy,
    validate_policy_table,
)

logger = get_logger(__name__)

SUPPORTED_VERSIONS = ["1.0"]

# Accepted per-category keys; max_size_mb is a convenience for max_size
VALID_POLICY_KEYS = set(POLICY_FIELDS) | {"max_size_mb"}


@dataclass
class ConfigError:
    """Validation error in a policy file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a policy file from YAML.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the path is not a file or the file is empty
        yaml.YAMLError: If the YAML is malformed
    """
    path = Path(config_path)
    logger.info(f"Loading policy configuration from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Configuration path is not a file: {path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if config is None:
        raise ValueError("Configuration file is empty")
    if not isinstance(config, dict):
        raise ValueError(f"Configuration root must be a mapping (got: {type(config).__name__})")

    return dict(config)


def validate_config(config: Dict[str, Any]) -> List[ConfigError]:
    """
    Validate a policy file against the expected schema.

    Returns:
        List of validation errors (empty if valid)
    """
    errors: List[ConfigError] = []

    if "version" not in config:
        errors.append(ConfigError("version", "Missing required field"))
    elif str(config["version"]) not in SUPPORTED_VERSIONS:
        errors.append(
            ConfigError(
                "version",
                f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                config["version"],
            )
        )

    policies = config.get("policies")
    if policies is None:
        errors.append(ConfigError("policies", "Missing required field"))
    elif not isinstance(policies, dict):
        errors.append(ConfigError("policies", "Must be a mapping", type(policies).__name__))
    else:
        valid_categories = [c.value for c in Category]
        for name, entry in policies.items():
            prefix = f"policies.{name}"
            if name not in valid_categories:
                errors.append(
                    ConfigError(prefix, f"Unknown category (valid: {valid_categories})", name)
                )
                continue
            errors.extend(_validate_policy_entry(prefix, entry))

    if errors:
        logger.warning(f"Policy configuration validation failed with {len(errors)} errors")
    else:
        logger.info("Policy configuration validation passed")

    return errors


def _validate_policy_entry(prefix: str, entry: Any) -> List[ConfigError]:
    errors: List[ConfigError] = []

    if not isinstance(entry, dict):
        errors.append(ConfigError(prefix, "Must be a mapping", type(entry).__name__))
        return errors

    for key in sorted(set(entry) - VALID_POLICY_KEYS):
        errors.append(ConfigError(f"{prefix}.{key}", "Unknown policy field"))

    if "max_size" in entry and "max_size_mb" in entry:
        errors.append(ConfigError(prefix, "Set max_size or max_size_mb, not both"))

    for key in ("max_size", "max_width", "max_height"):
        if key in entry:
            value = entry[key]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                errors.append(ConfigError(f"{prefix}.{key}", "Must be a positive integer", value))

    if "max_size_mb" in entry:
        value = entry["max_size_mb"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            errors.append(ConfigError(f"{prefix}.max_size_mb", "Must be a positive number", value))

    if "quality" in entry:
        value = entry["quality"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 < value <= 1:
            errors.append(ConfigError(f"{prefix}.quality", "Must be between 0 and 1", value))

    if "allowed_types" in entry:
        types = entry["allowed_types"]
        if not isinstance(types, list) or not types:
            errors.append(ConfigError(f"{prefix}.allowed_types", "Must be a non-empty list", types))
        else:
            for t in types:
                if not isinstance(t, str) or "/" not in t:
                    errors.append(
                        ConfigError(f"{prefix}.allowed_types", "Must contain mime types", t)
                    )

    return errors


def build_policy_table(config: Dict[str, Any]) -> Dict[Category, UploadPolicy]:
    """
    Merge a validated policy file over the built-in table.

    Raises:
        PolicyConfigError: If the file fails validation
    """
    errors = validate_config(config)
    if errors:
        raise PolicyConfigError("; ".join(str(e) for e in errors))

    table = dict(DEFAULT_POLICIES)
    for name, entry in (config.get("policies") or {}).items():
        override = dict(entry)
        if "max_size_mb" in override:
            override["max_size"] = int(override.pop("max_size_mb") * MB)
        table[Category(name)] = resolve_policy(name, override)

    validate_policy_table(table)
    return table


def load_policy_table(config_path: Optional[Union[str, Path]] = None) -> Dict[Category, UploadPolicy]:
    """
    Return the policy table to use, from ``config_path`` if given.

    Example:
        >>> table = load_policy_table(get_config().policy_file)
    """
    if config_path is None:
        return dict(DEFAULT_POLICIES)
    return build_policy_table(load_config(config_path))
