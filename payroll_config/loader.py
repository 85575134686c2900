"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``payroll_config.schema`` dataclasses.  Runtime callers go through
``payroll_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown sections or keys, wrong types  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import (
    DeductionPolicy,
    LoggingConfig,
    PayrollEngineConfig,
    PayrollPolicy,
    StorageConfig,
)
from payroll_store.base import StorageFormat

_SECTIONS = {
    "storage": StorageConfig,
    "deductions": DeductionPolicy,
    "payroll": PayrollPolicy,
    "logging": LoggingConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file is an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    allowed = set(_SECTIONS[name].__dataclass_fields__)
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {sorted(unknown)}")
    return dict(section)


def parse_config(data: dict[str, Any], source: str = "") -> PayrollEngineConfig:
    """Parse a configuration mapping into a ``PayrollEngineConfig``."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    storage = _section(data, "storage")
    if "write_format" in storage:
        try:
            storage["write_format"] = StorageFormat(str(storage["write_format"]).lower())
        except ValueError:
            raise ValueError(
                f"storage.write_format must be 'json' or 'csv', got {storage['write_format']!r}"
            ) from None
    if "root" in storage:
        storage["root"] = str(storage["root"])

    return PayrollEngineConfig(
        storage=StorageConfig(**storage),
        deductions=DeductionPolicy(**_section(data, "deductions")),
        payroll=PayrollPolicy(**_section(data, "payroll")),
        logging=LoggingConfig(**_section(data, "logging")),
        checksum=compute_checksum(data),
        source=source,
    )


def load_config_file(path: Path) -> PayrollEngineConfig:
    return parse_config(load_yaml_file(path), source=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the configuration mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
