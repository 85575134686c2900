"""
payroll_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  ``build_record_store()`` turns the storage section into a
    RecordStore with an explicit ``StorageFormat``; no module-level format
    flag exists anywhere.

Architecture position:
    Configuration -- sits above ``payroll_kernel`` and ``payroll_store``.
    The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- explicit path or PAYROLL_CONFIG_FILE missing.
    - ``ValueError`` -- invalid keys or values.

Audit relevance:
    Every successful load emits ``payroll_config_loaded`` with the source
    path and the checksum of the parsed mapping.
"""

from __future__ import annotations

import os
from pathlib import Path

from payroll_config.loader import load_config_file
from payroll_config.schema import (
    DeductionPolicy,
    LoggingConfig,
    PayrollEngineConfig,
    PayrollPolicy,
    StorageConfig,
)
from payroll_kernel.domain.clock import Clock
from payroll_kernel.logging_config import configure_logging, get_logger
from payroll_store.base import RecordStore

_logger = get_logger("config")

CONFIG_ENV_VAR = "PAYROLL_CONFIG_FILE"
_DEFAULT_CONFIG = Path(__file__).parent / "defaults.yaml"


def resolve_config_path(config_path: Path | str | None = None) -> Path:
    """Explicit path, else PAYROLL_CONFIG_FILE, else the packaged defaults."""
    if config_path is not None:
        path = Path(config_path)
    elif os.environ.get(CONFIG_ENV_VAR):
        path = Path(os.environ[CONFIG_ENV_VAR])
    else:
        path = _DEFAULT_CONFIG
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    return path


def get_active_config(config_path: Path | str | None = None) -> PayrollEngineConfig:
    """The ONLY public configuration entrypoint."""
    path = resolve_config_path(config_path)
    config = load_config_file(path)
    _logger.info(
        "payroll_config_loaded",
        extra={
            "source": config.source,
            "checksum": config.checksum,
            "storage_backend": config.storage.backend,
            "write_format": config.storage.write_format.value,
        },
    )
    return config


def build_record_store(
    config: PayrollEngineConfig, clock: Clock | None = None
) -> RecordStore:
    """Instantiate the configured RecordStore backend.

    Also applies ``config.logging.level``; ``configure_logging`` keeps the
    first configuration it receives.
    """
    configure_logging(level=config.logging.level)
    storage = config.storage
    if storage.backend == "sql":
        from payroll_store.db import create_tables, get_session_factory, init_engine_from_url
        from payroll_store.sql_store import SqlDocumentStore

        init_engine_from_url(storage.database_url)
        create_tables()
        return SqlDocumentStore(get_session_factory(), clock=clock)

    from payroll_store.file_store import FileRecordStore

    return FileRecordStore(storage.root, write_format=storage.write_format, clock=clock)


__all__ = [
    "CONFIG_ENV_VAR",
    "DeductionPolicy",
    "LoggingConfig",
    "PayrollEngineConfig",
    "PayrollPolicy",
    "StorageConfig",
    "build_record_store",
    "get_active_config",
    "resolve_config_path",
]
