"""
Configuration schema (``payroll_config.schema``).

Frozen dataclasses for the runtime configuration.  Every value has a
default, so an empty YAML file yields a working file-backed configuration.
Validation happens in ``__post_init__`` and raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from payroll_store.base import StorageFormat

STORAGE_BACKENDS = ("file", "sql")


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "file"
    root: str = "."
    write_format: StorageFormat = StorageFormat.JSON
    database_url: str | None = None

    def __post_init__(self) -> None:
        if self.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage.backend must be one of {STORAGE_BACKENDS}, got {self.backend!r}"
            )
        if self.backend == "sql" and not self.database_url:
            raise ValueError("storage.database_url is required when storage.backend is 'sql'")


@dataclass(frozen=True)
class DeductionPolicy:
    candidate_lookback_months: int = 3
    unpaid_lookback_months: int = 12
    locate_lookback_months: int = 12

    def __post_init__(self) -> None:
        for name in (
            "candidate_lookback_months",
            "unpaid_lookback_months",
            "locate_lookback_months",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"deductions.{name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class PayrollPolicy:
    payment_date_offset_days: int = 3

    def __post_init__(self) -> None:
        if not isinstance(self.payment_date_offset_days, int) or self.payment_date_offset_days < 0:
            raise ValueError(
                "payroll.payment_date_offset_days must be a non-negative integer, "
                f"got {self.payment_date_offset_days!r}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level is not a valid level: {self.level!r}")


@dataclass(frozen=True)
class PayrollEngineConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    deductions: DeductionPolicy = field(default_factory=DeductionPolicy)
    payroll: PayrollPolicy = field(default_factory=PayrollPolicy)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
    source: str = ""
