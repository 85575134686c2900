"""Tests for configuration loading and store construction."""

from pathlib import Path

import pytest

from payroll_config import (
    CONFIG_ENV_VAR,
    PayrollEngineConfig,
    StorageConfig,
    build_record_store,
    get_active_config,
    resolve_config_path,
)
from payroll_config.loader import parse_config
from payroll_store.base import RecordKind, StorageFormat
from payroll_store.db import reset_engine
from payroll_store.file_store import FileRecordStore
from payroll_store.sql_store import SqlDocumentStore


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "payroll.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestResolution:
    def test_packaged_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = get_active_config()
        assert config.source.endswith("defaults.yaml")
        assert config.storage.backend == "file"
        assert config.storage.write_format == StorageFormat.JSON
        assert config.deductions.candidate_lookback_months == 3
        assert config.deductions.unpaid_lookback_months == 12
        assert config.payroll.payment_date_offset_days == 3
        assert len(config.checksum) == 64

    def test_env_var_used(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "deductions:\n  candidate_lookback_months: 6\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        config = get_active_config()
        assert config.source == str(path)
        assert config.deductions.candidate_lookback_months == 6
        assert config.deductions.locate_lookback_months == 12

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.yaml"))
        path = _write(tmp_path, "payroll:\n  payment_date_offset_days: 5\n")
        assert get_active_config(path).payroll.payment_date_offset_days == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            resolve_config_path(tmp_path / "nope.yaml")

    def test_empty_file_is_all_defaults(self, tmp_path):
        config = get_active_config(_write(tmp_path, ""))
        assert config.storage == StorageConfig()

    def test_load_is_logged(self, tmp_path, captured_logs):
        path = _write(tmp_path, "storage:\n  write_format: CSV\n")
        config = get_active_config(path)
        [record] = [r for r in captured_logs() if r["message"] == "payroll_config_loaded"]
        assert record["write_format"] == "csv"
        assert record["checksum"] == config.checksum


class TestValidation:
    @pytest.mark.parametrize(
        "data",
        [
            {"storage": {"bucket": "x"}},
            {"metrics": {}},
            {"storage": {"write_format": "xml"}},
            {"storage": {"backend": "s3"}},
            {"storage": {"backend": "sql"}},
            {"deductions": {"candidate_lookback_months": -1}},
            {"payroll": {"payment_date_offset_days": "3"}},
            {"logging": {"level": "LOUD"}},
            {"storage": ["json"]},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(ValueError):
            parse_config(data)

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ValueError):
            get_active_config(_write(tmp_path, "- storage\n"))

    def test_checksum_ignores_key_order(self):
        a = parse_config({"payroll": {"payment_date_offset_days": 2}, "logging": {"level": "INFO"}})
        b = parse_config({"logging": {"level": "INFO"}, "payroll": {"payment_date_offset_days": 2}})
        assert a.checksum == b.checksum


class TestBuildRecordStore:
    @pytest.fixture
    def sql_engine_reset(self):
        yield
        reset_engine()

    def test_file_backend(self, tmp_path, clock):
        config = PayrollEngineConfig(
            storage=StorageConfig(root=str(tmp_path), write_format=StorageFormat.CSV)
        )
        store = build_record_store(config, clock=clock)
        assert isinstance(store, FileRecordStore)
        assert store.root == tmp_path
        assert store.write_format == StorageFormat.CSV

    def test_sql_backend(self, clock, sql_engine_reset):
        config = PayrollEngineConfig(
            storage=StorageConfig(backend="sql", database_url="sqlite:///:memory:")
        )
        store = build_record_store(config, clock=clock)
        assert isinstance(store, SqlDocumentStore)
        store.save("E1", 2024, 1, RecordKind.SHORT, [{"id": "S1"}])
        assert store.load("E1", 2024, 1, RecordKind.SHORT) == [{"id": "S1"}]
