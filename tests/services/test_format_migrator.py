"""Tests for migrating legacy CSV partitions to JSON documents."""

import json

import pytest

from payroll_services.format_migrator import FormatMigrator, MigrationReport


@pytest.fixture
def migrator(tmp_path, clock):
    return FormatMigrator(tmp_path, clock=clock)


@pytest.fixture
def employee_dir(migrator):
    path = migrator.attendances_dir / "E1"
    path.mkdir(parents=True)
    return path


def _read_json(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestMigrate:
    def test_compensation_csv_converted(self, migrator, employee_dir):
        (employee_dir / "2024_1_compensation.csv").write_text(
            "employeeId,year,month,day,dayType,grossPay,manualOverride\n"
            "E1,2024,1,15,RestDay,612.50,true\n"
            "E1,2024,1,16,Regular,500,\n",
            encoding="utf-8",
        )

        report = migrator.migrate()

        assert report.files_migrated == (str(employee_dir / "2024_1_compensation.csv"),)
        document = _read_json(employee_dir / "2024_1_compensation.json")
        assert document["meta"]["employeeId"] == "E1"
        assert document["days"]["15"]["dayType"] == "Rest Day"
        assert document["days"]["15"]["grossPay"] == 612.5
        assert document["days"]["15"]["manualOverride"] is True
        assert document["days"]["16"]["manualOverride"] is False

    def test_attendance_keys_default_from_file_name(self, migrator, employee_dir):
        (employee_dir / "2024_2_attendance.csv").write_text(
            "day,timeIn,timeOut\n5,08:00,17:00\n6,,\n", encoding="utf-8"
        )
        migrator.migrate()
        document = _read_json(employee_dir / "2024_2_attendance.json")
        assert document["meta"]["month"] == 2
        assert document["days"]["5"] == {"timeIn": "08:00", "timeOut": "17:00"}
        assert document["days"]["6"] == {"timeIn": None, "timeOut": None}

    def test_bad_rows_skipped_and_reported(self, migrator, employee_dir, captured_logs):
        (employee_dir / "2024_1_compensation.csv").write_text(
            "employeeId,year,month,day,grossPay\n"
            "E1,2024,1,15,500\n"
            "E1,2024,1,abc,500\n"
            ",,,,\n"
            "E1,2024,1,17,not-a-number\n",
            encoding="utf-8",
        )

        report = migrator.migrate()

        assert report.rows_skipped == 3
        assert [e.row_number for e in report.row_errors] == [3, 4, 5]
        assert list(_read_json(employee_dir / "2024_1_compensation.json")["days"]) == ["15"]
        skipped = [r for r in captured_logs() if r["message"] == "migration_row_skipped"]
        assert len(skipped) == 3
        assert skipped[0]["error_code"] == "MIGRATION_ROW_ERROR"

    def test_backup_rows_grouped_by_timestamp(self, migrator, employee_dir):
        (employee_dir / "2024_1_compensation_backup.csv").write_text(
            "timestamp,day,employeeId,month,year,grossPay\n"
            "2024-01-10T08:00:00.000Z,15,E1,1,2024,500\n"
            "2024-01-10T08:00:00.000Z,16,E1,1,2024,450\n"
            "2024-01-11T08:00:00.000Z,15,E1,1,2024,520\n"
            ",15,E1,1,2024,1\n",
            encoding="utf-8",
        )

        report = migrator.migrate()

        document = _read_json(employee_dir / "2024_1_compensation_backup.json")
        assert "meta" not in document
        assert [b["timestamp"] for b in document["backups"]] == [
            "2024-01-10T08:00:00.000Z",
            "2024-01-11T08:00:00.000Z",
        ]
        assert len(document["backups"][0]["changes"]) == 2
        assert document["backups"][0]["changes"][0]["oldValue"] is None
        assert report.rows_skipped == 1

    def test_second_run_is_a_no_op(self, migrator, employee_dir, clock):
        (employee_dir / "2024_1_attendance.csv").write_text(
            "employeeId,year,month,day,timeIn,timeOut\nE1,2024,1,2,08:00,17:00\n",
            encoding="utf-8",
        )
        migrator.migrate()
        target = employee_dir / "2024_1_attendance.json"
        before = target.read_bytes()

        clock.advance(3600)
        report = migrator.migrate()

        assert report.files_migrated == ()
        assert report.files_skipped == (str(employee_dir / "2024_1_attendance.csv"),)
        assert target.read_bytes() == before
        assert (employee_dir / "2024_1_attendance.csv").exists()

    def test_unreadable_file_recorded(self, migrator, employee_dir):
        (employee_dir / "2024_1_attendance.csv").write_bytes(b"day\n\xff\xfe\n")
        report = migrator.migrate()
        assert [path for path, _ in report.errors] == [str(employee_dir / "2024_1_attendance.csv")]
        assert not (employee_dir / "2024_1_attendance.json").exists()

    def test_unrelated_files_ignored(self, migrator, employee_dir):
        (employee_dir / "notes.csv").write_text("a\n1\n", encoding="utf-8")
        (employee_dir / "2024_1_loans.csv").write_text("id\nL1\n", encoding="utf-8")
        assert migrator.migrate().files_migrated == ()

    def test_no_database_directory(self, tmp_path, clock):
        report = FormatMigrator(tmp_path / "empty", clock=clock).migrate()
        assert report == MigrationReport()


class TestCleanup:
    def test_only_migrated_files_removed(self, migrator, employee_dir):
        migrated = employee_dir / "2024_1_attendance.csv"
        migrated.write_text("day,timeIn,timeOut\n2,08:00,17:00\n", encoding="utf-8")
        broken = employee_dir / "2024_2_attendance.csv"
        broken.write_bytes(b"day\n\xff\n")

        migrator.migrate()
        removed = migrator.cleanup_legacy_files()

        assert removed == [migrated]
        assert not migrated.exists()
        assert broken.exists()
        assert (employee_dir / "2024_1_attendance.json").exists()
