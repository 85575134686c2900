"""
payroll_services.audit_log -- Audited compensation saves and reverts.

Responsibility:
    Writes day compensation batches into their month partition and appends
    one ``BackupEntry`` per batch describing every field that changed.
    Reverting a day to a backup entry is an ordinary audited save.

Architecture position:
    Services -- imperative shell over ``payroll_engines.change_detection``.

Invariants enforced:
    - ``day`` is unique within a partition; a batch merges by day.
    - The backup log is append-only; a batch with no changes appends nothing.
    - Change detection compares typed values field by field.

Failure modes:
    - ValueError: a record outside the target partition.
    - BackupWriteError: logged, never raised; the primary write stands.
    - BackupEntryNotFoundError: revert to an unknown entry or day.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC

from payroll_engines.calendar import format_partition
from payroll_engines.change_detection import diff_compensations
from payroll_kernel.domain.backup import BackupEntry, BackupMonth
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.records import COMPENSATION_KEY_FIELDS, DayCompensation
from payroll_kernel.exceptions import BackupEntryNotFoundError, BackupWriteError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_store.codecs import compensation_field_value
from payroll_store.repository import RecordRepository

logger = get_logger("services.audit_log")


class CompensationLedger:
    def __init__(self, repository: RecordRepository, clock: Clock | None = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def _timestamp(self) -> str:
        now = self._clock.now().astimezone(UTC)
        return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def load_compensations(
        self, employee_id: str, year: int, month: int
    ) -> list[DayCompensation]:
        return self._repository.load_compensations(employee_id, year, month)

    def load_backups(self, employee_id: str, year: int, month: int) -> BackupMonth:
        return self._repository.load_backups(employee_id, year, month)

    def save_or_update_compensations(
        self,
        employee_id: str,
        year: int,
        month: int,
        records: Iterable[DayCompensation],
    ) -> BackupEntry | None:
        """
        Merge ``records`` into the partition and audit the differences.

        Returns the appended backup entry, or None when nothing changed or
        the entry could not be written.
        """
        if not 1 <= month <= 12 or year < 1:
            raise ValueError(f"Invalid partition {year}-{month}")
        records = list(records)
        for record in records:
            if (record.employee_id, record.year, record.month) != (employee_id, year, month):
                raise ValueError(
                    f"Compensation for {record.employee_id} "
                    f"{record.year}-{record.month:02d} day {record.day} does not belong "
                    f"to partition {employee_id} {year}-{month:02d}"
                )

        with LogContext.bind(
            employee_id=employee_id, partition=format_partition((year, month))
        ):
            existing = {
                r.day: r for r in self._repository.load_compensations(employee_id, year, month)
            }
            incoming = {r.day: r for r in records}
            changes = diff_compensations(existing=existing, updates=incoming.values())

            merged = {**existing, **incoming}
            self._repository.save_compensations(
                employee_id, year, month, [merged[d] for d in sorted(merged)]
            )
            logger.info(
                "compensations_saved",
                extra={"days": sorted(incoming), "changes": len(changes)},
            )

            if not changes:
                return None
            entry = BackupEntry(timestamp=self._timestamp(), changes=tuple(changes))
            try:
                self._append_backup(employee_id, year, month, entry)
            except BackupWriteError as exc:
                logger.warning(
                    "backup_write_failed",
                    extra={"error_code": exc.code, "timestamp": entry.timestamp},
                    exc_info=True,
                )
                return None
            return entry

    def _append_backup(
        self, employee_id: str, year: int, month: int, entry: BackupEntry
    ) -> None:
        try:
            self._repository.append_backup(employee_id, year, month, entry)
        except Exception as exc:
            raise BackupWriteError(employee_id, year, month, str(exc)) from exc
        logger.info(
            "backup_appended",
            extra={"timestamp": entry.timestamp, "changes": len(entry.changes)},
        )

    def revert_day(
        self, employee_id: str, year: int, month: int, day: int, timestamp: str
    ) -> DayCompensation:
        """Restore one day to the values recorded in backup entry ``timestamp``."""
        entry = self.load_backups(employee_id, year, month).find(timestamp)
        changes = entry.changes_for_day(day) if entry is not None else ()
        if not changes:
            raise BackupEntryNotFoundError(employee_id, year, month, timestamp, day)

        current = next(
            (
                r
                for r in self._repository.load_compensations(employee_id, year, month)
                if r.day == day
            ),
            None,
        ) or DayCompensation(employee_id=employee_id, year=year, month=month, day=day)

        overlay = {}
        for change in changes:
            try:
                name, value = compensation_field_value(change.field, change.new_value)
            except KeyError:
                logger.debug("revert_field_ignored", extra={"field": change.field})
                continue
            if name not in COMPENSATION_KEY_FIELDS:
                overlay[name] = value
        reverted = replace(current, **overlay)

        self.save_or_update_compensations(employee_id, year, month, [reverted])
        logger.info(
            "compensation_reverted",
            extra={"employee_id": employee_id, "day": day, "timestamp": timestamp},
        )
        return reverted
