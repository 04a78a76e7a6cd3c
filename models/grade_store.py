# models/grade_store.py

"""
The GradeStore is the single shared, mutable source of truth for component grades.

Reporting periods and grade entries are stored in dictionaries keyed by ID. Every
write goes through `upsert()`, which validates before mutating: a failed upsert
never leaves a partial change behind. Entries can be locked one way; there is no
unlock. Each committed value change is appended to an audit trail.

Derived views (subject averages, completion) are deliberately not triggered from
here; callers recompute them from `entries()` when they need them.

Concurrent writers on disjoint identities need no coordination. Writers on the
same identity are last-writer-wins unless they present `expected_version`, in which
case a stale token fails with `ErrorCode.CONFLICT`.
"""

from __future__ import annotations

import datetime
import logging
import threading
from collections import defaultdict
from typing import Any, Callable

from core.response import ErrorCode, Response
from core.utils import utc_now
from models.grade_audit import GradeAuditRecord
from models.grade_entry import (
    ComponentType,
    GradeEntry,
    GradeOutOfRangeError,
    GradePrecisionError,
)
from models.reporting_period import ReportingPeriod

logger = logging.getLogger(__name__)


class GradeStore:

    def __init__(self, clock: Callable[[], datetime.datetime] = utc_now):
        self._periods: dict[str, ReportingPeriod] = {}
        self._entries: dict[str, GradeEntry] = {}
        self._history: dict[str, list[GradeAuditRecord]] = defaultdict(list)
        self._clock = clock
        self._lock = threading.RLock()

    # === properties ===

    @property
    def periods(self) -> dict[str, ReportingPeriod]:
        return dict(self._periods)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def now(self) -> datetime.datetime:
        return self._clock()

    # === reporting periods ===

    def add_period(self, period: ReportingPeriod) -> Response:
        """
        Registers a `ReportingPeriod` so grades can be written against it.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the period was registered.
                    - False if a period with the same ID already exists.
                - error (ErrorCode | str | None):
                    - `ErrorCode.VALIDATION_FAILED` if the ID is already taken.
                - data (dict | None):
                    - On success, "record" (ReportingPeriod).

        Notes:
            - Periods are immutable; re-adding an existing ID is rejected rather than replaced.
        """
        with self._lock:
            if period.id in self._periods:
                return Response.fail(
                    detail=f"A reporting period with id {period.id} already exists.",
                    error=ErrorCode.VALIDATION_FAILED,
                )

            self._periods[period.id] = period

        logger.info("Registered reporting period %s (%s)", period.id, period.name)

        return Response.succeed(
            detail=f"Reporting period {period.name} successfully added.",
            data={
                "record": period,
            },
        )

    def find_period(self, period_id: str) -> Response:
        period = self._periods.get(period_id)

        if period is None:
            return Response.fail(
                detail=f"No reporting period found with id {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        return Response.succeed(
            data={
                "record": period,
            },
        )

    # === data accessors ===

    def get_records(
        self,
        predicate: Callable[[GradeEntry], bool] | None = None,
    ) -> Response:
        """
        Fetches grade entries, optionally filtered by a predicate.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the operation succeeded, even if no records were found.
                    - False for unexpected errors.
                - error (ErrorCode | str | None):
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - data (dict | None): Payload with the following keys:
                    - On success:
                        - "records" (list[GradeEntry]): The matching entries (may be empty).

        Notes:
            - This method is read-only and never raises exceptions.
        """
        try:
            with self._lock:
                if predicate:
                    records = list(filter(predicate, self._entries.values()))
                else:
                    records = list(self._entries.values())

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        else:
            return Response.succeed(
                data={
                    "records": records,
                }
            )

    def get(
        self, student_id: str, period_id: str, subject_id: str | None = None
    ) -> Response:
        """
        Returns every entry for a student in a period, optionally limited to one subject.

        Returns:
            Response: As `get_records()`; "records" holds the matching `GradeEntry` objects.
        """
        return self.get_records(
            lambda e: e.student_id == student_id
            and e.period_id == period_id
            and (subject_id is None or e.subject_id == subject_id)
        )

    def entries(
        self,
        student_id: str | None = None,
        subject_id: str | None = None,
        class_id: str | None = None,
        period_id: str | None = None,
        component_type: ComponentType | None = None,
    ) -> list[GradeEntry]:
        filters = {
            "student_id": student_id,
            "subject_id": subject_id,
            "class_id": class_id,
            "period_id": period_id,
            "component_type": component_type,
        }
        active = {k: v for k, v in filters.items() if v is not None}

        with self._lock:
            return [
                entry
                for entry in self._entries.values()
                if all(getattr(entry, k) == v for k, v in active.items())
            ]

    def find_entry(self, entry_id: str) -> Response:
        entry = self._entries.get(entry_id)

        if entry is None:
            return Response.fail(
                detail=f"No grade entry found with id {entry_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        return Response.succeed(
            data={
                "record": entry,
            },
        )

    def history(self, entry_id: str) -> list[GradeAuditRecord]:
        with self._lock:
            return list(self._history.get(entry_id, []))

    def last_change_at(self, predicate: Callable[[GradeEntry], bool]) -> datetime.datetime | None:
        with self._lock:
            stamps = [
                e.updated_at
                for e in self._entries.values()
                if e.updated_at is not None and predicate(e)
            ]

        return max(stamps) if stamps else None

    # === data manipulators ===

    def upsert(
        self,
        student_id: str,
        subject_id: str,
        class_id: str,
        period_id: str,
        component_type: ComponentType | str,
        value: Any,
        expected_version: int | None = None,
        changed_by: str | None = None,
        reason: str | None = None,
    ) -> Response:
        """
        Creates or replaces the grade entry at the given identity.

        Args:
            student_id, subject_id, class_id, period_id (str): The identity of the entry.
            component_type (ComponentType | str): The grade bucket.
            value (Any): The raw grade; up to two decimals, rounded half-up to one for storage.
            expected_version (int | None): Optional concurrency token. `0` means the entry
                must not exist yet; any other number must equal the stored version.
            changed_by (str | None): The actor, recorded on the entry and in the audit trail.
            reason (str | None): Optional note recorded in the audit trail.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the entry was created, replaced, or already held the value.
                    - False if validation failed or the entry is locked or stale.
                - detail (str | None):
                    - On failure, a human-readable description of the error.
                    - On success, a simple confirmation message.
                - error (ErrorCode | str | None):
                    - `ErrorCode.OUT_OF_RANGE` if the value is outside [0, 10].
                    - `ErrorCode.INVALID_PRECISION` if more than two decimals were given.
                    - `ErrorCode.INVALID_FIELD_VALUE` for non-numeric values or unknown component types.
                    - `ErrorCode.NOT_FOUND` if the reporting period is unknown.
                    - `ErrorCode.LOCKED` if the existing entry is locked.
                    - `ErrorCode.CONFLICT` if `expected_version` is stale.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success, 201 when the entry was created
                    - 404 for an unknown period, 409 for locked or stale entries
                    - 422 for value validation failures
                - data (dict | None): Payload with the following keys:
                    - On success:
                        - "record" (GradeEntry): The stored entry.
                        - "created" (bool): Whether the entry is new.
                        - "changed" (bool): Whether the stored value changed.

        Notes:
            - Validation happens in full before any mutation.
            - Repeating an identical upsert is a no-op: no version bump and no audit record.
        """
        try:
            component = GradeEntry.validate_component_input(component_type)
            grade = GradeEntry.validate_grade_input(value)

        except GradeOutOfRangeError as e:
            return Response.fail(
                detail=str(e),
                error=ErrorCode.OUT_OF_RANGE,
                status_code=422,
            )

        except GradePrecisionError as e:
            return Response.fail(
                detail=str(e),
                error=ErrorCode.INVALID_PRECISION,
                status_code=422,
            )

        except (TypeError, ValueError) as e:
            return Response.fail(
                detail=f"Input validation failed: {e}",
                error=ErrorCode.INVALID_FIELD_VALUE,
                status_code=422,
            )

        if period_id not in self._periods:
            return Response.fail(
                detail=f"No reporting period found with id {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        entry_id = GradeEntry.make_id(
            student_id, subject_id, class_id, period_id, component
        )

        try:
            with self._lock:
                existing = self._entries.get(entry_id)

                if existing is not None and existing.is_locked:
                    return Response.fail(
                        detail=f"Grade entry {entry_id} is locked and cannot be changed.",
                        error=ErrorCode.LOCKED,
                        status_code=409,
                    )

                current_version = existing.version if existing is not None else 0

                if expected_version is not None and expected_version != current_version:
                    return Response.fail(
                        detail=f"Grade entry {entry_id} is at version {current_version}, not {expected_version}.",
                        error=ErrorCode.CONFLICT,
                        status_code=409,
                        data={
                            "current_version": current_version,
                        },
                    )

                if existing is not None and existing.value == grade:
                    logger.debug("No-op upsert on %s (value %s)", entry_id, grade)

                    return Response.succeed(
                        detail="The grade provided matches the stored grade. No changes made.",
                        data={
                            "record": existing,
                            "created": False,
                            "changed": False,
                        },
                    )

                changed_at = self._clock()

                if existing is None:
                    entry = GradeEntry(
                        student_id=student_id,
                        subject_id=subject_id,
                        class_id=class_id,
                        period_id=period_id,
                        component_type=component,
                        value=grade,
                        updated_at=changed_at,
                        updated_by=changed_by,
                    )
                    self._entries[entry_id] = entry
                    old_value = None

                else:
                    entry = existing
                    old_value = entry.value
                    entry.apply_value(grade, changed_at, changed_by)

                self._history[entry_id].append(
                    GradeAuditRecord(
                        entry_id=entry_id,
                        old_value=old_value,
                        new_value=grade,
                        changed_at=changed_at,
                        changed_by=changed_by,
                        reason=reason,
                    )
                )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        logger.info(
            "Committed %s -> %s on %s (version %s)",
            old_value,
            grade,
            entry_id,
            entry.version,
        )

        return Response.succeed(
            detail=f"Grade for {component.value} successfully saved as {grade}.",
            status_code=201 if old_value is None else 200,
            data={
                "record": entry,
                "created": old_value is None,
                "changed": True,
            },
        )

    def lock(self, entry_id: str) -> Response:
        """
        Locks a single grade entry. Locking is one-way.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the entry is now locked (including when it already was).
                    - False if the entry does not exist.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NOT_FOUND` if the entry does not exist.
                - data (dict | None):
                    - On success, "record" (GradeEntry).
        """
        with self._lock:
            entry = self._entries.get(entry_id)

            if entry is None:
                return Response.fail(
                    detail=f"No grade entry found with id {entry_id}.",
                    error=ErrorCode.NOT_FOUND,
                    status_code=404,
                )

            if entry.is_locked:
                return Response.succeed(
                    detail="Grade entry is already locked. No changes made.",
                    data={
                        "record": entry,
                    },
                )

            entry.lock()

        logger.info("Locked grade entry %s", entry_id)

        return Response.succeed(
            detail="Grade entry successfully locked.",
            data={
                "record": entry,
            },
        )

    def lock_period(self, period_id: str, class_id: str | None = None) -> Response:
        """
        Locks every entry in a period, optionally restricted to one class.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): False only if the period is unknown.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NOT_FOUND` if the period is unknown.
                - data (dict | None):
                    - On success, "locked" (int): how many entries changed state.
        """
        if period_id not in self._periods:
            return Response.fail(
                detail=f"No reporting period found with id {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        locked = 0

        with self._lock:
            for entry in self._entries.values():
                if entry.period_id != period_id or entry.is_locked:
                    continue

                if class_id is not None and entry.class_id != class_id:
                    continue

                entry.lock()
                locked += 1

        logger.info(
            "Locked %d grade entries in period %s (class %s)",
            locked,
            period_id,
            class_id or "*",
        )

        return Response.succeed(
            detail=f"{locked} grade entries locked.",
            data={
                "locked": locked,
            },
        )

    # === persistence and import ===

    def export_entries(self) -> list[dict]:
        with self._lock:
            return [entry.to_dict() for entry in self._entries.values()]

    def import_entries(self, entry_data: list) -> None:
        """
        Imports serialized grade entries, failing fast on the first bad record.

        Args:
            entry_data (list[dict[str, Any]]): Dictionaries produced by `GradeEntry.to_dict()`.

        Raises:
            - ValueError:
                - If a record is malformed, refers to an unknown period, or duplicates an identity.
            - TypeError:
                - If the input is not a list.

        Notes:
            - Lock state, version, and timestamps are restored as serialized.
            - Imported entries get no audit records; the trail starts at the next change.
        """
        if not isinstance(entry_data, list):
            raise TypeError("Expected a list of serialized grade entries.")

        with self._lock:
            for record_dict in entry_data:
                try:
                    entry = GradeEntry.from_dict(record_dict)
                except (KeyError, ValueError, TypeError) as e:
                    raise ValueError(
                        f"Failed to deserialize grade entry: {record_dict} - {e}"
                    )

                if entry.period_id not in self._periods:
                    raise ValueError(
                        f"Failed to import grade entry: {record_dict} - unknown period {entry.period_id}"
                    )

                if entry.id in self._entries:
                    raise ValueError(
                        f"Failed to import grade entry: {record_dict} - duplicate identity"
                    )

                self._entries[entry.id] = entry

        logger.info("Imported %d grade entries", len(entry_data))

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"GradeStore({len(self._periods)} periods, {len(self._entries)} entries)"
