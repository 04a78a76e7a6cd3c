# models/submission_workflow.py

"""
Drives the submission of a student's or a class's grade set to the next approver.

States: `not_submitted` -> `submitted` -> `resubmitted` (and `resubmitted` ->
`resubmitted` on every further submission). A submit is gated on the
CompletionTracker reporting every subject graded, unless test mode is active, in
which case the gate only produces a warning. Every submission after the first
needs a non-empty reason. All checks run before anything is mutated.

Submission records live here, separate from the GradeStore: editing grades and
submitting never contend for the same lock. `is_stale()` reports whether grades
changed after the last submission without altering the record.

After a successful transition a `SubmissionEvent` is handed to the notification
dispatcher. A failing dispatcher is logged and does not undo the transition.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from core.config import Settings
from core.response import ErrorCode, Response
from models.completion import CompletionTracker
from models.grade_store import GradeStore
from models.submission_record import (
    ResetAuditRecord,
    SubmissionEvent,
    SubmissionRecord,
    SubmissionStatus,
    SubmissionTarget,
    TargetKind,
)

logger = logging.getLogger(__name__)


class SubmissionWorkflow:

    def __init__(
        self,
        store: GradeStore,
        tracker: CompletionTracker,
        dispatcher: Callable[[SubmissionEvent], None] | None = None,
        settings: Settings | None = None,
    ):
        self._store = store
        self._tracker = tracker
        self._dispatcher = dispatcher
        self._settings = settings or Settings.from_env()
        self._records: dict[tuple[str, str, str], SubmissionRecord] = {}
        self._events: list[SubmissionEvent] = []
        self._reset_log: list[ResetAuditRecord] = []
        self._lock = threading.Lock()

    # === properties ===

    @property
    def records(self) -> list[SubmissionRecord]:
        return list(self._records.values())

    @property
    def events(self) -> list[SubmissionEvent]:
        return list(self._events)

    @property
    def reset_log(self) -> list[ResetAuditRecord]:
        return list(self._reset_log)

    # === data accessors ===

    def find_record(self, target: SubmissionTarget, period_id: str) -> Response:
        record = self._records.get((*target.key, period_id))

        if record is None:
            return Response.fail(
                detail=f"No submission recorded for {target} in period {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        return Response.succeed(
            data={
                "record": record,
            },
        )

    def status_of(self, target: SubmissionTarget, period_id: str) -> SubmissionStatus:
        record = self._records.get((*target.key, period_id))
        return record.status if record else SubmissionStatus.NOT_SUBMITTED

    def is_stale(self, target: SubmissionTarget, period_id: str) -> bool:
        """
        Whether any grade behind the target changed after its last submission.

        Returns:
            bool: False for targets that were never submitted.

        Notes:
            - This is a read-only indicator; the submission record is left untouched.
        """
        record = self._records.get((*target.key, period_id))

        if record is None or record.last_submitted_at is None:
            return False

        if target.kind is TargetKind.STUDENT:
            predicate = (
                lambda e: e.student_id == target.target_id and e.period_id == period_id
            )
        else:
            predicate = (
                lambda e: e.class_id == target.target_id and e.period_id == period_id
            )

        last_change = self._store.last_change_at(predicate)

        return last_change is not None and last_change > record.last_submitted_at

    # === state transitions ===

    def submit(
        self,
        target: SubmissionTarget,
        period_id: str,
        reason: str | None = None,
        submitted_by: str | None = None,
        test_mode: bool | None = None,
    ) -> Response:
        """
        Submits a target's grades for a period to the next approver.

        Args:
            target (SubmissionTarget): The student or class being submitted.
            period_id (str): The reporting period.
            reason (str | None): Required, non-blank, for every submission after the first.
            submitted_by (str | None): The actor, stamped on the record.
            test_mode (bool | None): Bypass the completeness gate with a warning. None uses
                the configured `Settings.test_mode`.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the record advanced.
                    - False if any check failed; the record is unchanged.
                - detail (str | None):
                    - On failure, a human-readable description of the error.
                    - On success, a confirmation naming the new status.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NOT_FOUND` if the period is unknown or the target has no roster.
                    - `ErrorCode.REASON_REQUIRED` if resubmitting without a reason.
                    - `ErrorCode.INCOMPLETE_ROSTER` if subjects are ungraded and test mode is off.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success
                    - 404 for unknown period or target
                    - 422 for reason and completeness failures
                - data (dict | None): Payload with the following keys:
                    - On success:
                        - "record" (SubmissionRecord): The advanced record.
                        - "event" (SubmissionEvent): The event handed to the dispatcher.
                        - "warnings" (list[str]): Non-empty when the gate was bypassed.
                    - On `INCOMPLETE_ROSTER`:
                        - "missing" (dict[str, list[str]]): Ungraded subjects per student.

        Notes:
            - Validation runs in full before any mutation.
            - The completeness gate is evaluated against the grades at call time only;
              later grade edits do not re-open the gate (see `is_stale()`).
        """
        test_mode = self._settings.test_mode if test_mode is None else test_mode

        if not self._store.find_period(period_id).success:
            return Response.fail(
                detail=f"No reporting period found with id {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        if not self._tracker.has_roster(target, period_id):
            return Response.fail(
                detail=f"No roster found for {target} in period {period_id}.",
                error=ErrorCode.NOT_FOUND,
                status_code=404,
            )

        key = (*target.key, period_id)
        warnings = []

        try:
            with self._lock:
                record = self._records.get(key) or SubmissionRecord(target, period_id)

                if record.requires_reason and (reason is None or not reason.strip()):
                    return Response.fail(
                        detail=f"{target} was already submitted {record.submission_count} time(s); a reason is required to resubmit.",
                        error=ErrorCode.REASON_REQUIRED,
                        status_code=422,
                    )

                missing = self._tracker.missing_subjects(target, period_id)

                if missing and not test_mode:
                    return Response.fail(
                        detail=f"Grades are incomplete for {len(missing)} student(s) of {target}.",
                        error=ErrorCode.INCOMPLETE_ROSTER,
                        status_code=422,
                        data={
                            "missing": missing,
                        },
                    )

                if missing:
                    warnings.append(
                        f"Test mode: submitted {target} with {len(missing)} incomplete student(s)."
                    )
                    logger.warning(
                        "Completeness gate bypassed for %s in period %s (%d incomplete)",
                        target,
                        period_id,
                        len(missing),
                    )

                record.record_submission(
                    submitted_at=self._store.now(),
                    reason=reason,
                    submitted_by=submitted_by,
                )
                self._records[key] = record

                event = SubmissionEvent(record, gate_bypassed=bool(missing))
                self._events.append(event)

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        logger.info(
            "%s for %s in period %s (count %d)",
            record.status.value,
            target,
            period_id,
            record.submission_count,
        )

        self._dispatch(event)

        return Response.succeed(
            detail=f"Grades for {target} marked {record.status.value}.",
            data={
                "record": record,
                "event": event,
                "warnings": warnings,
            },
        )

    def reset_to_draft(
        self,
        target: SubmissionTarget,
        period_id: str,
        reason: str,
        reset_by: str | None = None,
    ) -> Response:
        """
        Administrative correction: returns a submitted record to `not_submitted`.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if the record was reset or was already a draft.
                - error (ErrorCode | str | None):
                    - `ErrorCode.REASON_REQUIRED` if `reason` is blank.
                    - `ErrorCode.NOT_FOUND` if the target was never submitted.
                - data (dict | None):
                    - On success, "record" (SubmissionRecord) and "audit" (ResetAuditRecord | None).

        Notes:
            - This is not a workflow transition. `submission_count` is preserved, so the
              next submit is still treated as a resubmission and needs a reason.
            - Every reset is appended to `reset_log` and logged as a warning.
        """
        if reason is None or not reason.strip():
            return Response.fail(
                detail="A reason is required to reset a submission.",
                error=ErrorCode.REASON_REQUIRED,
                status_code=422,
            )

        with self._lock:
            record = self._records.get((*target.key, period_id))

            if record is None:
                return Response.fail(
                    detail=f"No submission recorded for {target} in period {period_id}.",
                    error=ErrorCode.NOT_FOUND,
                    status_code=404,
                )

            if record.status is SubmissionStatus.NOT_SUBMITTED:
                return Response.succeed(
                    detail="Submission is already a draft. No changes made.",
                    data={
                        "record": record,
                        "audit": None,
                    },
                )

            audit = ResetAuditRecord(
                target=target,
                period_id=period_id,
                previous_status=record.status,
                submission_count=record.submission_count,
                reason=reason.strip(),
                reset_at=self._store.now(),
                reset_by=reset_by,
            )
            record.reset_to_draft()
            self._reset_log.append(audit)

        logger.warning(
            "Submission for %s in period %s reset to draft by %s: %s",
            target,
            period_id,
            reset_by or "unknown",
            audit.reason,
        )

        return Response.succeed(
            detail=f"Submission for {target} reset to draft.",
            data={
                "record": record,
                "audit": audit,
            },
        )

    # === helper methods ===

    def _dispatch(self, event: SubmissionEvent) -> None:
        if self._dispatcher is None:
            return

        try:
            self._dispatcher(event)

        except Exception:
            logger.exception(
                "Notification dispatch failed for %s in period %s",
                event.target,
                event.period_id,
            )

    def pending_count(self, period_id: str) -> int:
        return sum(
            1
            for record in self._records.values()
            if record.period_id == period_id
            and record.status is SubmissionStatus.NOT_SUBMITTED
        )
