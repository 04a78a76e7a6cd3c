# models/batch.py

"""
Fans a single-target operation out over many targets and reports per-target outcomes.

Batch runs are not transactional. Each target is applied independently; a failure
never rolls back targets that already succeeded and never stops the others. The
caller gets the failed subset back so it can be shown for retry.

With `max_workers > 1` targets run on a thread pool and may complete in any order;
results are still reported in input order. A set `cancel_event` stops any target
that has not started yet. Targets that already ran keep their effect.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from core.config import Settings
from core.grade_stager import GradeStager
from core.response import ErrorCode, Response
from models.grade_entry import ComponentType, GradeEntry
from models.grade_store import GradeStore
from models.submission_record import SubmissionTarget
from models.submission_workflow import SubmissionWorkflow

logger = logging.getLogger(__name__)

CANCELLED = "CANCELLED"


class GradeWrite:
    """One pending grade write for `bulk_upsert()`."""

    def __init__(
        self,
        student_id: str,
        subject_id: str,
        class_id: str,
        period_id: str,
        component_type: ComponentType | str,
        value: Any,
        expected_version: int | None = None,
    ):
        self.student_id = student_id
        self.subject_id = subject_id
        self.class_id = class_id
        self.period_id = period_id
        self.component_type = component_type
        self.value = value
        self.expected_version = expected_version

    def __repr__(self) -> str:
        return f"GradeWrite({self.student_id}, {self.subject_id}, {self.component_type}, {self.value})"


class BatchItemResult:

    def __init__(
        self,
        target: Any,
        success: bool,
        error: ErrorCode | str | None = None,
        detail: str | None = None,
        response: Response | None = None,
    ):
        self.target = target
        self.success = success
        self.error = error
        self.detail = detail
        self.response = response

    @property
    def cancelled(self) -> bool:
        return self.error == CANCELLED

    def to_dict(self) -> dict:
        return {
            "target": repr(self.target),
            "success": self.success,
            "error": getattr(self.error, "value", self.error),
            "detail": self.detail,
        }

    def __repr__(self) -> str:
        return f"BatchItemResult({self.target!r}, {self.success}, {self.error})"


class BatchExecutor:

    def __init__(self, max_workers: int | None = None, settings: Settings | None = None):
        if max_workers is None:
            max_workers = (settings or Settings.from_env()).batch_workers

        self._max_workers = Settings.validate_workers_input(max_workers)

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def _run_one(
        self,
        target: Any,
        operation: Callable[[Any], Response],
        cancel_event: threading.Event | None,
    ) -> BatchItemResult:
        if cancel_event is not None and cancel_event.is_set():
            return BatchItemResult(
                target, False, error=CANCELLED, detail="Batch cancelled before this item ran."
            )

        try:
            response = operation(target)

        except Exception as e:
            logger.exception("Batch item %r raised", target)
            return BatchItemResult(
                target,
                False,
                error=ErrorCode.INTERNAL_ERROR,
                detail=f"Unexpected error: {e}",
            )

        return BatchItemResult(
            target,
            response.success,
            error=response.error,
            detail=response.detail,
            response=response,
        )

    def run(
        self,
        targets: list[Any],
        operation: Callable[[Any], Response],
        cancel_event: threading.Event | None = None,
    ) -> Response:
        """
        Applies `operation` to every target independently.

        Args:
            targets (list[Any]): The items to process.
            operation (Callable[[Any], Response]): A single-target operation.
            cancel_event (threading.Event | None): When set, items that have not started are skipped.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if every target succeeded.
                    - False if one or more targets failed or were cancelled.
                - detail (str | None):
                    - Indication of complete or partial success.
                - error (ErrorCode | str | None):
                    - `ErrorCode.VALIDATION_FAILED` if any target did not succeed.
                - status_code (int | None):
                    - 200 if all targets succeeded, 207 otherwise
                - data (dict): Payload with the following keys:
                    - "total" (int), "succeeded" (int), "failed" (int), "cancelled" (int)
                    - "results" (list[BatchItemResult]): One per target, in input order.

        Notes:
            - This method does not roll back or retry failed items.
            - Exceptions raised by `operation` are isolated to their item as `INTERNAL_ERROR`.
        """
        targets = list(targets)

        if self._max_workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(
                    pool.map(
                        lambda t: self._run_one(t, operation, cancel_event), targets
                    )
                )
        else:
            results = [self._run_one(t, operation, cancel_event) for t in targets]

        succeeded = sum(1 for r in results if r.success)
        cancelled = sum(1 for r in results if r.cancelled)
        failed = len(results) - succeeded - cancelled

        data = {
            "total": len(results),
            "succeeded": succeeded,
            "failed": failed,
            "cancelled": cancelled,
            "results": results,
        }

        logger.info(
            "Batch finished: %d/%d succeeded, %d failed, %d cancelled",
            succeeded,
            len(results),
            failed,
            cancelled,
        )

        if succeeded == len(results):
            return Response.succeed(
                detail=f"All {len(results)} items processed successfully.",
                data=data,
            )

        return Response.fail(
            detail=f"{succeeded} of {len(results)} items processed; {failed} failed, {cancelled} cancelled.",
            error=ErrorCode.VALIDATION_FAILED,
            status_code=207,
            data=data,
        )

    # === convenience wrappers ===

    def bulk_upsert(
        self,
        store: GradeStore,
        writes: list[GradeWrite],
        changed_by: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Response:
        def write_one(write: GradeWrite) -> Response:
            return store.upsert(
                student_id=write.student_id,
                subject_id=write.subject_id,
                class_id=write.class_id,
                period_id=write.period_id,
                component_type=write.component_type,
                value=write.value,
                expected_version=write.expected_version,
                changed_by=changed_by,
            )

        return self.run(writes, write_one, cancel_event)

    def bulk_submit(
        self,
        workflow: SubmissionWorkflow,
        targets: list[SubmissionTarget],
        period_id: str,
        reason: str | None = None,
        submitted_by: str | None = None,
        test_mode: bool | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Response:
        def submit_one(target: SubmissionTarget) -> Response:
            return workflow.submit(
                target,
                period_id,
                reason=reason,
                submitted_by=submitted_by,
                test_mode=test_mode,
            )

        return self.run(targets, submit_one, cancel_event)

    def commit_staged(
        self,
        store: GradeStore,
        stager: GradeStager,
        changed_by: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Response:
        """
        Writes every staged edit that differs from its committed value.

        Args:
            store (GradeStore): The store holding the staged entries.
            stager (GradeStager): Unsaved edits keyed by entry ID.
            changed_by (str | None): The actor stamped on each write.
            cancel_event (threading.Event | None): When set, edits that have not started are skipped.

        Returns:
            Response: Same contract as `run()`. Each target is an `(entry_id, value)` tuple.

        Notes:
            - Entry versions are read once, before any write. An entry changed by someone
              else during the run fails with `ErrorCode.CONFLICT`.
            - Staged IDs with no committed entry fail with `ErrorCode.NOT_FOUND`.
            - Successfully written edits are unstaged; failed and cancelled ones stay staged for retry.
        """
        versions: dict[str, GradeEntry] = {}

        for entry_id, _ in stager.pending():
            response = store.find_entry(entry_id)

            if response.success:
                versions[entry_id] = response.data["record"]

        committed = {entry_id: str(entry.value) for entry_id, entry in versions.items()}
        expected = {entry_id: entry.version for entry_id, entry in versions.items()}
        edits = stager.pending(committed)

        def commit_one(edit: tuple[str, str]) -> Response:
            entry_id, value = edit
            entry = versions.get(entry_id)

            if entry is None:
                return Response.fail(
                    detail=f"No grade entry found with id {entry_id}.",
                    error=ErrorCode.NOT_FOUND,
                    status_code=404,
                )

            return store.upsert(
                student_id=entry.student_id,
                subject_id=entry.subject_id,
                class_id=entry.class_id,
                period_id=entry.period_id,
                component_type=entry.component_type,
                value=value,
                expected_version=expected[entry_id],
                changed_by=changed_by,
            )

        response = self.run(edits, commit_one, cancel_event)

        for result in response.data["results"]:
            if result.success:
                stager.unstage(result.target[0])

        return response

    @staticmethod
    def failed_targets(response: Response) -> list[Any]:
        return [r.target for r in response.data.get("results", []) if not r.success]
