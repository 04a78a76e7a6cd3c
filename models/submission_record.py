# models/submission_record.py

"""
Represents the submission state of a student's or a class's grade set for one period.

A `SubmissionRecord` is created implicitly on the first successful submit. Its
status only moves forward (`not_submitted` -> `submitted` -> `resubmitted`) and
its `submission_count` only grows. Every submission after the first carries a
reason, stored as `last_reason`.

Also defines the small value objects that travel with submissions:
- `SubmissionTarget`: who is being submitted (a student or a whole class)
- `SubmissionEvent`: what the notification dispatcher receives after a transition
- `ResetAuditRecord`: the trail left by an administrative reset to draft
"""

from __future__ import annotations

import datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    NOT_SUBMITTED = "not_submitted"
    SUBMITTED = "submitted"
    RESUBMITTED = "resubmitted"


class TargetKind(str, Enum):
    STUDENT = "student"
    CLASS = "class"


class SubmissionTarget:

    def __init__(self, kind: TargetKind | str, target_id: str):
        self._kind = TargetKind(kind)
        self._target_id = target_id

    @classmethod
    def student(cls, student_id: str) -> SubmissionTarget:
        return cls(TargetKind.STUDENT, student_id)

    @classmethod
    def for_class(cls, class_id: str) -> SubmissionTarget:
        return cls(TargetKind.CLASS, class_id)

    @property
    def kind(self) -> TargetKind:
        return self._kind

    @property
    def target_id(self) -> str:
        return self._target_id

    @property
    def key(self) -> tuple[str, str]:
        return (self._kind.value, self._target_id)

    def to_dict(self) -> dict:
        return {"kind": self._kind.value, "target_id": self._target_id}

    @classmethod
    def from_dict(cls, data: dict) -> SubmissionTarget:
        return cls(data["kind"], data["target_id"])

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SubmissionTarget) and self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"SubmissionTarget({self._kind.value}, {self._target_id})"

    def __str__(self) -> str:
        return f"{self._kind.value} {self._target_id}"


class SubmissionRecord:

    def __init__(
        self,
        target: SubmissionTarget,
        period_id: str,
        status: SubmissionStatus | str = SubmissionStatus.NOT_SUBMITTED,
        submission_count: int = 0,
        last_submitted_at: datetime.datetime | None = None,
        last_reason: str | None = None,
        last_submitted_by: str | None = None,
    ):
        self._target = target
        self._period_id = period_id
        self._status = SubmissionStatus(status)
        self._submission_count = submission_count
        self._last_submitted_at = last_submitted_at
        self._last_reason = last_reason
        self._last_submitted_by = last_submitted_by

    # === properties ===

    @property
    def key(self) -> tuple[str, str, str]:
        return (*self._target.key, self._period_id)

    @property
    def target(self) -> SubmissionTarget:
        return self._target

    @property
    def period_id(self) -> str:
        return self._period_id

    @property
    def status(self) -> SubmissionStatus:
        return self._status

    @property
    def submission_count(self) -> int:
        return self._submission_count

    @property
    def last_submitted_at(self) -> datetime.datetime | None:
        return self._last_submitted_at

    @property
    def last_reason(self) -> str | None:
        return self._last_reason

    @property
    def last_submitted_by(self) -> str | None:
        return self._last_submitted_by

    @property
    def requires_reason(self) -> bool:
        return self._submission_count > 0

    # === state transitions ===

    def record_submission(
        self,
        submitted_at: datetime.datetime,
        reason: str | None = None,
        submitted_by: str | None = None,
    ) -> None:
        """
        Advances the record by one submission.

        Raises:
            ValueError: If this is a resubmission and `reason` is blank.

        Notes:
            - The caller validates the reason before calling; the check here guards the invariant.
        """
        if self.requires_reason:
            if not reason or not reason.strip():
                raise ValueError("A reason is required to resubmit.")

            self._status = SubmissionStatus.RESUBMITTED
            self._last_reason = reason.strip()

        else:
            self._status = SubmissionStatus.SUBMITTED

        self._submission_count += 1
        self._last_submitted_at = submitted_at
        self._last_submitted_by = submitted_by

    def reset_to_draft(self) -> None:
        # count is kept so the next submit is still treated as a resubmission
        self._status = SubmissionStatus.NOT_SUBMITTED

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "target": self._target.to_dict(),
            "period_id": self._period_id,
            "status": self._status.value,
            "submission_count": self._submission_count,
            "last_submitted_at": (
                self._last_submitted_at.isoformat() if self._last_submitted_at else None
            ),
            "last_reason": self._last_reason,
            "last_submitted_by": self._last_submitted_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SubmissionRecord:
        submitted_at = data.get("last_submitted_at")

        return cls(
            target=SubmissionTarget.from_dict(data["target"]),
            period_id=data["period_id"],
            status=data["status"],
            submission_count=data["submission_count"],
            last_submitted_at=(
                datetime.datetime.fromisoformat(submitted_at) if submitted_at else None
            ),
            last_reason=data.get("last_reason"),
            last_submitted_by=data.get("last_submitted_by"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"SubmissionRecord({self._target!r}, {self._period_id}, {self._status.value}, {self._submission_count})"

    def __str__(self) -> str:
        return f"SUBMISSION: target: {self._target}, period id: {self._period_id}, status: {self._status.value}"


class SubmissionEvent:
    """Payload handed to the notification dispatcher after a successful submit."""

    def __init__(
        self,
        record: SubmissionRecord,
        gate_bypassed: bool = False,
    ):
        self.target = record.target
        self.period_id = record.period_id
        self.status = record.status
        self.submission_count = record.submission_count
        self.reason = (
            record.last_reason
            if record.status is SubmissionStatus.RESUBMITTED
            else None
        )
        self.submitted_at = record.last_submitted_at
        self.submitted_by = record.last_submitted_by
        self.gate_bypassed = gate_bypassed

    @property
    def is_resubmission(self) -> bool:
        return self.status is SubmissionStatus.RESUBMITTED

    def to_dict(self) -> dict:
        return {
            "target": self.target.to_dict(),
            "period_id": self.period_id,
            "status": self.status.value,
            "submission_count": self.submission_count,
            "reason": self.reason,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "submitted_by": self.submitted_by,
            "gate_bypassed": self.gate_bypassed,
        }

    def __repr__(self) -> str:
        return f"SubmissionEvent({self.target!r}, {self.period_id}, {self.status.value}, {self.submission_count})"


class ResetAuditRecord:

    def __init__(
        self,
        target: SubmissionTarget,
        period_id: str,
        previous_status: SubmissionStatus,
        submission_count: int,
        reason: str,
        reset_at: datetime.datetime,
        reset_by: str | None = None,
    ):
        self.target = target
        self.period_id = period_id
        self.previous_status = previous_status
        self.submission_count = submission_count
        self.reason = reason
        self.reset_at = reset_at
        self.reset_by = reset_by

    def to_dict(self) -> dict:
        return {
            "target": self.target.to_dict(),
            "period_id": self.period_id,
            "previous_status": self.previous_status.value,
            "submission_count": self.submission_count,
            "reason": self.reason,
            "reset_at": self.reset_at.isoformat(),
            "reset_by": self.reset_by,
        }

    def __repr__(self) -> str:
        return f"ResetAuditRecord({self.target!r}, {self.period_id}, {self.previous_status.value}, {self.submission_count})"
