# models/collaborators.py

"""
Narrow stand-ins for the systems this workflow talks to but does not own.

- `Roster`: the enrollment provider. Defines which (student, subject) pairs make up
  a class in a period, and therefore what "complete" means.
- `InMemoryDispatcher`: a notification dispatcher that records submission events.
  Any callable taking a `SubmissionEvent` can be used instead.
- `NarrativeSummarizer`: wraps an opaque text generator. It only ever hands the
  generator aggregated numbers and falls back to a fixed summary when the
  generator is missing, fails, or returns nothing.

Authorization is not modelled here; callers are assumed to be allowed to act.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

import core.formatters as formatters
from models.snapshot import ClassCompletionReport, RosterCompletionSnapshot
from models.submission_record import SubmissionEvent

logger = logging.getLogger(__name__)

ANY_PERIOD = "*"


class Roster:
    """
    In-memory roster keyed by (class_id, period_id).

    Notes:
        - Enrollments added without a period apply to every period.
        - A student belongs to at most one class per period. `add()` raises `ValueError`
          when an enrollment would place the student in a second class for an overlapping period.
    """

    def __init__(self):
        self._pairs: dict[tuple[str, str], set[tuple[str, str]]] = defaultdict(set)

    def add(
        self,
        class_id: str,
        student_id: str,
        subject_id: str,
        period_id: str | None = None,
    ) -> None:
        period_id = period_id or ANY_PERIOD
        other = self._other_class(student_id, class_id, period_id)

        if other is not None:
            raise ValueError(
                f"Student {student_id} is already enrolled in class {other} for an overlapping period."
            )

        self._pairs[(class_id, period_id)].add((student_id, subject_id))

    def _other_class(self, student_id: str, class_id: str, period_id: str) -> str | None:
        for (enrolled_class, enrolled_period), pairs in self._pairs.items():
            if enrolled_class == class_id:
                continue

            if ANY_PERIOD not in (period_id, enrolled_period) and enrolled_period != period_id:
                continue

            if any(s == student_id for s, _ in pairs):
                return enrolled_class

        return None

    def enroll(
        self,
        class_id: str,
        student_ids: list[str],
        subject_ids: list[str],
        period_id: str | None = None,
    ) -> None:
        for student_id in student_ids:
            for subject_id in subject_ids:
                self.add(class_id, student_id, subject_id, period_id)

    def pairs(self, class_id: str, period_id: str) -> set[tuple[str, str]]:
        return self._pairs.get((class_id, ANY_PERIOD), set()) | self._pairs.get(
            (class_id, period_id), set()
        )

    def class_ids(self, period_id: str) -> list[str]:
        return sorted(
            {
                class_id
                for (class_id, period), pairs in self._pairs.items()
                if period in (period_id, ANY_PERIOD) and pairs
            }
        )

    def students_in_class(self, class_id: str, period_id: str) -> list[str]:
        return sorted({student for student, _ in self.pairs(class_id, period_id)})

    def subjects_for_class(self, class_id: str, period_id: str) -> list[str]:
        return sorted({subject for _, subject in self.pairs(class_id, period_id)})

    def class_for_student(self, student_id: str, period_id: str) -> str | None:
        for class_id in self.class_ids(period_id):
            if any(s == student_id for s, _ in self.pairs(class_id, period_id)):
                return class_id

        return None

    def subjects_for_student(self, student_id: str, period_id: str) -> list[str]:
        class_id = self.class_for_student(student_id, period_id)

        if class_id is None:
            return []

        return sorted(
            {
                subject
                for student, subject in self.pairs(class_id, period_id)
                if student == student_id
            }
        )


class InMemoryDispatcher:

    def __init__(self):
        self.events: list[SubmissionEvent] = []

    def __call__(self, event: SubmissionEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()


class NarrativeSummarizer:
    """
    Produces a human-readable synopsis of a student's or class's results.

    Args:
        generator (Callable[[dict], str] | None): The opaque text generator. It receives
            a dictionary of aggregated figures only (no names, no raw component grades).
    """

    def __init__(self, generator: Callable[[dict], str] | None = None):
        self._generator = generator

    @staticmethod
    def student_payload(
        snapshot: RosterCompletionSnapshot, violation_count: int | None = None
    ) -> dict:
        payload = {
            "scope": "student",
            "period_id": snapshot.period_id,
            "subject_averages": {
                subject: None if avg is None else str(avg)
                for subject, avg in sorted(snapshot.subject_averages.items())
            },
            "overall_average": (
                None if snapshot.overall_average is None else str(snapshot.overall_average)
            ),
            "completion_rate": snapshot.completion_rate,
            "distribution": dict(snapshot.distribution),
        }

        if violation_count is not None:
            payload["violation_count"] = violation_count

        return payload

    @staticmethod
    def class_payload(report: ClassCompletionReport) -> dict:
        return {
            "scope": "class",
            "period_id": report.period_id,
            "total_students": len(report.students),
            "total_subjects": len(report.subjects),
            "overall_average": (
                None if report.overall_average is None else str(report.overall_average)
            ),
            "completion_rate": str(report.overall_completion_rate),
            "distribution": dict(report.distribution),
        }

    @staticmethod
    def fallback_summary(payload: dict) -> str:
        graded = [s for s, avg in payload.get("subject_averages", {}).items() if avg]
        lines = [
            f"Overall average: {formatters.format_grade(payload.get('overall_average'))}.",
            f"Completion: {formatters.format_percentage(payload['completion_rate'])}.",
            f"Distribution: {formatters.format_distribution(payload['distribution'])}.",
        ]

        if graded:
            lines.append(f"Graded subjects: {formatters.format_list_with_and(graded)}.")

        if payload.get("violation_count"):
            lines.append(f"Recorded violations: {payload['violation_count']}.")

        return "\n".join(lines)

    def summarize(self, payload: dict) -> str:
        if self._generator is None:
            return self.fallback_summary(payload)

        try:
            text = self._generator(payload)

        except Exception as e:
            logger.warning("Summary generator failed, using fallback: %s", e)
            return self.fallback_summary(payload)

        if not isinstance(text, str) or not text.strip():
            logger.warning("Summary generator returned no text, using fallback")
            return self.fallback_summary(payload)

        return text.strip()

    def summarize_student(
        self, snapshot: RosterCompletionSnapshot, violation_count: int | None = None
    ) -> str:
        return self.summarize(self.student_payload(snapshot, violation_count))

    def summarize_class(self, report: ClassCompletionReport) -> str:
        return self.summarize(self.class_payload(report))
