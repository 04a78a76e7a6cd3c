# models/completion.py

"""
Rolls GradeStore contents up into per-student, per-class, and per-period completion views.

A subject counts as graded for a student as soon as it has at least one entry of any
component type. Full grading is not required; classes report progress incrementally.

The tracker holds no state of its own. It reads the GradeStore and the roster at
call time and returns fresh snapshot objects.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from decimal import Decimal

from core.utils import round_tenths, round_whole
from models.aggregation import DISTRIBUTION_BUCKETS, AggregationEngine
from models.collaborators import Roster
from models.grade_entry import GradeEntry
from models.grade_store import GradeStore
from models.snapshot import (
    ClassCompletionReport,
    PeriodOverview,
    RosterCompletionSnapshot,
    SubjectCompletion,
)
from models.submission_record import SubmissionTarget, TargetKind


def _rate(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal("0.0")

    return round_tenths(Decimal(part) / Decimal(whole) * 100)


def _whole_rate(part: int, whole: int) -> int:
    if whole == 0:
        return 0

    return round_whole(Decimal(part) / Decimal(whole) * 100)


class CompletionTracker:

    def __init__(self, store: GradeStore, roster: Roster):
        self._store = store
        self._roster = roster

    @property
    def roster(self) -> Roster:
        return self._roster

    # === snapshots ===

    def _snapshot(
        self,
        student_id: str,
        class_id: str | None,
        period_id: str,
        subject_ids: list[str],
        entries: list[GradeEntry],
        overlay: Mapping[str, str] | None = None,
    ) -> RosterCompletionSnapshot:
        by_subject: dict[str, list[GradeEntry]] = defaultdict(list)

        for entry in entries:
            by_subject[entry.subject_id].append(entry)

        averages = {
            subject_id: AggregationEngine.subject_average(
                by_subject.get(subject_id, []), overlay
            )
            for subject_id in subject_ids
        }
        graded = {subject_id for subject_id in subject_ids if by_subject.get(subject_id)}
        total = len(subject_ids)

        return RosterCompletionSnapshot(
            student_id=student_id,
            period_id=period_id,
            class_id=class_id,
            subject_averages=averages,
            graded_subjects=graded,
            completion_rate=_whole_rate(len(graded), total),
            overall_average=AggregationEngine.overall_average(averages.values()),
            distribution=AggregationEngine.distribution(averages.values()),
        )

    def student_snapshot(
        self,
        student_id: str,
        period_id: str,
        overlay: Mapping[str, str] | None = None,
    ) -> RosterCompletionSnapshot:
        """
        Builds the completion snapshot for one student in one period.

        Args:
            student_id (str): The student.
            period_id (str): The reporting period.
            overlay (Mapping[str, str] | None): Optional unsaved edits keyed by entry ID;
                they change the averages but not which subjects count as graded.

        Returns:
            RosterCompletionSnapshot: Completion rate, per-subject and overall averages, distribution.

        Raises:
            TypeError, ValueError: If an overlay value is not a valid grade.

        Notes:
            - Subjects come from the roster. Entries for subjects outside the roster are ignored.
            - A student missing from the roster yields an empty snapshot (0% and not complete).
        """
        class_id = self._roster.class_for_student(student_id, period_id)
        subject_ids = self._roster.subjects_for_student(student_id, period_id)
        entries = self._store.entries(
            student_id=student_id, class_id=class_id, period_id=period_id
        )

        return self._snapshot(
            student_id, class_id, period_id, subject_ids, entries, overlay
        )

    def class_report(self, class_id: str, period_id: str) -> ClassCompletionReport:
        """
        Builds completion figures for a whole class: one snapshot per student and one
        completion row per subject.

        Notes:
            - `overall_completion_rate` is graded (student, subject) pairs over all pairs, to one decimal.
            - `overall_average` is the mean of the students' overall averages that exist.
        """
        pairs = self._roster.pairs(class_id, period_id)
        entries = self._store.entries(class_id=class_id, period_id=period_id)

        entries_by_student: dict[str, list[GradeEntry]] = defaultdict(list)
        for entry in entries:
            entries_by_student[entry.student_id].append(entry)

        subjects_by_student: dict[str, list[str]] = defaultdict(list)
        students_by_subject: dict[str, set[str]] = defaultdict(set)
        for student_id, subject_id in sorted(pairs):
            subjects_by_student[student_id].append(subject_id)
            students_by_subject[subject_id].add(student_id)

        snapshots = [
            self._snapshot(
                student_id,
                class_id,
                period_id,
                subject_ids,
                entries_by_student.get(student_id, []),
            )
            for student_id, subject_ids in sorted(subjects_by_student.items())
        ]
        graded_by_student = {s.student_id: s.graded_subjects for s in snapshots}

        subjects = []
        for subject_id, student_ids in sorted(students_by_subject.items()):
            with_grades = sum(
                1 for s in student_ids if subject_id in graded_by_student.get(s, set())
            )
            subjects.append(
                SubjectCompletion(
                    subject_id=subject_id,
                    total_students=len(student_ids),
                    students_with_grades=with_grades,
                    completion_percentage=_whole_rate(with_grades, len(student_ids)),
                )
            )

        distribution = dict.fromkeys(DISTRIBUTION_BUCKETS, 0)
        for snapshot in snapshots:
            for bucket, count in snapshot.distribution.items():
                distribution[bucket] += count

        return ClassCompletionReport(
            class_id=class_id,
            period_id=period_id,
            students=snapshots,
            subjects=subjects,
            overall_completion_rate=_rate(
                sum(s.subjects_with_grades for s in snapshots),
                sum(s.total_subjects for s in snapshots),
            ),
            overall_average=AggregationEngine.overall_average(
                s.overall_average for s in snapshots
            ),
            distribution=distribution,
        )

    def period_overview(self, period_id: str) -> PeriodOverview:
        reports = [
            self.class_report(class_id, period_id)
            for class_id in self._roster.class_ids(period_id)
        ]
        snapshots = [s for report in reports for s in report.students]

        return PeriodOverview(
            period_id=period_id,
            classes=reports,
            overall_completion_rate=_rate(
                sum(s.subjects_with_grades for s in snapshots),
                sum(s.total_subjects for s in snapshots),
            ),
            overall_average=AggregationEngine.overall_average(
                s.overall_average for s in snapshots
            ),
        )

    # === submit gate ===

    def has_roster(self, target: SubmissionTarget, period_id: str) -> bool:
        if target.kind is TargetKind.STUDENT:
            return bool(self._roster.subjects_for_student(target.target_id, period_id))

        return bool(self._roster.pairs(target.target_id, period_id))

    def missing_subjects(
        self, target: SubmissionTarget, period_id: str
    ) -> dict[str, list[str]]:
        """
        Lists the ungraded subjects behind a target, keyed by student ID.

        Returns:
            dict[str, list[str]]: Only students with at least one missing subject appear.
        """
        if target.kind is TargetKind.STUDENT:
            snapshots = [self.student_snapshot(target.target_id, period_id)]
        else:
            snapshots = self.class_report(target.target_id, period_id).students

        return {s.student_id: s.missing_subjects for s in snapshots if s.missing_subjects}

    def is_complete(self, target: SubmissionTarget, period_id: str) -> bool:
        if target.kind is TargetKind.STUDENT:
            return self.student_snapshot(target.target_id, period_id).is_complete

        return self.class_report(target.target_id, period_id).all_completed
