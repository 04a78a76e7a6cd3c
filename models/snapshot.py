# models/snapshot.py

"""
Read-only result objects produced by the CompletionTracker.

None of these are persisted. They are rebuilt from the GradeStore on every request
and only carry `to_dict()` for handing results to rendering or notification layers.
"""

from __future__ import annotations

from decimal import Decimal


def _fmt(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class RosterCompletionSnapshot:
    """Completion and averages for one student in one period."""

    def __init__(
        self,
        student_id: str,
        period_id: str,
        class_id: str | None,
        subject_averages: dict[str, Decimal | None],
        graded_subjects: set[str],
        completion_rate: int,
        overall_average: Decimal | None,
        distribution: dict[str, int],
    ):
        self.student_id = student_id
        self.period_id = period_id
        self.class_id = class_id
        self.subject_averages = subject_averages
        self.graded_subjects = graded_subjects
        self.completion_rate = completion_rate
        self.overall_average = overall_average
        self.distribution = distribution

    @property
    def total_subjects(self) -> int:
        return len(self.subject_averages)

    @property
    def subjects_with_grades(self) -> int:
        return len(self.graded_subjects)

    @property
    def missing_subjects(self) -> list[str]:
        return sorted(s for s in self.subject_averages if s not in self.graded_subjects)

    @property
    def is_complete(self) -> bool:
        return self.total_subjects > 0 and not self.missing_subjects

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "period_id": self.period_id,
            "class_id": self.class_id,
            "total_subjects": self.total_subjects,
            "subjects_with_grades": self.subjects_with_grades,
            "completion_rate": self.completion_rate,
            "overall_average": _fmt(self.overall_average),
            "subject_averages": {k: _fmt(v) for k, v in self.subject_averages.items()},
            "distribution": dict(self.distribution),
            "is_complete": self.is_complete,
        }

    def __repr__(self) -> str:
        return f"RosterCompletionSnapshot({self.student_id}, {self.period_id}, {self.completion_rate}%, {self.overall_average})"


class SubjectCompletion:
    """How many students of a class have at least one grade in a subject."""

    def __init__(
        self,
        subject_id: str,
        total_students: int,
        students_with_grades: int,
        completion_percentage: int,
    ):
        self.subject_id = subject_id
        self.total_students = total_students
        self.students_with_grades = students_with_grades
        self.completion_percentage = completion_percentage

    @property
    def is_completed(self) -> bool:
        return self.students_with_grades >= self.total_students

    def to_dict(self) -> dict:
        return {
            "subject_id": self.subject_id,
            "total_students": self.total_students,
            "students_with_grades": self.students_with_grades,
            "completion_percentage": self.completion_percentage,
            "is_completed": self.is_completed,
        }

    def __repr__(self) -> str:
        return f"SubjectCompletion({self.subject_id}, {self.students_with_grades}/{self.total_students})"


class ClassCompletionReport:

    def __init__(
        self,
        class_id: str,
        period_id: str,
        students: list[RosterCompletionSnapshot],
        subjects: list[SubjectCompletion],
        overall_completion_rate: Decimal,
        overall_average: Decimal | None,
        distribution: dict[str, int],
    ):
        self.class_id = class_id
        self.period_id = period_id
        self.students = students
        self.subjects = subjects
        self.overall_completion_rate = overall_completion_rate
        self.overall_average = overall_average
        self.distribution = distribution

    @property
    def all_completed(self) -> bool:
        return bool(self.students) and all(s.is_complete for s in self.students)

    @property
    def incomplete_subjects(self) -> list[str]:
        return [s.subject_id for s in self.subjects if not s.is_completed]

    def to_dict(self) -> dict:
        return {
            "class_id": self.class_id,
            "period_id": self.period_id,
            "all_completed": self.all_completed,
            "overall_completion_rate": str(self.overall_completion_rate),
            "overall_average": _fmt(self.overall_average),
            "distribution": dict(self.distribution),
            "students": [s.to_dict() for s in self.students],
            "subjects": [s.to_dict() for s in self.subjects],
        }

    def __repr__(self) -> str:
        return f"ClassCompletionReport({self.class_id}, {self.period_id}, {self.overall_completion_rate}%)"


class PeriodOverview:

    def __init__(
        self,
        period_id: str,
        classes: list[ClassCompletionReport],
        overall_completion_rate: Decimal,
        overall_average: Decimal | None,
    ):
        self.period_id = period_id
        self.classes = classes
        self.overall_completion_rate = overall_completion_rate
        self.overall_average = overall_average

    @property
    def total_classes(self) -> int:
        return len(self.classes)

    @property
    def total_students(self) -> int:
        return sum(len(c.students) for c in self.classes)

    @property
    def completed_classes(self) -> list[str]:
        return [c.class_id for c in self.classes if c.all_completed]

    def to_dict(self) -> dict:
        return {
            "period_id": self.period_id,
            "total_classes": self.total_classes,
            "total_students": self.total_students,
            "completed_classes": self.completed_classes,
            "overall_completion_rate": str(self.overall_completion_rate),
            "overall_average": _fmt(self.overall_average),
        }
