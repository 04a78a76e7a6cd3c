# models/aggregation.py

"""
Pure derived views over grade entries: subject averages (TBM), overall averages,
and grade-distribution buckets.

Nothing here is stored or cached. Every call recomputes from the entries it is
given, so results always reflect the latest committed grades plus any unsaved edit
overlay the caller passes in.

The TBM rule: the subject average for a (student, subject, class, period) is the mean of
every `regular_*`, `midterm` and `final` value, rounded half-up to one decimal.
`semester_1`, `semester_2` and `yearly` are separately reported summary figures and
never feed the mean. A subject with no TBM inputs has no average (`None`), which is
not the same as an average of zero.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from decimal import Decimal

from core.utils import mean_tenths
from models.grade_entry import ComponentType, GradeEntry

EXCELLENT_THRESHOLD = Decimal("8")
GOOD_THRESHOLD = Decimal("6.5")
AVERAGE_THRESHOLD = Decimal("5")

DISTRIBUTION_BUCKETS = ("excellent", "good", "average", "poor")


class AggregationEngine:

    @staticmethod
    def effective_value(
        entry: GradeEntry, overlay: Mapping[str, str] | None = None
    ) -> Decimal | None:
        """
        Resolves the value an entry contributes, applying an unsaved edit if one is staged.

        Args:
            entry (GradeEntry): The committed entry.
            overlay (Mapping[str, str] | None): Entry ID -> candidate string.

        Returns:
            The committed value, the validated overlay value, or None if the overlay
            clears the cell (blank string).

        Raises:
            TypeError, GradeValueError: If the overlay value is not a valid grade.
        """
        if overlay is None or entry.id not in overlay:
            return entry.value

        candidate = str(overlay[entry.id]).strip()

        if not candidate:
            return None

        return GradeEntry.validate_grade_input(candidate)

    @staticmethod
    def tbm_inputs(
        entries: Iterable[GradeEntry], overlay: Mapping[str, str] | None = None
    ) -> list[Decimal]:
        values = []

        for entry in entries:
            if not entry.component_type.is_tbm_input:
                continue

            value = AggregationEngine.effective_value(entry, overlay)

            if value is not None:
                values.append(value)

        return values

    @staticmethod
    def subject_average(
        entries: Iterable[GradeEntry], overlay: Mapping[str, str] | None = None
    ) -> Decimal | None:
        """
        Computes the TBM subject average for the entries of one (student, subject, class, period).

        Args:
            entries (Iterable[GradeEntry]): The entries of a single subject for one student and period.
            overlay (Mapping[str, str] | None): Optional unsaved edits keyed by entry ID.

        Returns:
            The mean rounded half-up to one decimal, or None if there are no TBM inputs.

        Raises:
            ValueError: If `entries` mixes students, subjects, classes, or periods.
        """
        entries = list(entries)
        tuples = {(e.student_id, e.subject_id, e.class_id, e.period_id) for e in entries}

        if len(tuples) > 1:
            raise ValueError(
                "Subject average requires entries from a single student, subject, class, and period."
            )

        return mean_tenths(AggregationEngine.tbm_inputs(entries, overlay))

    @staticmethod
    def subject_averages(
        entries: Iterable[GradeEntry], overlay: Mapping[str, str] | None = None
    ) -> dict[str, Decimal | None]:
        """
        Computes one TBM average per subject for a single student, class, and period.

        Returns:
            dict[str, Decimal | None]: subject_id -> average, None where no TBM inputs exist.
        """
        by_subject: dict[str, list[GradeEntry]] = defaultdict(list)

        for entry in entries:
            by_subject[entry.subject_id].append(entry)

        return {
            subject_id: AggregationEngine.subject_average(subject_entries, overlay)
            for subject_id, subject_entries in by_subject.items()
        }

    @staticmethod
    def summary_figures(
        entries: Iterable[GradeEntry],
    ) -> dict[ComponentType, Decimal]:
        return {
            entry.component_type: entry.value
            for entry in entries
            if entry.component_type.is_summary
        }

    @staticmethod
    def overall_average(averages: Iterable[Decimal | None]) -> Decimal | None:
        # subjects without an average are excluded, not counted as zero
        return mean_tenths(a for a in averages if a is not None)

    @staticmethod
    def bucket(average: Decimal) -> str:
        if average >= EXCELLENT_THRESHOLD:
            return "excellent"
        if average >= GOOD_THRESHOLD:
            return "good"
        if average >= AVERAGE_THRESHOLD:
            return "average"
        return "poor"

    @staticmethod
    def distribution(averages: Iterable[Decimal | None]) -> dict[str, int]:
        counts = dict.fromkeys(DISTRIBUTION_BUCKETS, 0)

        for average in averages:
            if average is not None:
                counts[AggregationEngine.bucket(average)] += 1

        return counts
