# tests/test_aggregation.py

from decimal import Decimal

import pytest

from core.grade_stager import GradeStager
from models.aggregation import AggregationEngine
from models.grade_entry import ComponentType, GradeEntry, GradeOutOfRangeError


def make(component, value, subject="math"):
    return GradeEntry("s001", subject, "10A1", "p001", component, value)


def test_no_entries_means_no_average():
    assert AggregationEngine.subject_average([]) is None


def test_only_summary_entries_means_no_average():
    entries = [make(ComponentType.SEMESTER_1, 9), make(ComponentType.YEARLY, 8)]
    assert AggregationEngine.subject_average(entries) is None


def test_mean_of_regular_and_midterm():
    entries = [
        make(ComponentType.REGULAR_1, "6.0"),
        make(ComponentType.REGULAR_2, "8.0"),
        make(ComponentType.MIDTERM, "7.0"),
    ]
    assert AggregationEngine.subject_average(entries) == Decimal("7.0")


def test_midterm_only():
    assert AggregationEngine.subject_average([make("midterm", 6.5)]) == Decimal("6.5")


def test_mean_rounds_half_up():
    # (7.0 + 8.0 + 8.0 + 8.0) / 4 = 7.75
    entries = [
        make(ComponentType.REGULAR_1, 7),
        make(ComponentType.REGULAR_2, 8),
        make(ComponentType.MIDTERM, 8),
        make(ComponentType.FINAL, 8),
    ]
    assert AggregationEngine.subject_average(entries) == Decimal("7.8")


def test_summary_figures_are_not_folded_in():
    entries = [
        make(ComponentType.REGULAR_1, 4),
        make(ComponentType.FINAL, 6),
        make(ComponentType.SEMESTER_1, 10),
    ]
    assert AggregationEngine.subject_average(entries) == Decimal("5.0")
    assert AggregationEngine.summary_figures(entries) == {
        ComponentType.SEMESTER_1: Decimal("10.0")
    }


def test_mixed_subjects_rejected():
    with pytest.raises(ValueError):
        AggregationEngine.subject_average(
            [make("regular_1", 5), make("regular_1", 6, subject="lit")]
        )


def test_overlay_substitutes_unsaved_edit():
    regular = make(ComponentType.REGULAR_1, 4)
    final = make(ComponentType.FINAL, 6)

    stager = GradeStager()
    stager.stage(regular.id, "10")

    assert AggregationEngine.subject_average([regular, final]) == Decimal("5.0")
    assert AggregationEngine.subject_average(
        [regular, final], stager.overlay()
    ) == Decimal("8.0")
    assert regular.value == Decimal("4.0")


def test_blank_overlay_removes_entry_from_preview():
    regular = make(ComponentType.REGULAR_1, 4)
    final = make(ComponentType.FINAL, 6)

    assert AggregationEngine.subject_average(
        [regular, final], {regular.id: " "}
    ) == Decimal("6.0")
    assert AggregationEngine.subject_average([regular], {regular.id: ""}) is None


def test_invalid_overlay_raises():
    regular = make(ComponentType.REGULAR_1, 4)

    with pytest.raises(GradeOutOfRangeError):
        AggregationEngine.subject_average([regular], {regular.id: "12"})


def test_subject_averages_groups_by_subject():
    entries = [
        make("regular_1", 6),
        make("final", 8),
        make("regular_1", 3, subject="lit"),
        make("semester_1", 9, subject="phys"),
    ]
    assert AggregationEngine.subject_averages(entries) == {
        "math": Decimal("7.0"),
        "lit": Decimal("3.0"),
        "phys": None,
    }


def test_overall_average_excludes_missing_subjects():
    averages = [Decimal("8.0"), None, Decimal("6.0")]
    assert AggregationEngine.overall_average(averages) == Decimal("7.0")
    assert AggregationEngine.overall_average([None, None]) is None


def test_distribution_buckets():
    averages = [
        Decimal("8.0"),
        Decimal("7.9"),
        Decimal("6.5"),
        Decimal("6.4"),
        Decimal("5.0"),
        Decimal("4.9"),
        None,
    ]
    assert AggregationEngine.distribution(averages) == {
        "excellent": 1,
        "good": 2,
        "average": 2,
        "poor": 1,
    }


def test_same_subject_in_two_classes_rejected(grade_store):
    grade_store.upsert("s001", "math", "10A1", "p001", "regular_1", 2)
    grade_store.upsert("s001", "math", "10A2", "p001", "regular_1", 10)
    grade_store.upsert("s001", "math", "10A1", "p001", "final", 8)

    entries = grade_store.get("s001", "p001", subject_id="math").data["records"]
    assert len(entries) == 3

    with pytest.raises(ValueError):
        AggregationEngine.subject_average(entries)

    with pytest.raises(ValueError):
        AggregationEngine.subject_averages(entries)

    one_class = [e for e in entries if e.class_id == "10A1"]
    assert AggregationEngine.subject_average(one_class) == Decimal("5.0")
