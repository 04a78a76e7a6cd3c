# tests/test_completion.py

from decimal import Decimal

from models.grade_entry import ComponentType
from models.submission_record import SubmissionTarget


def test_completion_rate_three_of_five(tracker, grade):
    grade("s001", "math", ComponentType.REGULAR_1, 9)
    grade("s001", "lit", ComponentType.MIDTERM, 7)
    grade("s001", "phys", ComponentType.SEMESTER_1, 5)

    snapshot = tracker.student_snapshot("s001", "p001")

    assert snapshot.total_subjects == 5
    assert snapshot.subjects_with_grades == 3
    assert snapshot.completion_rate == 60
    assert not snapshot.is_complete
    assert snapshot.missing_subjects == ["chem", "hist"]


def test_overall_average_and_distribution(tracker, grade):
    grade("s001", "math", ComponentType.REGULAR_1, 9)
    grade("s001", "lit", ComponentType.MIDTERM, 7)
    grade("s001", "phys", ComponentType.SEMESTER_1, 5)

    snapshot = tracker.student_snapshot("s001", "p001")

    # phys only has a summary figure, so it is graded but has no average
    assert snapshot.subject_averages["phys"] is None
    assert snapshot.subject_averages["chem"] is None
    assert snapshot.overall_average == Decimal("8.0")
    assert snapshot.distribution == {"excellent": 1, "good": 1, "average": 0, "poor": 0}


def test_single_regular_grade_counts_as_complete(tracker, grade):
    for subject in ("math", "lit", "phys", "chem", "hist"):
        grade("s001", subject, ComponentType.REGULAR_2, 3)

    snapshot = tracker.student_snapshot("s001", "p001")
    assert snapshot.completion_rate == 100
    assert snapshot.is_complete
    assert snapshot.distribution["poor"] == 5


def test_student_not_on_roster(tracker):
    snapshot = tracker.student_snapshot("s999", "p001")
    assert snapshot.total_subjects == 0
    assert snapshot.completion_rate == 0
    assert not snapshot.is_complete


def test_snapshot_with_overlay_preview(tracker, grade):
    entry = grade("s001", "math", ComponentType.REGULAR_1, 4)

    snapshot = tracker.student_snapshot("s001", "p001", overlay={entry.id: "8"})
    assert snapshot.subject_averages["math"] == Decimal("8.0")
    assert entry.value == Decimal("4.0")


def test_class_report(tracker, grade):
    for subject in ("math", "lit", "phys", "chem", "hist"):
        grade("s001", subject, ComponentType.FINAL, 8)
    grade("s002", "math", ComponentType.FINAL, 6)

    report = tracker.class_report("10A1", "p001")

    assert [s.student_id for s in report.students] == ["s001", "s002"]
    assert not report.all_completed
    assert report.overall_completion_rate == Decimal("60.0")
    assert report.overall_average == Decimal("7.0")
    assert report.distribution == {"excellent": 5, "good": 0, "average": 1, "poor": 0}

    math = next(s for s in report.subjects if s.subject_id == "math")
    assert math.is_completed
    assert math.completion_percentage == 100

    lit = next(s for s in report.subjects if s.subject_id == "lit")
    assert lit.students_with_grades == 1
    assert lit.completion_percentage == 50
    assert report.incomplete_subjects == ["chem", "hist", "lit", "phys"]


def test_class_report_all_completed(tracker, fully_graded):
    report = tracker.class_report("10A1", "p001")
    assert report.all_completed
    assert report.overall_completion_rate == Decimal("100.0")


def test_period_overview(tracker, roster, grade, fully_graded):
    roster.enroll("10A2", ["s010"], ["math", "lit"])
    grade("s010", "math", ComponentType.REGULAR_1, 5, class_id="10A2")

    overview = tracker.period_overview("p001")

    assert overview.total_classes == 2
    assert overview.total_students == 3
    assert overview.completed_classes == ["10A1"]
    # 11 graded of 12 pairs
    assert overview.overall_completion_rate == Decimal("91.7")
    assert overview.overall_average == Decimal("6.3")


def test_is_complete_for_targets(tracker, fully_graded):
    assert tracker.is_complete(SubmissionTarget.student("s001"), "p001")
    assert tracker.is_complete(SubmissionTarget.for_class("10A1"), "p001")
    assert not tracker.has_roster(SubmissionTarget.for_class("12C"), "p001")


def test_tracker_is_a_pure_reader(tracker, grade_store, grade):
    grade("s001", "math", ComponentType.REGULAR_1, 9)
    before = grade_store.export_entries()

    tracker.class_report("10A1", "p001")
    tracker.period_overview("p001")

    assert grade_store.export_entries() == before
