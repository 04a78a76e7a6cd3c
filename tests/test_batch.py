# tests/test_batch.py

import threading
from decimal import Decimal

import pytest

from core.config import Settings
from core.grade_stager import GradeStager
from core.response import ErrorCode, Response
from models.batch import CANCELLED, BatchExecutor, GradeWrite
from models.submission_record import SubmissionStatus, SubmissionTarget

SUBJECT_IDS = ["math", "lit", "phys", "chem", "hist"]


def ten_writes(bad_index=None):
    writes = []
    for i in range(10):
        student_id = "s001" if i < 5 else "s002"
        subject_id = SUBJECT_IDS[i % 5]
        value = "12" if i == bad_index else 7
        writes.append(
            GradeWrite(student_id, subject_id, "10A1", "p001", "regular_1", value)
        )
    return writes


def test_partial_failure_keeps_successful_writes(grade_store):
    executor = BatchExecutor()

    response = executor.bulk_upsert(grade_store, ten_writes(bad_index=3), changed_by="t001")

    assert not response.success
    assert response.status_code == 207
    assert response.data["total"] == 10
    assert response.data["succeeded"] == 9
    assert response.data["failed"] == 1
    assert response.data["cancelled"] == 0

    failed = response.data["results"][3]
    assert not failed.success
    assert failed.error is ErrorCode.OUT_OF_RANGE
    assert BatchExecutor.failed_targets(response)[0].subject_id == "chem"

    assert grade_store.entry_count == 9
    assert grade_store.get("s001", "p001", subject_id="chem").data["records"] == []
    records = grade_store.get("s002", "p001").data["records"]
    assert all(r.value == Decimal("7.0") for r in records)


def test_all_succeeded(grade_store):
    response = BatchExecutor().bulk_upsert(grade_store, ten_writes())

    assert response.success
    assert response.data["succeeded"] == 10
    assert BatchExecutor.failed_targets(response) == []


def test_parallel_run_reports_in_input_order(grade_store):
    executor = BatchExecutor(max_workers=4)
    writes = ten_writes(bad_index=7)

    response = executor.bulk_upsert(grade_store, writes)

    assert executor.max_workers == 4
    assert [r.target for r in response.data["results"]] == writes
    assert response.data["succeeded"] == 9
    assert grade_store.entry_count == 9


def test_workers_from_settings():
    assert BatchExecutor(settings=Settings(batch_workers=3)).max_workers == 3
    with pytest.raises(ValueError):
        BatchExecutor(max_workers=0)


def test_workers_from_environment(monkeypatch):
    monkeypatch.setenv("GRADEFLOW_BATCH_WORKERS", "4")

    assert BatchExecutor().max_workers == 4
    assert BatchExecutor(max_workers=2).max_workers == 2


def test_cancelled_batch_skips_remaining_items(grade_store):
    cancel = threading.Event()
    cancel.set()

    response = BatchExecutor().bulk_upsert(grade_store, ten_writes(), cancel_event=cancel)

    assert response.data["cancelled"] == 10
    assert response.data["failed"] == 0
    assert all(r.error == CANCELLED for r in response.data["results"])
    assert grade_store.entry_count == 0


def test_cancel_midway_keeps_applied_items():
    cancel = threading.Event()
    seen = []

    def operation(target):
        seen.append(target)
        if target == 2:
            cancel.set()
        return Response.succeed()

    response = BatchExecutor().run([1, 2, 3, 4], operation, cancel_event=cancel)

    assert seen == [1, 2]
    assert response.data["succeeded"] == 2
    assert response.data["cancelled"] == 2


def test_exception_is_isolated_to_its_item():
    def operation(target):
        if target == "boom":
            raise RuntimeError("disk full")
        return Response.succeed()

    response = BatchExecutor().run(["a", "boom", "c"], operation)

    assert response.data["succeeded"] == 2
    result = response.data["results"][1]
    assert result.error is ErrorCode.INTERNAL_ERROR
    assert "disk full" in result.detail
    assert result.to_dict()["error"] == "INTERNAL_ERROR"


def test_bulk_submit(workflow, roster, grade, fully_graded):
    roster.enroll("10A2", ["s010"], ["math"])
    targets = [
        SubmissionTarget.student("s001"),
        SubmissionTarget.student("s010"),
        SubmissionTarget.for_class("10A1"),
    ]

    response = BatchExecutor().bulk_submit(workflow, targets, "p001", submitted_by="admin")

    assert response.data["succeeded"] == 2
    assert BatchExecutor.failed_targets(response) == [SubmissionTarget.student("s010")]
    assert response.data["results"][1].error is ErrorCode.INCOMPLETE_ROSTER
    assert workflow.status_of(targets[0], "p001") is SubmissionStatus.SUBMITTED
    assert workflow.status_of(targets[2], "p001") is SubmissionStatus.SUBMITTED


def test_commit_staged_writes_changed_edits(grade_store, grade):
    math = grade("s001", "math", "regular_1", 6)
    lit = grade("s001", "lit", "regular_1", 7)
    phys = grade("s001", "phys", "midterm", 5)

    stager = GradeStager()
    stager.stage(math.id, "8.5")
    stager.stage(lit.id, "7")
    stager.stage(phys.id, "11")
    stager.stage("s404:math:10A1:p001:final", "9")

    response = BatchExecutor().commit_staged(grade_store, stager, changed_by="t001")

    assert [r.target[0] for r in response.data["results"]] == [
        math.id,
        phys.id,
        "s404:math:10A1:p001:final",
    ]
    assert response.data["succeeded"] == 1
    assert response.data["results"][1].error is ErrorCode.OUT_OF_RANGE
    assert response.data["results"][2].error is ErrorCode.NOT_FOUND

    assert math.value == Decimal("8.5")
    assert grade_store.history(math.id)[-1].changed_by == "t001"
    assert lit.version == 1
    assert stager.overlay() == {
        lit.id: "7",
        phys.id: "11",
        "s404:math:10A1:p001:final": "9",
    }


def test_commit_staged_with_nothing_staged(grade_store):
    response = BatchExecutor().commit_staged(grade_store, GradeStager())

    assert response.success
    assert response.data["total"] == 0
