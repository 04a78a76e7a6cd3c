# tests/conftest.py

import datetime
import itertools

import pytest

from core.config import Settings
from models.collaborators import InMemoryDispatcher, Roster
from models.completion import CompletionTracker
from models.grade_entry import ComponentType, GradeEntry
from models.grade_store import GradeStore
from models.reporting_period import ReportingPeriod
from models.submission_workflow import SubmissionWorkflow

SUBJECTS = ["math", "lit", "phys", "chem", "hist"]

SETTINGS_VARS = ("GRADEFLOW_TEST_MODE", "GRADEFLOW_BATCH_WORKERS", "GRADEFLOW_LOG_LEVEL")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    for name in SETTINGS_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def ticking_clock():
    start = datetime.datetime(2025, 9, 1, 8, 0, tzinfo=datetime.timezone.utc)
    counter = itertools.count()

    return lambda: start + datetime.timedelta(seconds=next(counter))


@pytest.fixture
def sample_period():
    return ReportingPeriod(
        id="p001",
        name="Mid-semester 1",
        start_date=datetime.date(2025, 9, 1),
        end_date=datetime.date(2025, 10, 31),
    )


@pytest.fixture
def grade_store(ticking_clock, sample_period):
    store = GradeStore(clock=ticking_clock)
    store.add_period(sample_period)
    return store


@pytest.fixture
def roster():
    roster = Roster()
    roster.enroll("10A1", ["s001", "s002"], SUBJECTS)
    return roster


@pytest.fixture
def tracker(grade_store, roster):
    return CompletionTracker(grade_store, roster)


@pytest.fixture
def dispatcher():
    return InMemoryDispatcher()


@pytest.fixture
def workflow(grade_store, tracker, dispatcher):
    return SubmissionWorkflow(grade_store, tracker, dispatcher, Settings())


@pytest.fixture
def sample_entry():
    return GradeEntry("s001", "math", "10A1", "p001", ComponentType.REGULAR_1, "7.25")


@pytest.fixture
def grade(grade_store):
    def write(student_id, subject_id, component_type, value, class_id="10A1"):
        response = grade_store.upsert(
            student_id, subject_id, class_id, "p001", component_type, value
        )
        assert response.success, response.detail
        return response.data["record"]

    return write


@pytest.fixture
def fully_graded(grade):
    for student_id in ("s001", "s002"):
        for subject_id in SUBJECTS:
            grade(student_id, subject_id, ComponentType.REGULAR_1, 7)
