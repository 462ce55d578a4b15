"""Unit tests for the CourseTasksService (temporal queries and CRUD).

Focus:
    - Temporal filters (started, in progress, finished) and their ordering
    - Recently updated and deadline-pending lookups
    - Input validation codes for create/update
    - Idempotent disable
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from backend.schedule.models import Checker, CourseTask, Person, TaskTemplate
from backend.schedule.repo_memory import InMemoryScheduleRepo
from backend.schedule.services.course_tasks import CourseTasksService

NOW = datetime(2023, 3, 1, 12, 0, tzinfo=timezone.utc)


def _repo() -> InMemoryScheduleRepo:
    repo = InMemoryScheduleRepo()
    repo.add_task_template(TaskTemplate(id=1, name="Alpha"))
    repo.add_task_template(TaskTemplate(id=2, name="Beta"))
    repo.add_person(Person(id=7, github_id="owner-7"))
    # past, finished
    repo.course_tasks[1] = CourseTask(
        id=1,
        course_id=1,
        task_id=2,
        student_start_date=NOW - timedelta(days=10),
        student_end_date=NOW - timedelta(days=5),
        updated_at=NOW - timedelta(days=5),
    )
    # running, deadline in 12h
    repo.course_tasks[2] = CourseTask(
        id=2,
        course_id=1,
        task_id=2,
        student_start_date=NOW - timedelta(days=1),
        student_end_date=NOW + timedelta(hours=12),
        updated_at=NOW - timedelta(hours=1),
    )
    # running, same deadline, earlier name
    repo.course_tasks[3] = CourseTask(
        id=3,
        course_id=1,
        task_id=1,
        student_start_date=NOW - timedelta(days=1),
        student_end_date=NOW + timedelta(hours=12),
        checker=Checker.TaskOwner.value,
        task_owner_id=7,
    )
    # future
    repo.course_tasks[4] = CourseTask(
        id=4,
        course_id=1,
        task_id=1,
        student_start_date=NOW + timedelta(days=2),
        student_end_date=NOW + timedelta(days=9),
    )
    # disabled, recently updated
    repo.course_tasks[5] = CourseTask(
        id=5,
        course_id=1,
        task_id=1,
        student_start_date=NOW - timedelta(days=1),
        student_end_date=NOW + timedelta(hours=2),
        disabled=True,
        updated_at=NOW - timedelta(hours=2),
        checker=Checker.TaskOwner.value,
        task_owner_id=7,
    )
    # no window
    repo.course_tasks[6] = CourseTask(id=6, course_id=1, task_id=1)
    # other course
    repo.course_tasks[7] = CourseTask(
        id=7, course_id=2, task_id=1, student_start_date=NOW - timedelta(days=1), student_end_date=NOW
    )
    return repo


def _service(repo=None) -> CourseTasksService:
    return CourseTasksService(repo or _repo(), clock=lambda: NOW)


def test_get_all_orders_by_end_date_then_name_with_nulls_last():
    ids = [t.id for t in _service().get_all(1)]
    assert ids == [1, 3, 2, 4, 6]


def test_get_all_started():
    assert [t.id for t in _service().get_all(1, "started")] == [1, 3, 2]


def test_get_all_in_progress():
    assert [t.id for t in _service().get_all(1, "inprogress")] == [3, 2]


def test_get_all_finished():
    assert [t.id for t in _service().get_all(1, "finished")] == [1]


def test_get_all_rejects_unknown_status():
    with pytest.raises(ValueError) as exc:
        _service().get_all(1, "someday")
    assert str(exc.value) == "invalid_status"


def test_updated_tasks_include_disabled():
    ids = [t.id for t in _service().get_updated_tasks(1, 3)]
    assert ids == [2, 5]


@pytest.mark.parametrize("hours", [0, -1, "abc", None, True, "inf", "nan", float("inf"), "100000000"])
def test_updated_tasks_reject_invalid_hours(hours):
    with pytest.raises(ValueError) as exc:
        _service().get_updated_tasks(1, hours)
    assert str(exc.value) == "invalid_last_hours"


def test_pending_deadline_uses_configured_default_window():
    service = CourseTasksService(_repo(), clock=lambda: NOW, pending_deadline_hours=24)
    assert [t.id for t in service.get_tasks_pending_deadline(1)] == [2, 3]
    assert [t.id for t in service.get_tasks_pending_deadline(1, 6)] == []
    assert {t.id for t in service.get_tasks_pending_deadline(1, "13")} == {2, 3}


@pytest.mark.parametrize("hours", [0, "-3", "inf", "nan", 1e8])
def test_pending_deadline_rejects_invalid_hours(hours):
    with pytest.raises(ValueError) as exc:
        _service().get_tasks_pending_deadline(1, hours)
    assert str(exc.value) == "invalid_deadline_hours"


def _boundary_service() -> CourseTasksService:
    repo = InMemoryScheduleRepo()
    repo.add_task_template(TaskTemplate(id=1, name="Alpha"))
    start = NOW - timedelta(days=1)
    # deadline exactly now
    repo.course_tasks[20] = CourseTask(id=20, course_id=1, task_id=1, student_start_date=start, student_end_date=NOW)
    # deadline exactly at the end of a 24h window
    repo.course_tasks[21] = CourseTask(
        id=21, course_id=1, task_id=1, student_start_date=start, student_end_date=NOW + timedelta(hours=24)
    )
    repo.course_tasks[22] = CourseTask(
        id=22, course_id=1, task_id=1, student_start_date=start, student_end_date=NOW - timedelta(seconds=1)
    )
    # starts exactly now
    repo.course_tasks[23] = CourseTask(
        id=23, course_id=1, task_id=1, student_start_date=NOW, student_end_date=NOW + timedelta(hours=1)
    )
    return CourseTasksService(repo, clock=lambda: NOW)


def test_in_progress_excludes_task_ending_now():
    assert [t.id for t in _boundary_service().get_all(1, "inprogress")] == [23, 21]


def test_finished_requires_end_strictly_before_now():
    assert [t.id for t in _boundary_service().get_all(1, "finished")] == [22]


def test_started_includes_task_starting_now():
    assert [t.id for t in _boundary_service().get_all(1, "started")] == [22, 20, 23, 21]


def test_pending_deadline_window_is_inclusive_at_both_ends():
    service = _boundary_service()
    assert [t.id for t in service.get_tasks_pending_deadline(1, 24)] == [20, 23, 21]
    assert [t.id for t in service.get_tasks_pending_deadline(1, 23)] == [20, 23]

def test_get_by_owner_matches_task_owner_checker_across_disabled():
    ids = [t.id for t in _service().get_by_owner("owner-7")]
    assert ids == [3, 5]
    assert _service().get_by_owner("nobody") == []
    assert _service().get_by_owner("  ") == []


def test_get_by_id_unknown_raises_lookup_error():
    with pytest.raises(LookupError) as exc:
        _service().get_by_id(999)
    assert str(exc.value) == "course_task_not_found"


def test_get_by_id_expands_template():
    task = _service().get_by_id(3)
    assert task.task is not None and task.task.name == "Alpha"
    assert task.task_owner is not None and task.task_owner.github_id == "owner-7"


def test_create_normalizes_and_defaults_checker():
    repo = _repo()
    created = _service(repo).create(
        1,
        task_id=2,
        student_start_date="2023-03-05T00:00:00+00:00",
        student_end_date="2023-03-12T00:00:00+01:00",
        max_score="50",
        type="  ",
    )
    assert created.id is not None and created.id in repo.course_tasks
    assert created.checker == Checker.AutoTest.value
    assert created.max_score == 50.0
    assert created.type is None
    assert created.student_end_date == datetime(2023, 3, 11, 23, 0, tzinfo=timezone.utc)
    assert created.task is not None and created.task.name == "Beta"


@pytest.mark.parametrize(
    "fields,code",
    [
        ({}, "invalid_task_id"),
        ({"task_id": 0}, "invalid_task_id"),
        ({"task_id": 1, "student_start_date": "yesterday"}, "invalid_student_start_date"),
        ({"task_id": 1, "student_end_date": "2023-03-01T00:00:00"}, "invalid_student_end_date"),
        (
            {
                "task_id": 1,
                "student_start_date": "2023-03-10T00:00:00+00:00",
                "student_end_date": "2023-03-01T00:00:00+00:00",
            },
            "invalid_student_window",
        ),
        (
            {
                "task_id": 1,
                "mentor_start_date": "2023-03-10T00:00:00+00:00",
                "mentor_end_date": "2023-03-01T00:00:00+00:00",
            },
            "invalid_mentor_window",
        ),
        ({"task_id": 1, "max_score": -1}, "invalid_max_score"),
        ({"task_id": 1, "score_weight": "x"}, "invalid_score_weight"),
        ({"task_id": 1, "checker": "robot"}, "invalid_checker"),
        ({"task_id": 1, "pair_count": 0}, "invalid_pair_count"),
    ],
)
def test_create_validation_codes(fields, code):
    with pytest.raises(ValueError) as exc:
        _service().create(1, **fields)
    assert str(exc.value) == code


def test_update_changes_only_provided_fields():
    repo = _repo()
    before = repo.course_tasks[2]
    updated = _service(repo).update(2, max_score=10, checker=Checker.Mentor.value)
    assert updated.max_score == 10.0
    assert updated.checker == Checker.Mentor.value
    assert updated.student_end_date == before.student_end_date
    assert updated.task_id == before.task_id


def test_update_explicit_none_clears_optional_field():
    repo = _repo()
    updated = _service(repo).update(3, task_owner_id=None)
    assert updated.task_owner_id is None and updated.task_owner is None


def test_update_validates_against_stored_window():
    with pytest.raises(ValueError) as exc:
        _service().update(2, student_start_date="2023-04-01T00:00:00+00:00")
    assert str(exc.value) == "invalid_student_window"


def test_update_rejects_clearing_required_fields():
    with pytest.raises(ValueError):
        _service().update(2, checker=None)
    with pytest.raises(ValueError):
        _service().update(2, task_id=None)


def test_update_unknown_task_raises_lookup_error():
    with pytest.raises(LookupError):
        _service().update(999, max_score=1)


def test_disable_is_idempotent():
    repo = _repo()
    service = _service(repo)
    service.disable(2)
    service.disable(2)
    assert repo.course_tasks[2].disabled is True
    assert 2 not in {t.id for t in service.get_all(1)}


def test_disable_unknown_task_raises_lookup_error():
    with pytest.raises(LookupError):
        _service().disable(999)
