from datetime import datetime, timedelta

import pytest

from domora.core.errors import TaskActionError
from domora.core.task_lifecycle import (
    complete_task,
    delay_minutes,
    pimpers_for_completion,
    reopen_due,
    skip_task,
    takeover_task,
)
from domora.tasks.models import Task

DUE = datetime(2024, 5, 1, 9, 0)


def make_task(**kwargs):
    fields = dict(
        id="t1",
        household_id="h",
        title="Bathroom",
        due_at=DUE,
        frequency_days=7,
        effort_pimpers=3,
        rotation_user_ids=["a", "b"],
        assignee_id="a",
        grace_minutes=0,
    )
    fields.update(kwargs)
    return Task(**fields)


def pick(user_id):
    return lambda completion: user_id


def test_complete_on_time():
    result = complete_task(make_task(), "a", DUE, pick("b"))

    assert result.pimpers_earned == 3
    assert result.completion.delay_minutes == 0
    assert result.completion.due_at_snapshot == DUE
    assert result.task.done is True
    assert result.task.done_by == "a"
    assert result.task.assignee_id == "b"
    assert result.task.due_at == DUE + timedelta(days=7)


def test_complete_late_applies_penalty():
    task = make_task(delay_penalty_per_day=1.0)
    result = complete_task(task, "a", DUE + timedelta(days=2), pick("b"))

    assert result.completion.delay_minutes == 2880
    assert result.pimpers_earned == 1.0
    # cadence is kept no matter how late
    assert result.task.due_at == DUE + timedelta(days=7)


def test_penalty_never_goes_below_zero():
    task = make_task(delay_penalty_per_day=5.0)
    assert pimpers_for_completion(task, delay_minutes(task, DUE + timedelta(days=10))) == 0.0


def test_grace_period_and_penalty_waiver():
    task = make_task(grace_minutes=60, delay_penalty_per_day=1.0)
    assert delay_minutes(task, DUE + timedelta(minutes=30)) == 0
    assert delay_minutes(task, DUE + timedelta(minutes=90)) == 30

    waived = task.evolve(ignore_delay_penalty_once=True)
    result = complete_task(waived, "a", DUE + timedelta(days=3), pick("b"))
    assert result.pimpers_earned == 3
    assert result.task.ignore_delay_penalty_once is False


def test_picker_sees_the_completion():
    seen = []
    complete_task(make_task(), "a", DUE, lambda completion: seen.append(completion) or "b")
    assert seen[0].user_id == "a"
    assert seen[0].pimpers_earned == 3


def test_complete_guards():
    with pytest.raises(TaskActionError):
        complete_task(make_task(is_active=False), "a", DUE, pick("b"))
    with pytest.raises(TaskActionError):
        complete_task(make_task(done=True), "a", DUE, pick("b"))
    with pytest.raises(TaskActionError):
        complete_task(make_task(), "b", DUE, pick("b"))
    with pytest.raises(TaskActionError):
        complete_task(make_task(), "a", DUE - timedelta(hours=25), pick("b"))


def test_complete_allowed_a_day_early():
    result = complete_task(make_task(), "a", DUE - timedelta(hours=23), pick("b"))
    assert result.task.done is True


def test_skip_keeps_cadence_and_awards_nothing():
    result = skip_task(make_task(), "a", DUE + timedelta(days=3), pick("b"))

    assert result.completion is None
    assert result.pimpers_earned == 0.0
    assert result.task.due_at == DUE + timedelta(days=7)
    assert result.task.assignee_id == "b"
    assert result.task.done is False


def test_skip_before_due_is_rejected():
    with pytest.raises(TaskActionError):
        skip_task(make_task(), "a", DUE - timedelta(minutes=1), pick("b"))


def test_takeover():
    result = takeover_task(make_task(), "b")
    assert result.task.assignee_id == "b"
    assert result.task.due_at == DUE

    with pytest.raises(TaskActionError):
        takeover_task(make_task(), "a")
    with pytest.raises(TaskActionError):
        takeover_task(make_task(done=True), "b")


def test_reopen_due():
    done = make_task(done=True, done_by="a", done_at=DUE)
    assert reopen_due(done, DUE - timedelta(minutes=1)).done is True

    reopened = reopen_due(done, DUE)
    assert reopened.done is False
    assert reopened.done_by is None
