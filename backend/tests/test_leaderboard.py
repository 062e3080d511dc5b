from datetime import datetime

from domora.core.leaderboard import forecast_workload, member_of_month, pimper_leaderboard
from domora.households.models import HouseholdMember
from domora.tasks.models import Task, TaskCompletion

START = datetime(2024, 5, 1)
END = datetime(2024, 5, 31, 23, 59, 59)


def completion(user_id, points, delay, day=10):
    return TaskCompletion(
        task_id="t",
        household_id="h",
        task_title_snapshot="Dishes",
        user_id=user_id,
        pimpers_earned=points,
        due_at_snapshot=None,
        delay_minutes=delay,
        completed_at=datetime(2024, 5, day, 12, 0),
    )


def test_member_of_month_most_points():
    winner = member_of_month([completion("a", 3, 0), completion("b", 5, 100)], START, END)
    assert winner.user_id == "b"
    assert winner.completion_count == 1


def test_member_of_month_ties_go_to_lower_delay():
    winner = member_of_month([completion("a", 4, 120), completion("b", 4, 30)], START, END)
    assert winner.user_id == "b"
    assert winner.to_dict()["average_delay_minutes"] == 30.0


def test_member_of_month_ignores_other_months():
    outside = TaskCompletion(**{**completion("a", 50, 0).__dict__, "completed_at": datetime(2024, 6, 1)})
    assert member_of_month([outside], START, END) is None


def test_leaderboard_scales_by_laziness():
    members = [
        HouseholdMember(household_id="h", user_id="a", total_pimpers=10, task_laziness_factor=2.0),
        HouseholdMember(household_id="h", user_id="b", total_pimpers=8, task_laziness_factor=1.0),
        HouseholdMember(household_id="h", user_id="c", total_pimpers=99, task_laziness_factor=0.0),
    ]
    rows = pimper_leaderboard(members, laziness_enabled=True)

    assert [r["user_id"] for r in rows] == ["b", "a", "c"]
    assert rows[1]["scaled_pimpers"] == 5.0
    assert rows[2]["scaled_pimpers"] is None
    assert rows[2]["total_pimpers"] == 99

    unscaled = pimper_leaderboard(members, laziness_enabled=False)
    assert [r["user_id"] for r in unscaled] == ["c", "a", "b"]


def test_forecast_workload():
    tasks = [
        Task(id="t1", household_id="h", title="Trash", due_at=START, frequency_days=2,
             effort_pimpers=2, rotation_user_ids=["a", "b"]),
        Task(id="t2", household_id="h", title="Plants", due_at=START, frequency_days=7,
             effort_pimpers=1, rotation_user_ids=["b"], is_active=False),
    ]
    # floor(14 / 2) * 2 / 2 = 7 each
    assert forecast_workload(tasks, ["a", "b", "c"], 14) == {"a": 7.0, "b": 7.0, "c": 0.0}
