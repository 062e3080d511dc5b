"""Pimper leaderboard, member of the month and workload forecast."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from .fairness import active_rotation, scaled_score


@dataclass(frozen=True)
class MemberOfMonth:
    user_id: str
    total_pimpers: float
    average_delay_minutes: float
    completion_count: int

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "total_pimpers": round(self.total_pimpers, 2),
            "average_delay_minutes": round(self.average_delay_minutes, 1),
            "completion_count": self.completion_count,
        }


def member_of_month(completions: Iterable, start: datetime, end: datetime) -> Optional[MemberOfMonth]:
    """
    Best member among completions in [start, end].

    Most points wins, then the lowest average delay, then the user id.
    """
    stats: Dict[str, List[float]] = {}
    for completion in completions:
        if completion.completed_at < start or completion.completed_at > end:
            continue
        row = stats.setdefault(completion.user_id, [0.0, 0.0, 0])
        row[0] += max(0.0, completion.pimpers_earned)
        row[1] += max(0, completion.delay_minutes or 0)
        row[2] += 1

    if not stats:
        return None

    rows = [
        MemberOfMonth(
            user_id=user_id,
            total_pimpers=total,
            average_delay_minutes=delay / count if count else 0.0,
            completion_count=count,
        )
        for user_id, (total, delay, count) in stats.items()
    ]
    rows.sort(key=lambda r: (-r.total_pimpers, r.average_delay_minutes, r.user_id))
    return rows[0]


def pimper_leaderboard(members: Iterable, laziness_enabled: bool = True) -> List[Dict]:
    """
    Members ranked by laziness-scaled pimpers, highest first.

    The stored total is reported untouched next to the scaled one; members
    with a laziness factor of 0 have no scaled score and go last.
    """
    rows = []
    for member in members:
        factor = member.task_laziness_factor if laziness_enabled else 1.0
        rows.append({
            "user_id": member.user_id,
            "total_pimpers": round(member.total_pimpers, 2),
            "task_laziness_factor": factor,
            "scaled_pimpers": scaled_score(member.total_pimpers, factor),
        })

    rows.sort(key=lambda r: (
        r["scaled_pimpers"] is None,
        -(r["scaled_pimpers"] or 0.0),
        r["user_id"],
    ))
    for row in rows:
        if row["scaled_pimpers"] is not None:
            row["scaled_pimpers"] = round(row["scaled_pimpers"], 2)
    return rows


def forecast_workload(
    tasks: Sequence,
    member_ids: Sequence[str],
    horizon_days: int,
    members: Optional[Dict] = None
) -> Dict[str, float]:
    """
    Points each member is expected to earn over the next ``horizon_days``.

    Every active task fires ``floor(horizon / interval)`` times and its
    effort is spread evenly over its rotation.
    """
    forecast = {member_id: 0.0 for member_id in member_ids}
    for task in tasks:
        if not task.is_active:
            continue
        rotation = active_rotation(task.rotation_user_ids, members)
        if not rotation:
            continue
        occurrences = max(math.floor(horizon_days / max(task.interval_days, 1)), 0)
        share = occurrences * max(task.effort_pimpers, 1) / len(rotation)
        for member_id in rotation:
            forecast[member_id] = forecast.get(member_id, 0.0) + share

    return {member_id: round(value, 2) for member_id, value in forecast.items()}
