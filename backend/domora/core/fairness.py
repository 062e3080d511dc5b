"""
Task fairness / rotation scorer.

Responsibilities:
- Scale stored pimper totals by each member's laziness factor
- Project the points a member will collect from their other tasks
  before it is their turn again
- Pick the next assignee of a task from its rotation
- Lift members returning from vacation to the household average

Members are looked up by user id and only need ``total_pimpers``,
``task_laziness_factor`` and ``vacation_mode``. Tasks need
``rotation_user_ids``, ``assignee_id``, ``interval_days``,
``effort_pimpers`` and ``is_active``.
"""
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from domora.utils.enums import FairnessMode

from .errors import EmptyRotation
from .finance_math import unique_ids

MINUTES_PER_DAY = 1440.0


def scaled_score(raw_points: float, laziness_factor: Optional[float]) -> Optional[float]:
    """
    Points divided by the laziness factor.

    A factor of 0 (or missing) takes the member out of the fairness
    comparison and returns None.
    """
    if laziness_factor is None or laziness_factor <= 0:
        return None
    return float(raw_points) / float(laziness_factor)


def next_assignee(
    rotation: Sequence[str],
    scores: Mapping[str, float],
    laziness: Optional[Mapping[str, float]] = None,
    exclude: Optional[str] = None
) -> str:
    """
    Rotation member with the lowest scaled score.

    Members whose score cannot be scaled rank after everyone else. Ties
    fall back to rotation position, then to the id. ``exclude`` (usually the
    current assignee) is only honoured while someone else is available.

    Raises:
        EmptyRotation: the rotation has no members
    """
    members = unique_ids(rotation)
    if not members:
        raise EmptyRotation("Cannot pick an assignee from an empty rotation")

    position = {member_id: index for index, member_id in enumerate(members)}
    candidates = [m for m in members if m != exclude] or members
    laziness = laziness or {}

    def rank(member_id):
        score = scaled_score(scores.get(member_id, 0.0), laziness.get(member_id, 1.0))
        return (score is None, score if score is not None else 0.0, position[member_id], member_id)

    return min(candidates, key=rank)


def active_rotation(rotation: Sequence[str], members: Optional[Mapping] = None) -> List[str]:
    """Rotation without vacationing members, unless everyone is away."""
    ids = unique_ids(rotation)
    if members is None:
        return ids
    present = [m for m in ids if not getattr(members.get(m), "vacation_mode", False)]
    return present or ids


def turns_until_turn(rotation: Sequence[str], member_id: str, current_assignee_id: Optional[str]) -> int:
    """How many rotation steps lie between the current assignee and ``member_id``."""
    ids = list(rotation)
    if not ids or member_id not in ids:
        return 0
    current_index = ids.index(current_assignee_id) if current_assignee_id in ids else 0
    return (ids.index(member_id) - current_index) % len(ids)


def advance_rotation(rotation: Sequence[str], current_assignee_id: Optional[str]) -> str:
    """Plain round robin: the member after the current assignee."""
    ids = unique_ids(rotation)
    if not ids:
        raise EmptyRotation("Cannot advance an empty rotation")
    if current_assignee_id not in ids:
        return ids[0]
    return ids[(ids.index(current_assignee_id) + 1) % len(ids)]


def projected_points_until_turn(
    member_id: str,
    horizon_days: float,
    other_tasks: Iterable,
    members: Optional[Mapping] = None
) -> float:
    """
    Points a member is expected to collect from other tasks within the horizon.

    Each other active task containing the member contributes
    ``floor(horizon / interval) * effort / rotation_size``; the effort is
    assumed to be spread evenly over its rotation.
    """
    total = 0.0
    for task in other_tasks:
        if not task.is_active:
            continue
        rotation = active_rotation(task.rotation_user_ids, members)
        if member_id not in rotation:
            continue
        occurrences = max(math.floor(horizon_days / max(task.interval_days, 1)), 0)
        total += occurrences * max(task.effort_pimpers, 1) / len(rotation)
    return total


def candidate_scores(
    task,
    rotation: Sequence[str],
    members: Mapping,
    other_tasks: Sequence = (),
    avg_delay_minutes: Optional[Mapping[str, float]] = None
) -> Dict[str, float]:
    """Unscaled score per rotation member for the task's fairness mode."""
    mode = FairnessMode(task.assignee_fairness_mode)
    avg_delay_minutes = avg_delay_minutes or {}
    others = [t for t in other_tasks if t.id != task.id]

    scores = {}
    for member_id in rotation:
        member = members.get(member_id)
        current = float(member.total_pimpers) if member else 0.0
        if mode == FairnessMode.ACTUAL:
            scores[member_id] = current
            continue

        horizon = turns_until_turn(rotation, member_id, task.assignee_id) * task.interval_days
        if mode == FairnessMode.EXPECTED:
            horizon = max(horizon - avg_delay_minutes.get(member_id, 0.0) / MINUTES_PER_DAY, 0.0)
        scores[member_id] = current + projected_points_until_turn(member_id, horizon, others, members)

    return scores


def choose_next_assignee(
    task,
    members: Mapping,
    other_tasks: Sequence = (),
    laziness_enabled: bool = True,
    avg_delay_minutes: Optional[Mapping[str, float]] = None
) -> str:
    """
    Pick who gets the task after the current due instance.

    With ``prioritize_low_pimpers`` off the rotation simply advances.
    Otherwise the member with the lowest laziness-scaled score wins, where
    the score is the stored total (``actual``) or the stored total plus the
    projected points until their turn (``projection`` / ``expected``).
    """
    rotation = active_rotation(task.rotation_user_ids, members)
    if not rotation:
        raise EmptyRotation(f"Task '{task.title}' has no rotation members")

    if not task.prioritize_low_pimpers:
        return advance_rotation(rotation, task.assignee_id)

    scores = candidate_scores(task, rotation, members, other_tasks, avg_delay_minutes)
    laziness = {
        member_id: (members[member_id].task_laziness_factor
                    if laziness_enabled and member_id in members else 1.0)
        for member_id in rotation
    }
    return next_assignee(rotation, scores, laziness, exclude=task.assignee_id)


def _percentile(sorted_values: Sequence[float], fraction: float) -> float:
    position = (len(sorted_values) - 1) * fraction
    lower = math.floor(position)
    upper = math.ceil(position)
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * (position - lower)


def winsorized_mean(values: Iterable[float], lower: float = 0.1, upper: float = 0.9) -> Optional[float]:
    """Mean after capping values to the [p10, p90] band."""
    ordered = sorted(float(v) for v in values)
    if not ordered:
        return None
    low = _percentile(ordered, lower)
    high = _percentile(ordered, upper)
    capped = [min(max(v, low), high) for v in ordered]
    return sum(capped) / len(capped)


def vacation_return_points(current_points: float, other_active_points: Iterable[float]) -> float:
    """Points a member should hold when vacation mode is switched off."""
    mean = winsorized_mean(other_active_points)
    if mean is None:
        return float(current_points)
    return round(max(float(current_points), mean), 2)
