"""Volume helpers shared by the analysis components."""

from dataclasses import dataclass
from typing import Iterable

from ..types import SetEntry


@dataclass(frozen=True)
class ExerciseMetrics:
    """Best values of one exercise within one session."""
    max_weight: float
    max_reps: float
    max_set_volume: float
    session_volume: float


def set_volume(entry: SetEntry) -> float:
    """weight x reps for a completed set, 0 otherwise."""
    if not entry.completed:
        return 0.0
    return float(entry.weight) * float(entry.reps)


def session_volume(sets: Iterable[SetEntry]) -> float:
    """Total volume of the completed sets of one exercise."""
    return sum((set_volume(s) for s in sets), 0.0)


def exercise_metrics(sets: Iterable[SetEntry]) -> ExerciseMetrics:
    """Compute the record candidates of one exercise over its completed sets."""
    max_weight = 0.0
    max_reps = 0.0
    max_set = 0.0
    total = 0.0

    for entry in sets:
        if not entry.completed:
            continue
        volume = set_volume(entry)
        max_weight = max(max_weight, float(entry.weight))
        max_reps = max(max_reps, float(entry.reps))
        max_set = max(max_set, volume)
        total += volume

    return ExerciseMetrics(
        max_weight=max_weight,
        max_reps=max_reps,
        max_set_volume=max_set,
        session_volume=total,
    )


def percent_change(old: float, new: float) -> float:
    """Percentage change from old to new; 0 when old is 0."""
    if not old:
        return 0.0
    return (new - old) / old * 100
