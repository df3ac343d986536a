"""Muscle group aggregation over a session window.

The aggregation is a pure function of the sessions it is given: every call
builds fresh snapshots, so regenerating a report is idempotent.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..config import config
from ..types import CompletedSession
from .volume import percent_change, session_volume

logger = logging.getLogger(__name__)

MUSCLE_CATEGORIES = {
    'push': ('chest', 'shoulders', 'triceps'),
    'pull': ('back', 'biceps', 'traps'),
    'legs': ('legs', 'quadriceps', 'hamstrings', 'calves', 'glutes'),
    'core': ('core', 'abs', 'obliques', 'lower back'),
}


def muscle_category(muscle_group: str) -> str:
    """Movement pattern of a muscle group: push, pull, legs, core or other."""
    name = muscle_group.strip().lower()
    for category, muscles in MUSCLE_CATEGORIES.items():
        if name in muscles:
            return category
    return 'other'


@dataclass
class MuscleGroupSnapshot:
    """Per muscle group training state within the analysis window."""
    name: str
    category: str
    weekly_volume: float = 0.0
    monthly_volume: float = 0.0
    weekly_frequency: int = 0
    monthly_frequency: int = 0
    last_trained: Optional[datetime] = None
    average_intensity: float = 0.0  # 0-1, set weight relative to the heaviest set of the exercise
    volume_progression: float = 0.0  # % change, older vs newer half of the window
    strength_progression: float = 0.0  # % change of mean working weight
    fatigue: str = 'low'
    fatigue_risk: str = 'low'
    recovery_status: str = 'ready'
    suggested_rest_days: int = 0

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'category': self.category,
            'metrics': {
                'weekly_volume': self.weekly_volume,
                'monthly_volume': self.monthly_volume,
                'weekly_frequency': self.weekly_frequency,
                'monthly_frequency': self.monthly_frequency,
                'average_intensity': self.average_intensity,
                'volume_progression': self.volume_progression,
                'strength_progression': self.strength_progression,
            },
            'fatigue': {
                'current': self.fatigue,
                'risk': self.fatigue_risk,
            },
            'recovery': {
                'status': self.recovery_status,
                'last_trained': self.last_trained.isoformat() if self.last_trained else None,
                'suggested_rest_days': self.suggested_rest_days,
            },
        }


@dataclass
class MusclePairVolume:
    """Volume credited to each side of a primary/secondary muscle pair."""
    muscle_a: str
    muscle_b: str
    volume_a: float = 0.0
    volume_b: float = 0.0


@dataclass(frozen=True)
class ExerciseSessionVolume:
    """Volume of one exercise in one session."""
    exercise_id: int
    exercise_name: str
    muscle_group: str
    session_id: int
    completed_at: datetime
    volume: float


@dataclass
class AggregationResult:
    snapshots: Dict[str, MuscleGroupSnapshot]  # ordered by name
    pairs: List[MusclePairVolume]  # ordered by (muscle_a, muscle_b)
    exercise_volumes: List[ExerciseSessionVolume] = field(default_factory=list)
    skipped_entries: int = 0


@dataclass
class _GroupAccumulator:
    older_volume: float = 0.0
    newer_volume: float = 0.0
    older_weights: List[float] = field(default_factory=list)
    newer_weights: List[float] = field(default_factory=list)
    intensities: List[float] = field(default_factory=list)


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


class MuscleGroupAggregator:
    """Rolls a session window into per muscle group snapshots."""

    def __init__(self, window_days: Optional[int] = None, weekly_days: Optional[int] = None):
        self.window_days = window_days if window_days is not None else config.ANALYSIS_WINDOW_DAYS
        self.weekly_days = weekly_days if weekly_days is not None else config.WEEKLY_WINDOW_DAYS

    def aggregate(self, sessions: Iterable[CompletedSession], now: datetime) -> AggregationResult:
        """Aggregate the sessions that fall inside the window ending at `now`."""
        window_start = now - timedelta(days=self.window_days)
        weekly_start = now - timedelta(days=self.weekly_days)
        midpoint = now - timedelta(days=self.window_days / 2)

        in_window = [s for s in sessions if window_start <= s.completed_at <= now]
        heaviest = self._heaviest_weights(in_window)

        snapshots: Dict[str, MuscleGroupSnapshot] = {}
        accumulators: Dict[str, _GroupAccumulator] = {}
        pairs: Dict[Tuple[str, str], MusclePairVolume] = {}
        received: Dict[str, float] = {}  # volume per muscle trained as group or primary mover
        exercise_volumes = []
        skipped = 0

        for session in in_window:
            for entry in session.exercises:
                definition = entry.definition
                if entry.exercise_id is None or definition is None or not definition.muscle_group:
                    logger.warning(
                        f"Session {session.id}: skipping exercise without a valid reference ({entry.display_name})"
                    )
                    skipped += 1
                    continue

                group = definition.muscle_group
                volume = session_volume(entry.sets)
                exercise_volumes.append(ExerciseSessionVolume(
                    entry.exercise_id, definition.name, group, session.id, session.completed_at, volume
                ))

                snapshot = snapshots.get(group)
                if snapshot is None:
                    snapshot = snapshots[group] = MuscleGroupSnapshot(name=group, category=muscle_category(group))
                    accumulators[group] = _GroupAccumulator()
                acc = accumulators[group]

                snapshot.monthly_volume += volume
                snapshot.monthly_frequency += 1
                if session.completed_at >= weekly_start:
                    snapshot.weekly_volume += volume
                    snapshot.weekly_frequency += 1

                if snapshot.last_trained is None or session.completed_at > snapshot.last_trained:
                    snapshot.last_trained = session.completed_at

                weights = [float(s.weight) for s in entry.sets if s.completed and s.weight > 0]
                if session.completed_at >= midpoint:
                    acc.newer_volume += volume
                    acc.newer_weights.extend(weights)
                else:
                    acc.older_volume += volume
                    acc.older_weights.extend(weights)

                top = heaviest.get(entry.exercise_id, 0.0)
                if top > 0:
                    acc.intensities.extend(w / top for w in weights)

                trained = {group.lower()} | {m.lower() for m in definition.primary_muscles}
                for muscle in trained:
                    received[muscle] = received.get(muscle, 0.0) + volume

                for primary in definition.primary_muscles:
                    for secondary in definition.secondary_muscles:
                        if (primary, secondary) not in pairs:
                            pairs[(primary, secondary)] = MusclePairVolume(primary, secondary)

        for pair in pairs.values():
            pair.volume_a = received.get(pair.muscle_a.lower(), 0.0)
            pair.volume_b = received.get(pair.muscle_b.lower(), 0.0)

        for group, snapshot in snapshots.items():
            acc = accumulators[group]
            snapshot.average_intensity = _mean(acc.intensities)
            snapshot.volume_progression = percent_change(acc.older_volume, acc.newer_volume)
            snapshot.strength_progression = percent_change(_mean(acc.older_weights), _mean(acc.newer_weights))

        return AggregationResult(
            snapshots={name: snapshots[name] for name in sorted(snapshots)},
            pairs=[pairs[key] for key in sorted(pairs)],
            exercise_volumes=exercise_volumes,
            skipped_entries=skipped,
        )

    @staticmethod
    def _heaviest_weights(sessions: List[CompletedSession]) -> Dict[int, float]:
        """Heaviest completed weight per exercise across the window."""
        heaviest: Dict[int, float] = {}
        for session in sessions:
            for entry in session.exercises:
                if entry.exercise_id is None:
                    continue
                for s in entry.sets:
                    if s.completed and s.weight > heaviest.get(entry.exercise_id, 0.0):
                        heaviest[entry.exercise_id] = float(s.weight)
        return heaviest
