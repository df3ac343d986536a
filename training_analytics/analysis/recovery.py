"""Fatigue and recovery estimation per muscle group.

The fatigue score weights raw weekly volume, weekly frequency and a 0-1
intensity term without rescaling them to a common range, so in practice
volume dominates the score.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..config import AnalysisThresholds, config
from .muscle_aggregator import MuscleGroupSnapshot

READY = 'ready'
CAUTION = 'caution'
NEEDS_REST = 'needs_rest'

FATIGUE_LEVELS = ('low', 'moderate', 'high')


@dataclass(frozen=True)
class RecoveryState:
    status: str
    suggested_rest_days: int
    recovery_days_needed: int
    days_since_last_trained: Optional[int]


class RecoveryEstimator:
    """Derives fatigue buckets and readiness from a muscle group snapshot."""

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None):
        self.thresholds = thresholds or config.thresholds

    def fatigue_score(self, weekly_volume: float, weekly_frequency: int, average_intensity: float) -> float:
        t = self.thresholds
        return (
            weekly_volume * t.fatigue_volume_weight
            + weekly_frequency * t.fatigue_frequency_weight
            + average_intensity * t.fatigue_intensity_weight
        )

    def fatigue_level(self, weekly_volume: float, weekly_frequency: int, average_intensity: float) -> str:
        score = self.fatigue_score(weekly_volume, weekly_frequency, average_intensity)
        if score > self.thresholds.fatigue_high:
            return 'high'
        if score > self.thresholds.fatigue_moderate:
            return 'moderate'
        return 'low'

    def fatigue_risk(self, level: str, weekly_frequency: int) -> str:
        """One level above the current fatigue when training very often."""
        if weekly_frequency > self.thresholds.fatigue_risk_frequency:
            index = FATIGUE_LEVELS.index(level)
            return FATIGUE_LEVELS[min(index + 1, len(FATIGUE_LEVELS) - 1)]
        return level

    def recovery_days_needed(self, weekly_volume: float, average_intensity: float) -> int:
        t = self.thresholds
        days = t.base_recovery_days
        if weekly_volume > t.recovery_volume_threshold:
            days += 1
        if average_intensity > t.recovery_intensity_threshold:
            days += 1
        return days

    def recovery_state(
        self,
        last_trained: Optional[datetime],
        weekly_volume: float,
        average_intensity: float,
        now: datetime,
    ) -> RecoveryState:
        """Readiness from whole days since the group was last trained."""
        needed = self.recovery_days_needed(weekly_volume, average_intensity)
        if last_trained is None:
            return RecoveryState(READY, 0, needed, None)

        days_since = max(0, math.floor((now - last_trained).total_seconds() / 86400))

        if days_since < needed:
            return RecoveryState(NEEDS_REST, needed - days_since, needed, days_since)
        if days_since == needed:
            return RecoveryState(CAUTION, 1, needed, days_since)
        return RecoveryState(READY, 0, needed, days_since)

    def apply(self, snapshots: Iterable[MuscleGroupSnapshot], now: datetime) -> None:
        """Fill fatigue and recovery fields of freshly aggregated snapshots."""
        for snapshot in snapshots:
            snapshot.fatigue = self.fatigue_level(
                snapshot.weekly_volume, snapshot.weekly_frequency, snapshot.average_intensity
            )
            snapshot.fatigue_risk = self.fatigue_risk(snapshot.fatigue, snapshot.weekly_frequency)

            state = self.recovery_state(
                snapshot.last_trained, snapshot.weekly_volume, snapshot.average_intensity, now
            )
            snapshot.recovery_status = state.status
            snapshot.suggested_rest_days = state.suggested_rest_days

    def training_recovery_status(self, deload_count: int) -> str:
        """Training-wide status from the number of exercises flagged for deload."""
        if deload_count >= self.thresholds.deload_attention_count:
            return 'needs_attention'
        if deload_count >= self.thresholds.deload_moderate_count:
            return 'moderate'
        return 'good'
