"""Muscle development insights: focus areas, development potential and trends."""

from typing import Callable, Dict, Iterable, List, Optional

from ..config import AnalysisThresholds, config
from ..types import ExerciseDefinition
from .muscle_aggregator import MuscleGroupSnapshot

ExerciseFinder = Callable[[str, int], List[ExerciseDefinition]]


class MuscleInsights:
    """Development insights derived from muscle group snapshots."""

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None, find_exercises: Optional[ExerciseFinder] = None):
        self.thresholds = thresholds or config.thresholds
        self.find_exercises = find_exercises

    # Focus areas

    def needs_focus(self, snapshot: MuscleGroupSnapshot) -> bool:
        per_session = snapshot.weekly_volume / (snapshot.weekly_frequency or 1)
        return per_session < self.thresholds.focus_weekly_volume

    def focus_priority(self, snapshot: MuscleGroupSnapshot) -> int:
        t = self.thresholds
        volume_score = 2 if snapshot.weekly_volume < t.focus_weekly_volume else 1
        frequency_score = 2 if snapshot.weekly_frequency < t.focus_weekly_frequency else 1
        fatigue_score = 2 if snapshot.fatigue == 'low' else 1
        return min(5, volume_score + frequency_score + fatigue_score)

    def focus_reason(self, snapshot: MuscleGroupSnapshot) -> str:
        t = self.thresholds
        reasons = []
        if snapshot.weekly_volume < t.focus_weekly_volume:
            reasons.append('insufficient weekly volume')
        if snapshot.weekly_frequency < t.focus_weekly_frequency:
            reasons.append('low training frequency')
        if snapshot.fatigue == 'low':
            reasons.append('low training stress')
        if not reasons:
            reasons.append('low volume per session')
        return f"Needs attention due to {', '.join(reasons)}"

    def suggested_exercises(self, muscle_group: str) -> List[Dict]:
        if self.find_exercises is None:
            return []
        return [
            {
                'exercise_id': exercise.id,
                'name': exercise.name,
                'reason': f"Effective for targeting {muscle_group}",
            }
            for exercise in self.find_exercises(muscle_group, self.thresholds.focus_max_suggestions)
        ]

    def focus_areas(self, snapshots: Iterable[MuscleGroupSnapshot]) -> List[Dict]:
        return [
            {
                'muscle_group': snapshot.name,
                'priority': self.focus_priority(snapshot),
                'reason': self.focus_reason(snapshot),
                'suggested_exercises': self.suggested_exercises(snapshot.name),
            }
            for snapshot in snapshots
            if self.needs_focus(snapshot)
        ]

    # Development potential

    def development(self, snapshot: MuscleGroupSnapshot) -> int:
        t = self.thresholds
        volume_score = min(100.0, snapshot.monthly_volume / t.development_monthly_volume * 100)
        frequency_score = min(100.0, snapshot.monthly_frequency / t.development_monthly_frequency * 100)
        return int(round((volume_score + frequency_score) / 2))

    def limiting_factors(self, snapshot: MuscleGroupSnapshot) -> List[str]:
        t = self.thresholds
        factors = []
        if snapshot.weekly_frequency < t.focus_weekly_frequency:
            factors.append('Low training frequency')
        if snapshot.weekly_volume < t.focus_weekly_volume:
            factors.append('Insufficient volume')
        if snapshot.average_intensity < t.limiting_intensity:
            factors.append('Low training intensity')
        return factors

    def potential_analysis(self, snapshots: Iterable[MuscleGroupSnapshot]) -> List[Dict]:
        results = []
        for snapshot in snapshots:
            developed = self.development(snapshot)
            results.append({
                'muscle_group': snapshot.name,
                'current_development': developed,
                'potential_remaining': 100 - developed,
                'limiting_factors': self.limiting_factors(snapshot),
            })
        return results

    # Trends

    def trend(self, volume_change: float, strength_change: float) -> str:
        average = (volume_change + strength_change) / 2
        if average > self.thresholds.trend_change_pct:
            return 'improving'
        if average < -self.thresholds.trend_change_pct:
            return 'declining'
        return 'maintaining'

    def progression_trends(self, snapshots: Iterable[MuscleGroupSnapshot]) -> List[Dict]:
        return [
            {
                'muscle_group': snapshot.name,
                'time_frame': '1_month',
                'volume_change': snapshot.volume_progression,
                'strength_change': snapshot.strength_progression,
                'trend': self.trend(snapshot.volume_progression, snapshot.strength_progression),
            }
            for snapshot in snapshots
        ]
