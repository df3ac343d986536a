"""Per-exercise progression classification."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..config import AnalysisThresholds, config
from .muscle_aggregator import ExerciseSessionVolume
from .volume import percent_change

logger = logging.getLogger(__name__)


class RecommendationType(Enum):
    """Exercise recommendation categories."""

    PROGRESSION = "progression"  # consistent progress
    PLATEAU = "plateau"  # progress has stalled
    DELOAD = "deload"  # performance declining
    FREQUENCY = "frequency"  # frequency should be adjusted
    ALTERNATIVE = "alternative"  # suggest a different exercise


@dataclass(frozen=True)
class Classification:
    recommendation_type: RecommendationType
    priority: int
    status: str
    suggestion: str
    reason: str


@dataclass(frozen=True)
class ExerciseTrend:
    """Window summary of one exercise."""
    exercise_id: int
    exercise_name: str
    muscle_group: Optional[str]
    frequency: int
    recent_volume: float
    progress_rate: float


@dataclass
class ExerciseRecommendation:
    exercise_id: int
    exercise_name: str
    muscle_group: Optional[str]
    recommendation_type: RecommendationType
    status: str
    suggestion: str
    reason: str
    priority: int
    recent_volume: float
    progress_rate: float
    frequency: int
    last_pr_date: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'exercise_id': self.exercise_id,
            'exercise_name': self.exercise_name,
            'muscle_group': self.muscle_group,
            'type': self.recommendation_type.value,
            'status': self.status,
            'suggestion': self.suggestion,
            'reason': self.reason,
            'priority': self.priority,
            'related_metrics': {
                'recent_volume': self.recent_volume,
                'progress_rate_pct': self.progress_rate,
                'last_pr_date': self.last_pr_date,
                'frequency': self.frequency,
            },
        }


def progress_rate(volumes: Sequence[float]) -> float:
    """Percent change from the oldest to the newest session volume.

    Volumes must be in chronological order. Fewer than two data points, or an
    oldest volume of 0, give 0.
    """
    if len(volumes) < 2:
        return 0.0
    return percent_change(volumes[0], volumes[-1])


class ProgressionClassifier:
    """Buckets each exercise into a recommendation from its volume trend and frequency."""

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None, window_days: Optional[int] = None):
        self.thresholds = thresholds or config.thresholds
        self.window_days = window_days if window_days is not None else config.ANALYSIS_WINDOW_DAYS

    def classify(self, frequency: int, rate: float) -> Classification:
        """Apply the rules in priority order; the first match wins."""
        t = self.thresholds

        if frequency == 0:
            return Classification(
                RecommendationType.FREQUENCY, 4,
                "Not recently performed",
                "Consider adding this exercise back to your routine",
                f"Exercise has not been performed in the last {self.window_days} days",
            )
        if rate < t.deload_progress_pct:
            return Classification(
                RecommendationType.DELOAD, 5,
                "Performance declining",
                "Consider a deload week or form check",
                f"Performance has decreased by {abs(rate):.1f}% recently",
            )
        if rate < t.plateau_progress_pct and frequency >= t.plateau_min_frequency:
            return Classification(
                RecommendationType.PLATEAU, 4,
                "Progress stalled",
                "Try varying rep ranges or increasing intensity",
                "No significant progress despite regular training",
            )
        if frequency > t.high_frequency:
            return Classification(
                RecommendationType.FREQUENCY, 3,
                "High frequency",
                "Consider adding more recovery time",
                "Exercise is performed very frequently",
            )
        return Classification(
            RecommendationType.PROGRESSION, 3,
            "Progressing steadily",
            "Continue current progressive overload",
            "Volume trend is stable or improving",
        )

    def summarize(self, exercise_volumes: Iterable[ExerciseSessionVolume]) -> List[ExerciseTrend]:
        """Frequency, total volume and progress rate per exercise."""
        rows = [
            (v.exercise_id, v.exercise_name, v.muscle_group, v.session_id, v.completed_at, v.volume)
            for v in exercise_volumes
        ]
        if not rows:
            return []

        frame = pd.DataFrame(
            rows, columns=["exercise_id", "exercise_name", "muscle_group", "session_id", "completed_at", "volume"]
        )
        names = frame.drop_duplicates("exercise_id").set_index("exercise_id")[["exercise_name", "muscle_group"]]

        # One data point per session, even if the exercise was logged twice in it
        per_session = (
            frame.groupby(["exercise_id", "session_id", "completed_at"], as_index=False)["volume"].sum()
            .sort_values(["exercise_id", "completed_at", "session_id"], kind="mergesort")
        )

        trends = []
        for exercise_id, group in per_session.groupby("exercise_id", sort=True):
            volumes = [float(v) for v in group["volume"]]
            info = names.loc[exercise_id]
            trends.append(ExerciseTrend(
                exercise_id=int(exercise_id),
                exercise_name=str(info["exercise_name"]),
                muscle_group=info["muscle_group"],
                frequency=len(volumes),
                recent_volume=sum(volumes),
                progress_rate=progress_rate(volumes),
            ))
        return trends

    def recommend(
        self,
        exercise_volumes: Iterable[ExerciseSessionVolume],
        last_pr_dates: Optional[Dict[int, Optional[str]]] = None,
        dormant_exercises: Optional[Dict[int, Tuple[str, Optional[str]]]] = None,
    ) -> List[ExerciseRecommendation]:
        """One recommendation per exercise, ordered by exercise name.

        `dormant_exercises` maps exercise ids with history outside the window
        to (name, muscle_group); those not trained in the window are
        reported with frequency 0.
        """
        last_pr_dates = last_pr_dates or {}
        trends = self.summarize(exercise_volumes)
        trained = {t.exercise_id for t in trends}

        for exercise_id, (name, muscle_group) in (dormant_exercises or {}).items():
            if exercise_id not in trained:
                trends.append(ExerciseTrend(exercise_id, name, muscle_group, 0, 0.0, 0.0))

        recommendations = []
        for trend in sorted(trends, key=lambda t: (t.exercise_name, t.exercise_id)):
            result = self.classify(trend.frequency, trend.progress_rate)
            recommendations.append(ExerciseRecommendation(
                exercise_id=trend.exercise_id,
                exercise_name=trend.exercise_name,
                muscle_group=trend.muscle_group,
                recommendation_type=result.recommendation_type,
                status=result.status,
                suggestion=result.suggestion,
                reason=result.reason,
                priority=result.priority,
                recent_volume=trend.recent_volume,
                progress_rate=trend.progress_rate,
                frequency=trend.frequency,
                last_pr_date=last_pr_dates.get(trend.exercise_id),
            ))

        logger.debug(f"Classified {len(recommendations)} exercises")
        return recommendations
