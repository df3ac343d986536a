"""Muscle group balance and synergist/antagonist correlation analysis."""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config import AnalysisThresholds, config
from .muscle_aggregator import MuscleGroupSnapshot, MusclePairVolume, muscle_category

UNDERWORKED = 'underworked'
BALANCED = 'balanced'
OVERWORKED = 'overworked'


@dataclass
class MuscleBalance:
    """Share of the window's volume that went to one muscle group."""
    muscle_group: str
    volume: float
    frequency: int
    percentage: float
    status: str
    recommendation: str

    def to_dict(self) -> Dict:
        return {
            'muscle_group': self.muscle_group,
            'volume': self.volume,
            'frequency': self.frequency,
            'percentage': self.percentage,
            'status': self.status,
            'recommendation': self.recommendation,
        }


@dataclass
class MuscleCorrelation:
    """Volume ratio between the two muscles of a pair."""
    muscle_a: str
    muscle_b: str
    volume_a: float
    volume_b: float
    ratio: float
    ideal_ratio: float
    recommendation: str
    correlation_type: str = 'synergist'
    in_balance: bool = True

    def to_dict(self) -> Dict:
        return {
            'muscle_a': self.muscle_a,
            'muscle_b': self.muscle_b,
            'correlation_type': self.correlation_type,
            'volume_a': self.volume_a,
            'volume_b': self.volume_b,
            'balance_ratio': self.ratio,
            'ideal_ratio': self.ideal_ratio,
            'recommendation': self.recommendation,
        }


@dataclass
class Imbalance:
    description: str
    severity: int
    correction_plan: str

    def to_dict(self) -> Dict:
        return {
            'description': self.description,
            'severity': self.severity,
            'correction_plan': self.correction_plan,
        }


@dataclass
class SymmetryReport:
    overall_score: float
    imbalances: List[Imbalance] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'overall_score': self.overall_score,
            'imbalances': [i.to_dict() for i in self.imbalances],
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class CorrelationEngine:
    """Classifies muscle group balance and scores pair symmetry."""

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None):
        self.thresholds = thresholds or config.thresholds

    # Muscle group balance

    def classify_percentage(self, percentage: float) -> str:
        """Strict bands: exactly on a threshold counts as balanced."""
        if percentage < self.thresholds.underworked_pct:
            return UNDERWORKED
        if percentage > self.thresholds.overworked_pct:
            return OVERWORKED
        return BALANCED

    @staticmethod
    def balance_recommendation(muscle_group: str, status: str) -> str:
        if status == UNDERWORKED:
            return f"Consider increasing {muscle_group} training frequency and volume"
        if status == OVERWORKED:
            return f"Consider reducing {muscle_group} volume to prevent overtraining"
        return f"Current {muscle_group} training volume is well-balanced"

    def analyze_balance(self, snapshots: Dict[str, MuscleGroupSnapshot]) -> List[MuscleBalance]:
        """Balance entry per muscle group, in name order."""
        total_volume = sum(s.monthly_volume for s in snapshots.values() if s.monthly_volume > 0)

        balance = []
        for name in sorted(snapshots):
            snapshot = snapshots[name]
            if total_volume > 0 and snapshot.monthly_volume > 0:
                percentage = snapshot.monthly_volume * 100 / total_volume
            else:
                percentage = 0.0
            status = self.classify_percentage(percentage)
            balance.append(MuscleBalance(
                muscle_group=name,
                volume=snapshot.monthly_volume,
                frequency=snapshot.monthly_frequency,
                percentage=percentage,
                status=status,
                recommendation=self.balance_recommendation(name, status),
            ))
        return balance

    @staticmethod
    def volume_distribution(balance: Iterable[MuscleBalance]) -> Dict[str, float]:
        """Percentage of volume per movement pattern."""
        distribution = {'push': 0.0, 'pull': 0.0, 'legs': 0.0, 'core': 0.0}
        entries = list(balance)
        total_volume = sum(b.volume for b in entries)
        if total_volume <= 0:
            return distribution

        for entry in entries:
            category = muscle_category(entry.muscle_group)
            if category in distribution:
                distribution[category] += entry.volume * 100 / total_volume
        return distribution

    # Muscle pairs

    @staticmethod
    def correlation_ratio(volume_a: float, volume_b: float) -> float:
        """volume_a / volume_b, 0 when volume_b is 0."""
        if not volume_b:
            return 0.0
        return volume_a / volume_b

    def is_in_balance(self, ratio: float) -> bool:
        return self.thresholds.ratio_low <= ratio <= self.thresholds.ratio_high

    def pair_recommendation(self, ratio: float, muscle_a: str, muscle_b: str) -> str:
        if ratio < self.thresholds.ratio_low:
            return f"Increase {muscle_a} volume to improve balance with {muscle_b}"
        if ratio > self.thresholds.ratio_high:
            return f"Reduce {muscle_a} volume or increase {muscle_b} volume for better balance"
        return "Good balance between muscle groups"

    def analyze_pairs(self, pairs: Iterable[MusclePairVolume]) -> List[MuscleCorrelation]:
        correlations = []
        for pair in pairs:
            ratio = self.correlation_ratio(pair.volume_a, pair.volume_b)
            correlations.append(MuscleCorrelation(
                muscle_a=pair.muscle_a,
                muscle_b=pair.muscle_b,
                volume_a=pair.volume_a,
                volume_b=pair.volume_b,
                ratio=ratio,
                ideal_ratio=self.thresholds.ideal_ratio,
                recommendation=self.pair_recommendation(ratio, pair.muscle_a, pair.muscle_b),
                in_balance=self.is_in_balance(ratio),
            ))
        return correlations

    def severity(self, ratio: float) -> int:
        """Imbalance severity 0-5 from the distance to the ideal ratio."""
        distance = abs(self.thresholds.ideal_ratio - ratio)
        return min(self.thresholds.symmetry_max_severity, _round_half_up(distance * 5))

    def symmetry(self, correlations: Iterable[MuscleCorrelation]) -> SymmetryReport:
        """Whole-body symmetry score: 100 minus severity penalties, floored at 0."""
        score = 100.0
        imbalances = []
        for correlation in correlations:
            if correlation.in_balance:
                continue
            severity = self.severity(correlation.ratio)
            imbalances.append(Imbalance(
                description=f"Imbalance between {correlation.muscle_a} and {correlation.muscle_b}",
                severity=severity,
                correction_plan=correlation.recommendation,
            ))
            score -= severity * self.thresholds.symmetry_penalty_per_severity

        return SymmetryReport(overall_score=max(0.0, score), imbalances=imbalances)
