"""Analysis module for training history diagnostics."""

from .personal_records import PersonalRecordTracker, MetricUpdate, RecordType
from .muscle_aggregator import MuscleGroupAggregator, MuscleGroupSnapshot
from .correlation_engine import CorrelationEngine
from .progression import ProgressionClassifier, ExerciseRecommendation, RecommendationType
from .recovery import RecoveryEstimator
from .muscle_insights import MuscleInsights
from .composer import RecommendationComposer

__all__ = [
    "PersonalRecordTracker",
    "MetricUpdate",
    "RecordType",
    "MuscleGroupAggregator",
    "MuscleGroupSnapshot",
    "CorrelationEngine",
    "ProgressionClassifier",
    "ExerciseRecommendation",
    "RecommendationType",
    "RecoveryEstimator",
    "MuscleInsights",
    "RecommendationComposer",
]
