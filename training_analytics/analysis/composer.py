"""Recommendation composer.

Runs the aggregation, correlation, progression and recovery stages over the
rolling window and keeps one cached report document per user. A cached
document is served as long as it is not older than the staleness window;
otherwise it is regenerated synchronously and replaced wholesale.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ..config import AnalysisThresholds, config
from ..db import get_db
from ..db.database import Database
from ..db.models import utcnow
from ..db.repository import AnalysisRepository
from ..db.store import WorkoutStore
from .correlation_engine import BALANCED, UNDERWORKED, CorrelationEngine, MuscleCorrelation
from .muscle_aggregator import AggregationResult, MuscleGroupAggregator
from .muscle_insights import MuscleInsights
from .personal_records import PersonalRecordTracker, RecordType
from .progression import ProgressionClassifier, RecommendationType
from .recovery import RecoveryEstimator

TRAINING_ANALYSIS = "training_analysis"
MUSCLE_ANALYSIS = "muscle_analysis"


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class RecommendationComposer:
    """Builds and caches the per-user training and muscle analysis documents."""

    def __init__(
        self,
        db: Optional[Database] = None,
        thresholds: Optional[AnalysisThresholds] = None,
        window_days: Optional[int] = None,
        staleness_hours: Optional[float] = None,
    ):
        self.db = db or get_db()
        self.thresholds = thresholds or config.thresholds
        self.window_days = window_days if window_days is not None else config.ANALYSIS_WINDOW_DAYS
        if staleness_hours is None:
            staleness_hours = config.STALENESS_HOURS
        self.staleness = timedelta(hours=staleness_hours)
        self.logger = logging.getLogger(__name__)

        self.store = WorkoutStore(self.db)
        self.repository = AnalysisRepository(self.db)
        self.tracker = PersonalRecordTracker(self.db)

        self.aggregator = MuscleGroupAggregator(window_days=self.window_days)
        self.engine = CorrelationEngine(self.thresholds)
        self.classifier = ProgressionClassifier(self.thresholds, window_days=self.window_days)
        self.estimator = RecoveryEstimator(self.thresholds)
        self.insights = MuscleInsights(self.thresholds, find_exercises=self.store.find_exercises_for_muscle)

    def is_stale(self, last_updated: datetime, now: datetime) -> bool:
        """A document exactly at the staleness limit is still fresh."""
        return last_updated < now - self.staleness

    # Cached reads

    def get_or_generate_recommendations(
        self, user_id: str, now: Optional[datetime] = None, force: bool = False
    ) -> Dict:
        return self._get_or_generate(TRAINING_ANALYSIS, user_id, now, force, self.generate_recommendations)

    def get_or_generate_muscle_analysis(
        self, user_id: str, now: Optional[datetime] = None, force: bool = False
    ) -> Dict:
        return self._get_or_generate(MUSCLE_ANALYSIS, user_id, now, force, self.generate_muscle_analysis)

    def _get_or_generate(
        self,
        kind: str,
        user_id: str,
        now: Optional[datetime],
        force: bool,
        generate: Callable[[str, datetime], Dict],
    ) -> Dict:
        now = now or utcnow()

        if not force:
            cached = self.repository.load(kind, user_id)
            if cached is not None:
                last_updated, document = cached
                if not self.is_stale(last_updated, now):
                    self.logger.info(f"Serving cached {kind} for user {user_id} (updated {last_updated.isoformat()})")
                    return document
                self.logger.info(f"Cached {kind} for user {user_id} is stale, regenerating")
            else:
                self.logger.info(f"No {kind} for user {user_id}, generating")

        return generate(user_id, now)

    # Generation

    def _aggregate(self, user_id: str, now: datetime) -> AggregationResult:
        since = now - timedelta(days=self.window_days)
        sessions = self.store.list_completed_sessions(user_id, since)
        result = self.aggregator.aggregate(sessions, now)
        self.estimator.apply(result.snapshots.values(), now)

        if result.skipped_entries:
            self.logger.warning(
                f"User {user_id}: {result.skipped_entries} exercise entries without a definition were skipped"
            )
        self.logger.debug(f"User {user_id}: aggregated {len(sessions)} sessions into {len(result.snapshots)} groups")
        return result

    def generate_recommendations(self, user_id: str, now: Optional[datetime] = None) -> Dict:
        """Build and store the training analysis document."""
        now = now or utcnow()
        result = self._aggregate(user_id, now)

        balance = self.engine.analyze_balance(result.snapshots)
        correlations = self.engine.analyze_pairs(result.pairs)
        symmetry = self.engine.symmetry(correlations)

        records = self.tracker.list_personal_records(user_id)
        last_pr_dates, dormant = self._record_summary(records)
        recommendations = self.classifier.recommend(result.exercise_volumes, last_pr_dates, dormant)

        deload_count = sum(1 for r in recommendations if r.recommendation_type is RecommendationType.DELOAD)

        document = {
            'user_id': user_id,
            'last_updated': now.isoformat(),
            'muscle_group_balance': [b.to_dict() for b in balance],
            'exercise_recommendations': [r.to_dict() for r in recommendations],
            'correlations': [c.to_dict() for c in correlations],
            'training_insights': {
                'weak_points': [b.muscle_group for b in balance if b.status == UNDERWORKED],
                'strong_points': [b.muscle_group for b in balance if b.status == BALANCED],
                'balance_score': symmetry.overall_score,
                'volume_distribution': self.engine.volume_distribution(balance),
                'recovery_status': self.estimator.training_recovery_status(deload_count),
            },
        }

        self.repository.save(TRAINING_ANALYSIS, user_id, now, document)
        self.logger.info(
            f"Generated training analysis for user {user_id}: "
            f"{len(balance)} muscle groups, {len(recommendations)} exercises"
        )
        return document

    def generate_muscle_analysis(self, user_id: str, now: Optional[datetime] = None) -> Dict:
        """Build and store the muscle analysis document."""
        now = now or utcnow()
        result = self._aggregate(user_id, now)
        snapshots = list(result.snapshots.values())

        correlations = self.engine.analyze_pairs(result.pairs)
        symmetry = self.engine.symmetry(correlations)
        recent_prs = self._recent_prs_by_group(
            self.tracker.list_personal_records(user_id), now - timedelta(days=self.window_days)
        )

        muscle_groups = []
        for snapshot in snapshots:
            entry = snapshot.to_dict()
            entry['muscle_balance'] = {'synergists': self._synergists(snapshot.name, correlations)}
            entry['recent_prs'] = recent_prs.get(snapshot.name, [])
            muscle_groups.append(entry)

        document = {
            'user_id': user_id,
            'last_updated': now.isoformat(),
            'muscle_groups': muscle_groups,
            'focus_areas': self.insights.focus_areas(snapshots),
            'correlations': [c.to_dict() for c in correlations],
            'development_insights': {
                'potential_analysis': self.insights.potential_analysis(snapshots),
                'symmetry': symmetry.to_dict(),
                'progression_trends': self.insights.progression_trends(snapshots),
            },
        }

        self.repository.save(MUSCLE_ANALYSIS, user_id, now, document)
        self.logger.info(f"Generated muscle analysis for user {user_id}: {len(muscle_groups)} muscle groups")
        return document

    # Helpers

    @staticmethod
    def _record_summary(records: List[Dict]) -> Tuple[Dict[int, Optional[str]], Dict[int, Tuple[str, Optional[str]]]]:
        """Date of the max weight record per exercise and the exercises that have records at all."""
        last_pr_dates: Dict[int, Optional[str]] = {}
        with_records: Dict[int, Tuple[str, Optional[str]]] = {}

        for data in records:
            last_pr_dates[data['exercise_id']] = data['records'][RecordType.MAX_WEIGHT.value]['date']
            exercise = data.get('exercise')
            if exercise is not None:
                with_records[data['exercise_id']] = (exercise['name'], exercise['muscle_group'])

        return last_pr_dates, with_records

    def _recent_prs_by_group(self, records: List[Dict], since: datetime) -> Dict[str, List[Dict]]:
        """History entries inside the window per muscle group, newest first."""
        grouped: Dict[str, List[Dict]] = {}
        for data in records:
            exercise = data.get('exercise')
            if exercise is None:
                continue
            for entry in data['history']:
                date = _parse(entry['date'])
                if date is None or date < since:
                    continue
                grouped.setdefault(exercise['muscle_group'], []).append({
                    'exercise_id': data['exercise_id'],
                    'exercise': exercise['name'],
                    'type': entry['type'],
                    'value': entry['value'],
                    'date': entry['date'],
                })

        limit = config.RECENT_PR_LIMIT
        return {
            group: sorted(entries, key=lambda e: _parse(e['date']), reverse=True)[:limit]
            for group, entries in grouped.items()
        }

    @staticmethod
    def _synergists(muscle_group: str, correlations: List[MuscleCorrelation]) -> List[Dict]:
        name = muscle_group.lower()
        return [
            {'muscle': c.muscle_b, 'ratio': c.ratio, 'in_balance': c.in_balance}
            for c in correlations
            if c.muscle_a.lower() == name
        ]
