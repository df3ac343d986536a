"""Service facade exposing the training analytics operations."""

from datetime import datetime
from typing import Dict, List, Optional

from .config import AnalysisThresholds
from .db import get_db
from .db.database import Database
from .analysis.composer import RecommendationComposer


class TrainingAnalyticsService:
    """Entry point for callers: PR updates on completion and cached reports."""

    def __init__(self, db: Optional[Database] = None, thresholds: Optional[AnalysisThresholds] = None):
        self.db = db or get_db()
        self.composer = RecommendationComposer(self.db, thresholds=thresholds)
        self.store = self.composer.store
        self.tracker = self.composer.tracker

    def record_workout_completion(self, session_id: int, now: Optional[datetime] = None) -> Dict[str, List[Dict]]:
        """Update personal records from a completed session.

        Raises NotFoundError for an unknown session. Calling it again for the
        same session returns no updates.
        """
        updates = self.tracker.record_session(session_id, now=now)
        return {"pr_updates": [update.to_dict() for update in updates]}

    def get_or_generate_recommendations(
        self, user_id: str, now: Optional[datetime] = None, force: bool = False
    ) -> Dict:
        return self.composer.get_or_generate_recommendations(user_id, now=now, force=force)

    def get_or_generate_muscle_analysis(
        self, user_id: str, now: Optional[datetime] = None, force: bool = False
    ) -> Dict:
        return self.composer.get_or_generate_muscle_analysis(user_id, now=now, force=force)

    def get_personal_record(self, user_id: str, exercise_id: int) -> Dict:
        return self.tracker.get_personal_record(user_id, exercise_id)

    def get_all_personal_records(self, user_id: str) -> Dict[str, List[Dict]]:
        return self.tracker.get_all_personal_records(user_id)
