"""Tests for the recommendation composer and the service facade."""

from datetime import datetime, timedelta

import pytest

from training_analytics.analysis.composer import MUSCLE_ANALYSIS, TRAINING_ANALYSIS, RecommendationComposer
from training_analytics.db.models import MuscleAnalysisDocument, TrainingAnalysisDocument
from training_analytics.errors import NotFoundError
from training_analytics.service import TrainingAnalyticsService

NOW = datetime(2024, 6, 30, 12, 0)
USER = "athlete-1"


class TestRecommendationComposer:
    """Test report generation and the staleness policy."""

    @pytest.fixture(autouse=True)
    def setup(self, db, store):
        self.store = store
        self.service = TrainingAnalyticsService(db)
        self.composer = self.service.composer
        self.bench = store.add_exercise("Bench Press", "Chest", ["chest"], ["triceps"])
        self.row = store.add_exercise("Barbell Row", "Back", ["back"], ["biceps"])
        self.squat = store.add_exercise("Squat", "Quadriceps", ["quadriceps"], ["glutes"])

    def log(self, when, *exercises):
        """exercises: (definition, [(reps, weight), ...]) tuples."""
        session_id = self.store.add_session(
            user_id=USER,
            completed_at=when,
            exercises=[
                {
                    "exercise_id": definition.id,
                    "sets": [{"reps": r, "weight": w, "completed": True} for r, w in sets],
                }
                for definition, sets in exercises
            ],
        )
        self.service.record_workout_completion(session_id, now=when)
        return session_id

    def log_chest_and_back(self):
        self.log(
            NOW - timedelta(days=2),
            (self.bench, [(10, 100.0)] * 8),
            (self.row, [(10, 100.0)] * 2),
        )

    def test_balance_scenario(self):
        self.log_chest_and_back()

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        balance = {b["muscle_group"]: b for b in analysis["muscle_group_balance"]}
        assert balance["Chest"]["status"] == "overworked"
        assert balance["Chest"]["percentage"] == pytest.approx(80.0)
        assert balance["Back"]["status"] == "balanced"
        assert balance["Back"]["percentage"] == pytest.approx(20.0)

        insights = analysis["training_insights"]
        assert insights["weak_points"] == []
        assert insights["strong_points"] == ["Back"]
        assert insights["volume_distribution"]["push"] == pytest.approx(80.0)
        assert insights["volume_distribution"]["pull"] == pytest.approx(20.0)
        assert insights["recovery_status"] == "good"
        # Neither triceps nor biceps was trained as a prime mover
        assert insights["balance_score"] == 50.0

        assert [r["exercise_name"] for r in analysis["exercise_recommendations"]] == ["Barbell Row", "Bench Press"]
        assert analysis["last_updated"] == NOW.isoformat()

    def test_document_is_persisted(self):
        self.log_chest_and_back()

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        last_updated, stored = self.composer.repository.load(TRAINING_ANALYSIS, USER)
        assert last_updated == NOW
        assert stored == analysis

    def test_fresh_document_is_served_from_cache(self):
        self.log_chest_and_back()
        first = self.service.get_or_generate_recommendations(USER, now=NOW)

        self.log(NOW - timedelta(days=1), (self.squat, [(5, 140.0)]))

        assert self.service.get_or_generate_recommendations(USER, now=NOW + timedelta(hours=23)) == first
        assert self.service.get_or_generate_recommendations(USER, now=NOW + timedelta(hours=24)) == first

    def test_stale_document_is_regenerated(self):
        self.log_chest_and_back()
        self.service.get_or_generate_recommendations(USER, now=NOW)

        self.log(NOW - timedelta(days=1), (self.squat, [(5, 140.0)]))
        later = NOW + timedelta(hours=24, seconds=1)

        analysis = self.service.get_or_generate_recommendations(USER, now=later)

        assert [b["muscle_group"] for b in analysis["muscle_group_balance"]] == ["Back", "Chest", "Quadriceps"]
        assert analysis["last_updated"] == later.isoformat()
        assert self.composer.repository.load(TRAINING_ANALYSIS, USER)[0] == later

    def test_force_regenerates(self):
        self.log_chest_and_back()
        self.service.get_or_generate_recommendations(USER, now=NOW)
        self.log(NOW, (self.squat, [(5, 140.0)]))

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW + timedelta(hours=1), force=True)

        assert "Quadriceps" in [b["muscle_group"] for b in analysis["muscle_group_balance"]]

    def test_is_stale(self):
        assert not self.composer.is_stale(NOW - timedelta(hours=24), NOW)
        assert self.composer.is_stale(NOW - timedelta(hours=24, microseconds=1), NOW)

    def test_exercise_not_recently_performed(self):
        old = NOW - timedelta(days=40)
        self.log(old, (self.squat, [(5, 140.0)]))
        self.log_chest_and_back()

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        squat = [r for r in analysis["exercise_recommendations"] if r["exercise_name"] == "Squat"][0]
        assert squat["type"] == "frequency"
        assert squat["priority"] == 4
        assert squat["status"] == "Not recently performed"
        assert squat["related_metrics"]["frequency"] == 0
        assert squat["related_metrics"]["last_pr_date"] == old.isoformat()

    def test_last_pr_date_follows_max_weight(self):
        heavy = NOW - timedelta(days=10)
        self.log(heavy, (self.squat, [(5, 140.0)]))
        # More reps and volume but lighter, so only the other records move
        self.log(NOW - timedelta(days=3), (self.squat, [(12, 100.0)]))

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        [squat] = analysis["exercise_recommendations"]
        assert squat["related_metrics"]["last_pr_date"] == heavy.isoformat()

    def test_future_sessions_are_ignored(self):
        self.log_chest_and_back()
        self.store.add_session(
            user_id=USER,
            completed_at=NOW + timedelta(days=2),
            exercises=[{"exercise_id": self.bench.id, "sets": [{"reps": 10, "weight": 100, "completed": True}]}],
        )

        analysis = self.service.get_or_generate_muscle_analysis(USER, now=NOW)

        chest = {g["name"]: g for g in analysis["muscle_groups"]}["Chest"]
        assert chest["metrics"]["weekly_volume"] == 8000.0
        assert chest["recovery"]["status"] == "needs_rest"
        assert chest["recovery"]["suggested_rest_days"] == 1

    def test_zero_staleness_always_regenerates(self, db):
        composer = RecommendationComposer(db, staleness_hours=0)
        self.log_chest_and_back()
        composer.get_or_generate_recommendations(USER, now=NOW)

        later = NOW + timedelta(seconds=1)
        analysis = composer.get_or_generate_recommendations(USER, now=later)

        assert composer.staleness == timedelta(0)
        assert analysis["last_updated"] == later.isoformat()

    def test_deload_affects_recovery_status(self):
        for days_ago, weight in ((12, 100.0), (10, 98.0), (8, 95.0), (6, 90.0), (4, 85.0)):
            self.log(NOW - timedelta(days=days_ago), (self.bench, [(10, weight)]))

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        [bench] = analysis["exercise_recommendations"]
        assert bench["type"] == "deload"
        assert bench["priority"] == 5
        assert analysis["training_insights"]["recovery_status"] == "moderate"

    def test_unknown_exercise_does_not_abort(self):
        self.store.add_session(
            user_id=USER,
            completed_at=NOW - timedelta(days=1),
            exercises=[
                {"exercise_id": 999, "sets": [{"reps": 5, "weight": 50, "completed": True}]},
                {"exercise_id": self.row.id, "sets": [{"reps": 10, "weight": 60, "completed": True}]},
            ],
        )

        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        assert [b["muscle_group"] for b in analysis["muscle_group_balance"]] == ["Back"]

    def test_empty_history(self):
        analysis = self.service.get_or_generate_recommendations(USER, now=NOW)

        assert analysis["muscle_group_balance"] == []
        assert analysis["exercise_recommendations"] == []
        assert analysis["training_insights"]["balance_score"] == 100.0

    def test_muscle_analysis(self):
        self.log_chest_and_back()

        analysis = self.service.get_or_generate_muscle_analysis(USER, now=NOW)

        groups = {g["name"]: g for g in analysis["muscle_groups"]}
        assert list(groups) == ["Back", "Chest"]

        chest = groups["Chest"]
        assert chest["metrics"]["weekly_volume"] == 8000.0
        assert chest["recovery"]["status"] == "needs_rest"
        assert chest["recovery"]["suggested_rest_days"] == 1
        assert len(chest["recent_prs"]) == 4
        assert chest["muscle_balance"]["synergists"] == [{"muscle": "triceps", "ratio": 0.0, "in_balance": False}]

        [focus] = analysis["focus_areas"]
        assert focus["muscle_group"] == "Back"
        assert [s["name"] for s in focus["suggested_exercises"]] == ["Barbell Row"]

        development = analysis["development_insights"]
        assert development["symmetry"]["overall_score"] == 50.0
        assert [p["muscle_group"] for p in development["potential_analysis"]] == ["Back", "Chest"]
        assert self.composer.repository.load(MUSCLE_ANALYSIS, USER) is not None

    def test_muscle_analysis_cached_separately(self):
        self.log_chest_and_back()
        self.service.get_or_generate_recommendations(USER, now=NOW)

        assert self.composer.repository.load(MUSCLE_ANALYSIS, USER) is None

        first = self.service.get_or_generate_muscle_analysis(USER, now=NOW)
        self.log(NOW, (self.squat, [(5, 140.0)]))

        assert self.service.get_or_generate_muscle_analysis(USER, now=NOW + timedelta(hours=2)) == first


class TestTrainingAnalyticsService:
    """Test the exposed operations."""

    @pytest.fixture(autouse=True)
    def setup(self, db, store):
        self.store = store
        self.service = TrainingAnalyticsService(db)
        self.squat = store.add_exercise("Squat", "Quadriceps", ["quadriceps"], ["glutes"])

    def test_record_workout_completion(self):
        session_id = self.store.add_session(
            user_id=USER,
            completed_at=NOW,
            exercises=[{"exercise_id": self.squat.id, "sets": [{"reps": 5, "weight": 100, "completed": True}]}],
        )

        result = self.service.record_workout_completion(session_id)

        assert {u["type"] for u in result["pr_updates"]} == {
            "max_weight", "max_reps", "max_set_volume", "max_session_volume",
        }
        assert result["pr_updates"][0]["exercise_name"] == "Squat"
        assert self.service.record_workout_completion(session_id) == {"pr_updates": []}

    def test_unknown_session(self):
        with pytest.raises(NotFoundError):
            self.service.record_workout_completion(12345)

    def test_personal_record_lookups(self):
        assert self.service.get_personal_record(USER, self.squat.id)["history"] == []
        assert self.service.get_all_personal_records(USER) == {}


class TestConcurrentGeneration:
    """First-time generation for one user from two threads at once."""

    @pytest.fixture(autouse=True)
    def setup(self, file_db, hold_statements, run_concurrently):
        self.db = file_db
        self.service = TrainingAnalyticsService(file_db)
        self.hold_statements = hold_statements
        self.run_concurrently = run_concurrently
        bench = self.service.store.add_exercise("Bench Press", "Chest", ["chest"], ["triceps"])
        session_id = self.service.store.add_session(
            user_id=USER,
            completed_at=NOW - timedelta(days=1),
            exercises=[{"exercise_id": bench.id, "sets": [{"reps": 10, "weight": 80, "completed": True}]}],
        )
        self.service.record_workout_completion(session_id, now=NOW)

    def count_documents(self, model):
        with self.db.get_session() as session:
            return session.query(model).filter(model.user_id == USER).count()

    def test_training_analysis_stored_once(self):
        self.hold_statements(self.db, "INSERT INTO training_analyses")

        results, errors = self.run_concurrently(
            lambda: self.service.get_or_generate_recommendations(USER, now=NOW),
            lambda: self.service.get_or_generate_recommendations(USER, now=NOW),
        )

        assert errors == [None, None]
        assert results[0] == results[1]
        assert self.count_documents(TrainingAnalysisDocument) == 1
        assert self.service.composer.repository.load(TRAINING_ANALYSIS, USER) == (NOW, results[0])

    def test_muscle_analysis_stored_once(self):
        self.hold_statements(self.db, "INSERT INTO muscle_analyses")

        results, errors = self.run_concurrently(
            lambda: self.service.get_or_generate_muscle_analysis(USER, now=NOW),
            lambda: self.service.get_or_generate_muscle_analysis(USER, now=NOW),
        )

        assert errors == [None, None]
        assert self.count_documents(MuscleAnalysisDocument) == 1
