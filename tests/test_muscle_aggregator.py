"""Tests for muscle group aggregation."""

from datetime import datetime, timedelta

import pytest

from training_analytics.analysis.muscle_aggregator import MuscleGroupAggregator, muscle_category
from training_analytics.types import CompletedSession, ExerciseDefinition, ExerciseEntry, SetEntry

NOW = datetime(2024, 6, 30, 12, 0)

BENCH = ExerciseDefinition(1, "Bench Press", "Chest", ["chest"], ["triceps"])
ROW = ExerciseDefinition(2, "Barbell Row", "Back", ["back"], ["biceps"])
DIPS = ExerciseDefinition(3, "Dips", "Triceps", ["triceps"], ["chest"])


def entry(definition, *sets):
    return ExerciseEntry(definition.id, [SetEntry(*s) for s in sets], definition)


def session(session_id, days_ago, *entries):
    return CompletedSession(session_id, "athlete-1", NOW - timedelta(days=days_ago), list(entries))


class TestMuscleGroupAggregator:
    """Test the session window aggregation."""

    def setup_method(self):
        self.aggregator = MuscleGroupAggregator(window_days=30, weekly_days=7)

    def test_weekly_and_monthly_volume(self):
        sessions = [
            session(1, 10, entry(BENCH, (10, 100.0))),
            session(2, 2, entry(BENCH, (10, 100.0))),
        ]

        chest = self.aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert chest.monthly_volume == 2000.0
        assert chest.monthly_frequency == 2
        assert chest.weekly_volume == 1000.0
        assert chest.weekly_frequency == 1
        assert chest.last_trained == NOW - timedelta(days=2)
        assert chest.category == "push"

    def test_window_bounds_are_inclusive(self):
        sessions = [
            session(1, 31, entry(ROW, (10, 100.0))),
            session(2, 30, entry(ROW, (10, 50.0))),
            session(3, 7, entry(ROW, (10, 20.0))),
        ]

        back = self.aggregator.aggregate(sessions, NOW).snapshots["Back"]

        assert back.monthly_volume == 700.0
        assert back.monthly_frequency == 2
        assert back.weekly_volume == 200.0
        assert back.weekly_frequency == 1

    def test_incomplete_sets_contribute_nothing(self):
        sessions = [session(1, 1, entry(BENCH, (10, 100.0, True), (10, 100.0, False)))]

        chest = self.aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert chest.monthly_volume == 1000.0

    def test_entries_without_definition_are_skipped(self):
        broken = ExerciseEntry(None, [SetEntry(10, 100.0)], None, name="Deleted exercise")
        sessions = [session(1, 1, broken, entry(ROW, (10, 100.0)))]

        result = self.aggregator.aggregate(sessions, NOW)

        assert result.skipped_entries == 1
        assert list(result.snapshots) == ["Back"]
        assert result.snapshots["Back"].monthly_volume == 1000.0

    def test_snapshots_sorted_by_name(self):
        sessions = [session(1, 1, entry(DIPS, (10, 10.0)), entry(ROW, (10, 10.0)), entry(BENCH, (10, 10.0)))]

        result = self.aggregator.aggregate(sessions, NOW)

        assert list(result.snapshots) == ["Back", "Chest", "Triceps"]

    def test_pair_volumes(self):
        sessions = [session(1, 1, entry(BENCH, (10, 100.0)), entry(DIPS, (10, 50.0)))]

        pairs = self.aggregator.aggregate(sessions, NOW).pairs

        assert [(p.muscle_a, p.muscle_b) for p in pairs] == [("chest", "triceps"), ("triceps", "chest")]
        assert (pairs[0].volume_a, pairs[0].volume_b) == (1000.0, 500.0)
        assert (pairs[1].volume_a, pairs[1].volume_b) == (500.0, 1000.0)

    def test_average_intensity(self):
        sessions = [session(1, 1, entry(BENCH, (5, 100.0), (5, 80.0)))]

        chest = self.aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert chest.average_intensity == pytest.approx(0.9)

    def test_progression_between_window_halves(self):
        sessions = [
            session(1, 20, entry(BENCH, (10, 100.0))),
            session(2, 5, entry(BENCH, (10, 120.0))),
        ]

        chest = self.aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert chest.volume_progression == pytest.approx(20.0)
        assert chest.strength_progression == pytest.approx(20.0)

    def test_exercise_volumes(self):
        sessions = [session(1, 3, entry(BENCH, (10, 100.0))), session(2, 1, entry(BENCH, (10, 110.0)))]

        volumes = self.aggregator.aggregate(sessions, NOW).exercise_volumes

        assert [(v.session_id, v.volume) for v in volumes] == [(1, 1000.0), (2, 1100.0)]
        assert all(v.exercise_name == "Bench Press" for v in volumes)

    def test_aggregation_is_repeatable(self):
        sessions = [
            session(1, 12, entry(BENCH, (10, 100.0)), entry(ROW, (8, 90.0))),
            session(2, 3, entry(DIPS, (12, 20.0))),
        ]

        assert self.aggregator.aggregate(sessions, NOW) == self.aggregator.aggregate(sessions, NOW)

    def test_future_sessions_are_excluded(self):
        sessions = [
            session(1, 2, entry(BENCH, (10, 100.0))),
            session(2, -1, entry(BENCH, (10, 100.0))),
        ]

        chest = self.aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert chest.monthly_frequency == 1
        assert chest.weekly_volume == 1000.0
        assert chest.last_trained == NOW - timedelta(days=2)

    def test_zero_day_window(self):
        aggregator = MuscleGroupAggregator(window_days=0, weekly_days=0)
        sessions = [
            session(1, 1, entry(BENCH, (10, 100.0))),
            session(2, 0, entry(BENCH, (5, 100.0))),
        ]

        chest = aggregator.aggregate(sessions, NOW).snapshots["Chest"]

        assert aggregator.window_days == 0
        assert chest.monthly_volume == 500.0
        assert chest.weekly_frequency == 1

    def test_empty_window(self):
        result = self.aggregator.aggregate([], NOW)

        assert result.snapshots == {}
        assert result.pairs == []


class TestMuscleCategory:
    """Test movement pattern mapping."""

    def test_categories(self):
        assert muscle_category("Chest") == "push"
        assert muscle_category("Back") == "pull"
        assert muscle_category("Hamstrings") == "legs"
        assert muscle_category("Lower Back") == "core"
        assert muscle_category("Forearms") == "other"
