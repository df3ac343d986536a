"""Database module for the Training Analytics engine."""

from .database import Database, get_db, close_db
from .models import Exercise, WorkoutSession, PersonalRecord, PersonalRecordHistory
from .repository import AnalysisRepository
from .store import WorkoutStore

__all__ = [
    "Database",
    "get_db",
    "close_db",
    "Exercise",
    "WorkoutSession",
    "PersonalRecord",
    "PersonalRecordHistory",
    "AnalysisRepository",
    "WorkoutStore",
]
