"""Workout store: completed sessions and the exercise taxonomy."""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import selectinload

from ..types import CompletedSession, ExerciseDefinition, ExerciseEntry, SetEntry
from ..errors import NotFoundError, ValidationError
from .database import Database, get_db
from .models import Exercise, WorkoutSession, SessionExercise, ExerciseSet

logger = logging.getLogger(__name__)


def _load_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed muscle list: {raw!r}")
        return []
    return [str(v) for v in values] if isinstance(values, list) else []


def to_definition(exercise: Exercise) -> ExerciseDefinition:
    """Convert an Exercise row into its read-only definition."""
    return ExerciseDefinition(
        id=exercise.id,
        name=exercise.name,
        muscle_group=exercise.muscle_group,
        primary_muscles=_load_list(exercise.primary_muscles),
        secondary_muscles=_load_list(exercise.secondary_muscles),
        category=exercise.category or "Strength",
    )


def to_completed_session(row: WorkoutSession) -> CompletedSession:
    """Convert a WorkoutSession row (with exercises loaded) into a value object."""
    exercises = []
    for item in row.exercises:
        exercises.append(ExerciseEntry(
            exercise_id=item.exercise_id,
            name=item.name,
            definition=to_definition(item.exercise) if item.exercise is not None else None,
            sets=[
                SetEntry(reps=s.reps or 0, weight=s.weight or 0.0, completed=bool(s.completed))
                for s in item.sets
            ],
        ))
    return CompletedSession(
        id=row.id,
        user_id=row.user_id,
        completed_at=row.completed_at,
        exercises=exercises,
    )


def session_query(session):
    """Query of WorkoutSession with exercises, sets and definitions eager-loaded."""
    return session.query(WorkoutSession).options(
        selectinload(WorkoutSession.exercises).selectinload(SessionExercise.sets),
        selectinload(WorkoutSession.exercises).selectinload(SessionExercise.exercise),
    )


def _number(set_data: Dict, key: str, convert):
    value = set_data.get(key, 0) or 0
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Set {key} must be a number, got {value!r}") from e


class WorkoutStore:
    """SQLAlchemy-backed store of completed sessions and exercise definitions."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    # Exercise taxonomy

    def add_exercise(
        self,
        name: str,
        muscle_group: str,
        primary_muscles: Optional[List[str]] = None,
        secondary_muscles: Optional[List[str]] = None,
        category: str = "Strength",
        exercise_type: str = "compound",
        equipment: Optional[List[str]] = None,
        difficulty: str = "beginner",
    ) -> ExerciseDefinition:
        """Add an exercise to the catalog."""
        if not name or not muscle_group:
            raise ValidationError("Exercise requires a name and a muscle group")

        with self.db.write_session("add exercise") as session:
            exercise = Exercise(
                name=name,
                muscle_group=muscle_group,
                primary_muscles=json.dumps(primary_muscles or []),
                secondary_muscles=json.dumps(secondary_muscles or []),
                category=category,
                exercise_type=exercise_type,
                equipment=json.dumps(equipment or []),
                difficulty=difficulty,
            )
            session.add(exercise)
            session.flush()
            return to_definition(exercise)

    def get_exercise_definition(self, exercise_id: int) -> ExerciseDefinition:
        """Look up one exercise definition; raises NotFoundError."""
        with self.db.get_session() as session:
            exercise = session.get(Exercise, exercise_id)
            if exercise is None:
                raise NotFoundError("exercise", exercise_id)
            return to_definition(exercise)

    def list_exercises(self) -> List[ExerciseDefinition]:
        with self.db.get_session() as session:
            rows = session.query(Exercise).order_by(Exercise.name, Exercise.id).all()
            return [to_definition(row) for row in rows]

    def find_exercises_for_muscle(self, muscle: str, limit: int = 3) -> List[ExerciseDefinition]:
        """Exercises whose group, primary or secondary muscles include `muscle`."""
        target = muscle.lower()
        matches = []
        for definition in self.list_exercises():
            muscles = [definition.muscle_group] + definition.primary_muscles + definition.secondary_muscles
            if target in (m.lower() for m in muscles):
                matches.append(definition)
                if len(matches) >= limit:
                    break
        return matches

    # Sessions

    def add_session(
        self,
        user_id: str,
        completed_at: datetime,
        exercises: List[Dict],
        duration: Optional[int] = None,
        rating: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Store a completed session and return its id.

        Each exercise is a dict with `exercise_id`, optional `name` and
        `sets` (dicts with `reps`, `weight`, `completed`).
        """
        if not user_id:
            raise ValidationError("Session requires a user id")
        if completed_at is None:
            raise ValidationError("Session requires a completion timestamp")
        if not isinstance(exercises, list):
            raise ValidationError("Session exercises must be a list")

        with self.db.write_session("add session") as session:
            row = WorkoutSession(
                user_id=user_id,
                completed_at=completed_at,
                duration=duration,
                rating=rating,
                notes=notes,
            )
            for position, item in enumerate(exercises):
                if not isinstance(item, dict):
                    raise ValidationError(f"Exercise entry {position} must be an object")
                sets = item.get("sets", [])
                if not isinstance(sets, list) or not all(isinstance(s, dict) for s in sets):
                    raise ValidationError(f"Sets of exercise entry {position} must be a list of objects")
                entry = SessionExercise(
                    exercise_id=item.get("exercise_id"),
                    name=item.get("name"),
                    position=position,
                    notes=item.get("notes"),
                )
                for set_position, set_data in enumerate(sets):
                    entry.sets.append(ExerciseSet(
                        position=set_position,
                        reps=_number(set_data, "reps", int),
                        weight=_number(set_data, "weight", float),
                        completed=bool(set_data.get("completed", False)),
                    ))
                row.exercises.append(entry)
            session.add(row)
            session.flush()
            return row.id

    def get_session(self, session_id: int) -> CompletedSession:
        with self.db.get_session() as session:
            row = session_query(session).filter(WorkoutSession.id == session_id).first()
            if row is None:
                raise NotFoundError("session", session_id)
            return to_completed_session(row)

    def list_completed_sessions(self, user_id: str, since: datetime) -> List[CompletedSession]:
        """Sessions of a user completed at or after `since`, oldest first."""
        with self.db.get_session() as session:
            rows = (
                session_query(session)
                .filter(WorkoutSession.user_id == user_id, WorkoutSession.completed_at >= since)
                .order_by(WorkoutSession.completed_at, WorkoutSession.id)
                .all()
            )
            return [to_completed_session(row) for row in rows]

    def count_sessions(self, user_id: Optional[str] = None) -> int:
        with self.db.get_session() as session:
            query = session.query(WorkoutSession)
            if user_id:
                query = query.filter(WorkoutSession.user_id == user_id)
            return query.count()
