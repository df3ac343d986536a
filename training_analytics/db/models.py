"""Database models for workout sessions, personal records and analysis documents."""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean, Text, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Exercise(Base):
    """Exercise reference data (muscle taxonomy)."""

    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(50), default="Strength")  # Strength, Cardio, Flexibility
    muscle_group = Column(String(100), nullable=False)  # Chest, Back, Quadriceps, ...
    primary_muscles = Column(Text, default="[]")  # JSON list
    secondary_muscles = Column(Text, default="[]")  # JSON list
    exercise_type = Column(String(20), default="compound")  # isolation, compound
    equipment = Column(Text, default="[]")  # JSON list
    difficulty = Column(String(20), default="beginner")
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self):
        return f"<Exercise(id={self.id}, name={self.name}, muscle_group={self.muscle_group})>"


class WorkoutSession(Base):
    """A completed workout. Immutable once stored."""

    __tablename__ = "workout_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), nullable=False)
    completed_at = Column(DateTime, nullable=False)
    duration = Column(Integer)  # minutes
    rating = Column(Integer)  # 1-5
    notes = Column(Text)
    records_processed_at = Column(DateTime)  # set once personal records were updated
    created_at = Column(DateTime, default=utcnow)

    exercises = relationship(
        "SessionExercise",
        back_populates="session",
        order_by="SessionExercise.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_workout_sessions_user_completed", "user_id", "completed_at"),)

    def __repr__(self):
        return f"<WorkoutSession(id={self.id}, user_id={self.user_id}, completed_at={self.completed_at})>"


class SessionExercise(Base):
    """One exercise performed within a session."""

    __tablename__ = "session_exercises"

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey("workout_sessions.id"), nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercises.id"))  # null when the reference was lost
    name = Column(String(255))  # name at the time of completion
    position = Column(Integer, default=0)
    notes = Column(Text)

    session = relationship("WorkoutSession", back_populates="exercises")
    exercise = relationship("Exercise")
    sets = relationship(
        "ExerciseSet",
        back_populates="session_exercise",
        order_by="ExerciseSet.position",
        cascade="all, delete-orphan",
    )


class ExerciseSet(Base):
    """A single set: reps at a weight, completed or not."""

    __tablename__ = "exercise_sets"

    id = Column(Integer, primary_key=True)
    session_exercise_id = Column(Integer, ForeignKey("session_exercises.id"), nullable=False)
    position = Column(Integer, default=0)
    reps = Column(Integer, default=0)
    weight = Column(Float, default=0.0)  # kg
    completed = Column(Boolean, default=False)

    session_exercise = relationship("SessionExercise", back_populates="sets")


class PersonalRecord(Base):
    """Best-ever metrics per user and exercise."""

    __tablename__ = "personal_records"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercises.id"), nullable=False)

    max_weight = Column(Float, default=0.0)
    max_weight_date = Column(DateTime)
    max_weight_session_id = Column(Integer)

    max_reps = Column(Float, default=0.0)
    max_reps_date = Column(DateTime)
    max_reps_session_id = Column(Integer)

    max_set_volume = Column(Float, default=0.0)  # weight * reps in a single set
    max_set_volume_date = Column(DateTime)
    max_set_volume_session_id = Column(Integer)

    max_session_volume = Column(Float, default=0.0)  # total volume in one session
    max_session_volume_date = Column(DateTime)
    max_session_volume_session_id = Column(Integer)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    exercise = relationship("Exercise")
    history = relationship(
        "PersonalRecordHistory",
        back_populates="personal_record",
        order_by="PersonalRecordHistory.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("user_id", "exercise_id", name="uq_personal_records_user_exercise"),)

    def __repr__(self):
        return f"<PersonalRecord(user_id={self.user_id}, exercise_id={self.exercise_id}, max_weight={self.max_weight})>"


class PersonalRecordHistory(Base):
    """Append-only log of record improvements."""

    __tablename__ = "personal_record_history"

    id = Column(Integer, primary_key=True)
    personal_record_id = Column(Integer, ForeignKey("personal_records.id"), nullable=False)
    record_type = Column(String(50), nullable=False)
    value = Column(Float, nullable=False)
    previous_value = Column(Float, nullable=False)
    improvement_pct = Column(Float)  # null when there was no previous record
    date = Column(DateTime, nullable=False)
    session_id = Column(Integer)

    personal_record = relationship("PersonalRecord", back_populates="history")


class TrainingAnalysisDocument(Base):
    """Cached recommendation report, one per user, replaced wholesale."""

    __tablename__ = "training_analyses"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), unique=True, nullable=False)
    last_updated = Column(DateTime, nullable=False)
    payload = Column(Text, nullable=False)  # JSON document


class MuscleAnalysisDocument(Base):
    """Cached muscle analysis report, one per user, replaced wholesale."""

    __tablename__ = "muscle_analyses"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), unique=True, nullable=False)
    last_updated = Column(DateTime, nullable=False)
    payload = Column(Text, nullable=False)  # JSON document
