"""Value objects describing a user's session window.

These are detached from the ORM so the analysis components stay pure
functions of their input.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class ExerciseDefinition:
    """Read-only exercise reference data."""
    id: int
    name: str
    muscle_group: str
    primary_muscles: List[str] = field(default_factory=list)
    secondary_muscles: List[str] = field(default_factory=list)
    category: str = "Strength"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'muscle_group': self.muscle_group,
            'primary_muscles': list(self.primary_muscles),
            'secondary_muscles': list(self.secondary_muscles),
            'category': self.category,
        }


@dataclass(frozen=True)
class SetEntry:
    """One set of an exercise."""
    reps: int
    weight: float
    completed: bool = True


@dataclass(frozen=True)
class ExerciseEntry:
    """An exercise as performed in a session.

    `definition` is None when the exercise reference could not be resolved.
    """
    exercise_id: Optional[int]
    sets: List[SetEntry]
    definition: Optional[ExerciseDefinition] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.definition is not None:
            return self.definition.name
        return self.name or f"exercise {self.exercise_id}"


@dataclass(frozen=True)
class CompletedSession:
    """A completed workout session."""
    id: int
    user_id: str
    completed_at: datetime
    exercises: List[ExerciseEntry]
