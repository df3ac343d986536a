"""Personal record tracking.

Records are monotonic: a stored value only ever changes on a strict
improvement, and each improvement appends exactly one history entry.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from ..config import config
from ..db import get_db
from ..db.database import Database, upsert
from ..db.models import PersonalRecord, PersonalRecordHistory, WorkoutSession, utcnow
from ..db.store import session_query, to_completed_session, to_definition
from ..errors import NotFoundError
from ..types import CompletedSession, ExerciseEntry, SetEntry
from .volume import ExerciseMetrics, exercise_metrics


class RecordType(Enum):
    """Tracked personal record metrics."""

    MAX_WEIGHT = "max_weight"  # heaviest completed set
    MAX_REPS = "max_reps"  # most reps in a completed set
    MAX_SET_VOLUME = "max_set_volume"  # weight * reps in a single set
    MAX_SESSION_VOLUME = "max_session_volume"  # total volume in one session


@dataclass
class MetricUpdate:
    """A record that improved during a session."""
    exercise_id: int
    exercise_name: str
    record_type: RecordType
    value: float
    previous_value: float
    improvement_pct: Optional[float]

    def to_dict(self) -> Dict:
        return {
            'exercise_id': self.exercise_id,
            'exercise_name': self.exercise_name,
            'type': self.record_type.value,
            'value': self.value,
            'previous_value': self.previous_value,
            'improvement_pct': self.improvement_pct,
        }


def improvement_pct(previous: float, candidate: float) -> Optional[float]:
    """Percentage improvement over the previous record; None if there was none."""
    if not previous:
        return None
    return (candidate - previous) / previous * 100


def candidate_values(metrics: ExerciseMetrics) -> Dict[RecordType, float]:
    return {
        RecordType.MAX_WEIGHT: metrics.max_weight,
        RecordType.MAX_REPS: metrics.max_reps,
        RecordType.MAX_SET_VOLUME: metrics.max_set_volume,
        RecordType.MAX_SESSION_VOLUME: metrics.session_volume,
    }


def evaluate_record_updates(
    current: Dict[RecordType, float],
    metrics: ExerciseMetrics,
    exercise_id: int,
    exercise_name: str,
) -> List[MetricUpdate]:
    """Compare one session's candidates against the stored records.

    Missing records count as 0. Only strict improvements are returned.
    """
    updates = []
    for record_type, candidate in candidate_values(metrics).items():
        previous = current.get(record_type) or 0.0
        if candidate > previous:
            updates.append(MetricUpdate(
                exercise_id=exercise_id,
                exercise_name=exercise_name,
                record_type=record_type,
                value=candidate,
                previous_value=previous,
                improvement_pct=improvement_pct(previous, candidate),
            ))
    return updates


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def empty_record(user_id: str, exercise_id: int) -> Dict:
    """The 'no data yet' record: every metric at zero, no history."""
    return {
        'user_id': user_id,
        'exercise_id': exercise_id,
        'records': {
            record_type.value: {'value': 0.0, 'date': None, 'session_id': None}
            for record_type in RecordType
        },
        'history': [],
    }


def record_to_dict(row: PersonalRecord) -> Dict:
    """Serialize a PersonalRecord row with its full history, oldest first."""
    records = {}
    for record_type in RecordType:
        key = record_type.value
        records[key] = {
            'value': getattr(row, key) or 0.0,
            'date': _iso(getattr(row, f"{key}_date")),
            'session_id': getattr(row, f"{key}_session_id"),
        }

    return {
        'user_id': row.user_id,
        'exercise_id': row.exercise_id,
        'records': records,
        'history': [
            {
                'type': entry.record_type,
                'value': entry.value,
                'previous_value': entry.previous_value,
                'improvement_pct': entry.improvement_pct,
                'date': _iso(entry.date),
                'session_id': entry.session_id,
            }
            for entry in row.history
        ],
    }


def _merge_entries(exercises: List[ExerciseEntry]) -> "OrderedDict[int, ExerciseEntry]":
    """Combine repeated entries of the same exercise within one session."""
    merged: "OrderedDict[int, ExerciseEntry]" = OrderedDict()
    for entry in exercises:
        if entry.exercise_id in merged:
            first = merged[entry.exercise_id]
            sets: List[SetEntry] = list(first.sets) + list(entry.sets)
            merged[entry.exercise_id] = ExerciseEntry(
                exercise_id=first.exercise_id,
                sets=sets,
                definition=first.definition,
                name=first.name,
            )
        else:
            merged[entry.exercise_id] = entry
    return merged


class PersonalRecordTracker:
    """Updates and serves best-ever metrics per user and exercise."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()
        self.logger = logging.getLogger(__name__)

    def record_session(self, session_id: int, now: Optional[datetime] = None) -> List[MetricUpdate]:
        """Apply a completed session to the user's records, exactly once.

        The session is claimed with a conditional UPDATE before anything is
        read, so concurrent callers cannot both apply it. A session that was
        already processed yields no updates.
        """
        now = now or utcnow()

        with self.db.write_session("personal record update") as session:
            claimed = (
                session.query(WorkoutSession)
                .filter(WorkoutSession.id == session_id, WorkoutSession.records_processed_at.is_(None))
                .update({"records_processed_at": now}, synchronize_session=False)
            )
            if not claimed:
                if session.query(WorkoutSession.id).filter(WorkoutSession.id == session_id).first() is None:
                    raise NotFoundError("session", session_id)
                self.logger.info(f"Session {session_id} already processed for personal records, skipping")
                return []

            row = session_query(session).filter(WorkoutSession.id == session_id).one()
            updates = self._apply(session, to_completed_session(row))

        if updates:
            self.logger.info(f"Session {session_id}: {len(updates)} personal record(s) improved")
        return updates

    def _load_record(self, session, user_id: str, exercise_id: int) -> PersonalRecord:
        """Fetch the record row for update, inserting a zeroed one if missing."""
        values = {"user_id": user_id, "exercise_id": exercise_id}
        for record_type in RecordType:
            values[record_type.value] = 0.0
        upsert(session, PersonalRecord, values, key_columns=["user_id", "exercise_id"])

        return (
            session.query(PersonalRecord)
            .filter_by(user_id=user_id, exercise_id=exercise_id)
            .with_for_update()
            .one()
        )

    def _apply(self, session, completed: CompletedSession) -> List[MetricUpdate]:
        updates: List[MetricUpdate] = []

        for exercise_id, entry in _merge_entries(completed.exercises).items():
            if exercise_id is None or entry.definition is None:
                self.logger.warning(
                    f"Session {completed.id}: skipping exercise without a valid reference ({entry.display_name})"
                )
                continue

            record = self._load_record(session, completed.user_id, exercise_id)

            current = {rt: getattr(record, rt.value) or 0.0 for rt in RecordType}
            exercise_updates = evaluate_record_updates(
                current, exercise_metrics(entry.sets), exercise_id, entry.display_name
            )

            for update in exercise_updates:
                key = update.record_type.value
                setattr(record, key, update.value)
                setattr(record, f"{key}_date", completed.completed_at)
                setattr(record, f"{key}_session_id", completed.id)
                record.history.append(PersonalRecordHistory(
                    record_type=key,
                    value=update.value,
                    previous_value=update.previous_value,
                    improvement_pct=update.improvement_pct,
                    date=completed.completed_at,
                    session_id=completed.id,
                ))

            updates.extend(exercise_updates)

        return updates

    def get_personal_record(self, user_id: str, exercise_id: int) -> Dict:
        """Records of one exercise; a zero-valued record when none exist."""
        with self.db.get_session() as session:
            row = session.query(PersonalRecord).filter_by(user_id=user_id, exercise_id=exercise_id).first()
            if row is None:
                return empty_record(user_id, exercise_id)
            return record_to_dict(row)

    def list_personal_records(self, user_id: str) -> List[Dict]:
        """All records of a user with their exercise definitions attached."""
        with self.db.get_session() as session:
            rows = session.query(PersonalRecord).filter_by(user_id=user_id).order_by(PersonalRecord.id).all()
            results = []
            for row in rows:
                data = record_to_dict(row)
                data['exercise'] = to_definition(row.exercise).to_dict() if row.exercise is not None else None
                results.append(data)
            return results

    def get_all_personal_records(self, user_id: str, recent_limit: Optional[int] = None) -> Dict[str, List[Dict]]:
        """Records grouped by muscle group, each with its most recent improvements."""
        recent_limit = recent_limit or config.RECENT_PR_LIMIT
        grouped: Dict[str, List[Dict]] = {}

        for data in self.list_personal_records(user_id):
            exercise = data['exercise']
            if exercise is None:
                self.logger.warning(f"Personal record for unknown exercise {data['exercise_id']} skipped")
                continue

            recent = sorted(data['history'], key=lambda h: h['date'] or "", reverse=True)[:recent_limit]
            grouped.setdefault(exercise['muscle_group'], []).append({
                'exercise_id': data['exercise_id'],
                'exercise': exercise['name'],
                'records': data['records'],
                'recent_prs': recent,
            })

        return {
            group: sorted(entries, key=lambda e: (e['exercise'], e['exercise_id']))
            for group, entries in sorted(grouped.items())
        }
