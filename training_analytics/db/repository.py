"""Persistence of the cached analysis documents."""

import json
import logging
from datetime import datetime
from typing import Dict, Optional, Tuple

from .database import Database, get_db, upsert
from .models import TrainingAnalysisDocument, MuscleAnalysisDocument

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = {
    "training_analysis": TrainingAnalysisDocument,
    "muscle_analysis": MuscleAnalysisDocument,
}


class AnalysisRepository:
    """Stores one document per user and kind; saving replaces it wholesale."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    def load(self, kind: str, user_id: str) -> Optional[Tuple[datetime, Dict]]:
        """Return (last_updated, document) or None when nothing is stored."""
        model = DOCUMENT_MODELS[kind]
        with self.db.get_session() as session:
            row = session.query(model).filter(model.user_id == user_id).first()
            if row is None:
                return None
            return row.last_updated, json.loads(row.payload)

    def save(self, kind: str, user_id: str, last_updated: datetime, document: Dict) -> None:
        """Upsert the user's document."""
        model = DOCUMENT_MODELS[kind]
        payload = json.dumps(document)

        with self.db.write_session(f"save {kind}") as session:
            upsert(
                session,
                model,
                {"user_id": user_id, "last_updated": last_updated, "payload": payload},
                key_columns=["user_id"],
                update_columns=["last_updated", "payload"],
            )

        logger.debug(f"Saved {kind} for user {user_id}")
