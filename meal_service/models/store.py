"""
MEALY Meal Service - Record Store

Firestore access for user and schedule documents. Works against the real
Firestore client or the in-memory mock from core.database.
"""

import logging
from typing import List, Optional

from .records import User

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
SCHEDULE_COLLECTION = "schedule"


class RecordStore:
    """Find / insert / update operations over the household collections."""

    def __init__(self, db):
        self.db = db

    # ---------------------------------------------------------------- users

    def _user_ref(self, uid: str):
        return self.db.collection(USERS_COLLECTION).document(uid)

    def get_user(self, uid: str) -> Optional[User]:
        doc = self._user_ref(uid).get()
        if not doc.exists:
            return None
        return User.model_validate(doc.to_dict())

    def list_users(self) -> List[User]:
        docs = self.db.collection(USERS_COLLECTION).stream()
        return [User.model_validate(doc.to_dict()) for doc in docs]

    def find_users(self, **filters) -> List[User]:
        """Equality filter on stored field names, e.g. find_users(is_away=False)."""
        query = self.db.collection(USERS_COLLECTION)
        for field, value in filters.items():
            query = query.where(field, "==", value)
        return [User.model_validate(doc.to_dict()) for doc in query.stream()]

    def count_users(self) -> int:
        return len(self.list_users())

    def insert_user(self, user: User) -> User:
        self._user_ref(user.firebase_uid).set(user.to_document())
        logger.info(f"👤 User document created: {user.firebase_uid}")
        return user

    def update_user(self, uid: str, fields: dict) -> User:
        """Update one user document and return the stored result."""
        ref = self._user_ref(uid)
        ref.update(fields)
        return User.model_validate(ref.get().to_dict())

    # ------------------------------------------------------------- schedule

    def get_schedule(self, doc_id: str) -> Optional[dict]:
        doc = self.db.collection(SCHEDULE_COLLECTION).document(doc_id).get()
        return doc.to_dict() if doc.exists else None

    def save_schedule(self, doc_id: str, data: dict) -> None:
        self.db.collection(SCHEDULE_COLLECTION).document(doc_id).set(data)
