"""
MEALY Firebase Database Initialization

Initializes Firebase Admin SDK for Firestore access.
Supports mock mode when credentials are unavailable.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from core.config import settings

# Configure logging
logger = logging.getLogger(__name__)

# Global Firestore client
_db: Optional[firestore.Client] = None
_mock_db: Optional["MockFirestoreClient"] = None
_mock_mode: bool = False


def _load_credentials() -> Optional[credentials.Certificate]:
    """
    Build a service account credential from the environment or the
    credentials file, whichever is available.
    """
    if settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY:
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            # Hosting dashboards store the key with escaped newlines
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        })

    cred_path = Path(__file__).parent.parent / settings.FIREBASE_CREDENTIALS_PATH
    if not cred_path.exists():
        logger.warning(
            f"⚠️ Firebase credentials not found at '{cred_path}'. "
            "Running in MOCK MODE - database operations will be simulated."
        )
        return None

    return credentials.Certificate(str(cred_path))


def init_firebase() -> bool:
    """
    Initialize Firebase Admin SDK.

    Returns:
        bool: True if connected successfully, False if running in mock mode.
    """
    global _db, _mock_mode

    # Already initialized?
    if _db is not None or _mock_mode:
        return not _mock_mode

    try:
        cred = _load_credentials()
        if cred is None:
            _mock_mode = True
            return False

        # Check if already initialized (happens during hot reload)
        if not firebase_admin._apps:
            firebase_admin.initialize_app(cred, {
                'projectId': settings.FIREBASE_PROJECT_ID,
            })
            logger.info(f"🔥 Firebase Admin SDK initialized for project: {settings.FIREBASE_PROJECT_ID}")

        # Get Firestore client
        _db = firestore.client()
        logger.info("✅ Connected to Firestore successfully!")
        return True

    except Exception as e:
        logger.error(f"❌ Failed to initialize Firebase: {e}")
        logger.warning("Running in MOCK MODE - database operations will be simulated.")
        _mock_mode = True
        return False


def get_db() -> Optional[firestore.Client]:
    """
    Get Firestore database client.

    Returns:
        Firestore client or None if in mock mode.
    """
    if _db is None and not _mock_mode:
        init_firebase()

    return _db


def is_mock_mode() -> bool:
    """Check if running in mock mode (no Firebase connection)."""
    return _mock_mode


# ============================================
# Mock Database for Development/Testing
# ============================================

class MockFirestoreClient:
    """
    Mock Firestore client for development without Firebase.
    Stores data in memory.
    """

    def __init__(self):
        self._collections: dict = {}
        logger.info("🧪 MockFirestoreClient initialized (in-memory storage)")

    def collection(self, name: str):
        if name not in self._collections:
            self._collections[name] = MockCollection(name)
        return self._collections[name]


class MockQuery:
    """Equality-only query over a mock collection."""

    def __init__(self, collection: "MockCollection", filters: list):
        self._collection = collection
        self._filters = filters

    def where(self, field: str, op: str, value: Any) -> "MockQuery":
        if op != "==":
            raise ValueError(f"MockQuery only supports '==', got '{op}'")
        return MockQuery(self._collection, self._filters + [(field, value)])

    def stream(self):
        for doc in self._collection.stream():
            data = doc.to_dict()
            if all(data.get(field) == value for field, value in self._filters):
                yield doc

    def get(self):
        return list(self.stream())


class MockCollection:
    """Mock Firestore collection."""

    def __init__(self, name: str):
        self.name = name
        self._documents: dict = {}

    def document(self, doc_id: str):
        if doc_id not in self._documents:
            self._documents[doc_id] = MockDocument(doc_id, self)
        return self._documents[doc_id]

    def stream(self):
        return (doc for doc in list(self._documents.values()) if doc.exists)

    def get(self):
        return list(self.stream())

    def where(self, field: str, op: str, value):
        return MockQuery(self, []).where(field, op, value)


class MockDocument:
    """Mock Firestore document (reference and snapshot in one)."""

    def __init__(self, doc_id: str, collection: MockCollection):
        self.id = doc_id
        self._collection = collection
        self._data: dict = {}
        self.exists = False

    def set(self, data: dict, merge: bool = False):
        if merge:
            self._data.update(copy.deepcopy(data))
        else:
            self._data = copy.deepcopy(data)
        self.exists = True

    def update(self, data: dict):
        if not self.exists:
            raise KeyError(f"No document to update: {self._collection.name}/{self.id}")
        self._data.update(copy.deepcopy(data))

    def get(self):
        return self

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


def get_mock_db() -> MockFirestoreClient:
    """Get the process-wide mock database client."""
    global _mock_db
    if _mock_db is None:
        _mock_db = MockFirestoreClient()
    return _mock_db


# ============================================
# Database Helper Functions
# ============================================

def get_database():
    """
    Get database client (real or mock).
    Use this in your services to automatically handle mock mode.
    """
    if get_db() is None:
        return get_mock_db()
    return _db
