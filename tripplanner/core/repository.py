from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from pymongo import MongoClient

from tripplanner.core.schemas import TripRecord
from tripplanner.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class TripRepository(Protocol):
    def append_trip(self, user_id: str, record: TripRecord) -> str: ...

    def get_user_trips(self, user_id: str) -> list[dict[str, Any]]: ...

    def get_trip(self, trip_id: str) -> dict[str, Any] | None: ...


def _record_to_doc(record: TripRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


class MongoTripRepo:
    """Trip history stored as an array on each user document."""

    def __init__(self, mongodb_uri: str, database_name: str = "travelPlanner"):
        if not mongodb_uri:
            raise ValueError("MONGODB_URI environment variable is required")

        self.client = MongoClient(
            mongodb_uri,
            serverSelectionTimeoutMS=5000,  # 5 second timeout
            connectTimeoutMS=10000,  # 10 second connection timeout
            socketTimeoutMS=20000,  # 20 second socket timeout
            retryWrites=True,
            retryReads=True,
        )
        self.db = self.client[database_name]
        self.users_collection = self.db.users

        try:
            self.client.admin.command("ping")
            logger.info(f"MongoDB connected ({database_name})")
            self.users_collection.create_index("user_id", unique=True)
            self.users_collection.create_index("trips.id")
        except Exception as e:
            # Keep serving; individual operations will surface their own errors
            logger.error(f"MongoDB connection failed: {str(e)[:200]}")

    def append_trip(self, user_id: str, record: TripRecord) -> str:
        self.users_collection.update_one(
            {"user_id": user_id},
            {"$push": {"trips": _record_to_doc(record)}},
            upsert=True,
        )
        return record.id

    def get_user_trips(self, user_id: str) -> list[dict[str, Any]]:
        """Trips for a user, newest first."""
        user_doc = self.users_collection.find_one({"user_id": user_id}, {"_id": 0, "trips": 1})
        if not user_doc:
            return []
        return list(reversed(user_doc.get("trips", [])))

    def get_trip(self, trip_id: str) -> dict[str, Any] | None:
        user_doc = self.users_collection.find_one(
            {"trips.id": trip_id}, {"_id": 0, "trips.$": 1}
        )
        if not user_doc or not user_doc.get("trips"):
            return None
        return user_doc["trips"][0]


class InMemoryTripRepo:
    """Process-local trip store for development and tests."""

    def __init__(self) -> None:
        self._trips: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def append_trip(self, user_id: str, record: TripRecord) -> str:
        with self._lock:
            self._trips.setdefault(user_id, []).append(_record_to_doc(record))
        return record.id

    def get_user_trips(self, user_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(reversed(self._trips.get(user_id, [])))

    def get_trip(self, trip_id: str) -> dict[str, Any] | None:
        with self._lock:
            for trips in self._trips.values():
                for trip in trips:
                    if trip["id"] == trip_id:
                        return trip
        return None


_repo: TripRepository | None = None


def build_repo(settings: Settings) -> TripRepository:
    store = settings.trip_store.strip().lower()
    if store == "memory":
        logger.info("Using in-memory trip store")
        return InMemoryTripRepo()
    if store == "mongo":
        return MongoTripRepo(settings.mongodb_uri, settings.database_name)
    raise ValueError(f"Unknown TRIP_STORE: {settings.trip_store!r}")


def get_repo() -> TripRepository:
    """Process-wide repository, created on first use."""
    global _repo
    if _repo is None:
        _repo = build_repo(get_settings())
    return _repo
