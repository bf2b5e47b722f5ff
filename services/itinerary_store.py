# services/itinerary_store.py
from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel

from errors import PersistenceError
from models import ActivityRecord, ItineraryDayRecord, ItineraryRecord
from request_context import get_request_id

log = logging.getLogger("store")

Filter = Dict[str, Any]
Sort = Sequence[Tuple[str, int]]  # (field, 1 ascending | -1 descending)

ASCENDING = 1
DESCENDING = -1

# ----------------------------
# Provider interface
# ----------------------------

class DocumentCollection(Protocol):
    async def insert_one(self, doc: Dict[str, Any]) -> Dict[str, Any]: ...

    async def find_one(self, flt: Filter) -> Optional[Dict[str, Any]]: ...

    async def find_many(self, flt: Filter, sort: Optional[Sort] = None) -> List[Dict[str, Any]]: ...

    async def delete_many(self, flt: Filter) -> int: ...

# ----------------------------
# In-memory provider
# ----------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _matches(doc: Dict[str, Any], flt: Filter) -> bool:
    for field, cond in flt.items():
        value = doc.get(field)
        if isinstance(cond, dict) and "$in" in cond:
            if value not in cond["$in"]:
                return False
        elif value != cond:
            return False
    return True

def _sorted(docs: List[Dict[str, Any]], sort: Optional[Sort]) -> List[Dict[str, Any]]:
    # Stable multi-key sort, applied last key first; None always sorts last
    for field, direction in reversed(list(sort or ())):
        present = [d for d in docs if d.get(field) is not None]
        missing = [d for d in docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=direction == DESCENDING)
        docs = present + missing
    return docs


class InMemoryCollection:
    """
    Dict-backed document collection with server-assigned ids and timestamps.
    Documents are copied on the way in and out.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._docs: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._docs)

    async def insert_one(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        now = _now()
        stored = copy.deepcopy(doc)
        stored["id"] = uuid.uuid4().hex[:24]
        stored.setdefault("created_at", now)
        stored["updated_at"] = now
        self._docs[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def find_one(self, flt: Filter) -> Optional[Dict[str, Any]]:
        for doc in self._docs.values():
            if _matches(doc, flt):
                return copy.deepcopy(doc)
        return None

    async def find_many(self, flt: Filter, sort: Optional[Sort] = None) -> List[Dict[str, Any]]:
        found = [copy.deepcopy(d) for d in self._docs.values() if _matches(d, flt)]
        return _sorted(found, sort)

    async def delete_many(self, flt: Filter) -> int:
        doomed = [doc_id for doc_id, doc in self._docs.items() if _matches(doc, flt)]
        for doc_id in doomed:
            del self._docs[doc_id]
        return len(doomed)

# ----------------------------
# Typed facade
# ----------------------------

class ItineraryStore:
    """
    Persistence for the itinerary aggregate: itineraries -> itinerary_days -> activities.

    There is no cross-collection transaction. Callers write parents before
    children and delete children before parents.
    """

    def __init__(
        self,
        itineraries: DocumentCollection,
        days: DocumentCollection,
        activities: DocumentCollection,
    ) -> None:
        self.itineraries = itineraries
        self.days = days
        self.activities = activities

    @classmethod
    def in_memory(cls) -> "ItineraryStore":
        return cls(
            InMemoryCollection("itineraries"),
            InMemoryCollection("itinerary_days"),
            InMemoryCollection("activities"),
        )

    async def _call(self, op: str, coro):
        try:
            return await coro
        except PersistenceError:
            raise
        except Exception as e:
            log.error("Store operation failed: %s", op, exc_info=True, extra={"request_id": get_request_id()})
            raise PersistenceError(f"Store operation '{op}' failed") from e

    @staticmethod
    def _doc(model_fields: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in model_fields.items() if k not in ("id", "created_at", "updated_at")}

    @staticmethod
    def _load(model: type[BaseModel], doc: Dict[str, Any]):
        try:
            return model.model_validate(doc)
        except Exception as e:
            raise PersistenceError(f"Stored {model.__name__} document is unreadable") from e

    # --- itineraries ---

    async def insert_itinerary(self, fields: Dict[str, Any]) -> ItineraryRecord:
        doc = await self._call("insert_itinerary", self.itineraries.insert_one(self._doc(fields)))
        return self._load(ItineraryRecord, doc)

    async def find_itinerary(self, itinerary_id: str) -> Optional[ItineraryRecord]:
        doc = await self._call("find_itinerary", self.itineraries.find_one({"id": itinerary_id}))
        return self._load(ItineraryRecord, doc) if doc else None

    async def find_itineraries_by_owner(self, owner_id: str) -> List[ItineraryRecord]:
        docs = await self._call(
            "find_itineraries_by_owner",
            self.itineraries.find_many({"owner_id": owner_id}, sort=[("created_at", DESCENDING)]),
        )
        return [self._load(ItineraryRecord, d) for d in docs]

    async def delete_itinerary(self, itinerary_id: str) -> int:
        return await self._call("delete_itinerary", self.itineraries.delete_many({"id": itinerary_id}))

    # --- days ---

    async def insert_day(self, fields: Dict[str, Any]) -> ItineraryDayRecord:
        doc = await self._call("insert_day", self.days.insert_one(self._doc(fields)))
        return self._load(ItineraryDayRecord, doc)

    async def find_days(self, itinerary_id: str) -> List[ItineraryDayRecord]:
        docs = await self._call(
            "find_days",
            self.days.find_many({"itinerary_id": itinerary_id}, sort=[("day_number", ASCENDING)]),
        )
        return [self._load(ItineraryDayRecord, d) for d in docs]

    async def delete_days(self, itinerary_id: str) -> int:
        return await self._call("delete_days", self.days.delete_many({"itinerary_id": itinerary_id}))

    # --- activities ---

    async def insert_activity(self, fields: Dict[str, Any]) -> ActivityRecord:
        doc = await self._call("insert_activity", self.activities.insert_one(self._doc(fields)))
        return self._load(ActivityRecord, doc)

    async def find_activities(self, day_ids: Iterable[str]) -> List[ActivityRecord]:
        docs = await self._call(
            "find_activities",
            self.activities.find_many(
                {"day_id": {"$in": list(day_ids)}},
                sort=[("day_id", ASCENDING), ("start_time", ASCENDING)],
            ),
        )
        return [self._load(ActivityRecord, d) for d in docs]

    async def delete_activities(self, day_ids: Iterable[str]) -> int:
        return await self._call("delete_activities", self.activities.delete_many({"day_id": {"$in": list(day_ids)}}))
