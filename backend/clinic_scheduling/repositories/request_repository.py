"""
Storage for schedule requests.

The lifecycle service only depends on ``RequestRepository``; the in-memory
implementation backs tests and local development, the Mongo implementation
backs deployments (``STORAGE_BACKEND=mongo``).
"""

import asyncio
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from clinic_scheduling.models.request import RequestStatus, RequestType, ScheduleRequest

logger = logging.getLogger(__name__)


class RequestFilter(BaseModel):
    """Exact-match filter; unset fields match everything."""
    status: Optional[RequestStatus] = None
    providerId: Optional[str] = None
    requestType: Optional[RequestType] = None

    def matches(self, request: ScheduleRequest) -> bool:
        if self.status and request.status != self.status:
            return False
        if self.providerId and request.providerId != self.providerId:
            return False
        if self.requestType and request.requestType != self.requestType:
            return False
        return True

    def to_query(self) -> dict:
        query = {}
        if self.status:
            query["status"] = self.status.value
        if self.providerId:
            query["providerId"] = self.providerId
        if self.requestType:
            query["requestType"] = self.requestType.value
        return query


class RequestRepository:
    """Id-keyed collection of requests.

    ``lock`` serialises read-check-write sequences in the lifecycle service;
    the repository methods themselves do not take it.
    """

    def __init__(self):
        self.lock = asyncio.Lock()

    async def list(self, filters: Optional[RequestFilter] = None) -> List[ScheduleRequest]:
        """Matching requests, newest first."""
        raise NotImplementedError

    async def get(self, request_id: str) -> Optional[ScheduleRequest]:
        raise NotImplementedError

    async def put(self, request: ScheduleRequest) -> ScheduleRequest:
        """Insert or replace by id."""
        raise NotImplementedError

    async def remove_by_id(self, request_id: str) -> Optional[ScheduleRequest]:
        raise NotImplementedError


class InMemoryRequestRepository(RequestRepository):
    """Process-memory store. Everything is lost on restart."""

    def __init__(self):
        super().__init__()
        self._items: Dict[str, ScheduleRequest] = {}

    async def list(self, filters: Optional[RequestFilter] = None) -> List[ScheduleRequest]:
        filters = filters or RequestFilter()
        found = [r.model_copy(deep=True) for r in self._items.values() if filters.matches(r)]
        found.sort(key=lambda r: r.createdAt, reverse=True)
        return found

    async def get(self, request_id: str) -> Optional[ScheduleRequest]:
        request = self._items.get(request_id)
        # Callers get copies so nothing bypasses put()
        return request.model_copy(deep=True) if request else None

    async def put(self, request: ScheduleRequest) -> ScheduleRequest:
        self._items[request.id] = request.model_copy(deep=True)
        return request

    async def remove_by_id(self, request_id: str) -> Optional[ScheduleRequest]:
        return self._items.pop(request_id, None)

    def __len__(self) -> int:
        return len(self._items)


class MongoRequestRepository(RequestRepository):
    def __init__(self, db, collection_name: str = "schedule_requests"):
        super().__init__()
        self.collection = db[collection_name]

    @staticmethod
    def _to_doc(request: ScheduleRequest) -> dict:
        # BSON has no date/time types; JSON mode stores ISO strings
        doc = request.model_dump(mode="json")
        doc["_id"] = doc.pop("id")
        return doc

    @staticmethod
    def _from_doc(doc: dict) -> ScheduleRequest:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return ScheduleRequest(**doc)

    async def list(self, filters: Optional[RequestFilter] = None) -> List[ScheduleRequest]:
        query = filters.to_query() if filters else {}
        docs = await self.collection.find(query).sort("createdAt", -1).to_list(None)
        return [self._from_doc(doc) for doc in docs]

    async def get(self, request_id: str) -> Optional[ScheduleRequest]:
        doc = await self.collection.find_one({"_id": request_id})
        return self._from_doc(doc) if doc else None

    async def put(self, request: ScheduleRequest) -> ScheduleRequest:
        doc = self._to_doc(request)
        await self.collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)
        return request

    async def remove_by_id(self, request_id: str) -> Optional[ScheduleRequest]:
        doc = await self.collection.find_one_and_delete({"_id": request_id})
        if doc is None:
            logger.debug("remove_by_id: %s not found", request_id)
            return None
        return self._from_doc(doc)
