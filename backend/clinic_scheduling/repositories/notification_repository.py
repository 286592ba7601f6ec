from datetime import datetime
from typing import List, Optional

from clinic_scheduling.models.notification import EventKind, NotificationRecord


class NotificationLog:
    """Append-only history of dispatch attempts."""

    async def add(self, record: NotificationRecord) -> NotificationRecord:
        raise NotImplementedError

    async def list(
        self,
        type: Optional[EventKind] = None,
        recipient: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[NotificationRecord]:
        """Matching records, newest first."""
        raise NotImplementedError


class InMemoryNotificationLog(NotificationLog):
    def __init__(self):
        self._records: List[NotificationRecord] = []

    async def add(self, record: NotificationRecord) -> NotificationRecord:
        self._records.append(record)
        return record

    async def list(self, type=None, recipient=None, since=None, until=None, limit=None):
        found = [
            r for r in self._records
            if (type is None or r.type == type)
            and (recipient is None or recipient in r.recipients)
            and (since is None or r.sentAt >= since)
            and (until is None or r.sentAt <= until)
        ]
        found.sort(key=lambda r: r.sentAt, reverse=True)
        return found[:limit] if limit else found


class MongoNotificationLog(NotificationLog):
    def __init__(self, db, collection_name: str = "notification_history"):
        self.collection = db[collection_name]

    async def add(self, record: NotificationRecord) -> NotificationRecord:
        doc = record.model_dump(mode="json")
        doc["_id"] = doc.pop("id")
        # Keep a real datetime so the stats range query works
        doc["sentAt"] = record.sentAt
        await self.collection.insert_one(doc)
        return record

    async def list(self, type=None, recipient=None, since=None, until=None, limit=None):
        query = {}
        if type:
            query["type"] = type.value
        if recipient:
            query["recipients"] = recipient
        if since or until:
            query["sentAt"] = {}
            if since:
                query["sentAt"]["$gte"] = since
            if until:
                query["sentAt"]["$lte"] = until

        cursor = self.collection.find(query).sort("sentAt", -1)
        if limit:
            cursor = cursor.limit(limit)

        records = []
        async for doc in cursor:
            doc["id"] = str(doc.pop("_id"))
            records.append(NotificationRecord(**doc))
        return records
