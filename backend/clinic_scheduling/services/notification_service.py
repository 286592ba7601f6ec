import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends

from clinic_scheduling.db import get_notification_log
from clinic_scheduling.errors import NotifierFailure
from clinic_scheduling.models.notification import (
    DeliveryStatus, EventKind, LifecycleEvent, NotificationRecord, SendResult
)
from clinic_scheduling.models.request import ScheduleRequest
from clinic_scheduling.repositories.notification_repository import NotificationLog
from clinic_scheduling.services import email_templates
from clinic_scheduling.services.email_service import Notifier, get_notifier
from clinic_scheduling.utils.logger import log_event, log_warning, EventTypes

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAILS = ["admin@clinic.com"]
DEFAULT_DIRECTOR_EMAILS = ["director@clinic.com"]

# Event kinds addressed to the provider who owns the request
PROVIDER_EVENTS = {
    EventKind.SUBMITTED,
    EventKind.APPROVED,
    EventKind.REJECTED,
    EventKind.CANCELLED,
    EventKind.CLARIFICATION,
}

def parse_recipients(value: Optional[str], default: List[str]) -> List[str]:
    """Split a comma separated address list, falling back to ``default``."""
    if not value:
        return list(default)
    recipients = [item.strip() for item in value.split(",") if item.strip()]
    return recipients or list(default)

class NotificationDispatcher:
    """Turns lifecycle events into emails.

    Delivery is at-most-once and best effort: a failure is logged and
    recorded in the notification history, and never raised to the caller.
    """

    def __init__(
        self,
        notifier: Notifier,
        history: NotificationLog,
        admin_emails: Optional[List[str]] = None,
        director_emails: Optional[List[str]] = None
    ):
        self.notifier = notifier
        self.history = history
        self.admin_emails = admin_emails or parse_recipients(os.getenv("ADMIN_EMAILS"), DEFAULT_ADMIN_EMAILS)
        self.director_emails = director_emails or parse_recipients(os.getenv("DIRECTOR_EMAILS"), DEFAULT_DIRECTOR_EMAILS)

    def recipients_for(self, kind: EventKind, request: ScheduleRequest) -> List[str]:
        if kind in PROVIDER_EVENTS:
            return [request.providerEmail] if request.providerEmail else []
        if kind == EventKind.ADMIN_NEW:
            return list(self.admin_emails)
        if kind == EventKind.DIRECTOR_PTO_UPLOAD:
            return list(self.director_emails)
        return []

    async def dispatch(
        self,
        kind: EventKind,
        request: ScheduleRequest,
        extra: Optional[dict] = None,
        attachments: Optional[list] = None,
        actor_id: Optional[str] = None
    ) -> SendResult:
        recipients = self.recipients_for(kind, request)
        subject = kind.value
        try:
            subject, body = email_templates.render(kind, request, extra)
            result = await self._deliver(recipients, subject, body, attachments)
        except NotifierFailure as e:
            result = SendResult(success=False, error=e.message)
        except Exception as e:
            # Template bugs must not surface through the lifecycle either
            logger.exception("Rendering %s notification for %s failed", kind.value, request.id)
            result = SendResult(success=False, error=str(e))

        await self._record(kind, recipients, subject, request.id, result, actor_id)
        return result

    async def handle(self, event: LifecycleEvent) -> SendResult:
        """Post-commit hook for the request service."""
        return await self.dispatch(event.kind, event.request, event.extra, actor_id=event.actorId)

    async def send_test(
        self,
        recipient: str,
        subject: str,
        message: str,
        actor_id: Optional[str] = None
    ) -> SendResult:
        body = email_templates.render_test_message(message, datetime.utcnow())
        try:
            result = await self._deliver([recipient], subject, body)
        except NotifierFailure as e:
            result = SendResult(success=False, error=e.message)
        await self._record(EventKind.TEST, [recipient], subject, None, result, actor_id)
        return result

    async def _deliver(self, recipients: List[str], subject: str, body: str, attachments=None) -> SendResult:
        if not recipients:
            raise NotifierFailure("No recipients configured")
        try:
            result = await self.notifier.send(recipients, subject, body, attachments)
        except Exception as e:
            raise NotifierFailure(str(e)) from e
        if not result.success:
            raise NotifierFailure(result.error or "Notifier reported a failure")
        return result

    async def _record(
        self,
        kind: EventKind,
        recipients: List[str],
        subject: str,
        request_id: Optional[str],
        result: SendResult,
        actor_id: Optional[str] = None
    ) -> None:
        record = NotificationRecord(
            type=kind,
            recipients=recipients,
            subject=subject,
            requestId=request_id,
            status=DeliveryStatus.SENT if result.success else DeliveryStatus.FAILED,
            messageId=result.messageId,
            error=result.error,
            triggeredBy=actor_id,
        )
        try:
            await self.history.add(record)
        except Exception as e:
            logger.error(f"Failed to record notification history: {e}")

        details = {"type": kind.value, "recipients": recipients, "request_id": request_id}
        if result.success:
            await log_event(EventTypes.NOTIFICATION_SENT, details, user_id=actor_id)
        else:
            log_warning(f"{kind.value} notification to {recipients} failed: {result.error}")
            await log_event(EventTypes.NOTIFICATION_FAILED, {**details, "error": result.error}, user_id=actor_id)

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # History timestamps are naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

async def notification_stats(
    history: NotificationLog,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None
) -> Dict[str, Any]:
    records = await history.list(since=_naive_utc(since), until=_naive_utc(until))

    stats = {
        "total": len(records),
        "byType": {},
        "byStatus": {},
        "byRecipient": {},
        "recentActivity": records[:10],
    }
    for record in records:
        stats["byType"][record.type.value] = stats["byType"].get(record.type.value, 0) + 1
        stats["byStatus"][record.status.value] = stats["byStatus"].get(record.status.value, 0) + 1
        for recipient in record.recipients:
            stats["byRecipient"][recipient] = stats["byRecipient"].get(recipient, 0) + 1

    return stats

def get_dispatcher(notifier: Notifier = Depends(get_notifier)) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, get_notification_log())
