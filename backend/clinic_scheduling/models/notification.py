from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from enum import Enum
import uuid
from clinic_scheduling.models.request import ScheduleRequest

class EventKind(str, Enum):
    SUBMITTED = "submitted"
    ADMIN_NEW = "admin_new"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DIRECTOR_PTO_UPLOAD = "director_pto_upload"
    CLARIFICATION = "clarification"
    TEST = "test"

class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"

class NotificationRecord(BaseModel):
    """One dispatch attempt, kept for auditing best-effort delivery."""
    id: str = Field(default_factory=lambda: f"notif_{uuid.uuid4().hex}")
    type: EventKind
    recipients: List[str] = Field(default_factory=list)
    subject: str = Field(..., max_length=200)
    requestId: Optional[str] = None
    status: DeliveryStatus
    messageId: Optional[str] = None
    error: Optional[str] = None
    triggeredBy: Optional[str] = None  # actor id behind the event
    sentAt: datetime = Field(default_factory=datetime.utcnow)

class SendResult(BaseModel):
    success: bool
    messageId: Optional[str] = None
    error: Optional[str] = None

class LifecycleEvent(BaseModel):
    """Emitted by the request service after a change has been stored."""
    kind: EventKind
    request: ScheduleRequest
    extra: dict = Field(default_factory=dict)
    actorId: Optional[str] = None