from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import datetime
from clinic_scheduling.schemas.notification import (
    NotificationHistoryResponse, NotificationStatsResponse, NotificationTestRequest, TemplateListResponse
)
from clinic_scheduling.schemas.request import ActionResult
from clinic_scheduling.models.notification import EventKind
from clinic_scheduling.models.user import Actor
from clinic_scheduling.services import email_templates
from clinic_scheduling.services.notification_service import (
    NotificationDispatcher, get_dispatcher, notification_stats
)
from clinic_scheduling.utils.auth import require_reviewer

router = APIRouter(
    tags=["notifications"]
)

@router.get("/history", response_model=NotificationHistoryResponse)
async def get_notification_history(
    type: Optional[EventKind] = None,
    recipient: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    actor: Actor = Depends(require_reviewer),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    records = await dispatcher.history.list(type=type, recipient=recipient, limit=limit)
    return NotificationHistoryResponse(data=records, total=len(records))

@router.get("/stats", response_model=NotificationStatsResponse)
async def get_notification_stats(
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    actor: Actor = Depends(require_reviewer),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    stats = await notification_stats(dispatcher.history, since=startDate, until=endDate)
    return NotificationStatsResponse(data=stats)

@router.post("/send-test", response_model=ActionResult)
async def send_test_notification(
    body: NotificationTestRequest,
    actor: Actor = Depends(require_reviewer),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    result = await dispatcher.send_test(body.recipient, body.subject, body.message, actor_id=actor.id)
    return ActionResult(
        success=result.success,
        message="Test notification sent successfully" if result.success else "Failed to send test notification",
        data=result
    )

@router.get("/templates", response_model=TemplateListResponse)
async def get_email_templates(actor: Actor = Depends(require_reviewer)):
    return TemplateListResponse(data=email_templates.list_templates())
