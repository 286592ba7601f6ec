import logging
from datetime import datetime
from clinic_scheduling.db import get_db
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

async def log_event(
    action: str,
    details: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None
):
    """
    Log an event to the application logger and, when Mongo is configured,
    to the activity_logs collection
    """
    try:
        log_message = f"Action: {action}"
        if user_id:
            log_message += f" | User: {user_id}"
        if details:
            log_message += f" | Details: {details}"

        logger.info(log_message)

        db = get_db()
        if db is None:
            return

        log_entry = {
            "action": action,
            "details": details or {},
            "userId": user_id,
            "timestamp": datetime.utcnow(),
        }
        await db["activity_logs"].insert_one(log_entry)

    except Exception as e:
        # Don't let logging errors break the application
        logger.error(f"Failed to log event: {e}")

def log_warning(message: str, user_id: Optional[str] = None):
    warning_message = f"Warning: {message}"
    if user_id:
        warning_message += f" | User: {user_id}"

    logger.warning(warning_message)

# Event type constants for consistency
class EventTypes:
    REQUEST_CREATED = "schedule_request_created"
    REQUEST_UPDATED = "schedule_request_updated"
    REQUEST_STATUS_CHANGED = "schedule_request_status_changed"
    REQUEST_NOTES_UPDATED = "schedule_request_notes_updated"
    REQUEST_DELETED = "schedule_request_deleted"
    PTO_FORM_UPLOADED = "pto_form_uploaded"
    CLARIFICATION_SENT = "clarification_sent"

    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"
