import os
import asyncio
import logging
from email.utils import make_msgid
from typing import List, Optional, Union
from fastapi_mail import FastMail, MessageSchema, MessageType, ConnectionConfig
from clinic_scheduling.models.notification import SendResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

def get_mail_config() -> ConnectionConfig:
    smtp_user = os.getenv("SMTP_USER", "")
    return ConnectionConfig(
        MAIL_USERNAME=smtp_user,
        MAIL_PASSWORD=os.getenv("SMTP_PASSWORD", ""),
        MAIL_FROM=os.getenv("MAIL_FROM") or smtp_user or "noreply@clinic.com",
        MAIL_PORT=int(os.getenv("SMTP_PORT", "587")),
        MAIL_SERVER=os.getenv("SMTP_SERVER", "localhost"),
        MAIL_STARTTLS=os.getenv("SMTP_STARTTLS", "1") == "1",
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(smtp_user),
        SUPPRESS_SEND=1 if os.getenv("MAIL_SUPPRESS_SEND", "0") == "1" else 0,
    )

class Notifier:
    """Outbound message channel used by the notification dispatcher."""

    async def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        body: str,
        attachments: Optional[list] = None
    ) -> SendResult:
        raise NotImplementedError

class EmailNotifier(Notifier):
    """SMTP delivery through fastapi-mail, bounded by a timeout.

    Never raises: every failure comes back as an unsuccessful SendResult.
    """

    def __init__(self, config: Optional[ConnectionConfig] = None, timeout: Optional[float] = None):
        self.config = config or get_mail_config()
        self.timeout = timeout if timeout is not None else float(os.getenv("NOTIFIER_TIMEOUT", DEFAULT_TIMEOUT))

    async def send(self, to, subject, body, attachments=None) -> SendResult:
        recipients = [to] if isinstance(to, str) else list(to)
        try:
            message = MessageSchema(
                subject=subject,
                recipients=recipients,
                body=body,
                subtype=MessageType.html,
                attachments=attachments or []
            )
            fm = FastMail(self.config)
            await asyncio.wait_for(fm.send_message(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Email to %s timed out after %.1fs", recipients, self.timeout)
            return SendResult(success=False, error=f"Timed out after {self.timeout}s")
        except Exception as e:
            logger.warning("Email to %s failed: %s", recipients, e)
            return SendResult(success=False, error=str(e))

        return SendResult(success=True, messageId=make_msgid(domain="clinic-scheduling"))

def get_notifier() -> Notifier:
    return EmailNotifier()
