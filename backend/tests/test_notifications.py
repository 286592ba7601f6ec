"""
Tests for the notification dispatcher, templates and history statistics.
"""

from datetime import datetime, timedelta

import pytest

from clinic_scheduling.models.notification import DeliveryStatus, EventKind, NotificationRecord
from clinic_scheduling.models.request import ScheduleRequest
from clinic_scheduling.services import email_templates
from clinic_scheduling.services.notification_service import (
    NotificationDispatcher, notification_stats, parse_recipients
)


@pytest.fixture
def request_obj():
    return ScheduleRequest(
        providerId="p1",
        providerName="Dr. Jane Provider",
        providerEmail="jane@clinic.com",
        requestType="multiple_days",
        startDate="2025-03-01",
        endDate="2025-03-03",
        reason="conference",
    )


class TestTemplates:
    @pytest.mark.parametrize("kind,subject", [
        (EventKind.SUBMITTED, "Schedule Blocking Request Submitted"),
        (EventKind.ADMIN_NEW, "New Schedule Blocking Request - Action Required"),
        (EventKind.APPROVED, "Schedule Blocking Request Approved"),
        (EventKind.REJECTED, "Schedule Blocking Request Rejected"),
        (EventKind.CANCELLED, "Schedule Blocking Request Cancelled"),
        (EventKind.DIRECTOR_PTO_UPLOAD, "PTO Form Uploaded - Director Approval Required"),
        (EventKind.CLARIFICATION, "Schedule Blocking Request - Clarification Needed"),
    ])
    def test_subjects(self, request_obj, kind, subject):
        rendered_subject, body = email_templates.render(kind, request_obj, {"message": "?"})
        assert rendered_subject == subject
        assert "Mar 01, 2025 - Mar 03, 2025" in body

    def test_request_text_is_escaped(self, request_obj):
        request_obj.reason = "<script>alert(1)</script>"
        _, body = email_templates.render(EventKind.ADMIN_NEW, request_obj)
        assert "<script>" not in body
        assert "&lt;script&gt;" in body

    def test_admin_template_names_provider(self, request_obj):
        _, body = email_templates.render(EventKind.ADMIN_NEW, request_obj)
        assert "Dr. Jane Provider" in body
        assert "jane@clinic.com" in body

    def test_unknown_kind(self, request_obj):
        with pytest.raises(ValueError):
            email_templates.render(EventKind.TEST, request_obj)

    def test_test_message_body(self):
        body = email_templates.render_test_message("hello & welcome", datetime(2025, 1, 2, 9, 30))
        assert "hello &amp; welcome" in body
        assert "Jan 02, 2025 09:30" in body


class TestRecipients:
    @pytest.mark.parametrize("kind", [
        EventKind.SUBMITTED, EventKind.APPROVED, EventKind.REJECTED,
        EventKind.CANCELLED, EventKind.CLARIFICATION,
    ])
    def test_provider_events(self, dispatcher, request_obj, kind):
        assert dispatcher.recipients_for(kind, request_obj) == ["jane@clinic.com"]

    def test_admin_and_director_events(self, dispatcher, request_obj):
        assert dispatcher.recipients_for(EventKind.ADMIN_NEW, request_obj) == ["admin@clinic.com"]
        assert dispatcher.recipients_for(EventKind.DIRECTOR_PTO_UPLOAD, request_obj) == ["director@clinic.com"]

    def test_lists_from_environment(self, notifier, history):
        dispatcher = NotificationDispatcher(notifier, history)
        assert dispatcher.admin_emails == ["admin@clinic.com", "office@clinic.com"]
        assert dispatcher.director_emails == ["director@clinic.com"]

    def test_parse_recipients(self):
        assert parse_recipients(" a@x.com, ,b@x.com ", ["d@x.com"]) == ["a@x.com", "b@x.com"]
        assert parse_recipients("", ["d@x.com"]) == ["d@x.com"]
        assert parse_recipients(" , ", ["d@x.com"]) == ["d@x.com"]


class TestDispatch:
    @pytest.mark.asyncio
    async def test_successful_send_is_recorded(self, dispatcher, notifier, history, request_obj):
        result = await dispatcher.dispatch(EventKind.APPROVED, request_obj)

        assert result.success
        assert len(notifier.sent) == 1
        [record] = await history.list()
        assert record.status == DeliveryStatus.SENT
        assert record.messageId == result.messageId
        assert record.requestId == request_obj.id
        assert record.subject == "Schedule Blocking Request Approved"

    @pytest.mark.asyncio
    async def test_missing_provider_email_fails_softly(self, dispatcher, notifier, history, request_obj):
        request_obj.providerEmail = None

        result = await dispatcher.dispatch(EventKind.SUBMITTED, request_obj)

        assert not result.success
        assert notifier.sent == []
        [record] = await history.list()
        assert record.status == DeliveryStatus.FAILED
        assert record.error == "No recipients configured"

    @pytest.mark.asyncio
    async def test_raising_notifier_becomes_failed_result(self, dispatcher, notifier, request_obj):
        notifier.raise_error = True
        result = await dispatcher.dispatch(EventKind.REJECTED, request_obj)
        assert not result.success
        assert result.error == "SMTP server unreachable"

    @pytest.mark.asyncio
    async def test_send_test(self, dispatcher, notifier, history):
        result = await dispatcher.send_test("ops@clinic.com", "Ping", "hello")

        assert result.success
        assert notifier.sent[0]["to"] == ["ops@clinic.com"]
        assert notifier.sent[0]["subject"] == "Ping"
        [record] = await history.list(type=EventKind.TEST)
        assert record.requestId is None


class TestHistory:
    @pytest.mark.asyncio
    async def test_filters_and_newest_first(self, history):
        base = datetime(2025, 1, 1, 12, 0)
        for offset, (kind, to) in enumerate([
            (EventKind.SUBMITTED, "jane@clinic.com"),
            (EventKind.ADMIN_NEW, "admin@clinic.com"),
            (EventKind.APPROVED, "jane@clinic.com"),
        ]):
            await history.add(NotificationRecord(
                type=kind, recipients=[to], subject=kind.value,
                status=DeliveryStatus.SENT, sentAt=base + timedelta(minutes=offset),
            ))

        jane = await history.list(recipient="jane@clinic.com")
        assert [r.type for r in jane] == [EventKind.APPROVED, EventKind.SUBMITTED]
        assert len(await history.list(limit=1)) == 1
        assert len(await history.list(since=base + timedelta(minutes=1))) == 2

    @pytest.mark.asyncio
    async def test_stats(self, history):
        now = datetime(2025, 1, 1, 12, 0)
        await history.add(NotificationRecord(
            type=EventKind.SUBMITTED, recipients=["jane@clinic.com"], subject="s",
            status=DeliveryStatus.SENT, sentAt=now,
        ))
        await history.add(NotificationRecord(
            type=EventKind.ADMIN_NEW, recipients=["admin@clinic.com", "office@clinic.com"], subject="s",
            status=DeliveryStatus.FAILED, error="boom", sentAt=now + timedelta(seconds=1),
        ))
        await history.add(NotificationRecord(
            type=EventKind.SUBMITTED, recipients=["jane@clinic.com"], subject="s",
            status=DeliveryStatus.SENT, sentAt=now - timedelta(days=30),
        ))

        stats = await notification_stats(history, since=now - timedelta(days=1))

        assert stats["total"] == 2
        assert stats["byType"] == {"submitted": 1, "admin_new": 1}
        assert stats["byStatus"] == {"sent": 1, "failed": 1}
        assert stats["byRecipient"] == {"jane@clinic.com": 1, "admin@clinic.com": 1, "office@clinic.com": 1}
        assert stats["recentActivity"][0].type == EventKind.ADMIN_NEW
