# tests/conftest.py
import os

# Must be set before the application modules read them
os.environ["SECRET_KEY"] = "testing_secret_key_for_development_only"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["MAIL_SUPPRESS_SEND"] = "1"
os.environ["SEED_DEMO_DATA"] = "0"
os.environ["ADMIN_EMAILS"] = "admin@clinic.com,office@clinic.com"
os.environ["DIRECTOR_EMAILS"] = "director@clinic.com"

import pytest
from fastapi.testclient import TestClient

from clinic_scheduling.db import init_db
from clinic_scheduling.models.notification import SendResult
from clinic_scheduling.models.user import Actor, Role
from clinic_scheduling.repositories.notification_repository import InMemoryNotificationLog
from clinic_scheduling.repositories.request_repository import InMemoryRequestRepository
from clinic_scheduling.services.email_service import Notifier, get_notifier
from clinic_scheduling.services.notification_service import NotificationDispatcher
from clinic_scheduling.services.request_service import RequestService
from clinic_scheduling.utils.auth import create_access_token
from main import app


class RecordingNotifier(Notifier):
    """Captures outgoing messages instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False
        self.raise_error = False

    async def send(self, to, subject, body, attachments=None):
        if self.raise_error:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append({"to": to, "subject": subject, "body": body})
        if self.fail:
            return SendResult(success=False, error="Mailbox unavailable")
        return SendResult(success=True, messageId=f"<msg-{len(self.sent)}@test>")

    def subjects(self):
        return [message["subject"] for message in self.sent]


@pytest.fixture(autouse=True)
def fresh_storage():
    """Every test starts from empty in-memory stores."""
    init_db(app)
    yield


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def repository():
    return InMemoryRequestRepository()


@pytest.fixture
def history():
    return InMemoryNotificationLog()


@pytest.fixture
def dispatcher(notifier, history):
    return NotificationDispatcher(
        notifier,
        history,
        admin_emails=["admin@clinic.com"],
        director_emails=["director@clinic.com"],
    )


@pytest.fixture
def service(repository, dispatcher):
    return RequestService(repository, dispatcher=dispatcher)


@pytest.fixture
def provider():
    return Actor(id="p1", role=Role.PROVIDER, name="Dr. Jane Provider", email="jane@clinic.com")


@pytest.fixture
def other_provider():
    return Actor(id="p2", role=Role.PROVIDER, name="Dr. Sam Other", email="sam@clinic.com")


@pytest.fixture
def admin():
    return Actor(id="a1", role=Role.ADMIN, name="Admin Staff", email="admin@clinic.com")


@pytest.fixture
def director():
    return Actor(id="d1", role=Role.DIRECTOR, name="Clinic Director", email="director@clinic.com")


@pytest.fixture
def full_day_payload():
    return {
        "providerId": "p1",
        "providerName": "Dr. Jane Provider",
        "providerEmail": "jane@clinic.com",
        "requestType": "full_day",
        "startDate": "2025-03-01",
        "reason": "conf",
    }


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _headers(actor: Actor) -> dict:
    token = create_access_token(actor.id, actor.role, name=actor.name, email=actor.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def provider_headers(provider):
    return _headers(provider)


@pytest.fixture
def other_provider_headers(other_provider):
    return _headers(other_provider)


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def director_headers(director):
    return _headers(director)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    return tmp_path
