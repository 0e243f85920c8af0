import itertools
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from nefes_backend.core.config import Settings
from nefes_backend.core.context import AppContext
from nefes_backend.main import create_app
from nefes_backend.routes import public_router
from nefes_backend.services.email_service import MailDeliveryError, MailTransport, Notifier
from nefes_backend.services.quote_number import generate_quote_number
from nefes_backend.services.quote_store import InMemoryQuoteStore

ADMIN_PASSWORD = "test-secret"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def __call__(self) -> datetime:
        return self.now


class RecordingTransport(MailTransport):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []
        self.closed = False

    async def send(self, to: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise MailDeliveryError("mail API unreachable")
        self.sent.append({"to": to, "subject": subject, "html": html_body})

    async def aclose(self) -> None:
        self.closed = True


def valid_submission(**overrides) -> dict:
    body = {
        "name": "Ayşe Yılmaz",
        "phone": "0532 123 45 67",
        "email": "ayse@example.com",
        "service": "evden-eve",
        "from": "Kadıköy, İstanbul",
        "to": "Çankaya, Ankara",
        "message": "3+1 daire, asansör var",
    }
    body.update(overrides)
    return body


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        MONGODB_URI=None,
        MAIL_API_URL=None,
        CORS_ORIGINS=["https://nefesdepo.example"],
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return InMemoryQuoteStore(clock=clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def context(settings, store, transport):
    return AppContext(
        settings=settings,
        store=store,
        notifier=Notifier(transport, settings.COMPANY_NAME),
    )


@pytest.fixture
def sequential_quote_numbers(monkeypatch):
    """Submissions within one millisecond would collide; hand out distinct numbers instead."""
    counter = itertools.count(1_700_000_000_001)
    monkeypatch.setattr(
        public_router, "generate_quote_number", lambda: generate_quote_number(next(counter))
    )


@pytest.fixture
def client(context, sequential_quote_numbers):
    with TestClient(create_app(context=context)) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"x-admin-password": ADMIN_PASSWORD}
