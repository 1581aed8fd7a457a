"""Shared fixtures: test environment and a fresh SQLite database per test."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("PAWAPAY_API_TOKEN", "test-token")
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("SERVICE_NAME", "test")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gopass.common.db import Base
from gopass.common.records import Event, Organizer, Ticket, UserProfile
from gopass.services.callbacks.models import ProcessedCallback  # noqa: F401
from gopass.services.notification.models import Notification  # noqa: F401
from gopass.services.payments.client import PawaPayClient, PawaPayConfig
from gopass.services.payouts.models import PayoutRequest  # noqa: F401


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'gopass.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    """Insert records and return them detached for assertions."""

    def _seed(*records):
        with session_factory() as db:
            db.add_all(records)
            db.commit()
        return records

    return _seed


@pytest.fixture
def event(seed):
    seed(
        UserProfile(uid="org-user", plan_id="pro"),
        Organizer(id="org-1", user_id="org-user", name="Lilongwe Live"),
        Event(id="evt-1", organizer_id="org-1", user_id="org-user", name="Lake Jam", price=5000, currency="MWK"),
    )
    return "evt-1"


@pytest.fixture
def draft_ticket(seed, event):
    seed(
        Ticket(
            id="tkt-1",
            event_id=event,
            holder_name="Chisomo Banda",
            holder_email="chisomo@example.com",
            ticket_type="VIP",
            pin="123456",
            status="draft",
            payment_status="pending",
        )
    )
    return "tkt-1"


class ProviderStub:
    """Records provider requests and answers from a route table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], tuple[int, object]] = {}

    def on(self, method: str, path: str, status_code: int, body: object) -> None:
        self.routes[(method, path)] = (status_code, body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"errorMessage": "no route"})
        status_code, body = route
        if isinstance(body, Exception):
            raise body
        return httpx.Response(status_code, json=body)


ACTIVE_CONF = {
    "countries": [
        {
            "country": "MWI",
            "prefix": "265",
            "flag": "https://static-content.pawapay.io/country_flags/mwi.svg",
            "providers": [
                {
                    "provider": "AIRTEL_MWI",
                    "displayName": "Airtel",
                    "logo": "https://static-content.pawapay.io/company_logos/airtel.png",
                    "currencies": [
                        {
                            "currency": "MWK",
                            "operationTypes": {
                                "DEPOSIT": {
                                    "status": "OPERATIONAL",
                                    "minAmount": "100",
                                    "maxAmount": "1500000",
                                    "decimalsInAmount": "NONE",
                                }
                            },
                        }
                    ],
                },
                {
                    "provider": "TNM_MWI",
                    "displayName": "TNM Mpamba",
                    "currencies": [{"currency": "MWK", "operationTypes": {}}],
                },
            ],
        }
    ]
}


@pytest.fixture
def provider():
    stub = ProviderStub()
    stub.on("GET", "/v2/active-conf", 200, ACTIVE_CONF)
    stub.on("POST", "/deposits", 200, {"status": "ACCEPTED"})
    return stub


@pytest.fixture
def pawapay_client(provider):
    config = PawaPayConfig(base_url="https://pawapay.test", api_token="test-token")
    return PawaPayClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider)))
