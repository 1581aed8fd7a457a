"""Public checkout entrypoint.

Initiates mobile-money deposits for plan upgrades and ticket purchases,
exposes provider country configuration and deposit polling. Deposit creation
honours an optional `Idempotency-Key` header backed by a Redis response cache.
"""

import json
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Header, HTTPException

from gopass.common.config import settings
from gopass.common.errors import (
    ConfigurationError,
    ProviderTransportError,
    RecordNotFoundError,
    TicketLimitReachedError,
)
from gopass.common.db import SessionLocal
from gopass.common.logging import bind_correlation_id, configure_logging, logger
from gopass.common.metrics import http_metrics_middleware, metrics_response
from gopass.common.plans import PLANS
from gopass.common.startup import log_startup_config
from gopass.common.tracing import setup_tracing
from gopass.services.accounts.service import AccountService
from gopass.services.callbacks.service import CallbackReconciler
from gopass.services.payments.client import PawaPayClient, PawaPayConfig
from gopass.services.payments.schemas import (
    CountryConfig,
    DepositResult,
    DepositStatusResponse,
    PlanUpgradeCheckout,
    TicketCheckout,
    TicketDepositResult,
)
from gopass.services.payments.service import PaymentService

configure_logging()
log_startup_config(
    settings,
    ["database_url", "redis_url", "pawapay_base_url", "pawapay_api_token", "pawapay_default_country"],
)
if not settings.pawapay_configured:
    logger.warning("pawapay is not configured; deposit endpoints will return 503")
service = PaymentService(
    SessionLocal,
    PawaPayClient(PawaPayConfig.from_settings(settings)),
    CallbackReconciler(SessionLocal),
    country=settings.pawapay_default_country,
    default_prefix=settings.pawapay_default_prefix,
)
accounts = AccountService(SessionLocal)
rdb = redis.Redis.from_url(settings.redis_url, decode_responses=True)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Close the provider HTTP client with the app lifecycle."""

    yield
    await service.client.aclose()


app = FastAPI(title="GoPass Payments", lifespan=lifespan)
app.middleware("http")(http_metrics_middleware)
setup_tracing(app)


def _idempotency_cache_key(purpose: str, idempotency_key: str) -> str:
    return f"idempotency:deposit:{purpose}:{idempotency_key}"


def _cached(cache_key: str | None) -> dict | None:
    if cache_key is None:
        return None
    try:
        cached = rdb.get(cache_key)
        if cached:
            return json.loads(cached)
    except Exception as exc:
        logger.warning("idempotency_cache_read_failed: %s", exc)
    return None


def _remember(cache_key: str | None, payload: dict) -> None:
    if cache_key is None:
        return
    try:
        rdb.setex(cache_key, settings.idempotency_ttl_seconds, json.dumps(payload))
    except Exception as exc:
        logger.warning("idempotency_cache_write_failed: %s", exc)


def _provider_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail=str(exc))
    deposit_id = getattr(exc, "deposit_id", None)
    if deposit_id:
        # The deposit may still complete; callers poll it by id.
        return HTTPException(status_code=502, detail={"message": str(exc), "deposit_id": deposit_id})
    return HTTPException(status_code=502, detail=str(exc))


@app.get("/plans")
def list_plans():
    """Plan catalog with prices in the base currency."""

    return {plan_id: plan.model_dump() for plan_id, plan in PLANS.items()}


@app.get("/countries/{country_code}/config", response_model=CountryConfig)
async def country_config(country_code: str):
    """Correspondents accepting deposits in one country."""

    try:
        config = await service.country_config(country_code)
    except ConfigurationError as exc:
        raise _provider_error(exc) from exc
    if config is None:
        raise HTTPException(status_code=404, detail="country not supported")
    return config


@app.post("/deposits/plan-upgrade", response_model=DepositResult)
async def create_plan_deposit(
    req: PlanUpgradeCheckout,
    idempotency_key: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
):
    """Start a mobile-money deposit for a plan upgrade."""

    bind_correlation_id(x_correlation_id)
    cache_key = _idempotency_cache_key("plan", idempotency_key) if idempotency_key else None
    cached = _cached(cache_key)
    if cached is not None:
        return cached
    try:
        result = await service.initiate_plan_upgrade(req)
    except (ConfigurationError, ProviderTransportError) as exc:
        raise _provider_error(exc) from exc
    payload = result.model_dump()
    _remember(cache_key, payload)
    return payload


@app.post("/deposits/ticket-purchase", response_model=TicketDepositResult)
async def create_ticket_deposit(
    req: TicketCheckout,
    idempotency_key: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
):
    """Store a draft ticket and start its mobile-money deposit."""

    bind_correlation_id(x_correlation_id)
    cache_key = _idempotency_cache_key("ticket", idempotency_key) if idempotency_key else None
    cached = _cached(cache_key)
    if cached is not None:
        return cached
    try:
        result = await service.initiate_ticket_purchase(req)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TicketLimitReachedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (ConfigurationError, ProviderTransportError) as exc:
        raise _provider_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    payload = result.model_dump()
    _remember(cache_key, payload)
    return payload


@app.get("/deposits/{deposit_id}", response_model=DepositStatusResponse)
async def deposit_status(deposit_id: str):
    """Poll a deposit; a successful one is reconciled on the spot."""

    try:
        return await service.refresh_deposit(deposit_id)
    except (ConfigurationError, ProviderTransportError) as exc:
        raise _provider_error(exc) from exc


@app.get("/events/{event_id}/availability")
def ticket_availability(event_id: str):
    """Whether the organizer's plan still allows tickets for this event."""

    try:
        return {"event_id": event_id, "available": accounts.can_issue_ticket(event_id)}
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/users/{uid}/downgrade")
def downgrade(uid: str):
    """Move a user back to the free plan."""

    profile = accounts.downgrade(uid)
    return {"uid": profile.uid, "plan_id": profile.plan_id}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health check endpoint."""

    return {"ok": True}
