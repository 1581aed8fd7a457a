"""Inbound pawaPay callback endpoints.

Any structurally valid callback is acknowledged with 200 whatever its business
outcome; only unexpected failures return 500 so the provider redelivers.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from gopass.common.config import settings
from gopass.common.db import SessionLocal
from gopass.common.logging import configure_logging, logger
from gopass.common.metrics import callbacks_received_total, http_metrics_middleware, metrics_response
from gopass.common.startup import log_startup_config
from gopass.common.tracing import setup_tracing
from gopass.services.callbacks.schemas import DepositCallback, PayoutCallback, RefundCallback
from gopass.services.callbacks.service import CallbackReconciler

configure_logging()
log_startup_config(settings, ["database_url"])
service = CallbackReconciler(SessionLocal)

app = FastAPI(title="GoPass pawaPay Callbacks")
app.middleware("http")(http_metrics_middleware)
setup_tracing(app)

RECEIVED = {"status": "received"}


def _invalid() -> JSONResponse:
    return JSONResponse({"error": "Invalid callback data"}, status_code=400)


def _server_error() -> JSONResponse:
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)


async def _parse(request: Request, kind: str, schema: type[BaseModel]) -> BaseModel | None:
    """Decode and validate a callback body; `None` when it is unusable."""

    try:
        body = await request.json()
    except ValueError:
        body = None
    logger.info("pawapay %s callback received body=%s", kind, body)
    try:
        callback = schema.model_validate(body)
    except ValidationError as exc:
        logger.warning("invalid pawapay %s callback errors=%s", kind, exc.errors())
        callbacks_received_total.labels(service=settings.service_name, kind=kind, status="INVALID").inc()
        return None
    callbacks_received_total.labels(service=settings.service_name, kind=kind, status=callback.status).inc()
    return callback


@app.post("/pawapay/deposit-callback")
async def deposit_callback(request: Request):
    """Finalize the plan upgrade or ticket purchase behind a deposit."""

    callback = await _parse(request, "deposit", DepositCallback)
    if callback is None:
        return _invalid()
    try:
        service.handle_deposit_callback(callback)
    except Exception:
        logger.exception("error processing pawapay deposit callback deposit_id=%s", callback.deposit_id)
        return _server_error()
    return RECEIVED


@app.post("/pawapay/payout-callback")
async def payout_callback(request: Request):
    """Acknowledge payout status updates; payouts are settled manually."""

    callback = await _parse(request, "payout", PayoutCallback)
    if callback is None:
        return _invalid()
    logger.info("pawapay payout status payout_id=%s status=%s", callback.payout_id, callback.status)
    return RECEIVED


@app.post("/pawapay/refund-callback")
async def refund_callback(request: Request):
    """Acknowledge refund status updates."""

    callback = await _parse(request, "refund", RefundCallback)
    if callback is None:
        return _invalid()
    logger.info("pawapay refund status refund_id=%s status=%s", callback.refund_id, callback.status)
    return RECEIVED


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health check endpoint."""

    return {"ok": True}
