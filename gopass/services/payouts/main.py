"""HTTP surface for organizer payout requests and admin decisions."""

from fastapi import FastAPI, Header, HTTPException

from gopass.common.config import settings
from gopass.common.db import SessionLocal
from gopass.common.errors import PayoutConflictError, RecordNotFoundError
from gopass.common.logging import configure_logging
from gopass.common.metrics import http_metrics_middleware, metrics_response
from gopass.common.security import enforce_api_key
from gopass.common.startup import log_startup_config
from gopass.common.tracing import setup_tracing
from gopass.services.payouts.schemas import PayoutCreateRequest, PayoutDecision, PayoutResponse
from gopass.services.payouts.service import PayoutService

configure_logging()
log_startup_config(settings, ["database_url", "api_key"])
service = PayoutService(SessionLocal)

app = FastAPI(title="GoPass Payouts")
app.middleware("http")(http_metrics_middleware)
setup_tracing(app)


@app.post("/payout-requests", response_model=PayoutResponse, status_code=201)
def create_payout_request(req: PayoutCreateRequest):
    """Record an organizer's withdrawal request as `pending`."""

    return service.create_request(req.organizer_id, req.amount)


@app.get("/payout-requests", response_model=list[PayoutResponse])
def list_payout_requests(status: str | None = None, x_api_key: str | None = Header(default=None)):
    """Admin listing, newest first."""

    enforce_api_key(x_api_key)
    return service.list_requests(status)


@app.post("/payout-requests/{request_id}/process", response_model=PayoutResponse)
def process_payout_request(
    request_id: str,
    decision: PayoutDecision,
    x_api_key: str | None = Header(default=None),
):
    """Approve or deny a pending request."""

    enforce_api_key(x_api_key)
    try:
        return service.process_request(request_id, decision.status)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PayoutConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health check endpoint."""

    return {"ok": True}
