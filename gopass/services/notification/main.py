"""Notification service: admin broadcast and per-user inbox endpoints."""

from datetime import datetime

from fastapi import FastAPI, Header
from pydantic import BaseModel, ConfigDict, Field

from gopass.common.config import settings
from gopass.common.db import SessionLocal
from gopass.common.logging import configure_logging
from gopass.common.metrics import http_metrics_middleware, metrics_response
from gopass.common.security import enforce_api_key
from gopass.common.startup import log_startup_config
from gopass.common.tracing import setup_tracing
from gopass.services.notification.service import BroadcastResult, NotificationService

configure_logging()
log_startup_config(settings, ["database_url", "api_key"])
service = NotificationService(SessionLocal)

app = FastAPI(title="GoPass Notification Service")
app.middleware("http")(http_metrics_middleware)
setup_tracing(app)


class BroadcastRequest(BaseModel):
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    link: str | None = None


class MarkReadRequest(BaseModel):
    ids: list[str]


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    message: str
    type: str
    link: str
    is_read: bool
    created_at: datetime | None = None


@app.post("/notifications/broadcast", response_model=BroadcastResult)
async def broadcast(req: BroadcastRequest, x_api_key: str | None = Header(default=None)):
    """Send one notification to every registered user."""

    enforce_api_key(x_api_key)
    return await service.send_to_all(req.title, req.message, req.link)


@app.get("/users/{user_id}/notifications", response_model=list[NotificationResponse])
def list_notifications(user_id: str, limit: int = 50):
    return service.list_notifications(user_id, limit)


@app.post("/users/{user_id}/notifications/read")
def mark_read(user_id: str, req: MarkReadRequest):
    return {"updated": service.mark_as_read(user_id, req.ids)}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health check endpoint."""

    return {"ok": True}
