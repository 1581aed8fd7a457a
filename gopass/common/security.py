"""Shared-secret guard for admin endpoints."""

from fastapi import HTTPException

from gopass.common.config import settings


def enforce_api_key(x_api_key: str | None) -> None:
    """Reject requests that do not provide the configured API key."""

    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid API key")
