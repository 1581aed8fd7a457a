"""Startup log line summarising the effective configuration."""

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from gopass.common.config import CommonSettings
from gopass.common.logging import logger

SECRET_FIELDS = frozenset({"api_key", "pawapay_api_token"})
URL_FIELDS = frozenset({"database_url", "redis_url"})


def _display(name: str, value) -> str:
    if value in (None, ""):
        return "<unset>"
    if name in SECRET_FIELDS:
        return "<redacted>"
    if name in URL_FIELDS:
        try:
            return make_url(str(value)).render_as_string(hide_password=True)
        except ArgumentError:
            return "<redacted>"
    return str(value)


def log_startup_config(config: CommonSettings, fields: list[str]) -> None:
    """Log the named settings with secrets and URL passwords masked."""

    summary = {"service": config.service_name}
    for name in fields:
        summary[name] = _display(name, getattr(config, name))
    logger.info("startup_config=%s", summary)
