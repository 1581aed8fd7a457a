"""Environment-driven settings shared by the GoPass services.

Every service reads the same `CommonSettings` once at import; variables are
documented in `.env.example`.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "gopass"
    log_level: str = "INFO"
    database_url: str
    redis_url: str = "redis://redis:6379/0"
    # Shared secret for admin endpoints (broadcast, payout decisions).
    api_key: str

    pawapay_base_url: str = "https://api.sandbox.pawapay.io"
    pawapay_api_token: str = ""
    pawapay_timeout_seconds: float = 30.0
    pawapay_default_country: str = "MWI"
    pawapay_default_prefix: str = "265"

    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    idempotency_ttl_seconds: int = 86400
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("pawapay_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def pawapay_configured(self) -> bool:
        return bool(self.pawapay_base_url and self.pawapay_api_token)


settings = CommonSettings()
