"""pawaPay HTTP client: country configuration, deposit initiation and polling.

Configuration is passed in explicitly (`PawaPayConfig`) and built once per
process from settings. Provider-level rejections come back as
`DepositResult(success=False)`; transport failures raise.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

import httpx

from gopass.common.config import CommonSettings
from gopass.common.errors import ConfigurationError, ProviderTransportError
from gopass.common.logging import logger
from gopass.common.metrics import provider_request_seconds
from gopass.services.payments.schemas import (
    CorrespondentConfig,
    CountryConfig,
    DepositRequest,
    DepositResult,
    DepositStatus,
)

DEFAULT_FAILURE_MESSAGE = "Failed to initiate payment."


@dataclass(frozen=True)
class PawaPayConfig:
    base_url: str
    api_token: str
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: CommonSettings) -> "PawaPayConfig":
        return cls(
            base_url=settings.pawapay_base_url,
            api_token=settings.pawapay_api_token,
            timeout_seconds=settings.pawapay_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_token)


def _to_decimal(value: Any) -> Decimal | None:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


# pawaPay v2 reports amount precision as an enum.
DECIMAL_PLACES = {"NONE": 0, "TWO_PLACES": 2}


def _decimal_places(value: Any) -> int:
    if isinstance(value, str) and value in DECIMAL_PLACES:
        return DECIMAL_PLACES[value]
    try:
        return int(value)
    except (ValueError, TypeError):
        return 0


def _parse_correspondent(raw: dict[str, Any]) -> CorrespondentConfig:
    currencies = raw.get("currencies") or [{}]
    deposit_info = (currencies[0].get("operationTypes") or {}).get("DEPOSIT") or {}
    return CorrespondentConfig(
        provider=raw["provider"],
        display_name=raw.get("displayName"),
        logo=raw.get("logo"),
        status=deposit_info.get("status") or "CLOSED",
        min_amount=_to_decimal(deposit_info.get("minAmount")) or Decimal("0"),
        max_amount=_to_decimal(deposit_info.get("maxAmount")),
        decimals_in_amount=_decimal_places(deposit_info.get("decimalsInAmount")),
    )


def _failure_message(data: Any) -> str:
    """Pull a human-readable reason out of a provider error body."""

    if not isinstance(data, dict):
        return DEFAULT_FAILURE_MESSAGE
    failure_reason = data.get("failureReason")
    if isinstance(failure_reason, dict) and failure_reason.get("failureMessage"):
        return str(failure_reason["failureMessage"])
    if data.get("errorMessage"):
        return str(data["errorMessage"])
    return DEFAULT_FAILURE_MESSAGE


class PawaPayClient:
    """Async wrapper around the pawaPay REST API."""

    def __init__(
        self,
        config: PawaPayConfig,
        http_client: httpx.AsyncClient | None = None,
        service_name: str = "payments",
    ) -> None:
        self.config = config
        self.service_name = service_name
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)

    def _require_configured(self) -> None:
        if not self.config.configured:
            raise ConfigurationError("Payment service is not configured.")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_token}"}

    async def get_country_config(self, country_code: str) -> CountryConfig | None:
        """Fetch deposit correspondents for one country; `None` when absent."""

        self._require_configured()
        try:
            with provider_request_seconds.labels(service=self.service_name, operation="active_conf").time():
                resp = await self._http.get(
                    f"{self.config.base_url}/v2/active-conf",
                    params={"country": country_code, "operationType": "DEPOSIT"},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.error("pawapay active-conf unreachable error=%s", exc)
            raise ConfigurationError("Failed to fetch pawaPay configuration.") from exc

        if not resp.is_success:
            logger.error("pawapay active-conf error status=%s body=%s", resp.status_code, resp.text)
            raise ConfigurationError("Failed to fetch pawaPay configuration.")

        data = resp.json()
        country = next((c for c in data.get("countries", []) if c.get("country") == country_code), None)
        if country is None:
            return None

        providers = country.get("providers") or []
        currency = "MWK"
        if providers and providers[0].get("currencies"):
            currency = providers[0]["currencies"][0].get("currency") or currency
        return CountryConfig(
            prefix=str(country.get("prefix", "")),
            flag=country.get("flag"),
            currency=currency,
            providers=[_parse_correspondent(p) for p in providers],
        )

    async def initiate_deposit(self, request: DepositRequest) -> DepositResult:
        """Submit a deposit. Returns a failed result for provider rejections."""

        self._require_configured()
        deposit_id = request.deposit_id or str(uuid4()).upper()
        body = {
            "depositId": deposit_id,
            "amount": f"{request.amount:.2f}",
            "currency": request.currency,
            "country": request.country,
            "correspondent": request.correspondent,
            "payer": {"type": "MSISDN", "address": {"value": request.customer_phone}},
            "customerTimestamp": datetime.now(timezone.utc).isoformat(),
            "statementDescription": request.statement_description,
            "metadata": request.metadata.model_dump(by_alias=True, exclude_none=True),
        }
        try:
            with provider_request_seconds.labels(service=self.service_name, operation="deposit").time():
                resp = await self._http.post(
                    f"{self.config.base_url}/deposits",
                    json=body,
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.error("pawapay deposit request failed deposit_id=%s error=%s", deposit_id, exc)
            raise ProviderTransportError(f"deposit request failed: {exc}", deposit_id=deposit_id) from exc

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.is_success or (isinstance(data, dict) and data.get("status") == "REJECTED"):
            logger.warning(
                "pawapay deposit rejected deposit_id=%s status_code=%s body=%s",
                deposit_id,
                resp.status_code,
                data,
            )
            return DepositResult(success=False, message=_failure_message(data))

        logger.info("pawapay deposit accepted deposit_id=%s", deposit_id)
        return DepositResult(success=True, message="Payment initiated successfully.", deposit_id=deposit_id)

    async def check_deposit_status(self, deposit_id: str) -> DepositStatus:
        """Poll one deposit. An empty result set means not decided yet."""

        self._require_configured()
        try:
            with provider_request_seconds.labels(service=self.service_name, operation="deposit_status").time():
                resp = await self._http.get(
                    f"{self.config.base_url}/deposits/{deposit_id}",
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.error("pawapay status request failed deposit_id=%s error=%s", deposit_id, exc)
            raise ProviderTransportError(f"deposit status request failed: {exc}", deposit_id=deposit_id) from exc

        if not resp.is_success:
            logger.error("pawapay status error deposit_id=%s status=%s body=%s", deposit_id, resp.status_code, resp.text)
            raise ProviderTransportError("Failed to fetch pawaPay transaction status.", deposit_id=deposit_id)

        data = resp.json()
        if isinstance(data, list) and data:
            return DepositStatus(status=data[0].get("status", "PENDING"), deposit=data[0])
        return DepositStatus(status="PENDING")

    async def aclose(self) -> None:
        await self._http.aclose()
