"""pawaPay client behaviour against a mocked HTTP transport."""

import json
from decimal import Decimal

import httpx
import pytest

from gopass.common.errors import ConfigurationError, ProviderTransportError
from gopass.services.payments.client import PawaPayClient, PawaPayConfig
from gopass.services.payments.schemas import DepositRequest, PlanUpgradeMetadata


def _deposit(**overrides) -> DepositRequest:
    fields = dict(
        amount=Decimal("3500"),
        currency="MWK",
        country="MWI",
        correspondent="AIRTEL_MWI",
        customer_phone="265991234567",
        statement_description="GoPass Pro",
        metadata=PlanUpgradeMetadata(type="plan_upgrade", user_id="u1", plan_id="pro"),
    )
    fields.update(overrides)
    return DepositRequest(**fields)


@pytest.mark.asyncio
async def test_country_config_parses_correspondents(pawapay_client, provider):
    config = await pawapay_client.get_country_config("MWI")

    assert config.prefix == "265"
    assert config.currency == "MWK"
    airtel, tnm = config.providers
    assert airtel.provider == "AIRTEL_MWI"
    assert airtel.min_amount == Decimal("100")
    assert airtel.accepts(Decimal("3500"))
    assert not airtel.accepts(Decimal("50"))
    assert tnm.status == "CLOSED"
    assert not tnm.accepts(Decimal("3500"))

    (request,) = provider.calls("GET", "/v2/active-conf")
    assert request.url.params["operationType"] == "DEPOSIT"
    assert request.headers["Authorization"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_country_config_absent_country(pawapay_client):
    assert await pawapay_client.get_country_config("ZMB") is None


@pytest.mark.asyncio
async def test_country_config_provider_error(pawapay_client, provider):
    provider.on("GET", "/v2/active-conf", 500, {"errorMessage": "boom"})

    with pytest.raises(ConfigurationError):
        await pawapay_client.get_country_config("MWI")


@pytest.mark.asyncio
async def test_initiate_deposit_body(pawapay_client, provider):
    result = await pawapay_client.initiate_deposit(_deposit(deposit_id="DEP-1"))

    assert result.success
    assert result.deposit_id == "DEP-1"
    (request,) = provider.calls("POST", "/deposits")
    body = json.loads(request.content)
    assert body["amount"] == "3500.00"
    assert body["payer"] == {"type": "MSISDN", "address": {"value": "265991234567"}}
    assert body["metadata"] == {"type": "plan_upgrade", "userId": "u1", "planId": "pro"}
    assert body["customerTimestamp"]


@pytest.mark.asyncio
async def test_initiate_deposit_generates_upper_case_id(pawapay_client):
    result = await pawapay_client.initiate_deposit(_deposit())

    assert result.deposit_id == result.deposit_id.upper()
    assert len(result.deposit_id) == 36


@pytest.mark.asyncio
async def test_rejected_deposit_is_a_failed_result(pawapay_client, provider):
    provider.on(
        "POST",
        "/deposits",
        200,
        {"status": "REJECTED", "failureReason": {"failureMessage": "Payer limit reached"}},
    )

    result = await pawapay_client.initiate_deposit(_deposit())

    assert not result.success
    assert result.message == "Payer limit reached"
    assert result.deposit_id is None


@pytest.mark.asyncio
async def test_http_error_uses_error_message(pawapay_client, provider):
    provider.on("POST", "/deposits", 400, {"errorMessage": "Invalid correspondent"})

    result = await pawapay_client.initiate_deposit(_deposit())

    assert not result.success
    assert result.message == "Invalid correspondent"


@pytest.mark.asyncio
async def test_http_error_without_body_uses_default_message(pawapay_client, provider):
    provider.on("POST", "/deposits", 500, [])

    result = await pawapay_client.initiate_deposit(_deposit())

    assert result.message == "Failed to initiate payment."


@pytest.mark.asyncio
async def test_transport_failure_raises(pawapay_client, provider):
    provider.on("POST", "/deposits", 0, httpx.ConnectError("connection refused"))

    with pytest.raises(ProviderTransportError):
        await pawapay_client.initiate_deposit(_deposit())


@pytest.mark.asyncio
async def test_unconfigured_client_refuses_to_call():
    client = PawaPayClient(PawaPayConfig(base_url="https://pawapay.test", api_token=""))

    with pytest.raises(ConfigurationError):
        await client.initiate_deposit(_deposit())
    await client.aclose()


@pytest.mark.asyncio
async def test_check_status_returns_first_deposit(pawapay_client, provider):
    provider.on("GET", "/deposits/DEP-1", 200, [{"depositId": "DEP-1", "status": "COMPLETED"}])

    status = await pawapay_client.check_deposit_status("DEP-1")

    assert status.status == "COMPLETED"
    assert status.deposit["depositId"] == "DEP-1"


@pytest.mark.asyncio
async def test_check_status_empty_is_pending(pawapay_client, provider):
    provider.on("GET", "/deposits/DEP-2", 200, [])

    status = await pawapay_client.check_deposit_status("DEP-2")

    assert status.status == "PENDING"
    assert status.deposit is None


@pytest.mark.asyncio
async def test_check_status_error_raises(pawapay_client, provider):
    provider.on("GET", "/deposits/DEP-3", 503, {"errorMessage": "down"})

    with pytest.raises(ProviderTransportError):
        await pawapay_client.check_deposit_status("DEP-3")


@pytest.mark.asyncio
async def test_decimals_in_amount_enum(pawapay_client, provider):
    provider.on(
        "GET",
        "/v2/active-conf",
        200,
        {
            "countries": [
                {
                    "country": "KEN",
                    "prefix": "254",
                    "providers": [
                        {
                            "provider": "MPESA_KEN",
                            "currencies": [
                                {
                                    "currency": "KES",
                                    "operationTypes": {
                                        "DEPOSIT": {
                                            "status": "OPERATIONAL",
                                            "minAmount": "1",
                                            "decimalsInAmount": "TWO_PLACES",
                                        }
                                    },
                                }
                            ],
                        }
                    ],
                }
            ]
        },
    )

    config = await pawapay_client.get_country_config("KEN")

    (mpesa,) = config.providers
    assert mpesa.decimals_in_amount == 2
    assert mpesa.max_amount is None
    assert config.currency == "KES"


@pytest.mark.asyncio
async def test_whole_number_correspondent(pawapay_client):
    config = await pawapay_client.get_country_config("MWI")

    assert config.providers[0].decimals_in_amount == 0
