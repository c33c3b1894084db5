from datetime import date

import httpx
import pytest

from erp_assistant.config import Settings
from erp_assistant.schemas import SynthesizedQuery
from erp_assistant.services.netsuite import (
    NetSuiteClient,
    SampleDataSource,
    overdue_days,
    transform_response,
)


BASE_URL = "https://1234567.suitetalk.api.netsuite.com/services/rest"


def _config(**kwargs):
    values = {
        "netsuite_account_id": "1234567",
        "netsuite_consumer_key": "ck",
        "netsuite_consumer_secret": "cs",
        "netsuite_token_id": "tk",
        "netsuite_token_secret": "ts",
        "netsuite_base_url": BASE_URL + "/",
    }
    values.update(kwargs)
    return Settings(**values)


def test_customer_rows_are_reshaped():
    rows = [{
        "id": 42,
        "entityid": "Acme",
        "email": "a@acme.com",
        "totalrevenue": "1000.5",
        "lastmodifieddate": "2024-01-01",
    }]
    customer = transform_response(rows, "customers")[0]
    assert customer["id"] == "42"
    assert customer["name"] == "Acme"
    assert customer["type"] == "customer"
    assert customer["total_revenue"] == 1000.5
    assert customer["status"] == "active"


def test_inventory_rows_are_reshaped():
    item = transform_response([{
        "id": 7, "itemid": "SKU-7", "quantityavailable": "12",
        "reorderpoint": 20, "averagecost": 3.5,
    }], "inventory")[0]
    assert item["sku"] == "SKU-7"
    assert item["quantity"] == 12
    assert item["reorder_point"] == 20
    assert item["location"] == "Main"


def test_single_financial_object_becomes_a_list():
    periods = transform_response(
        {"period": "2024-04", "revenue": 10, "cashflow": 4},
        "cashFlow",
    )
    assert periods == [{
        "period": "2024-04",
        "revenue": 10.0,
        "expenses": 0.0,
        "profit": 0.0,
        "cash_flow": 4.0,
    }]


def test_unknown_data_type_passes_through():
    raw = {"anything": [1, 2]}
    assert transform_response(raw, "salesPipeline") is raw


@pytest.mark.parametrize("due, expected", [
    ("2024-01-01", 14),
    ("2024-01-15", 0),
    ("2024-02-01", 0),
    ("", 0),
    (None, 0),
    ("not a date", 0),
])
def test_overdue_days(due, expected):
    assert overdue_days(due, today=date(2024, 1, 15)) == expected


def test_auth_header_is_oauth1_hmac_sha256():
    client = NetSuiteClient(config=_config())
    header = client.auth_header("GET", BASE_URL + "/customers", {"limit": 5})
    assert header.startswith('OAuth realm="1234567", ')
    assert 'oauth_consumer_key="ck"' in header
    assert 'oauth_token="tk"' in header
    assert 'oauth_signature_method="HMAC-SHA256"' in header
    assert 'oauth_signature="' in header


@pytest.mark.asyncio
async def test_fetch_calls_endpoint_and_transforms():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1, "entityid": "Acme"}])

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = NetSuiteClient(config=_config(), http_client=http_client)

    rows = await client.fetch(SynthesizedQuery(
        endpoint="/customers", parameters={"limit": 10}, data_type="customers",
    ))

    assert rows[0]["name"] == "Acme"
    request = seen[0]
    assert request.url.path == "/services/rest/customers"
    assert request.url.params["limit"] == "10"
    assert request.headers["authorization"].startswith("OAuth realm=")


@pytest.mark.asyncio
async def test_fetch_raises_on_http_error():
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    client = NetSuiteClient(config=_config(), http_client=http_client)
    with pytest.raises(httpx.HTTPStatusError):
        await client.fetch(SynthesizedQuery(
            endpoint="/inventory", data_type="inventory",
        ))


@pytest.mark.asyncio
async def test_sample_source_serves_copies_and_empty_for_unknown():
    source = SampleDataSource()
    query = SynthesizedQuery(endpoint="/customers", data_type="customers")

    first = await source.fetch(query)
    first[0]["name"] = "changed"
    second = await source.fetch(query)

    assert second[0]["name"] == "Acme Corporation"
    assert await source.fetch(SynthesizedQuery(
        endpoint="/inventory/reorder", data_type="reorderPoints",
    )) == []
