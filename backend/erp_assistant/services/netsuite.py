"""
NetSuite data access.

Provides the backend-data collaborator the assistant calls
once per synthesized query.  ``NetSuiteClient`` talks to the
NetSuite REST API with token-based OAuth 1.0a and reshapes
rows into the record schemas; ``SampleDataSource`` serves a
fixed demonstration dataset when no NetSuite account is
configured.

Data sources raise on failure.  Isolating a failed query to
its own slot is the orchestrator's job.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from erp_assistant.config import Settings, settings
from erp_assistant.schemas import (
    Customer,
    FinancialPeriod,
    InventoryItem,
    Invoice,
    SalesOrder,
    SynthesizedQuery,
)

logger = logging.getLogger(__name__)

FINANCIAL_DATA_TYPES = {"cashFlow", "profitLoss", "accountsReceivable"}


class DataSource:
    """Interface for anything that can answer a synthesized query."""

    async def fetch(self, query: SynthesizedQuery) -> Any:
        """
        Return records for *query*, keyed by its ``data_type``.

        Raises:
            Exception: Any failure; callers isolate it.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


# ----- NetSuite REST ----------------------------------------------------


def _percent(value: str) -> str:
    return quote(str(value), safe="~")


class NetSuiteClient(DataSource):
    """
    NetSuite REST client.

    Parameters:
        config (Settings): Source of account id, token
            credentials and base URL.
        http_client (httpx.AsyncClient, optional): Transport;
            created lazily when omitted.
    """

    def __init__(
        self,
        config: Settings = settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.base_url = config.netsuite_base_url.rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def auth_header(
        self,
        method: str,
        url: str,
        params: Dict[str, Any],
    ) -> str:
        """
        Build a token-based OAuth 1.0a ``Authorization`` header.

        Signs with HMAC-SHA256 over the request method, URL and
        the union of query and oauth parameters, as NetSuite
        TBA requires.
        """
        oauth = {
            "oauth_consumer_key": self.config.netsuite_consumer_key,
            "oauth_token": self.config.netsuite_token_id,
            "oauth_signature_method": "HMAC-SHA256",
            "oauth_timestamp": str(int(time.time())),
            "oauth_nonce": secrets.token_hex(16),
            "oauth_version": "1.0",
        }
        pairs = sorted(
            (_percent(k), _percent(v))
            for k, v in {**params, **oauth}.items()
        )
        normalized = "&".join(f"{k}={v}" for k, v in pairs)
        base_string = "&".join([
            method.upper(),
            _percent(url),
            _percent(normalized),
        ])
        key = "&".join([
            _percent(self.config.netsuite_consumer_secret),
            _percent(self.config.netsuite_token_secret),
        ])
        digest = hmac.new(
            key.encode(), base_string.encode(), hashlib.sha256,
        ).digest()
        oauth["oauth_signature"] = base64.b64encode(digest).decode()

        fields = ", ".join(
            f'{k}="{_percent(v)}"' for k, v in oauth.items()
        )
        return (
            f'OAuth realm="{self.config.netsuite_account_id}", {fields}'
        )

    async def fetch(self, query: SynthesizedQuery) -> Any:
        url = f"{self.base_url}{query.endpoint}"
        params = {
            k: v for k, v in query.parameters.items() if v is not None
        }
        response = await self._client().get(
            url,
            params=params,
            headers={
                "Authorization": self.auth_header("GET", url, params),
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        return transform_response(response.json(), query.data_type)


# ----- row transforms ---------------------------------------------------


def transform_response(data: Any, data_type: str) -> Any:
    """
    Reshape raw NetSuite rows into record dicts.

    Unrecognised data types pass through untouched.
    """
    if data_type == "customers":
        return [_customer(row) for row in data]
    if data_type == "orders":
        return [_sales_order(row) for row in data]
    if data_type == "invoices":
        return [_invoice(row) for row in data]
    if data_type == "inventory":
        return [_inventory_item(row) for row in data]
    if data_type in FINANCIAL_DATA_TYPES:
        rows = data if isinstance(data, list) else [data]
        return [_financial_period(row) for row in rows]
    return data


def _num(value: Any) -> float:
    return float(value or 0)


def _customer(row: Dict[str, Any]) -> Dict[str, Any]:
    return Customer(
        id=str(row.get("id", "")),
        name=row.get("entityid") or row.get("companyname") or "",
        last_modified=row.get("lastmodifieddate") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        status=row.get("status") or "active",
        total_revenue=_num(row.get("totalrevenue")),
        last_order_date=row.get("lastorderdate") or "",
    ).model_dump()


def _sales_order(row: Dict[str, Any]) -> Dict[str, Any]:
    return SalesOrder(
        id=str(row.get("id", "")),
        name=row.get("tranid") or "",
        last_modified=row.get("lastmodifieddate") or "",
        customer_id=str(row.get("entity") or ""),
        customer_name=row.get("entityname") or "",
        amount=_num(row.get("total")),
        status=row.get("status") or "",
        order_date=row.get("trandate") or "",
        due_date=row.get("duedate") or row.get("trandate") or "",
    ).model_dump()


def _invoice(row: Dict[str, Any]) -> Dict[str, Any]:
    return Invoice(
        id=str(row.get("id", "")),
        name=row.get("tranid") or "",
        last_modified=row.get("lastmodifieddate") or "",
        customer_id=str(row.get("entity") or ""),
        customer_name=row.get("entityname") or "",
        amount=_num(row.get("total")),
        status=row.get("status") or "",
        due_date=row.get("duedate") or "",
        overdue_days=overdue_days(row.get("duedate")),
    ).model_dump()


def _inventory_item(row: Dict[str, Any]) -> Dict[str, Any]:
    return InventoryItem(
        id=str(row.get("id", "")),
        name=row.get("itemid") or "",
        last_modified=row.get("lastmodifieddate") or "",
        sku=row.get("itemid") or "",
        category=row.get("itemtype") or "inventory",
        quantity=int(_num(row.get("quantityavailable"))),
        reorder_point=int(_num(row.get("reorderpoint"))),
        unit_cost=_num(row.get("averagecost")),
        location=row.get("location") or "Main",
    ).model_dump()


def _financial_period(row: Dict[str, Any]) -> Dict[str, Any]:
    return FinancialPeriod(
        period=(
            row.get("period")
            or row.get("trandate")
            or datetime.now().isoformat()
        ),
        revenue=_num(row.get("revenue")),
        expenses=_num(row.get("expenses")),
        profit=_num(row.get("profit")),
        cash_flow=_num(row.get("cashflow")),
    ).model_dump()


def overdue_days(due_date: Optional[str], today: Optional[date] = None) -> int:
    """Days past *due_date*, or 0 when not yet due or unknown."""
    if not due_date:
        return 0
    try:
        due = date.fromisoformat(due_date[:10])
    except ValueError:
        return 0
    delta = ((today or date.today()) - due).days
    return delta if delta > 0 else 0


# ----- demonstration data -----------------------------------------------


SAMPLE_CUSTOMERS: List[Dict[str, Any]] = [
    Customer(
        id="1", name="Acme Corporation",
        last_modified="2024-01-15T10:30:00Z",
        email="contact@acme.com", phone="+1-555-0123",
        status="active", total_revenue=1250000.00,
        last_order_date="2024-01-10",
    ).model_dump(),
    Customer(
        id="2", name="TechStart Inc",
        last_modified="2024-01-14T14:20:00Z",
        email="sales@techstart.com", phone="+1-555-0456",
        status="active", total_revenue=850000.00,
        last_order_date="2024-01-12",
    ).model_dump(),
    Customer(
        id="3", name="Global Solutions Ltd",
        last_modified="2024-01-13T09:15:00Z",
        email="info@globalsolutions.com", phone="+1-555-0789",
        status="inactive", total_revenue=2100000.00,
        last_order_date="2023-12-20",
    ).model_dump(),
]

SAMPLE_ORDERS: List[Dict[str, Any]] = [
    SalesOrder(
        id="1", name="SO-001", last_modified="2024-01-15T11:00:00Z",
        customer_id="1", customer_name="Acme Corporation",
        amount=50000.00, status="pending_approval",
        order_date="2024-01-15", due_date="2024-02-15",
    ).model_dump(),
    SalesOrder(
        id="2", name="SO-002", last_modified="2024-01-14T16:30:00Z",
        customer_id="2", customer_name="TechStart Inc",
        amount=75000.00, status="pending_fulfillment",
        order_date="2024-01-14", due_date="2024-02-14",
    ).model_dump(),
]

SAMPLE_INVOICES: List[Dict[str, Any]] = [
    Invoice(
        id="1", name="INV-001", last_modified="2024-01-10T10:00:00Z",
        customer_id="1", customer_name="Acme Corporation",
        amount=50000.00, status="pending_approval",
        due_date="2024-02-10",
    ).model_dump(),
    Invoice(
        id="2", name="INV-002", last_modified="2023-12-15T14:00:00Z",
        customer_id="3", customer_name="Global Solutions Ltd",
        amount=100000.00, status="pending_approval",
        due_date="2024-01-15",
    ).model_dump(),
]

SAMPLE_INVENTORY: List[Dict[str, Any]] = [
    InventoryItem(
        id="1", name="PROD-001", last_modified="2024-01-15T12:00:00Z",
        sku="PROD-001", category="electronics", quantity=150,
        reorder_point=50, unit_cost=25.00, location="Main Warehouse",
    ).model_dump(),
    InventoryItem(
        id="2", name="PROD-002", last_modified="2024-01-14T15:30:00Z",
        sku="PROD-002", category="office supplies", quantity=25,
        reorder_point=100, unit_cost=10.00, location="Main Warehouse",
    ).model_dump(),
]

SAMPLE_FINANCIALS: List[Dict[str, Any]] = [
    FinancialPeriod(
        period="2024-01", revenue=500000.00, expenses=350000.00,
        profit=150000.00, cash_flow=120000.00,
    ).model_dump(),
    FinancialPeriod(
        period="2024-02", revenue=550000.00, expenses=375000.00,
        profit=175000.00, cash_flow=140000.00,
    ).model_dump(),
    FinancialPeriod(
        period="2024-03", revenue=600000.00, expenses=400000.00,
        profit=200000.00, cash_flow=180000.00,
    ).model_dump(),
]


class SampleDataSource(DataSource):
    """Fixed records per data type; unknown types yield ``[]``."""

    _DATASETS = {
        "customers": SAMPLE_CUSTOMERS,
        "orders": SAMPLE_ORDERS,
        "invoices": SAMPLE_INVOICES,
        "inventory": SAMPLE_INVENTORY,
        **{data_type: SAMPLE_FINANCIALS for data_type in FINANCIAL_DATA_TYPES},
    }

    async def fetch(self, query: SynthesizedQuery) -> Any:
        rows = self._DATASETS.get(query.data_type, [])
        return [dict(row) for row in rows]


def default_data_source() -> DataSource:
    """NetSuite when configured, the sample dataset otherwise."""
    if settings.netsuite_configured:
        logger.info("[netsuite] using REST API at %s", settings.netsuite_base_url)
        return NetSuiteClient()
    logger.info("[netsuite] no account configured, serving sample data")
    return SampleDataSource()
