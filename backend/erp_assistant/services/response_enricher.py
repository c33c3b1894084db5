"""
Response enricher.

Layers backend data and derived chart descriptors on top of a
provider's normalized response.  Chart rules depend only on
the intent type and which data slots came back with records;
each rule adds at most one descriptor and every matching rule
fires.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from erp_assistant.schemas import (
    NormalizedAIResponse,
    ProcessedQuery,
    QueryIntent,
    VisualizationDescriptor,
)

TOP_CUSTOMER_COUNT = 5


def enrich(
    response: NormalizedAIResponse,
    backend_data: Dict[str, Any],
    processed: ProcessedQuery,
) -> NormalizedAIResponse:
    """
    Return a copy of *response* with backend data attached.

    Parameters:
        response (NormalizedAIResponse): Provider output; left
            unmodified.
        backend_data (dict): Fetched records keyed by data type.
        processed (ProcessedQuery): The query being answered.

    Returns:
        NormalizedAIResponse: Enriched copy.
    """
    if isinstance(response.data, dict):
        data: Dict[str, Any] = dict(response.data)
    else:
        data = {"analysis": response.data}

    data["netsuite_data"] = backend_data
    data["query_info"] = {
        "original_query": processed.original_query,
        "intent": processed.intent.model_dump(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    visualizations = list(response.visualizations)
    if backend_data:
        visualizations.extend(
            v.model_dump()
            for v in derive_visualizations(backend_data, processed.intent)
        )

    return response.model_copy(update={
        "data": data,
        "visualizations": visualizations,
    })


def derive_visualizations(
    backend_data: Dict[str, Any],
    intent: QueryIntent,
) -> List[VisualizationDescriptor]:
    """Chart descriptors implied by the intent and data shape."""
    visualizations: List[VisualizationDescriptor] = []

    cash_flow = _records(backend_data.get("cashFlow"))
    customers = _records(backend_data.get("customers"))

    if intent.type == "financial" and cash_flow:
        latest = cash_flow[0]
        visualizations.append(VisualizationDescriptor(
            type="kpi",
            title="Financial Overview",
            data={
                "revenue": latest.get("revenue"),
                "profit": latest.get("profit"),
                "cash_flow": latest.get("cash_flow"),
            },
            options={"format": "currency"},
        ))

    if intent.type == "sales" and customers:
        # sorted() is stable: equal revenues keep fetch order.
        ranked = sorted(
            customers,
            key=lambda c: c.get("total_revenue") or 0,
            reverse=True,
        )
        visualizations.append(VisualizationDescriptor(
            type="bar",
            title="Top Customers by Revenue",
            data=[
                {"name": c.get("name"), "value": c.get("total_revenue")}
                for c in ranked[:TOP_CUSTOMER_COUNT]
            ],
            options={
                "x_axis": "name",
                "y_axis": "value",
                "format": "currency",
            },
        ))

    if intent.type == "analytics" and cash_flow:
        visualizations.append(VisualizationDescriptor(
            type="line",
            title="Financial Trends",
            data=[
                {
                    "period": item.get("period"),
                    "revenue": item.get("revenue"),
                    "profit": item.get("profit"),
                }
                for item in cash_flow
            ],
            options={
                "x_axis": "period",
                "y_axis": ["revenue", "profit"],
                "format": "currency",
            },
        ))

    return visualizations


def _records(slot: Any) -> Optional[List[Dict[str, Any]]]:
    """
    Normalise a data slot to a list of record dicts.

    Error markers and empty slots yield ``None``.
    """
    if isinstance(slot, dict):
        return None if "error" in slot else [slot]
    if isinstance(slot, list):
        rows = [row for row in slot if isinstance(row, dict)]
        return rows or None
    return None
