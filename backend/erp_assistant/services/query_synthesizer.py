"""
Query synthesizer.

Turns a classified intent into the list of logical NetSuite
queries needed to answer it.  Each intent category owns an
ordered rule table; a rule fires when any of its keywords is
a substring of the query text, and the resulting descriptors
keep table order.  A query that hits no rule yields no
descriptors.
"""

from typing import Dict, List, Tuple

from erp_assistant.schemas import (
    ProcessedQuery,
    QueryIntent,
    SynthesizedQuery,
)
from erp_assistant.services.intent_classifier import (
    build_ai_prompt,
    classify,
)


# (keywords, endpoint, data_type)
Rule = Tuple[Tuple[str, ...], str, str]

FINANCIAL_RULES: Tuple[Rule, ...] = (
    (("cash flow",), "/financial/cashflow", "cashFlow"),
    (
        ("accounts receivable", "aging"),
        "/financial/accounts-receivable",
        "accountsReceivable",
    ),
    (
        ("p&l", "profit and loss"),
        "/financial/profit-loss",
        "profitLoss",
    ),
)

SALES_RULES: Tuple[Rule, ...] = (
    (("customers", "top"), "/sales/customers", "customers"),
    (
        ("opportunities", "pipeline"),
        "/sales/opportunities",
        "opportunities",
    ),
    (("orders",), "/sales/orders", "orders"),
)

INVENTORY_RULES: Tuple[Rule, ...] = (
    (("inventory", "stock"), "/inventory/items", "inventory"),
    (
        ("reorder point",),
        "/inventory/reorder-points",
        "reorderPoints",
    ),
    (
        ("purchase orders",),
        "/inventory/purchase-orders",
        "purchaseOrders",
    ),
)

CUSTOMER_RULES: Tuple[Rule, ...] = (
    (("customers", "contacts"), "/customers/list", "customers"),
    (
        ("overdue", "churn"),
        "/customers/overdue",
        "overdueCustomers",
    ),
)

ANALYTICS_RULES: Tuple[Rule, ...] = (
    (("trend", "analysis"), "/analytics/trends", "trends"),
    (("comparison",), "/analytics/comparison", "comparison"),
)

RULES_BY_INTENT: Dict[str, Tuple[Rule, ...]] = {
    "financial": FINANCIAL_RULES,
    "sales": SALES_RULES,
    "inventory": INVENTORY_RULES,
    "customer": CUSTOMER_RULES,
    "analytics": ANALYTICS_RULES,
}


def synthesize(
    intent: QueryIntent,
    text: str,
) -> List[SynthesizedQuery]:
    """
    Generate backend query descriptors for an intent.

    Parameters are handed through from the intent without
    validation.

    Parameters:
        intent (QueryIntent): Classified intent.
        text (str): The original query text.

    Returns:
        list[SynthesizedQuery]: Possibly empty, in rule order.
    """
    lowered = (text or "").lower()
    queries: List[SynthesizedQuery] = []

    for keywords, endpoint, data_type in RULES_BY_INTENT[intent.type]:
        if any(keyword in lowered for keyword in keywords):
            queries.append(SynthesizedQuery(
                endpoint=endpoint,
                parameters=dict(intent.parameters),
                data_type=data_type,
            ))

    return queries


def process_query(text: str) -> ProcessedQuery:
    """
    Run the classification stage for one user query.

    Parameters:
        text (str): Natural-language question.

    Returns:
        ProcessedQuery: Intent, synthesized queries and the
            AI prompt built from them.
    """
    intent = classify(text)
    return ProcessedQuery(
        original_query=text,
        intent=intent,
        queries=synthesize(intent, text),
        ai_prompt=build_ai_prompt(text, intent),
    )
