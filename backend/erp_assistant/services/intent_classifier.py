"""
Intent classifier.

Maps a free-text business question to one of five intent
categories using ordered keyword tables, then pulls out an
action verb, loose entities (time phrases, amounts, customer
names) and structured filter parameters with regexes.

Classification is deterministic and never fails: a query that
matches nothing is still reported as ``analytics``.
"""

import json
import re
from typing import Any, Dict, List, Optional, Pattern, Tuple

from erp_assistant.schemas import QueryIntent


# ----- keyword tables ---------------------------------------------------
#
# Evaluated top to bottom, first match wins.  "revenue" lives in
# the sales table only so "top customers by revenue" routes to
# sales rather than financial.

FINANCIAL_KEYWORDS = (
    "cash flow", "profit", "loss", "expenses", "income",
    "accounts receivable", "accounts payable", "aging",
    "balance sheet", "p&l", "profit and loss", "financial",
    "budget", "forecast",
)

SALES_KEYWORDS = (
    "sales", "orders", "customers", "opportunities", "pipeline",
    "quotes", "deals", "territory", "performance", "cycle time",
    "top customers", "revenue", "conversion",
)

INVENTORY_KEYWORDS = (
    "inventory", "stock", "items", "products", "quantity",
    "reorder point", "turnover", "fulfillment", "purchase orders",
    "suppliers", "vendors", "abc analysis",
)

CUSTOMER_KEYWORDS = (
    "customers", "contacts", "leads", "churn", "retention",
    "satisfaction", "lifetime value", "segments", "overdue",
)

ANALYTICS_KEYWORDS = (
    "trend", "analysis", "comparison", "variance", "cohort",
    "predictive", "forecast", "kpi", "dashboard", "report",
)

INTENT_RULES: Tuple[Tuple[str, Tuple[str, ...], float], ...] = (
    ("financial", FINANCIAL_KEYWORDS, 0.8),
    ("sales", SALES_KEYWORDS, 0.8),
    ("inventory", INVENTORY_KEYWORDS, 0.8),
    ("customer", CUSTOMER_KEYWORDS, 0.8),
    ("analytics", ANALYTICS_KEYWORDS, 0.7),
)

DEFAULT_INTENT = ("analytics", 0.5)

ACTION_KEYWORDS = (
    "show", "display", "get", "find", "list", "generate",
    "create", "build", "analyze", "compare", "calculate",
    "what is", "how much", "which", "who", "when",
)

DEFAULT_ACTION = "show"


# ----- entity / parameter patterns --------------------------------------

_MONTHS = (
    "january|february|march|april|may|june|july|august|"
    "september|october|november|december"
)

TIME_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"this month|last month|next month", re.I),
    re.compile(r"this quarter|last quarter|next quarter", re.I),
    re.compile(r"this year|last year|next year", re.I),
    re.compile(r"q[1-4] 20\d{2}", re.I),
    re.compile(_MONTHS, re.I),
)

AMOUNT_PATTERN = re.compile(
    r"\$\d+(?:,\d{3})*(?:\.\d{2})?"
    r"|\d+(?:,\d{3})*(?:\.\d{2})? (?:dollars?|k|thousand|million)",
    re.I,
)

CUSTOMER_PATTERN = re.compile(
    r"(?:customer|customers?|client|clients?)\s+"
    r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)",
    re.I,
)

DATE_RANGE_PATTERN = re.compile(r"(?:for|in|during)\s+(.+?)(?:\s|$)", re.I)
MIN_AMOUNT_PATTERN = re.compile(
    r"(?:over|above|more than|greater than)\s+"
    r"(\$\d+(?:,\d{3})*(?:\.\d{2})?)",
    re.I,
)
LIMIT_PATTERN = re.compile(r"(?:top|first|limit)\s+(\d+)", re.I)
STATUS_PATTERN = re.compile(
    r"(?:status|state)\s+(open|closed|pending|approved|overdue)",
    re.I,
)


def classify(text: str) -> QueryIntent:
    """
    Classify a natural-language query.

    Parameters:
        text (str): The user's question, any casing.

    Returns:
        QueryIntent: Populated intent; never raises.
    """
    lowered = (text or "").lower()

    intent_type, confidence = DEFAULT_INTENT
    for candidate, keywords, score in INTENT_RULES:
        if _has_keyword(lowered, keywords):
            intent_type, confidence = candidate, score
            break

    return QueryIntent(
        type=intent_type,
        action=extract_action(lowered),
        entities=extract_entities(lowered),
        parameters=extract_parameters(lowered),
        confidence=confidence,
    )


def _has_keyword(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def extract_action(text: str) -> str:
    """Return the first action word contained in *text*."""
    for action in ACTION_KEYWORDS:
        if action in text:
            return action
    return DEFAULT_ACTION


def extract_entities(text: str) -> List[str]:
    """
    Collect loose entities from *text*.

    Order is time phrases, then amounts, then customer
    mentions; within a pattern, matches keep their position
    order.
    """
    entities: List[str] = []
    for pattern in TIME_PATTERNS:
        entities.extend(m.group(0) for m in pattern.finditer(text))
    entities.extend(m.group(0) for m in AMOUNT_PATTERN.finditer(text))
    entities.extend(m.group(0) for m in CUSTOMER_PATTERN.finditer(text))
    return entities


def extract_parameters(text: str) -> Dict[str, Any]:
    """
    Pull structured filters out of *text*.

    Keys are only set when their pattern matched:
    ``date_range`` (str), ``min_amount`` (float),
    ``limit`` (int) and ``status`` (str).
    """
    parameters: Dict[str, Any] = {}

    date_range = _first_group(DATE_RANGE_PATTERN, text)
    if date_range:
        parameters["date_range"] = date_range

    min_amount = _first_group(MIN_AMOUNT_PATTERN, text)
    if min_amount:
        parameters["min_amount"] = float(
            min_amount.replace("$", "").replace(",", "")
        )

    limit = _first_group(LIMIT_PATTERN, text)
    if limit:
        parameters["limit"] = int(limit)

    status = _first_group(STATUS_PATTERN, text)
    if status:
        parameters["status"] = status

    return parameters


def _first_group(pattern: Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group(1) if match else None


AI_PROMPT_TEMPLATE = """\
Analyze the following NetSuite query and provide intelligent insights:

Original Query: "{query}"
Intent Type: {type}
Action: {action}
Entities: {entities}
Parameters: {parameters}

Please provide:
1. Key insights from the data
2. Business recommendations
3. Potential risks or opportunities
4. Actionable next steps
5. Relevant visualizations to consider

Focus on providing value-added analysis that helps with business \
decision-making."""


def build_ai_prompt(text: str, intent: QueryIntent) -> str:
    """
    Render the analysis prompt forwarded to the AI provider.

    Parameters:
        text (str): Original user query.
        intent (QueryIntent): Its classification.

    Returns:
        str: Prompt text.
    """
    return AI_PROMPT_TEMPLATE.format(
        query=text,
        type=intent.type,
        action=intent.action,
        entities=", ".join(intent.entities),
        parameters=json.dumps(intent.parameters),
    )
