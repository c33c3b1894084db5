"""
Pydantic schemas for the assistant pipeline and its API.

Covers the pipeline's value types (intents, synthesized
queries, normalized AI responses), the ERP record shapes
returned by the data layer, and request/response bodies
for every API endpoint.
"""

from typing import Optional, List, Any, Dict, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


# --- Allowed type enums --------------------------------

IntentType = Literal[
    "financial", "sales", "inventory", "customer", "analytics",
]

VisualizationType = Literal["line", "bar", "pie", "table", "kpi"]


# --- AI provider schemas ---

class AIProviderConfig(BaseModel):
    """
    A configured AI vendor.

    The active selection is owned by the provider registry,
    never by the record itself.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    api_key: str = ""
    model: str = ""
    cost_per_token: float = 0.0
    endpoint: Optional[str] = None


class ProviderView(BaseModel):
    """Provider as reported by the API (credential masked)."""

    id: str
    name: str
    model: str
    cost_per_token: float
    endpoint: Optional[str] = None
    has_api_key: bool = False
    is_active: bool = False


class ProviderUpdate(BaseModel):
    """Body of a replace-by-id provider update."""

    name: str = Field(..., min_length=1)
    api_key: str = ""
    model: str = ""
    cost_per_token: float = 0.0
    endpoint: Optional[str] = None
    is_active: bool = False


# --- Query processing schemas ---

class QueryIntent(BaseModel):
    """Classified purpose of one free-text query."""

    model_config = ConfigDict(frozen=True)

    type: IntentType = "analytics"
    action: str = "show"
    entities: List[str] = []
    parameters: Dict[str, Any] = {}
    # Reported for diagnostics; nothing branches on it.
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class SynthesizedQuery(BaseModel):
    """Logical backend request derived from an intent."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    parameters: Dict[str, Any] = {}
    data_type: str


class ProcessedQuery(BaseModel):
    """Everything the classifier stage produces for one query."""

    original_query: str
    intent: QueryIntent
    queries: List[SynthesizedQuery] = []
    ai_prompt: str = ""


class QueryValidation(BaseModel):
    """Outcome of pre-flight query validation."""

    is_valid: bool
    errors: List[str] = []


# --- AI response schemas ---

class VisualizationDescriptor(BaseModel):
    """Chart description handed to the frontend renderer."""

    type: VisualizationType
    data: Any = None
    options: Dict[str, Any] = {}
    title: str = ""


class NormalizedAIResponse(BaseModel):
    """Vendor-agnostic shape every provider reply is coerced into."""

    data: Any = Field(default_factory=dict)
    insights: List[str] = []
    visualizations: List[Dict[str, Any]] = []
    summary: str = ""
    recommendations: List[str] = []
    is_loading: Optional[bool] = None


class ProcessingErrorResponse(NormalizedAIResponse):
    """Final stream update standing in for a failed query."""

    error: str


# --- ERP record schemas ---

class Customer(BaseModel):
    """Customer record."""

    id: str
    name: str
    type: str = "customer"
    last_modified: str = ""
    email: str = ""
    phone: str = ""
    status: str = "active"
    total_revenue: float = 0.0
    last_order_date: str = ""


class SalesOrder(BaseModel):
    """Sales order record."""

    id: str
    name: str
    type: str = "salesorder"
    last_modified: str = ""
    customer_id: str = ""
    customer_name: str = ""
    amount: float = 0.0
    status: str = ""
    order_date: str = ""
    due_date: str = ""


class Invoice(BaseModel):
    """Invoice record."""

    id: str
    name: str
    type: str = "invoice"
    last_modified: str = ""
    customer_id: str = ""
    customer_name: str = ""
    amount: float = 0.0
    status: str = ""
    due_date: str = ""
    overdue_days: int = 0


class InventoryItem(BaseModel):
    """Inventory item record."""

    id: str
    name: str
    type: str = "inventoryitem"
    last_modified: str = ""
    sku: str = ""
    category: str = "inventory"
    quantity: int = 0
    reorder_point: int = 0
    unit_cost: float = 0.0
    location: str = "Main"


class FinancialPeriod(BaseModel):
    """One period of the financial series."""

    period: str
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    cash_flow: float = 0.0


# --- Chat schemas ---

class ChatRequest(BaseModel):
    """Schema for sending a chat message."""

    message: str = ""
    session_id: Optional[str] = None
    provider_id: Optional[str] = None
    user_context: Dict[str, Any] = {}


class ValidateRequest(BaseModel):
    """Schema for validating a query without running it."""

    message: str = ""


class ChatMessageResponse(BaseModel):
    """Schema for a single chat message."""

    id: str
    session_id: str
    role: Literal["user", "assistant"]
    content: str
    data: Optional[Any] = None
    visualizations: Optional[List[Dict[str, Any]]] = None
    is_loading: bool = False
    created_at: Optional[datetime] = None


class ChatResponse(BaseModel):
    """Schema for one completed chat turn."""

    session_id: str
    messages: List[ChatMessageResponse]
    response: Optional[NormalizedAIResponse] = None


class ChatExport(BaseModel):
    """Downloadable transcript document."""

    timestamp: datetime
    messages: List[ChatMessageResponse]
    user: Optional[Dict[str, Any]] = None


# --- Settings schemas ---

class SettingsPayload(BaseModel):
    """
    The persisted settings blob.

    Unknown keys are kept so the frontend can store its own
    preferences alongside provider configuration.
    """

    model_config = ConfigDict(extra="allow")

    openai_api_key: str = ""
    openai_model: str = ""
    claude_api_key: str = ""
    claude_model: str = ""
    gemini_api_key: str = ""
    gemini_model: str = ""
    azure_openai_api_key: str = ""
    azure_openai_endpoint: str = ""
    azure_model: str = ""
    active_provider: str = ""
    use_cors_proxy: bool = False
