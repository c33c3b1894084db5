import pytest

from erp_assistant.errors import QueryProcessingError
from erp_assistant.schemas import ProcessingErrorResponse
from erp_assistant.services.assistant import (
    FETCH_ERROR_MARKER,
    STREAM_ERROR_SUMMARY,
    ERPAssistant,
)
from erp_assistant.services.netsuite import SAMPLE_CUSTOMERS, SampleDataSource

from conftest import FULL_REPLY


class FailingInventorySource(SampleDataSource):
    """Sample data, except inventory lookups blow up."""

    def __init__(self):
        self.calls = []

    async def fetch(self, query):
        self.calls.append(query.data_type)
        if query.data_type == "inventory":
            raise RuntimeError("NetSuite timed out")
        return await super().fetch(query)


@pytest.fixture
def active_assistant(assistant, claude_provider):
    assistant.update_ai_provider(claude_provider, activate=True)
    return assistant


@pytest.mark.asyncio
async def test_top_customers_pipeline(active_assistant, vendor):
    response = await active_assistant.process(
        "Who are our top 10 customers by revenue this year?"
    )

    assert len(vendor.requests) == 1
    assert response.summary == FULL_REPLY["summary"]
    assert response.insights == FULL_REPLY["insights"]
    assert response.recommendations == FULL_REPLY["recommendations"]

    assert response.data["total_revenue"] == 2100000
    assert response.data["netsuite_data"] == {"customers": SAMPLE_CUSTOMERS}
    assert response.data["query_info"]["intent"]["type"] == "sales"

    assert [v["type"] for v in response.visualizations] == ["pie", "bar"]
    bar = response.visualizations[1]
    assert bar["title"] == "Top Customers by Revenue"
    assert bar["data"][0] == {
        "name": "Global Solutions Ltd", "value": 2100000.0,
    }


@pytest.mark.asyncio
async def test_prompt_context_carries_backend_data(active_assistant, vendor):
    await active_assistant.process(
        "Show me the cash flow for Q3 2024", user_context={"role": "cfo"},
    )
    prompt = vendor.last_json()["messages"][0]["content"]
    assert "Intent Type: financial" in prompt
    assert '"cashFlow"' in prompt
    assert '"role": "cfo"' in prompt


@pytest.mark.asyncio
async def test_failed_fetch_is_isolated_to_its_slot(ai_service, vendor,
                                                    claude_provider):
    source = FailingInventorySource()
    assistant = ERPAssistant(ai_service=ai_service, data_source=source)
    assistant.update_ai_provider(claude_provider, activate=True)

    response = await assistant.process("inventory items below reorder point")

    assert source.calls == ["inventory", "reorderPoints"]
    netsuite_data = response.data["netsuite_data"]
    assert netsuite_data["inventory"] == FETCH_ERROR_MARKER
    assert netsuite_data["reorderPoints"] == []
    assert len(vendor.requests) == 1


@pytest.mark.asyncio
async def test_no_active_provider_fails_without_vendor_call(assistant, vendor):
    with pytest.raises(QueryProcessingError, match="No active AI provider"):
        await assistant.process("Show me the cash flow for Q3 2024")
    assert vendor.requests == []


@pytest.mark.asyncio
async def test_vendor_failure_is_wrapped(active_assistant, vendor):
    vendor.status = 503
    with pytest.raises(QueryProcessingError) as excinfo:
        await active_assistant.process("cash flow")
    assert excinfo.value.message.startswith("Query processing failed:")
    assert "AI processing failed" in excinfo.value.message


@pytest.mark.asyncio
async def test_explicit_provider_overrides_active(active_assistant, vendor):
    from erp_assistant.schemas import AIProviderConfig

    active_assistant.update_ai_provider(AIProviderConfig(
        id="gemini-1", name="Google Gemini", api_key="g", model="gemini-pro",
    ))
    await active_assistant.process("cash flow", provider_id="gemini-1")
    assert "googleapis.com" in str(vendor.requests[0].url)


# ----- streaming --------------------------------------------------------


@pytest.mark.asyncio
async def test_stream_yields_placeholder_then_result(active_assistant):
    updates = [
        update async for update in
        active_assistant.process_stream("Show me the cash flow for Q3 2024")
    ]

    assert len(updates) == 2
    placeholder, final = updates
    assert placeholder.is_loading is True
    assert placeholder.summary == "Processing your query..."
    assert placeholder.insights == ["Analyzing NetSuite data..."]
    assert final.is_loading is False
    assert final.summary == FULL_REPLY["summary"]
    assert final.visualizations[-1]["type"] == "kpi"


@pytest.mark.asyncio
async def test_stream_reports_failure_instead_of_raising(assistant):
    updates = [
        update async for update in assistant.process_stream("cash flow")
    ]

    assert len(updates) == 2
    error = updates[1]
    assert error.is_loading is False
    assert error.summary == STREAM_ERROR_SUMMARY
    assert error.insights[0].startswith("Error: Query processing failed:")


# ----- validation -------------------------------------------------------


def test_valid_query_passes():
    result = ERPAssistant().validate_query("Show me the cash flow")
    assert result.is_valid is True
    assert result.errors == []


@pytest.mark.parametrize("text", ["", "   "])
def test_empty_query_is_rejected(text):
    result = ERPAssistant().validate_query(text)
    assert result.is_valid is False
    assert result.errors == ["Query cannot be empty"]


def test_long_query_is_rejected():
    result = ERPAssistant().validate_query("x" * 1001)
    assert result.is_valid is False
    assert "too long" in result.errors[0]


@pytest.mark.parametrize("text", [
    "DROP TABLE customers",
    "please delete from invoices",
    "insert into orders values (1)",
    "update customers set status = 'x'",
])
def test_sql_like_commands_are_rejected(text):
    result = ERPAssistant().validate_query(text)
    assert result.is_valid is False
    assert any("SQL-like" in e for e in result.errors)


def test_every_problem_is_reported():
    result = ERPAssistant().validate_query("drop table " + " " * 1000)
    assert len(result.errors) == 2


# ----- provider management ----------------------------------------------


def test_activation_is_exclusive(assistant, claude_provider):
    from erp_assistant.schemas import AIProviderConfig

    assistant.update_ai_provider(claude_provider, activate=True)
    assistant.update_ai_provider(
        AIProviderConfig(id="openai-1", name="OpenAI", api_key="k"),
        activate=True,
    )
    active = [p.id for p in assistant.get_ai_providers() if p.is_active]
    assert active == ["openai-1"]


def test_update_with_activate_false_deactivates(assistant, claude_provider):
    assistant.update_ai_provider(claude_provider, activate=True)
    assistant.update_ai_provider(claude_provider)
    assert assistant.ai_service.get_active_provider().id == "claude-1"

    assistant.update_ai_provider(claude_provider, activate=False)
    assert assistant.ai_service.get_active_provider() is None


@pytest.mark.asyncio
async def test_stream_error_update_is_marked(assistant):
    updates = [
        update async for update in assistant.process_stream("cash flow")
    ]
    assert isinstance(updates[-1], ProcessingErrorResponse)
    assert "No active AI provider" in updates[-1].error
