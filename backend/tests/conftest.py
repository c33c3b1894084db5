import json
import os
import tempfile

# Point the app at a throwaway database before it is imported.
_fd, _DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from erp_assistant.database import init_db, make_engine
from erp_assistant.main import app
from erp_assistant.schemas import AIProviderConfig
from erp_assistant.services.ai_service import AIService
from erp_assistant.services.assistant import ERPAssistant
from erp_assistant.services.netsuite import SampleDataSource


FULL_REPLY = {
    "data": {"total_revenue": 2100000},
    "insights": ["Revenue is concentrated in three accounts"],
    "visualizations": [
        {"type": "pie", "title": "Revenue share", "data": [], "options": {}},
    ],
    "summary": "Three customers drive most revenue.",
    "recommendations": ["Diversify the customer base"],
}


class FakeVendor:
    """
    Stand-in for every AI vendor API.

    Records each request and answers in the shape the targeted
    vendor uses, with ``reply`` as the text body.
    """

    def __init__(self):
        self.requests = []
        self.reply = json.dumps(FULL_REPLY)
        self.status = 200
        self.client = httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(
                self.status, json={"error": {"message": "upstream failure"}},
            )

        url = str(request.url)
        if "anthropic.com" in url:
            return httpx.Response(200, json={
                "id": "msg_1",
                "type": "message",
                "role": "assistant",
                "content": [{"type": "text", "text": self.reply}],
            })
        if "googleapis.com" in url:
            return httpx.Response(200, json={
                "candidates": [
                    {"content": {"parts": [{"text": self.reply}]}},
                ],
            })
        return httpx.Response(200, json={
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 1700000000,
            "model": "gpt-4",
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": self.reply},
                "finish_reason": "stop",
            }],
        })

    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def vendor():
    return FakeVendor()


@pytest.fixture
def claude_provider():
    return AIProviderConfig(
        id="claude-1",
        name="Claude",
        api_key="claude-key",
        model="claude-3-sonnet-20240229",
        cost_per_token=0.015,
    )


@pytest.fixture
def ai_service(vendor):
    return AIService(http_client=vendor.client)


@pytest.fixture
def assistant(ai_service):
    return ERPAssistant(ai_service=ai_service, data_source=SampleDataSource())


@pytest.fixture
def db_session():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(vendor):
    with TestClient(app) as test_client:
        app.state.assistant = ERPAssistant(
            ai_service=AIService(http_client=vendor.client),
            data_source=SampleDataSource(),
        )
        yield test_client


def pytest_sessionfinish(session, exitstatus):
    if os.path.exists(_DB_PATH):
        os.remove(_DB_PATH)
