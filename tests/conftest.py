# tests/conftest.py
"""Pytest configuration and fixtures"""
import json
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bizpilot.infra.ai_gateway import ChatCompletionGateway  # noqa: E402
from bizpilot.infra.metrics import get_metrics_collector  # noqa: E402

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


class UpstreamStub:
    """
    httpx.MockTransport handler standing in for the completion endpoint.

    Records every request; answers with ``status`` and either a
    completion carrying ``content`` or a raw ``body``.
    """

    def __init__(self, content: str = "ok", status: int = 200, body: str | None = None, exc: Exception | None = None):
        self.content = content
        self.status = status
        self.body = body
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.body is not None:
            return httpx.Response(self.status, text=self.body)
        if self.status != 200:
            return httpx.Response(self.status, json={"error": "upstream says no"})
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": self.content}}]})

    @property
    def calls(self) -> int:
        return len(self.requests)

    def sent_json(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def upstream():
    """Upstream stub answering 200 with content 'ok' (mutate to change)"""
    return UpstreamStub()


@pytest.fixture
def make_gateway(upstream):
    """Factory for a real gateway client whose HTTP goes to ``upstream``"""
    def _make(api_key: str | None = "test-key", timeout: float = 5) -> ChatCompletionGateway:
        return ChatCompletionGateway(
            api_key=api_key,
            url=GATEWAY_URL,
            model="test/model",
            timeout=timeout,
            transport=httpx.MockTransport(upstream),
        )
    return _make


@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def lead_payload():
    """Lead attributes as the leads view sends them"""
    return {"name": "Dana Cohen", "company": "Acme Bakery", "source": "instagram", "value": 5000}


@pytest.fixture
def business_payload():
    """Business-profile context as the campaigns view sends it"""
    return {
        "businessName": "Green Crumb",
        "industry": "E-commerce",
        "goals": ["increase sales", "brand awareness"],
        "targetAudience": "young urban professionals",
    }
