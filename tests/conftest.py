"""
Pytest configuration and shared fixtures for the watsonx agent test suite.

Provides a scripted chat model, a mocked LiteLLM text completion, an HTTP
mock transport for the tools and a console that records its output. No test
in the unit suite touches the network.
"""

import io
from typing import Any, Callable, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import SecretStr
from rich.console import Console

from watsonx_agents.llm.base import ChatLLM, ChatLLMOutput, Message, Role
from watsonx_agents.llm.watsonx import WatsonxLLM
from watsonx_agents.utils.io import ConsoleReader

ScriptedResponse = Union[str, Exception]


class FakeChatLLM(ChatLLM):
    """
    Chat model returning scripted responses in order.

    Exceptions in the script are raised instead of returned. Every call
    records the conversation it received in ``calls``.
    """

    provider_id = "fake"

    def __init__(self, responses: List[ScriptedResponse], **kwargs: Any):
        kwargs.setdefault("retry_attempts", 0)
        kwargs.setdefault("retry_delay", 0.0)
        super().__init__("fake-model", **kwargs)
        self.responses = list(responses)
        self.calls: List[List[Message]] = []

    async def _generate(self, messages: List[Message], **options: Any) -> ChatLLMOutput:
        self.calls.append(list(messages))
        if not self.responses:
            raise AssertionError("FakeChatLLM ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return ChatLLMOutput(
            messages=[Message.of(Role.ASSISTANT, response)],
            usage={"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
            finish_reason="stop",
        )

    def count_tokens(self, text: str) -> int:
        return len(text.split())


@pytest.fixture
def fake_llm() -> Callable[..., FakeChatLLM]:
    """
    Factory fixture for scripted chat models.

    Example:
        >>> def test_something(fake_llm):
        ...     llm = fake_llm(['{"thought": "t", "final_answer": "a"}'])
    """

    def factory(responses: List[ScriptedResponse], **kwargs: Any) -> FakeChatLLM:
        return FakeChatLLM(responses, **kwargs)

    return factory


@pytest.fixture
def sample_messages() -> List[Message]:
    """A short conversation with all three roles."""
    return [
        Message.of(Role.SYSTEM, "You are a helpful assistant."),
        Message.of(Role.USER, "Why is the sky blue?"),
        Message.of(Role.ASSISTANT, "Because of Rayleigh scattering."),
    ]


def make_text_completion_response(text: str, finish_reason: str = "stop") -> Any:
    """Build an object shaped like a LiteLLM TextCompletionResponse."""

    class MockChoice:
        def __init__(self):
            self.text = text
            self.finish_reason = finish_reason

    class MockUsage:
        def __init__(self):
            self.prompt_tokens = 12
            self.completion_tokens = 8
            self.total_tokens = 20

    class MockResponse:
        def __init__(self):
            self.choices = [MockChoice()]
            self.usage = MockUsage()

    return MockResponse()


@pytest.fixture
def mock_text_completion(mocker) -> AsyncMock:
    """
    Patch litellm.atext_completion with an AsyncMock.

    The mock returns "Hallo!" by default; set ``return_value`` or
    ``side_effect`` to change it.
    """
    return mocker.patch(
        "litellm.atext_completion",
        new_callable=AsyncMock,
        return_value=make_text_completion_response("Hallo!"),
    )


@pytest.fixture
def watsonx_llm() -> WatsonxLLM:
    """WatsonxLLM with dummy credentials."""
    return WatsonxLLM(
        "meta-llama/llama-3-70b-instruct",
        project_id="test-project",
        base_url="https://us-south.ml.cloud.ibm.com",
        api_key=SecretStr("test-api-key"),
        parameters={"decoding_method": "greedy", "max_new_tokens": 500},
    )


@pytest.fixture
def console_reader() -> ConsoleReader:
    """ConsoleReader writing to an in-memory buffer; read it with ``reader.console.file.getvalue()``."""
    console = Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)
    return ConsoleReader(console=console)


@pytest.fixture
def mock_http_client() -> Callable[[Dict[str, Any]], httpx.AsyncClient]:
    """
    Factory for an httpx.AsyncClient served by a mock transport.

    Routes map a URL path to a JSON payload or a callable taking the request.
    Requests are recorded on ``client.requests``.
    """

    def factory(routes: Dict[str, Any], status_code: int = 200) -> httpx.AsyncClient:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            payload: Optional[Any] = routes.get(request.url.path)
            if payload is None:
                return httpx.Response(404, json={"error": "not found"})
            if callable(payload):
                payload = payload(request)
            return httpx.Response(status_code, json=payload)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requests = requests  # type: ignore[attr-defined]
        return client

    return factory


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line(
        "markers", "requires_api_key: Tests that require real watsonx credentials"
    )
