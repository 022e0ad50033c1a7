"""Unit tests for the posting workflow."""

import pytest

from xpost_mcp.client import PostWorkflow
from xpost_mcp.core.exceptions import ConfigurationError, MCPClientError, TransportError, WorkflowError
from xpost_mcp.core.models import GenerationResult
from xpost_mcp.infrastructure.llm import GENERATION_FAILED_TEXT


def text_result(text, is_error=False):
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


class FakeClient:
    """Stands in for MCPSSEClient and records the calls made."""

    def __init__(self, fetch=None, publish=None, connect_error=None):
        self.fetch = fetch or text_result("Cache validation successful. Found 1 cached tweets.")
        self.publish = publish or text_result("Successfully posted tweet ID: 1001")
        self.connect_error = connect_error
        self.calls = []
        self.closed = False

    async def connect(self):
        self.calls.append("connect")
        if self.connect_error:
            raise self.connect_error

    async def list_tools(self):
        self.calls.append("list_tools")
        return [{"name": "fetchAndCacheTweets"}, {"name": "postToX"}]

    async def call_tool(self, name, arguments=None):
        self.calls.append(("call_tool", name, arguments))
        return self.fetch if name == "fetchAndCacheTweets" else self.publish

    async def get_prompt(self, name, arguments=None):
        self.calls.append(("get_prompt", name, arguments))
        return {
            "messages": [
                {"role": "system", "content": {"type": "text", "text": "be brief"}},
                {"role": "user", "content": {"type": "text", "text": f"Topic: {arguments['topic']}"}},
            ]
        }

    async def close(self):
        self.closed = True


class FakeGenerator:
    def __init__(self, result=None, error=None):
        self.result = result or GenerationResult(text="  A post about rust  ")
        self.error = error
        self.seen = None

    async def generate(self, messages):
        self.seen = messages
        if self.error:
            raise self.error
        return self.result

    async def close(self):
        pass


@pytest.mark.asyncio
async def test_happy_path():
    client = FakeClient()
    generator = FakeGenerator()

    report = await PostWorkflow(client, generator).run("rust")

    assert report.steps == ["fetchAndCache", "generatePost", "generate", "publishPost"]
    assert report.available_tools == ["fetchAndCacheTweets", "postToX"]
    assert report.generated_text == "A post about rust"
    assert report.publish_message == "Successfully posted tweet ID: 1001"
    assert client.calls[-1] == ("call_tool", "postToX", {"content": "A post about rust"})
    assert generator.seen[1].text == "Topic: rust"
    assert client.closed


@pytest.mark.asyncio
async def test_cache_failure_stops_before_generation():
    client = FakeClient(fetch=text_result("Error fetching tweets: boom", is_error=True))
    generator = FakeGenerator()

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(client, generator).run("rust")

    assert exc_info.value.step == "fetchAndCache"
    assert "boom" in str(exc_info.value)
    assert generator.seen is None
    assert client.closed


@pytest.mark.asyncio
async def test_generation_failure_is_not_published():
    client = FakeClient()
    generator = FakeGenerator(
        GenerationResult(text=GENERATION_FAILED_TEXT, ok=False, attempts=3, reason="HTTP 500")
    )

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(client, generator).run("rust")

    assert exc_info.value.step == "generate"
    assert not any(call[1] == "postToX" for call in client.calls if isinstance(call, tuple))
    assert client.closed


@pytest.mark.asyncio
async def test_empty_generation_is_not_published():
    client = FakeClient()

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(client, FakeGenerator(GenerationResult(text="   "))).run("rust")

    assert exc_info.value.step == "generate"


@pytest.mark.asyncio
async def test_publish_failure():
    client = FakeClient(publish=text_result("Error posting tweet: duplicate", is_error=True))

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(client, FakeGenerator()).run("rust")

    assert exc_info.value.step == "publishPost"


@pytest.mark.asyncio
async def test_transport_failure_names_step():
    client = FakeClient(connect_error=TransportError("Connection error"))

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(client, FakeGenerator()).run("rust")

    assert exc_info.value.step == "connect"
    assert client.closed


@pytest.mark.asyncio
async def test_protocol_error_names_step():
    class FailingPromptClient(FakeClient):
        async def get_prompt(self, name, arguments=None):
            raise MCPClientError("Prompt 'generate-post' not found", code=-32001)

    with pytest.raises(WorkflowError) as exc_info:
        await PostWorkflow(FailingPromptClient(), FakeGenerator()).run("rust")

    assert exc_info.value.step == "generatePost"


@pytest.mark.asyncio
async def test_missing_generation_key_propagates():
    client = FakeClient()
    generator = FakeGenerator(error=ConfigurationError("GEMINI_API_KEY not found in environment variables"))

    with pytest.raises(ConfigurationError):
        await PostWorkflow(client, generator).run("rust")
    assert client.closed
