"""Unit tests for the SSE client pieces that need no server."""

import asyncio

import pytest

from xpost_mcp.core.exceptions import TransportError
from xpost_mcp.client import MCPSSEClient, SSEParser, tool_text


def feed(parser, text):
    events = []
    for line in text.splitlines(keepends=True):
        event = parser.feed_line(line)
        if event is not None:
            events.append(event)
    return events


def test_parser_endpoint_and_message():
    events = feed(
        SSEParser(),
        "event: endpoint\ndata: /messages?sessionId=abc\n\n"
        "event: message\ndata: {\"id\": 1}\n\n",
    )

    assert [(e.event, e.data) for e in events] == [
        ("endpoint", "/messages?sessionId=abc"),
        ("message", '{"id": 1}'),
    ]


def test_parser_ignores_comments_and_joins_data():
    events = feed(SSEParser(), ": ping\n\ndata: first\ndata: second\n\n")

    assert len(events) == 1
    assert events[0].event == "message"
    assert events[0].data == "first\nsecond"


def test_parser_handles_crlf_and_no_space():
    events = feed(SSEParser(), "event:message\r\ndata:{}\r\n\r\n")
    assert [(e.event, e.data) for e in events] == [("message", "{}")]


def test_tool_text():
    result = {"content": [{"type": "text", "text": "a"}, {"type": "image"}, {"type": "text", "text": "b"}]}
    assert tool_text(result) == "a\nb"
    assert tool_text({}) == ""


@pytest.mark.asyncio
async def test_request_requires_connection():
    client = MCPSSEClient("http://127.0.0.1:1")
    with pytest.raises(TransportError, match="Not connected"):
        await client.request("ping")


@pytest.mark.asyncio
async def test_dispatch_resolves_matching_request():
    client = MCPSSEClient()
    future = asyncio.get_running_loop().create_future()
    client._pending[3] = future

    client._dispatch('{"jsonrpc": "2.0", "id": 9, "result": {}}')
    assert not future.done()

    client._dispatch('{"jsonrpc": "2.0", "id": 3, "result": {"ok": true}}')
    assert future.result() == {"jsonrpc": "2.0", "id": 3, "result": {"ok": True}}


@pytest.mark.asyncio
async def test_stream_loss_fails_pending_requests():
    client = MCPSSEClient()
    future = asyncio.get_running_loop().create_future()
    client._pending[1] = future

    client._fail_pending(TransportError("Stream closed by server"))

    with pytest.raises(TransportError):
        future.result()
    assert client._pending == {}


@pytest.mark.asyncio
async def test_connect_refused():
    client = MCPSSEClient("http://127.0.0.1:9", request_timeout=2)
    with pytest.raises(TransportError):
        await client.connect()
    assert client.session is None
