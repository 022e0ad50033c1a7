"""MCP client over Server-Sent Events."""

import asyncio
import json
from dataclasses import dataclass
from typing import Dict, Any, List, Optional
from urllib.parse import urljoin, urlparse, parse_qs

import aiohttp

from .. import __version__
from ..core.exceptions import MCPClientError, TransportError
from ..utils.logger import get_logger

logger = get_logger(__name__)

MCP_VERSION = "2024-11-05"


@dataclass
class SSEEvent:
    """One dispatched Server-Sent Event."""

    event: str
    data: str


class SSEParser:
    """Incremental line parser for ``text/event-stream`` bodies."""

    def __init__(self):
        self._event: Optional[str] = None
        self._data: List[str] = []

    def feed_line(self, line: str) -> Optional[SSEEvent]:
        """Consume one line; returns an event when a blank line completes one."""
        line = line.rstrip("\r\n")

        if not line:
            if not self._data:
                self._event = None
                return None
            event = SSEEvent(event=self._event or "message", data="\n".join(self._data))
            self._event = None
            self._data = []
            return event

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


class MCPSSEClient:
    """MCP client holding one SSE session with the server.

    Requests are POSTed to the endpoint announced by the server and their
    responses are matched by id as they arrive on the stream.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:3001",
        sse_path: str = "/sse",
        request_timeout: float = 120,
        client_name: str = "x-posting-client",
    ):
        """Initialize MCP client."""
        self.server_url = server_url.rstrip("/")
        self.sse_path = sse_path
        self.request_timeout = request_timeout
        self.client_info = {"name": client_name, "version": __version__}

        self.session: Optional[aiohttp.ClientSession] = None
        self.messages_url: Optional[str] = None
        self.session_id: Optional[str] = None
        self.server_info: Dict[str, Any] = {}

        self._stream: Optional[aiohttp.ClientResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._endpoint: Optional[asyncio.Future] = None
        self._pending: Dict[int, asyncio.Future] = {}
        self._next_id = 0

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def connected(self) -> bool:
        return self.messages_url is not None and self._reader_task is not None and not self._reader_task.done()

    async def connect(self) -> None:
        """Open the stream, wait for the endpoint event and initialize."""
        loop = asyncio.get_running_loop()
        # The stream stays open for the whole session
        self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))

        try:
            self._stream = await self.session.get(
                f"{self.server_url}{self.sse_path}",
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self.request_timeout),
            )
        except aiohttp.ClientError as e:
            await self.close()
            raise TransportError(f"Connection error: {e}")

        if self._stream.status != 200:
            status = self._stream.status
            await self.close()
            raise TransportError(f"SSE connection failed with HTTP {status}")

        self._endpoint = loop.create_future()
        self._reader_task = asyncio.create_task(self._read_stream())

        try:
            endpoint = await asyncio.wait_for(self._endpoint, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            await self.close()
            raise TransportError("Server did not announce a message endpoint")
        except TransportError:
            await self.close()
            raise

        self.messages_url = urljoin(self.server_url + "/", endpoint)
        query = parse_qs(urlparse(self.messages_url).query)
        self.session_id = (query.get("sessionId") or [None])[0]
        logger.info(f"Connected to MCP server, session {self.session_id}")

        result = await self.request(
            "initialize",
            {
                "protocolVersion": MCP_VERSION,
                "capabilities": {},
                "clientInfo": self.client_info,
            },
        )
        self.server_info = result.get("serverInfo", {}) if isinstance(result, dict) else {}
        await self.notify("notifications/initialized")

    async def _read_stream(self) -> None:
        parser = SSEParser()
        reason = "Stream closed by server"
        try:
            async for raw in self._stream.content:
                event = parser.feed_line(raw.decode("utf-8"))
                if event is None:
                    continue
                if event.event == "endpoint":
                    if self._endpoint is not None and not self._endpoint.done():
                        self._endpoint.set_result(event.data)
                elif event.event == "message":
                    self._dispatch(event.data)
        except (aiohttp.ClientError, ValueError) as e:
            reason = f"Stream error: {e}"
            logger.error(reason)
        finally:
            self._fail_pending(TransportError(reason))

    def _dispatch(self, data: str) -> None:
        try:
            message = json.loads(data)
        except ValueError:
            logger.warning(f"Ignoring malformed message from server: {data[:200]}")
            return

        future = self._pending.pop(message.get("id"), None) if isinstance(message, dict) else None
        if future is None:
            logger.debug(f"Unsolicited message from server: {data[:200]}")
            return
        if not future.done():
            future.set_result(message)

    def _fail_pending(self, error: Exception) -> None:
        if self._endpoint is not None and not self._endpoint.done():
            self._endpoint.set_exception(error)
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    async def _post(self, payload: Dict[str, Any]) -> None:
        if self.session is None or self.messages_url is None:
            raise TransportError("Not connected")
        try:
            async with self.session.post(
                self.messages_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            ) as response:
                if response.status >= 300:
                    detail = await response.text()
                    raise TransportError(f"Server rejected message ({response.status}): {detail}")
        except aiohttp.ClientError as e:
            raise TransportError(f"Connection error: {e}")
        except asyncio.TimeoutError:
            raise TransportError("Request timeout")

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send a request and wait for its response on the stream.

        Raises:
            TransportError: If the message cannot be delivered or the stream ends
            MCPClientError: If the server answers with an error
        """
        if not self.connected:
            raise TransportError("Not connected")

        self._next_id += 1
        request_id = self._next_id
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            payload["params"] = params

        try:
            await self._post(payload)
            message = await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Timed out waiting for response to {method}")
        finally:
            self._pending.pop(request_id, None)

        if "error" in message:
            error = message["error"] or {}
            raise MCPClientError(error.get("message", "Unknown error"), code=error.get("code"))
        return message.get("result")

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a notification (no response expected)."""
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        await self._post(payload)

    async def ping(self) -> None:
        await self.request("ping")

    async def list_tools(self) -> List[Dict[str, Any]]:
        result = await self.request("tools/list")
        return result.get("tools", [])

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.request("tools/call", {"name": name, "arguments": arguments or {}})

    async def list_resources(self) -> List[Dict[str, Any]]:
        result = await self.request("resources/list")
        return result.get("resources", [])

    async def read_resource(self, uri: str) -> Dict[str, Any]:
        return await self.request("resources/read", {"uri": uri})

    async def list_prompts(self) -> List[Dict[str, Any]]:
        result = await self.request("prompts/list")
        return result.get("prompts", [])

    async def get_prompt(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.request("prompts/get", {"name": name, "arguments": arguments or {}})

    async def close(self) -> None:
        """Disconnect from the server."""
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        if self._stream is not None:
            self._stream.close()
            self._stream = None

        if self.session is not None:
            await self.session.close()
            self.session = None

        self.messages_url = None
        self._fail_pending(TransportError("Client closed"))


def tool_text(result: Dict[str, Any]) -> str:
    """Joined text content of a tool result."""
    return "\n".join(
        item.get("text", "") for item in result.get("content", []) if item.get("type") == "text"
    )
