"""MCP server over Server-Sent Events."""

import asyncio
import json
from typing import Dict, Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from ..core.exceptions import (
    CapabilityNotFoundError,
    InputValidationError,
    SessionNotFoundError,
)
from ..core.models import CapabilityKind
from ..utils.logger import get_logger
from .capabilities import CapabilityRegistry
from .protocol import (
    MCPRequest,
    MCPResponse,
    MCPMethod,
    ErrorCode,
    MCPInitializeParams,
    MCPInitializeResult,
    MCPServerCapabilities,
    MCPToolCall,
    MCPPromptGet,
    MCPResourceRead,
    create_error_response,
    create_success_response,
    validate_mcp_request,
    serialize_response,
    format_tool_result,
    MCP_VERSION,
)
from .sessions import Session, SessionManager

logger = get_logger(__name__)


def format_sse(event: str, data: str) -> str:
    """Encode one Server-Sent Event."""
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class MCPServer:
    """MCP server with one SSE stream per session.

    Clients open ``GET /sse`` and receive an ``endpoint`` event naming the
    URL to POST requests to. Responses are written back onto the stream of
    the session named by the ``sessionId`` query parameter.
    """

    def __init__(
        self,
        app: FastAPI,
        registry: CapabilityRegistry,
        sessions: Optional[SessionManager] = None,
        server_name: str = "x-posting-server",
        server_version: str = "1.0.0",
        sse_path: str = "/sse",
        messages_path: str = "/messages",
        keepalive_seconds: float = 15,
    ):
        """Initialize MCP server."""
        self.app = app
        self.registry = registry
        self.sessions = sessions or SessionManager()
        self.sse_path = sse_path
        self.messages_path = messages_path
        self.keepalive_seconds = keepalive_seconds

        self.server_info = {"name": server_name, "version": server_version}

        self._register_endpoints()

    def _register_endpoints(self):
        """Register MCP endpoints."""
        self.app.get(self.sse_path)(self.handle_sse)
        self.app.post(self.messages_path)(self.handle_post_message)

        # Health check, outside the MCP surface
        self.app.get("/health")(self.health_check)

    async def handle_sse(self, request: Request) -> StreamingResponse:
        """Open a session and stream its responses."""
        session = self.sessions.open()
        endpoint = f"{self.messages_path}?sessionId={session.id}"

        async def event_stream():
            try:
                yield format_sse("endpoint", endpoint)
                while True:
                    try:
                        message = await asyncio.wait_for(
                            session.outbound.get(), timeout=self.keepalive_seconds
                        )
                    except asyncio.TimeoutError:
                        if await request.is_disconnected():
                            break
                        yield ": ping\n\n"
                        continue

                    if message is None:
                        break
                    yield format_sse("message", message)
            finally:
                self.sessions.close(session.id)

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    async def handle_post_message(self, request: Request) -> PlainTextResponse:
        """Accept a JSON-RPC message for an open session."""
        session_id = request.query_params.get("sessionId")

        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Unknown sessions still get the session error first
            if session_id not in self.sessions:
                return PlainTextResponse("No transport found for sessionId", status_code=400)
            return PlainTextResponse("Invalid JSON", status_code=400)

        try:
            self.submit(session_id, data)
        except SessionNotFoundError:
            logger.warning(f"Rejected message for unknown session {session_id}")
            return PlainTextResponse("No transport found for sessionId", status_code=400)
        except ValueError as e:
            return PlainTextResponse(str(e), status_code=400)

        return PlainTextResponse("Accepted", status_code=202)

    def submit(self, session_id: Optional[str], data: Any) -> "asyncio.Task":
        """
        Route a message to a session and process it in the background.

        Returns:
            The task that writes the response onto the session's stream

        Raises:
            SessionNotFoundError: If the session is unknown or closed
            ValueError: If the message is not a valid JSON-RPC request
        """
        session = self.sessions.get(session_id)

        validation_error = validate_mcp_request(data)
        if validation_error:
            raise ValueError(validation_error)
        try:
            mcp_request = MCPRequest(**data)
        except ValidationError as e:
            raise ValueError(str(e))

        task = asyncio.create_task(self._process(session, mcp_request))
        session.tasks.add(task)
        task.add_done_callback(session.tasks.discard)
        return task

    async def _process(self, session: Session, request: MCPRequest) -> None:
        response = await self.handle_request(request, session)
        if response is None:
            return
        if not session.send(serialize_response(response)):
            logger.warning(
                f"Session closed before response to {request.method} was sent",
                extra={"session_id": session.id, "request_id": request.id},
            )

    async def handle_request(
        self, request: MCPRequest, session: Optional[Session] = None
    ) -> Optional[MCPResponse]:
        """Handle one request. Notifications return None."""
        if request.is_notification:
            if request.method == MCPMethod.INITIALIZED and session is not None:
                logger.info("Client initialized", extra={"session_id": session.id})
            return None

        try:
            if (
                session is not None
                and not session.initialized
                and request.method not in (MCPMethod.INITIALIZE, MCPMethod.PING)
            ):
                return create_error_response(
                    request.id,
                    ErrorCode.INVALID_REQUEST,
                    "Session not initialized. Call initialize first.",
                )

            if request.method == MCPMethod.INITIALIZE:
                return await self._handle_initialize(request, session)
            elif request.method == MCPMethod.PING:
                return create_success_response(request.id, {})
            elif request.method == MCPMethod.TOOLS_LIST:
                return self._handle_list(request, CapabilityKind.ACTION, "tools")
            elif request.method == MCPMethod.TOOLS_CALL:
                return await self._handle_tools_call(request, session)
            elif request.method == MCPMethod.RESOURCES_LIST:
                return self._handle_list(request, CapabilityKind.RESOURCE, "resources")
            elif request.method == MCPMethod.RESOURCES_READ:
                return await self._handle_resources_read(request, session)
            elif request.method == MCPMethod.PROMPTS_LIST:
                return self._handle_list(request, CapabilityKind.PROMPT, "prompts")
            elif request.method == MCPMethod.PROMPTS_GET:
                return await self._handle_prompts_get(request, session)
            else:
                return create_error_response(
                    request.id,
                    ErrorCode.METHOD_NOT_FOUND,
                    f"Method '{request.method}' not found",
                )

        except CapabilityNotFoundError as e:
            return create_error_response(request.id, ErrorCode.CAPABILITY_NOT_FOUND, str(e))
        except InputValidationError as e:
            return create_error_response(request.id, ErrorCode.INVALID_PARAMS, str(e))
        except ValidationError as e:
            return create_error_response(request.id, ErrorCode.INVALID_PARAMS, str(e))
        except Exception as e:
            logger.exception(f"Error handling {request.method}")
            return create_error_response(request.id, ErrorCode.INTERNAL_ERROR, str(e))

    def _context(self, request: MCPRequest, session: Optional[Session]) -> Dict[str, Any]:
        return {
            "mcp_request_id": request.id,
            "session_id": session.id if session else None,
        }

    async def _handle_initialize(
        self, request: MCPRequest, session: Optional[Session] = None
    ) -> MCPResponse:
        """Handle initialize request."""
        params = MCPInitializeParams(**(request.params or {}))

        if params.protocolVersion != MCP_VERSION:
            logger.warning(
                f"Client requested version {params.protocolVersion}, server supports {MCP_VERSION}"
            )

        if session is not None:
            session.initialized = True
            session.client_info = params.clientInfo

        capabilities = MCPServerCapabilities(tools={}, prompts={}, resources={})
        result = MCPInitializeResult(
            protocolVersion=MCP_VERSION,
            capabilities=capabilities,
            serverInfo=self.server_info,
        )
        return create_success_response(request.id, result.model_dump(exclude_none=True))

    def _handle_list(self, request: MCPRequest, kind: CapabilityKind, key: str) -> MCPResponse:
        items = [capability.describe() for capability in self.registry.list(kind)]
        return create_success_response(request.id, {key: items})

    async def _handle_tools_call(
        self, request: MCPRequest, session: Optional[Session]
    ) -> MCPResponse:
        """Handle tools/call request."""
        tool_call = MCPToolCall(**(request.params or {}))
        logger.info(f"Tool '{tool_call.name}' called", extra={"capability": tool_call.name})

        result = await self.registry.invoke(
            CapabilityKind.ACTION,
            tool_call.name,
            tool_call.arguments,
            context=self._context(request, session),
        )
        return create_success_response(
            request.id, format_tool_result(result.text, is_error=result.is_error).model_dump()
        )

    async def _handle_resources_read(
        self, request: MCPRequest, session: Optional[Session]
    ) -> MCPResponse:
        """Handle resources/read request."""
        read = MCPResourceRead(**(request.params or {}))
        resource = self.registry.find_resource(read.uri)
        if resource is None:
            raise CapabilityNotFoundError(f"Resource '{read.uri}' not found")

        result = await self.registry.invoke(
            CapabilityKind.RESOURCE, resource.name, context=self._context(request, session)
        )
        if result.is_error:
            return create_error_response(request.id, ErrorCode.INTERNAL_ERROR, result.text)

        if not result.data:
            return create_success_response(request.id, {"contents": []})

        return create_success_response(
            request.id,
            {
                "contents": [
                    {"uri": resource.uri, "mimeType": resource.mime_type, "text": result.text}
                ]
            },
        )

    async def _handle_prompts_get(
        self, request: MCPRequest, session: Optional[Session]
    ) -> MCPResponse:
        """Handle prompts/get request."""
        prompt_get = MCPPromptGet(**(request.params or {}))

        result = await self.registry.invoke(
            CapabilityKind.PROMPT,
            prompt_get.name,
            prompt_get.arguments,
            context=self._context(request, session),
        )
        if result.is_error:
            return create_error_response(request.id, ErrorCode.INTERNAL_ERROR, result.text)

        prompt = self.registry.get(CapabilityKind.PROMPT, prompt_get.name)
        return create_success_response(
            request.id,
            {
                "description": prompt.description if prompt else None,
                "messages": [message.to_mcp() for message in result.data],
            },
        )

    def close_all_sessions(self) -> int:
        """End every open stream. Returns the number of sessions closed."""
        closed = 0
        for session_id in self.sessions.ids():
            if self.sessions.close(session_id):
                closed += 1
        return closed

    async def health_check(self) -> Dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "server": self.server_info["name"],
            "version": self.server_info["version"],
            "protocol_version": MCP_VERSION,
            "active_sessions": len(self.sessions),
            "capabilities": self.registry.counts(),
        }


def create_mcp_server(app: FastAPI, **kwargs) -> MCPServer:
    """Factory function to create MCP server."""
    return MCPServer(app, **kwargs)
