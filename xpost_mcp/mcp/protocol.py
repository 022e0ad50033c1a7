"""MCP protocol models (JSON-RPC 2.0)."""

import json
from typing import Dict, Any, Optional, List, Union
from enum import Enum
from pydantic import BaseModel, Field


# MCP Protocol Version
MCP_VERSION = "2024-11-05"


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Optional[Any] = None


class ErrorCode(Enum):
    """Standard JSON-RPC and MCP error codes."""

    # JSON-RPC standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # MCP-specific errors
    CAPABILITY_NOT_FOUND = -32001


class MCPRequest(BaseModel):
    """MCP request or notification in JSON-RPC 2.0 format."""

    jsonrpc: str = "2.0"
    id: Union[str, int, None] = None
    method: str
    params: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        # Only an absent id marks a notification; "id": null still gets a reply
        return "id" not in self.model_fields_set


class MCPResponse(BaseModel):
    """MCP response following JSON-RPC 2.0 format."""

    jsonrpc: str = "2.0"
    id: Union[str, int, None]
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None


class MCPMethod(str, Enum):
    """MCP methods served by the gateway."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"

    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"

    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"

    RESOURCES_LIST = "resources/list"
    RESOURCES_READ = "resources/read"


class MCPToolInfo(BaseModel):
    """Tool information in MCP format."""

    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    inputSchema: Dict[str, Any]


class MCPPromptInfo(BaseModel):
    """Prompt information in MCP format."""

    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    arguments: Optional[List[Dict[str, Any]]] = None


class MCPResourceInfo(BaseModel):
    """Resource information in MCP format."""

    uri: str
    name: str
    title: Optional[str] = None
    description: Optional[str] = None
    mimeType: Optional[str] = None


class MCPToolCall(BaseModel):
    """Tool call parameters."""

    name: str
    arguments: Optional[Dict[str, Any]] = None


class MCPPromptGet(BaseModel):
    """Prompt get parameters."""

    name: str
    arguments: Optional[Dict[str, Any]] = None


class MCPResourceRead(BaseModel):
    """Resource read parameters."""

    uri: str


class MCPToolResult(BaseModel):
    """Tool execution result."""

    content: List[Dict[str, Any]]
    isError: bool = False


class MCPInitializeParams(BaseModel):
    """Initialize request parameters."""

    protocolVersion: str = MCP_VERSION
    capabilities: Dict[str, Any] = Field(default_factory=dict)
    clientInfo: Dict[str, Any] = Field(default_factory=dict)


class MCPServerCapabilities(BaseModel):
    """Server capabilities."""

    tools: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None


class MCPInitializeResult(BaseModel):
    """Initialize response result."""

    protocolVersion: str = MCP_VERSION
    capabilities: MCPServerCapabilities
    serverInfo: Dict[str, Any]


def create_error_response(
    request_id: Union[str, int, None],
    code: ErrorCode,
    message: str,
    data: Optional[Any] = None,
) -> MCPResponse:
    """Create an error response."""
    return MCPResponse(
        id=request_id, error=JSONRPCError(code=code.value, message=message, data=data)
    )


def create_success_response(
    request_id: Union[str, int, None], result: Any
) -> MCPResponse:
    """Create a success response."""
    return MCPResponse(id=request_id, result=result)


def validate_mcp_request(data: Any) -> Optional[str]:
    """Validate MCP request format. Returns an error message or None."""
    if not isinstance(data, dict):
        return "Request must be a JSON object"

    if "jsonrpc" not in data or data["jsonrpc"] != "2.0":
        return "Missing or invalid jsonrpc version"

    if not isinstance(data.get("method"), str):
        return "Missing method field"

    if "params" in data and data["params"] is not None and not isinstance(data["params"], dict):
        return "params must be an object"

    return None


def serialize_response(response: MCPResponse) -> str:
    """JSON text of a response, omitting absent result or error."""
    body: Dict[str, Any] = {"jsonrpc": response.jsonrpc, "id": response.id}
    if response.error is not None:
        body["error"] = response.error.model_dump(exclude_none=True)
    else:
        body["result"] = response.result
    return json.dumps(body)


def format_tool_result(text: str, is_error: bool = False) -> MCPToolResult:
    """Format a text tool result for an MCP response."""
    return MCPToolResult(content=[{"type": "text", "text": text}], isError=is_error)
