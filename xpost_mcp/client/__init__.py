"""Client side: MCP over SSE and the posting workflow."""

from .sse_client import MCPSSEClient, SSEEvent, SSEParser, tool_text
from .workflow import PostWorkflow

__all__ = [
    "MCPSSEClient",
    "SSEEvent",
    "SSEParser",
    "tool_text",
    "PostWorkflow",
]
