"""MCP (Model Context Protocol) server implementation for xpost-mcp."""

from .capabilities import (
    Capability,
    ActionCapability,
    ResourceCapability,
    PromptCapability,
    CapabilityRegistry,
)
from .builtin_tools import (
    FetchAndCacheTool,
    RecentPostsResource,
    GeneratePostPrompt,
    PublishPostTool,
    build_registry,
)
from .sessions import Session, SessionManager, SessionState
from .server import MCPServer, create_mcp_server

__all__ = [
    "Capability",
    "ActionCapability",
    "ResourceCapability",
    "PromptCapability",
    "CapabilityRegistry",
    "FetchAndCacheTool",
    "RecentPostsResource",
    "GeneratePostPrompt",
    "PublishPostTool",
    "build_registry",
    "Session",
    "SessionManager",
    "SessionState",
    "MCPServer",
    "create_mcp_server",
]
