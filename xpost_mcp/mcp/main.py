"""Main entry point for MCP server."""

import os
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI
import uvicorn

from .. import __version__
from ..core.interfaces import IPostingClient
from ..infrastructure.cache import PostCache, create_post_cache
from ..infrastructure.posting import create_posting_client
from ..utils.config import load_config, credential_report
from ..utils.logger import get_logger
from .builtin_tools import build_registry
from .server import MCPServer, create_mcp_server

logger = get_logger(__name__)


def create_mcp_app(
    config: Optional[Dict[str, Any]] = None,
    posting_client: Optional[IPostingClient] = None,
    cache: Optional[PostCache] = None,
    username: Optional[str] = None,
) -> FastAPI:
    """Create and configure the MCP FastAPI app.

    Collaborators default to the ones named in ``config``; tests pass their own.
    """
    config = config or load_config()
    server_config = config.get("server", {})
    cache_config = config.get("cache", {})

    for name, present in credential_report().items():
        logger.info(f"- {name}: {'present' if present else 'missing'}")

    posting_client = posting_client or create_posting_client(config.get("posting", {}))
    cache = cache or create_post_cache(cache_config)
    username = username if username is not None else os.getenv("X_USERNAME")

    registry = build_registry(
        cache=cache,
        posting_client=posting_client,
        username=username,
        exemplar_count=cache_config.get("exemplar_count", 5),
    )

    mcp_server: Optional[MCPServer] = None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("MCP Server starting...")
        yield
        logger.info("MCP Server shutting down...")
        closed = mcp_server.close_all_sessions()
        logger.info(f"Closed {closed} open sessions")
        await posting_client.close()

    app = FastAPI(
        title="X Posting MCP Server",
        description="Model Context Protocol server for drafting and publishing X.com posts",
        version=__version__,
        lifespan=lifespan,
    )

    mcp_server = create_mcp_server(
        app=app,
        registry=registry,
        server_name=server_config.get("name", "x-posting-server"),
        server_version=__version__,
        sse_path=server_config.get("sse_path", "/sse"),
        messages_path=server_config.get("messages_path", "/messages"),
        keepalive_seconds=server_config.get("keepalive_seconds", 15),
    )
    app.state.mcp_server = mcp_server

    return app


def main(config_path: Optional[str] = None):
    """Run MCP server."""
    config = load_config(config_path)
    app = create_mcp_app(config)

    host = config["server"].get("host", "127.0.0.1")
    port = config["server"].get("port", 3001)

    logger.info(f"Server is running on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
