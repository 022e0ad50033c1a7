"""Pytest configuration and fixtures."""

import json
from typing import Dict, Any, List

import pytest
from fastapi import FastAPI

from xpost_mcp.core.models import Post
from xpost_mcp.infrastructure.cache import PostCache
from xpost_mcp.infrastructure.posting import MockPostingClient
from xpost_mcp.mcp.builtin_tools import build_registry
from xpost_mcp.mcp.server import MCPServer
from xpost_mcp.mcp.sessions import SessionManager

USERNAME = "alice"
USER_ID = "42"


@pytest.fixture
def mock_config(tmp_path) -> Dict[str, Any]:
    """Mock configuration for testing."""
    return {
        "server": {
            "name": "x-posting-server",
            "host": "127.0.0.1",
            "port": 0,
            "sse_path": "/sse",
            "messages_path": "/messages",
            "keepalive_seconds": 0.5,
        },
        "cache": {
            "path": str(tmp_path / "cached-tweets.json"),
            "page_size": 20,
            "min_entries": 1,
            "exemplar_count": 5,
        },
        "posting": {"provider": "mock"},
        "generation": {"provider": "mock", "max_retries": 2},
        "client": {"server_url": "http://127.0.0.1:3001", "request_timeout": 10},
        "logging": {"level": "INFO", "format": "text"},
    }


@pytest.fixture
def sample_posts() -> List[Post]:
    """Timeline of the test user, newest first."""
    return [Post(id=str(100 - i), text=f"post number {i}") for i in range(25)]


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cached-tweets.json"


@pytest.fixture
def post_cache(cache_path) -> PostCache:
    return PostCache(cache_path, page_size=20, min_entries=1)


@pytest.fixture
def write_cache(cache_path):
    """Write raw entries to the cache file."""

    def _write(entries):
        cache_path.write_text(json.dumps(entries), encoding="utf-8")

    return _write


@pytest.fixture
def posting_client(sample_posts) -> MockPostingClient:
    return MockPostingClient(users={USERNAME: USER_ID}, timelines={USER_ID: sample_posts})


@pytest.fixture
def registry(post_cache, posting_client):
    return build_registry(post_cache, posting_client, USERNAME)


@pytest.fixture
def mcp_server(registry) -> MCPServer:
    return MCPServer(FastAPI(), registry, sessions=SessionManager(), keepalive_seconds=0.5)
