"""Unit tests for the post cache."""

import json
import os

import pytest

from xpost_mcp.core.exceptions import ConfigurationError, CacheError, PostingAPIError
from xpost_mcp.core.models import Post
from xpost_mcp.infrastructure.cache import PostCache, create_post_cache
from xpost_mcp.infrastructure.posting import MockPostingClient

USERNAME = "alice"
USER_ID = "42"


@pytest.mark.asyncio
async def test_fresh_cache_skips_remote_calls(post_cache, posting_client, write_cache):
    """A non-empty snapshot is served without touching the API."""
    write_cache([{"id": "1", "text": "a"}, {"id": "2", "text": "b"}])

    outcome = await post_cache.refresh_if_stale(posting_client, USERNAME)

    assert outcome.refreshed is False
    assert outcome.count == 2
    assert posting_client.calls == []


@pytest.mark.asyncio
async def test_missing_cache_refreshes_once(post_cache, posting_client, cache_path):
    outcome = await post_cache.refresh_if_stale(posting_client, USERNAME)

    assert outcome.refreshed is True
    assert outcome.count == 20
    assert posting_client.calls == ["resolve_user_id", "fetch_timeline"]

    stored = json.loads(cache_path.read_text())
    assert len(stored) == 20
    assert stored[0] == {"id": "100", "text": "post number 0"}


@pytest.mark.asyncio
async def test_empty_array_counts_as_stale(post_cache, posting_client, write_cache):
    write_cache([])

    outcome = await post_cache.refresh_if_stale(posting_client, USERNAME)

    assert outcome.refreshed is True
    assert posting_client.calls.count("fetch_timeline") == 1


@pytest.mark.asyncio
async def test_corrupt_cache_reads_empty_and_refreshes(post_cache, posting_client, cache_path):
    cache_path.write_text("{not json")

    assert await post_cache.read() == []

    outcome = await post_cache.refresh_if_stale(posting_client, USERNAME)
    assert outcome.refreshed is True
    assert len(await post_cache.read()) == 20


@pytest.mark.asyncio
async def test_non_array_root_reads_empty(post_cache, write_cache):
    write_cache({"id": "1", "text": "not a list"})
    assert await post_cache.read() == []


@pytest.mark.asyncio
async def test_second_refresh_is_skipped(post_cache, posting_client):
    await post_cache.refresh_if_stale(posting_client, USERNAME)
    outcome = await post_cache.refresh_if_stale(posting_client, USERNAME)

    assert outcome.refreshed is False
    assert posting_client.calls.count("fetch_timeline") == 1


@pytest.mark.asyncio
async def test_refresh_without_username_fails(post_cache, posting_client):
    with pytest.raises(ConfigurationError, match="X_USERNAME"):
        await post_cache.refresh_if_stale(posting_client, None)
    assert posting_client.calls == []


@pytest.mark.asyncio
async def test_refresh_propagates_api_errors(post_cache):
    client = MockPostingClient(users={USERNAME: USER_ID}, fail_with="Service unavailable")

    with pytest.raises(PostingAPIError):
        await post_cache.refresh_if_stale(client, USERNAME)
    assert await post_cache.read() == []


@pytest.mark.asyncio
async def test_empty_timeline_is_not_written(post_cache, cache_path):
    client = MockPostingClient(users={USERNAME: USER_ID}, timelines={USER_ID: []})

    outcome = await post_cache.refresh_if_stale(client, USERNAME)

    assert outcome.refreshed is True
    assert outcome.count == 0
    assert not cache_path.exists()


@pytest.mark.asyncio
async def test_write_drops_duplicate_ids(post_cache):
    await post_cache.write([Post("1", "first"), Post("2", "second"), Post("1", "again")])

    posts = await post_cache.read()
    assert [p.id for p in posts] == ["1", "2"]
    assert posts[0].text == "first"


@pytest.mark.asyncio
async def test_write_replaces_snapshot_without_leftovers(post_cache, cache_path):
    await post_cache.write([Post("1", "old")])
    await post_cache.write([Post("2", "new")])

    assert [p.id for p in await post_cache.read()] == ["2"]
    assert os.listdir(cache_path.parent) == [cache_path.name]


@pytest.mark.asyncio
async def test_write_failure_raises_cache_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    cache = PostCache(blocker / "cache.json")

    with pytest.raises(CacheError):
        await cache.write([Post("1", "x")])


@pytest.mark.asyncio
async def test_failed_replace_keeps_previous_snapshot(post_cache, cache_path, monkeypatch):
    await post_cache.write([Post("1", "old")])

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("xpost_mcp.infrastructure.cache.post_cache.os.replace", failing_replace)

    with pytest.raises(CacheError):
        await post_cache.write([Post("2", "new")])

    monkeypatch.undo()
    assert [(p.id, p.text) for p in await post_cache.read()] == [("1", "old")]
    assert os.listdir(cache_path.parent) == [cache_path.name]


@pytest.mark.asyncio
async def test_recent_limits(post_cache, write_cache):
    write_cache([{"id": str(i), "text": f"t{i}"} for i in range(30)])

    assert len(await post_cache.recent()) == 20
    assert [p.id for p in await post_cache.recent(5)] == ["0", "1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_min_entries_threshold(cache_path, posting_client, write_cache):
    cache = PostCache(cache_path, min_entries=3)
    write_cache([{"id": "1", "text": "a"}, {"id": "2", "text": "b"}])

    outcome = await cache.refresh_if_stale(posting_client, USERNAME)
    assert outcome.refreshed is True


def test_min_entries_must_be_positive(cache_path):
    with pytest.raises(ValueError):
        PostCache(cache_path, min_entries=0)


def test_create_post_cache(mock_config):
    cache = create_post_cache(mock_config["cache"])
    assert str(cache.path) == mock_config["cache"]["path"]
    assert cache.page_size == 20
    assert cache.min_entries == 1
