"""File-backed snapshot of recently fetched posts."""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ...core.exceptions import CacheError, ConfigurationError
from ...core.interfaces import IPostingClient
from ...core.models import Post, RefreshOutcome
from ...utils.logger import get_logger

logger = get_logger(__name__)


class PostCache:
    """Snapshot of a user's recent posts stored as one JSON array.

    The snapshot is most-recent-first and fully replaced on every refresh.
    A missing, unreadable or malformed file reads as an empty snapshot.
    """

    def __init__(
        self,
        path: Union[str, Path],
        page_size: int = 20,
        min_entries: int = 1,
    ):
        if min_entries < 1:
            raise ValueError("min_entries must be at least 1")
        self.path = Path(path)
        self.page_size = page_size
        self.min_entries = min_entries
        self._refresh_lock = asyncio.Lock()

    def _read_sync(self) -> List[Post]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Cache file {self.path} unreadable: {e}")
            return []

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("cache root is not an array")
            return [Post.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Cache file {self.path} is corrupt, ignoring it: {e}")
            return []

    def _write_sync(self, posts: List[Post]) -> None:
        payload = json.dumps([post.to_dict() for post in posts], indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
        except OSError as e:
            raise CacheError(f"Failed to write cache {self.path}: {e}")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise CacheError(f"Failed to write cache {self.path}: {e}")

    @staticmethod
    def _dedupe(posts: List[Post]) -> List[Post]:
        seen = set()
        unique = []
        for post in posts:
            if post.id in seen:
                logger.warning(f"Dropping duplicate post id {post.id} from snapshot")
                continue
            seen.add(post.id)
            unique.append(post)
        return unique

    async def read(self) -> List[Post]:
        """Read the snapshot; empty when absent or corrupt."""
        return await asyncio.to_thread(self._read_sync)

    async def write(self, posts: List[Post]) -> None:
        """Replace the snapshot atomically."""
        snapshot = self._dedupe(list(posts))
        await asyncio.to_thread(self._write_sync, snapshot)
        logger.info(f"Cached {len(snapshot)} posts to {self.path}")

    async def recent(self, limit: Optional[int] = None) -> List[Post]:
        """Most recent posts, at most ``limit`` (defaults to the page size)."""
        posts = await self.read()
        return posts[: limit if limit is not None else self.page_size]

    def is_fresh(self, posts: List[Post]) -> bool:
        return len(posts) >= self.min_entries

    async def refresh_if_stale(
        self, posting_client: IPostingClient, username: Optional[str]
    ) -> RefreshOutcome:
        """
        Refresh the snapshot from the posting API unless it is still fresh.

        Args:
            posting_client: Posting API used to resolve the user and fetch posts
            username: Account handle to fetch

        Returns:
            Whether a remote refresh happened and the resulting post count

        Raises:
            ConfigurationError: If a refresh is needed but no username is set
            PostingAPIError: If resolving the user or fetching the timeline fails
        """
        async with self._refresh_lock:
            cached = await self.read()
            if self.is_fresh(cached):
                logger.info(
                    f"Cache has {len(cached)} posts (>= {self.min_entries}), skipping API call"
                )
                return RefreshOutcome(refreshed=False, count=len(cached))

            logger.info("Cache empty or invalid, fetching fresh posts")
            if not username:
                raise ConfigurationError("X_USERNAME not found in environment variables")

            user_id = await posting_client.resolve_user_id(username)
            logger.info(f"Resolved @{username} to user id {user_id}")

            posts = await posting_client.fetch_timeline(user_id, max_results=self.page_size)
            if not posts:
                logger.info(f"No posts found for @{username}")
                return RefreshOutcome(refreshed=True, count=0)

            snapshot = self._dedupe(posts[: self.page_size])
            await self.write(snapshot)
            return RefreshOutcome(refreshed=True, count=len(snapshot))
