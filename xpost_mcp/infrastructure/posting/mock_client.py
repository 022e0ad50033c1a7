"""In-memory posting client for development and testing."""

from typing import Dict, List, Optional

from ...core.exceptions import PostingAPIError, UserNotFoundError
from ...core.models import Post


class MockPostingClient:
    """Posting client backed by in-memory timelines."""

    def __init__(
        self,
        users: Optional[Dict[str, str]] = None,
        timelines: Optional[Dict[str, List[Post]]] = None,
        fail_with: Optional[str] = None,
    ):
        # username -> user id, user id -> posts newest first
        self.users = dict(users or {})
        self.timelines = {k: list(v) for k, v in (timelines or {}).items()}
        self.fail_with = fail_with
        self.published: List[Post] = []
        self.calls: List[str] = []
        self._next_id = 1000

    def _check_failure(self) -> None:
        if self.fail_with:
            raise PostingAPIError(self.fail_with, status=503)

    async def resolve_user_id(self, username: str) -> str:
        self.calls.append("resolve_user_id")
        self._check_failure()
        if username not in self.users:
            raise UserNotFoundError(f"User not found: {username}")
        return self.users[username]

    async def fetch_timeline(self, user_id: str, max_results: int = 20) -> List[Post]:
        self.calls.append("fetch_timeline")
        self._check_failure()
        return list(self.timelines.get(user_id, []))[:max_results]

    async def publish(self, text: str) -> str:
        self.calls.append("publish")
        self._check_failure()
        self._next_id += 1
        post = Post(id=str(self._next_id), text=text)
        self.published.append(post)
        return post.id

    async def close(self) -> None:
        pass
