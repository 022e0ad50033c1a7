"""X (Twitter) API v2 client."""

import asyncio
import json
import aiohttp
from typing import Dict, Any, List, Optional

from ...core.exceptions import PostingAPIError, UserNotFoundError, ConfigurationError
from ...core.models import Post
from ...utils.config import require_env
from ...utils.logger import get_logger
from .oauth import oauth1_header

logger = get_logger(__name__)


class XPostingClient:
    """Async client for the X API v2 signed with OAuth 1.0a user context."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        access_token: str,
        access_secret: str,
        base_url: str = "https://api.twitter.com",
        timeout: int = 30,
    ):
        missing = [
            name
            for name, value in (
                ("X_API_KEY", api_key),
                ("X_API_SECRET", api_secret),
                ("X_ACCESS_TOKEN", access_token),
                ("X_ACCESS_TOKEN_SECRET", access_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing X API credentials: {', '.join(missing)}")

        self.api_key = api_key
        self.api_secret = api_secret
        self.access_token = access_token
        self.access_secret = access_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_env(cls, config: Dict[str, Any]) -> "XPostingClient":
        """Build a client from environment credentials and the ``posting`` section."""
        return cls(
            api_key=require_env("X_API_KEY"),
            api_secret=require_env("X_API_SECRET"),
            access_token=require_env("X_ACCESS_TOKEN"),
            access_secret=require_env("X_ACCESS_TOKEN_SECRET"),
            base_url=config.get("base_url", "https://api.twitter.com"),
            timeout=config.get("timeout", 30),
        )

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        await self._ensure_session()
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": oauth1_header(
                method,
                url,
                self.api_key,
                self.api_secret,
                self.access_token,
                self.access_secret,
                params=params,
            )
        }

        try:
            async with self.session.request(
                method, url, params=params, json=json_body, headers=headers
            ) as response:
                if response.status >= 400:
                    detail = await response.text()
                    raise PostingAPIError(
                        f"X API error ({response.status}): {self._error_message(detail)}",
                        status=response.status,
                    )
                return await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"HTTP client error: {e}")
            raise PostingAPIError(f"Connection error: {e}")
        except asyncio.TimeoutError:
            raise PostingAPIError("Request timeout")

    @staticmethod
    def _error_message(body: str) -> str:
        # X returns {"title": ..., "detail": ...} or {"errors": [{"message": ...}]}
        try:
            data = json.loads(body)
        except ValueError:
            return body.strip() or "no response body"
        if isinstance(data, dict):
            if data.get("detail"):
                return str(data["detail"])
            errors = data.get("errors")
            if errors and isinstance(errors, list):
                return "; ".join(str(e.get("message", e)) for e in errors)
            if data.get("title"):
                return str(data["title"])
        return body.strip()

    async def resolve_user_id(self, username: str) -> str:
        """Resolve an account handle to a user id."""
        data = await self._request("GET", f"/2/users/by/username/{username}")
        user = data.get("data")
        if not user or "id" not in user:
            raise UserNotFoundError(f"User not found: {username}")
        logger.info(f"User found - ID: {user['id']}, Name: {user.get('name', '?')}")
        return str(user["id"])

    async def fetch_timeline(self, user_id: str, max_results: int = 20) -> List[Post]:
        """Fetch a user's most recent posts, newest first."""
        # The endpoint accepts 5..100
        page_size = max(5, min(max_results, 100))
        data = await self._request(
            "GET",
            f"/2/users/{user_id}/tweets",
            params={
                "max_results": str(page_size),
                "tweet.fields": "id,text,created_at",
            },
        )
        items = data.get("data") or []
        posts = [Post(id=str(item["id"]), text=item.get("text", "")) for item in items]
        return posts[:max_results]

    async def publish(self, text: str) -> str:
        """Publish a post and return its id."""
        data = await self._request("POST", "/2/tweets", json_body={"text": text})
        post = data.get("data") or {}
        if "id" not in post:
            raise PostingAPIError("X API returned no post id")
        return str(post["id"])

    async def close(self) -> None:
        """Close the client session."""
        if self.session:
            await self.session.close()
            self.session = None
