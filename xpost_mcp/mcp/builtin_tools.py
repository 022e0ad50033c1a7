"""Built-in capabilities of the X posting server."""

import json
from typing import Dict, Any, List, Optional

from ..core.exceptions import CacheError, ConfigurationError, PostingAPIError
from ..core.interfaces import IPostingClient
from ..core.models import CapabilityResult, ConversationMessage, Role
from ..infrastructure.cache import PostCache
from ..utils.logger import get_logger
from .capabilities import (
    ActionCapability,
    CapabilityRegistry,
    PromptCapability,
    ResourceCapability,
)

logger = get_logger(__name__)

RECENT_POSTS_URI = "x://user/recent-posts"
NO_POSTS_TEXT = "No recent posts available."
MAX_POST_LENGTH = 280


class FetchAndCacheTool(ActionCapability):
    """Refreshes the post cache from X when it is stale."""

    def __init__(self, cache: PostCache, posting_client: IPostingClient, username: Optional[str]):
        super().__init__(
            name="fetchAndCacheTweets",
            title="Fetch and Cache X.com Posts",
            description="Fetches the latest posts from X.com and saves them locally.",
        )
        self.cache = cache
        self.posting_client = posting_client
        self.username = username

    async def execute(
        self, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> CapabilityResult:
        try:
            outcome = await self.cache.refresh_if_stale(self.posting_client, self.username)
        except (ConfigurationError, PostingAPIError, CacheError) as e:
            logger.error(f"Error in fetchAndCacheTweets: {e}")
            return CapabilityResult.failure(f"Error fetching tweets: {e}")

        if not outcome.refreshed:
            text = f"Cache validation successful. Found {outcome.count} cached tweets."
        elif outcome.count == 0:
            text = "No tweets found for this user"
        else:
            text = f"Successfully fetched and cached {outcome.count} tweets."
        return CapabilityResult.success(text, data={"refreshed": outcome.refreshed, "count": outcome.count})


class RecentPostsResource(ResourceCapability):
    """Serves the most recent cached posts."""

    def __init__(self, cache: PostCache, limit: int = 20):
        super().__init__(
            name="recent-posts",
            uri=RECENT_POSTS_URI,
            title="Recent User Posts",
            description="Provides the 20 most recent posts from the local cache.",
            mime_type="application/json",
        )
        self.cache = cache
        self.limit = limit

    async def execute(
        self, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> CapabilityResult:
        posts = await self.cache.recent(self.limit)
        logger.info(f"Returning {len(posts)} recent posts")
        return CapabilityResult.success(
            json.dumps([post.to_dict() for post in posts]), data=posts
        )


class GeneratePostPrompt(PromptCapability):
    """Renders a style-aware post-writing conversation for a topic."""

    def __init__(self, cache: PostCache, exemplar_count: int = 5):
        super().__init__(
            name="generate-post",
            title="Generate X.com Post",
            description="Generates a new post on a topic, using previous posts for style.",
            input_schema={
                "type": "object",
                "properties": {
                    "topic": {
                        "type": "string",
                        "description": "Topic for the new post",
                        "minLength": 1,
                        "pattern": "\\S",
                    }
                },
                "required": ["topic"],
            },
        )
        self.cache = cache
        self.exemplar_count = exemplar_count

    async def render(self, topic: str) -> List[ConversationMessage]:
        exemplars = await self.cache.recent(self.exemplar_count)
        if exemplars:
            context_text = "\n".join(f'- "{post.text}"' for post in exemplars)
            logger.info(f"Using {len(exemplars)} posts for context")
        else:
            context_text = NO_POSTS_TEXT
            logger.info("No cached posts found for context")

        system_prompt = "\n\n".join(
            [
                "You are an expert social media manager.",
                "Write a short, engaging post for X.com (Twitter) in the user's style.",
                "Here are some of the user's recent posts to learn their style:",
                context_text,
                f'Now write a new post on the topic: "{topic}".',
                f"Keep it under {MAX_POST_LENGTH} characters and make it engaging.",
            ]
        )

        return [
            ConversationMessage(role=Role.SYSTEM, text=system_prompt),
            ConversationMessage(role=Role.USER, text=f"Topic: {topic}"),
        ]

    async def execute(
        self, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> CapabilityResult:
        topic = params["topic"]
        logger.info(f"Prompt 'generate-post' called with topic: {topic}")
        messages = await self.render(topic)
        return CapabilityResult.success(f"Post about {topic}", data=messages)


class PublishPostTool(ActionCapability):
    """Publishes text as a new post on X."""

    def __init__(self, posting_client: IPostingClient):
        super().__init__(
            name="postToX",
            title="Post to X.com",
            description="Publishes the given text as a new post on X.com.",
            input_schema={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "Text to post", "minLength": 1}
                },
                "required": ["content"],
            },
        )
        self.posting_client = posting_client

    async def execute(
        self, params: Dict[str, Any], context: Optional[Dict[str, Any]] = None
    ) -> CapabilityResult:
        content = params["content"]
        try:
            post_id = await self.posting_client.publish(content)
        except PostingAPIError as e:
            logger.error(f"Error posting tweet: {e}")
            return CapabilityResult.failure(f"Error posting tweet: {e}")

        logger.info(f"Successfully posted tweet with ID: {post_id}")
        return CapabilityResult.success(
            f"Successfully posted tweet ID: {post_id}", data={"id": post_id}
        )


def build_registry(
    cache: PostCache,
    posting_client: IPostingClient,
    username: Optional[str],
    exemplar_count: int = 5,
) -> CapabilityRegistry:
    """Register the built-in capabilities and seal the registry."""
    registry = CapabilityRegistry()
    registry.register(FetchAndCacheTool(cache, posting_client, username))
    registry.register(RecentPostsResource(cache, limit=cache.page_size))
    registry.register(GeneratePostPrompt(cache, exemplar_count=exemplar_count))
    registry.register(PublishPostTool(posting_client))
    registry.seal()
    return registry
