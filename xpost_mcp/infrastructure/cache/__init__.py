"""Post cache implementations."""

from typing import Dict, Any

from .post_cache import PostCache


def create_post_cache(config: Dict[str, Any]) -> PostCache:
    """Factory function to create the post cache from the ``cache`` section."""
    return PostCache(
        path=config.get("path", "cached-tweets.json"),
        page_size=config.get("page_size", 20),
        min_entries=config.get("min_entries", 1),
    )


__all__ = ["create_post_cache", "PostCache"]
