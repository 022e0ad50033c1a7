"""Collaborator interfaces for xpost-mcp."""

from typing import Protocol, List

from .models import Post, ConversationMessage, GenerationResult


class IPostingClient(Protocol):
    """Interface for the social posting API."""

    async def resolve_user_id(self, username: str) -> str:
        """Resolve an account handle to the provider's user id."""
        ...

    async def fetch_timeline(self, user_id: str, max_results: int = 20) -> List[Post]:
        """Fetch the most recent posts of a user, newest first."""
        ...

    async def publish(self, text: str) -> str:
        """Publish a post and return its assigned id."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class IGenerationClient(Protocol):
    """Interface for the content generation service."""

    async def generate(self, messages: List[ConversationMessage]) -> GenerationResult:
        """Generate text from a conversation. Never raises on upstream failure."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
