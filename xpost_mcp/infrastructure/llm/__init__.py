"""Generation client implementations."""

from typing import Dict, Any

from ...core.exceptions import ConfigurationError
from .base import BaseGenerationClient, AttemptOutcome, GENERATION_FAILED_TEXT
from .gemini_client import GeminiClient, AiohttpTransport, TransportResponse
from .mock_client import MockGenerationClient


def create_generation_client(config: Dict[str, Any]) -> BaseGenerationClient:
    """
    Factory function to create generation clients.

    Args:
        config: ``generation`` configuration section

    Returns:
        Generation client instance

    Raises:
        ConfigurationError: If the provider is unknown
    """
    provider = config.get("provider", "gemini")

    if provider == "gemini":
        return GeminiClient(config)
    elif provider == "mock":
        return MockGenerationClient(config)
    else:
        raise ConfigurationError(f"Unknown generation provider: {provider}")


__all__ = [
    "create_generation_client",
    "BaseGenerationClient",
    "AttemptOutcome",
    "GENERATION_FAILED_TEXT",
    "GeminiClient",
    "AiohttpTransport",
    "TransportResponse",
    "MockGenerationClient",
]
