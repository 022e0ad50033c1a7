"""Posting API clients."""

from typing import Dict, Any

from ...core.exceptions import ConfigurationError
from ...core.interfaces import IPostingClient
from .x_client import XPostingClient
from .mock_client import MockPostingClient


def create_posting_client(config: Dict[str, Any]) -> IPostingClient:
    """
    Factory function to create posting clients.

    Args:
        config: ``posting`` configuration section

    Returns:
        Posting client instance

    Raises:
        ConfigurationError: If the provider is unknown or credentials are missing
    """
    provider = config.get("provider", "x")

    if provider == "x":
        return XPostingClient.from_env(config)
    elif provider == "mock":
        return MockPostingClient()
    else:
        raise ConfigurationError(f"Unknown posting provider: {provider}")


__all__ = ["create_posting_client", "XPostingClient", "MockPostingClient"]
