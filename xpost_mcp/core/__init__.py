"""Core domain logic for xpost-mcp."""

from .models import (
    Post,
    Role,
    ConversationMessage,
    GenerationResult,
    CapabilityKind,
    CapabilityResult,
    RefreshOutcome,
    WorkflowReport,
)
from .interfaces import IPostingClient, IGenerationClient
from .exceptions import (
    XPostError,
    ConfigurationError,
    CacheError,
    PostingAPIError,
    UserNotFoundError,
    CapabilityError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    InputValidationError,
    SessionError,
    SessionNotFoundError,
    MCPClientError,
    TransportError,
    WorkflowError,
)

__all__ = [
    "Post",
    "Role",
    "ConversationMessage",
    "GenerationResult",
    "CapabilityKind",
    "CapabilityResult",
    "RefreshOutcome",
    "WorkflowReport",
    "IPostingClient",
    "IGenerationClient",
    "XPostError",
    "ConfigurationError",
    "CacheError",
    "PostingAPIError",
    "UserNotFoundError",
    "CapabilityError",
    "CapabilityNotFoundError",
    "DuplicateCapabilityError",
    "InputValidationError",
    "SessionError",
    "SessionNotFoundError",
    "MCPClientError",
    "TransportError",
    "WorkflowError",
]
