"""Custom exceptions for xpost-mcp."""

from typing import Optional


class XPostError(Exception):
    """Base exception for xpost-mcp."""
    pass

class ConfigurationError(XPostError):
    """Configuration related errors."""
    pass

class CacheError(XPostError):
    """Post cache errors."""
    pass

class PostingAPIError(XPostError):
    """Posting API failures."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

class UserNotFoundError(PostingAPIError):
    """Account handle did not resolve to a user."""
    pass

class CapabilityError(XPostError):
    """Capability registry errors."""
    pass

class CapabilityNotFoundError(CapabilityError):
    """No capability registered under the requested kind and name."""
    pass

class DuplicateCapabilityError(CapabilityError):
    """Capability name already registered for its kind."""
    pass

class InputValidationError(CapabilityError):
    """Capability arguments failed schema validation."""
    pass

class SessionError(XPostError):
    """Session transport errors."""
    pass

class SessionNotFoundError(SessionError):
    """Session identifier is unknown or already closed."""
    pass

class MCPClientError(XPostError):
    """Server answered a request with a JSON-RPC error."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code

class TransportError(XPostError):
    """Connection to the MCP server failed or was lost."""
    pass

class WorkflowError(XPostError):
    """A workflow step failed and the remaining steps were skipped."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
