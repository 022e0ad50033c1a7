"""Core domain models for xpost-mcp."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum


@dataclass(frozen=True)
class Post:
    """A post as stored in the local cache."""

    id: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        return cls(id=str(data["id"]), text=str(data["text"]))


class Role(str, Enum):
    """Conversation roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """One turn of a conversation submitted for generation."""

    role: Role
    text: str

    def to_mcp(self) -> Dict[str, Any]:
        """Render as an MCP prompt message."""
        return {"role": self.role.value, "content": {"type": "text", "text": self.text}}

    @classmethod
    def from_mcp(cls, data: Dict[str, Any]) -> "ConversationMessage":
        content = data.get("content") or {}
        if isinstance(content, str):
            text = content
        else:
            text = content.get("text", "")
        return cls(role=Role(data["role"]), text=text)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a generation call.

    ``text`` is always usable: on failure it holds the sentinel failure text.
    """

    text: str
    ok: bool = True
    attempts: int = 1
    reason: Optional[str] = None


class CapabilityKind(str, Enum):
    """Kinds of invocable capabilities."""

    ACTION = "action"
    RESOURCE = "resource"
    PROMPT = "prompt"


@dataclass(frozen=True)
class CapabilityResult:
    """Response of a capability invocation.

    The error variant carries its message in ``text``; ``data`` holds the
    structured payload (posts for resources, messages for prompts).
    """

    text: str
    is_error: bool = False
    data: Any = None

    @classmethod
    def success(cls, text: str, data: Any = None) -> "CapabilityResult":
        return cls(text=text, is_error=False, data=data)

    @classmethod
    def failure(cls, message: str) -> "CapabilityResult":
        return cls(text=message, is_error=True)


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of a cache staleness check."""

    refreshed: bool
    count: int


@dataclass
class WorkflowReport:
    """Record of a workflow run."""

    topic: str
    steps: List[str] = field(default_factory=list)
    available_tools: List[str] = field(default_factory=list)
    cache_message: Optional[str] = None
    generated_text: Optional[str] = None
    publish_message: Optional[str] = None


__all__ = [
    "Post",
    "Role",
    "ConversationMessage",
    "GenerationResult",
    "CapabilityKind",
    "CapabilityResult",
    "RefreshOutcome",
    "WorkflowReport",
]
