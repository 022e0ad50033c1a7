"""Mock generation client for offline runs and testing."""

from typing import Dict, Any, List

from ...core.models import ConversationMessage, Role
from .base import BaseGenerationClient, AttemptOutcome


class MockGenerationClient(BaseGenerationClient):
    """Generation client that answers without a network call."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.model_name = "mock-generator-v1"
        self.response_text = config.get("response_text")
        self.payloads: List[Dict[str, Any]] = []

    def _build_payload(self, messages: List[ConversationMessage]) -> Dict[str, Any]:
        topic = ""
        for message in messages:
            if message.role == Role.USER:
                topic = message.text
        return {"topic": topic.replace("Topic:", "", 1).strip()}

    async def _attempt(self, payload: Dict[str, Any]) -> AttemptOutcome:
        self.payloads.append(payload)
        if self.response_text is not None:
            return AttemptOutcome.success(self.response_text)
        return AttemptOutcome.success(f"Thinking about {payload['topic']} today.")
