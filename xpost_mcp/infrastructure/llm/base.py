"""Base generation client with bounded retries."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from ...core.models import ConversationMessage, GenerationResult
from ...utils.logger import get_logger

logger = get_logger(__name__)

GENERATION_FAILED_TEXT = "Generation error after retries."


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single generation attempt."""

    ok: bool
    text: str = ""
    reason: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "AttemptOutcome":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, reason: str) -> "AttemptOutcome":
        return cls(ok=False, reason=reason)


class BaseGenerationClient(ABC):
    """Base class for generation clients.

    ``generate`` makes up to ``max_retries + 1`` attempts back to back and
    returns the sentinel failure text once they are exhausted. Only a
    configuration problem (such as a missing API key) raises.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.model_name = config.get("model", "unknown")
        self.max_retries = config.get("max_retries", 2)
        self.temperature = config.get("temperature", 0.7)
        self.top_p = config.get("top_p", 0.8)
        self.top_k = config.get("top_k", 40)
        self.max_output_tokens = config.get("max_output_tokens", 4096)

        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def generate(self, messages: List[ConversationMessage]) -> GenerationResult:
        """Generate text from a conversation."""
        self._check_credentials()
        payload = self._build_payload(messages)

        last_reason: Optional[str] = None
        for attempt in range(1, self.max_attempts + 1):
            start_time = time.time()
            logger.info(
                f"Calling {self.model_name} (try {attempt})", extra={"attempt": attempt}
            )

            try:
                outcome = await self._attempt(payload)
            except Exception as e:
                logger.exception(f"Unexpected error in generation attempt {attempt}")
                outcome = AttemptOutcome.failure(f"{type(e).__name__}: {e}")

            latency_ms = int((time.time() - start_time) * 1000)
            if outcome.ok:
                logger.info(
                    f"{self.model_name} responded",
                    extra={"attempt": attempt, "latency_ms": latency_ms},
                )
                return GenerationResult(text=outcome.text, ok=True, attempts=attempt)

            last_reason = outcome.reason
            logger.warning(
                f"Generation attempt {attempt}/{self.max_attempts} failed: {outcome.reason}",
                extra={"attempt": attempt, "latency_ms": latency_ms},
            )

        logger.error(f"Generation failed after {self.max_attempts} attempts")
        return GenerationResult(
            text=GENERATION_FAILED_TEXT,
            ok=False,
            attempts=self.max_attempts,
            reason=last_reason,
        )

    def _check_credentials(self) -> None:
        """Raise ConfigurationError when no attempt could succeed."""

    @abstractmethod
    def _build_payload(self, messages: List[ConversationMessage]) -> Dict[str, Any]:
        """Build the provider request body."""
        pass

    @abstractmethod
    async def _attempt(self, payload: Dict[str, Any]) -> AttemptOutcome:
        """Make one remote call. Transport failures come back as a failed outcome."""
        pass

    async def close(self) -> None:
        """Cleanup resources."""
