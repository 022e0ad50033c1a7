"""Gemini generateContent client."""

import asyncio
import json
import os
import aiohttp
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Protocol

from ...core.exceptions import ConfigurationError
from ...core.models import ConversationMessage, Role
from ...utils.logger import get_logger
from .base import BaseGenerationClient, AttemptOutcome

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP result. ``status`` is 0 when no response was received."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class GenerationTransport(Protocol):
    """Sends one JSON request to the generation API."""

    async def post_json(
        self, url: str, payload: Dict[str, Any], headers: Dict[str, str]
    ) -> TransportResponse:
        ...

    async def close(self) -> None:
        ...


class AiohttpTransport:
    """Generation transport over aiohttp."""

    def __init__(self, timeout: int = 60):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def post_json(
        self, url: str, payload: Dict[str, Any], headers: Dict[str, str]
    ) -> TransportResponse:
        await self._ensure_session()
        try:
            async with self.session.post(url, json=payload, headers=headers) as response:
                return TransportResponse(status=response.status, body=await response.text())
        except aiohttp.ClientError as e:
            return TransportResponse(status=0, body=f"Connection error: {e}")
        except asyncio.TimeoutError:
            return TransportResponse(status=0, body="Request timeout")

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None


class GeminiClient(BaseGenerationClient):
    """Generation client for the Gemini REST API."""

    ROLE_MAP = {Role.ASSISTANT: "model", Role.USER: "user"}

    def __init__(
        self,
        config: Dict[str, Any],
        api_key: Optional[str] = None,
        transport: Optional[GenerationTransport] = None,
    ):
        super().__init__(config)
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY")
        self.base_url = config.get(
            "base_url", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self.model_name = config.get("model", "gemini-2.5-flash-preview-05-20")
        self.transport = transport or AiohttpTransport(timeout=config.get("timeout", 60))

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent"

    def _check_credentials(self) -> None:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY not found in environment variables")

    def _build_payload(self, messages: List[ConversationMessage]) -> Dict[str, Any]:
        contents = []
        system_parts = []
        for message in messages:
            if message.role == Role.SYSTEM:
                # contents only accepts user/model turns
                system_parts.append({"text": message.text})
                continue
            contents.append(
                {"role": self.ROLE_MAP[message.role], "parts": [{"text": message.text}]}
            )

        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "topP": self.top_p,
                "topK": self.top_k,
            },
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    async def _attempt(self, payload: Dict[str, Any]) -> AttemptOutcome:
        response = await self.transport.post_json(
            self.endpoint,
            payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
        )
        if not response.ok:
            return AttemptOutcome.failure(f"Gemini HTTP {response.status}: {response.body[:500]}")

        try:
            data = json.loads(response.body)
        except ValueError as e:
            return AttemptOutcome.failure(f"Invalid JSON from Gemini: {e}")

        return AttemptOutcome.success(self.extract_text(data))

    @staticmethod
    def extract_text(data: Any) -> str:
        """Text of the first candidate part, or empty when absent."""
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""
        return text if isinstance(text, str) else ""

    async def close(self) -> None:
        await self.transport.close()
