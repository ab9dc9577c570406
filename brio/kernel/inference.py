"""Chat completion types and providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import httpx


class Role(Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat message."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        content = data["content"]
        if not isinstance(content, str):
            raise TypeError("message content must be a string")
        return cls(Role(data["role"]), content)


@dataclass(frozen=True)
class Usage:
    """Token accounting for a completion."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class ChatResponse:
    """The text of a completion and its usage, when reported."""

    content: str
    usage: Optional[Usage] = None


@dataclass
class ChatRequest:
    """A chat completion request."""

    model: str
    messages: list[Message] = field(default_factory=list)


class InferenceError(Exception):
    """Base class for inference failures."""


class ProviderError(InferenceError):
    """The provider failed or returned something unusable."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Provider Error: {message}")
        self.message = message


class RateLimitError(InferenceError):
    """The provider refused the request because of rate limiting."""

    def __init__(self) -> None:
        super().__init__("Rate Limit Exceeded")


class ContextLengthExceededError(InferenceError):
    """The request does not fit the model's context window."""

    def __init__(self) -> None:
        super().__init__("Context Length Exceeded")


class NetworkError(InferenceError):
    """The provider could not be reached."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Network Error: {message}")
        self.message = message


class InferenceConfigError(InferenceError):
    """The provider is misconfigured."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Configuration Error: {message}")
        self.message = message


class LLMProvider(ABC):
    """A source of chat completions."""

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Run a chat completion; raises InferenceError on failure."""


@dataclass
class OpenAIConfig:
    """Connection settings for an OpenAI-compatible endpoint."""

    api_key: str = field(repr=False)
    base_url: str


class OpenAIProvider(LLMProvider):
    """Provider speaking the OpenAI chat completions protocol."""

    def __init__(self, config: OpenAIConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        self._client = client

    def _endpoint(self) -> str:
        base = urlparse(self.config.base_url)
        if not base.scheme or not base.netloc:
            raise InferenceConfigError(
                f"Invalid URL join: relative URL without a base: {self.config.base_url!r}"
            )
        return urljoin(self.config.base_url, "chat/completions")

    async def chat(self, request: ChatRequest) -> ChatResponse:
        url = self._endpoint()
        body = {
            "model": request.model,
            "messages": [message.to_dict() for message in request.messages],
        }
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._client is not None:
                response = await self._client.post(url, headers=headers, json=body)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as error:
            raise NetworkError(str(error)) from error
        return _interpret(response)


def _interpret(response: httpx.Response) -> ChatResponse:
    status = response.status_code
    if status == 200:
        try:
            body = response.json()
            messages = [Message.from_dict(choice["message"]) for choice in body["choices"]]
            raw_usage = body.get("usage")
            usage = (
                Usage(
                    int(raw_usage["prompt_tokens"]),
                    int(raw_usage["completion_tokens"]),
                    int(raw_usage["total_tokens"]),
                )
                if raw_usage is not None
                else None
            )
        except (ValueError, KeyError, TypeError, AttributeError) as error:
            raise ProviderError(f"Parse error: {error}") from error
        if not messages:
            raise ProviderError("No choices returned")
        return ChatResponse(messages[0].content, usage)
    if status == 429:
        raise RateLimitError()
    text = response.text
    if status == 400:
        if "context_length_exceeded" in text:
            raise ContextLengthExceededError()
        raise ProviderError(f"Bad Request: {text}")
    raise ProviderError(f"HTTP {status} {response.reason_phrase}: {text}")