from functools import lru_cache
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from .settings import Settings

"""
Thin wrapper around the OpenAI chat-completions endpoint.

Routes only depend on `complete(messages, json_mode)`, so tests can hand in
any object with the same coroutine instead of a real client.
"""

Message = Dict[str, str]


class UpstreamError(Exception):
    """The completions API answered with a non-success HTTP status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"OpenAI API returned HTTP {status}")
        self.status = status
        self.body = body


class CompletionsClient:
    def __init__(self, client: AsyncOpenAI, model: str):
        self._client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs: Any) -> "CompletionsClient":
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.OPENAI_TIMEOUT,
            max_retries=0,
            **client_kwargs,
        )
        return cls(client, settings.OPENAI_MODEL)

    async def complete(self, messages: List[Message], json_mode: bool = False) -> Optional[str]:
        """
        Send one chat-completion request and return the first choice's content.

        Returns None when the response carries no choices or no content.
        Raises UpstreamError on a non-success status; connection errors
        propagate as raised by the SDK.
        """
        kwargs: Dict[str, Any] = {"model": self.model, "messages": messages}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            resp = await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            raise UpstreamError(e.status_code, e.response.text) from e

        if not resp.choices:
            return None
        message = resp.choices[0].message
        return message.content if message is not None else None


@lru_cache(maxsize=4)
def get_completions(settings: Settings) -> Optional[CompletionsClient]:
    """Shared client for these settings, or None when no credential is configured."""
    if not settings.OPENAI_API_KEY:
        return None
    return CompletionsClient.from_settings(settings)
