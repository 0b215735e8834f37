"""Minimal chat completions client, usable as a render-level summarizer.

The client posts to an OpenAI-compatible ``/chat/completions`` endpoint with
httpx. It makes a single attempt per call; retry policy belongs to the
caller, and any failure surfaces as ProviderError (wrapped into
ResolutionError when it happens during a render).

Example:
    async with CompletionClient("https://api.openai.com/v1", api_key, "gpt-4o-mini") as client:
        output = await render(tree, summarizer=client)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from cria.context.summary import build_summarize_prompt
from cria.core.errors import ProviderError
from cria.core.interfaces import SummarizerContext
from cria.core.types import Message
from cria.provider.openai_compat import OpenAIChatCodec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

# Error bodies are truncated to this many characters in exception messages.
MAX_ERROR_BODY_CHARS = 500


class CompletionClient:
    """Async chat completions client.

    Implements the Summarizer protocol: calling the client with a
    SummarizerContext returns the summary text.

    Attributes:
        model: Model id sent with each request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``https://api.openai.com/v1``.
            api_key: Bearer token. None sends no Authorization header.
            model: Model id.
            timeout: Request timeout in seconds.
            max_tokens: Optional completion cap.
            transport: Custom httpx transport (tests use httpx.MockTransport).
        """
        if not base_url:
            raise ProviderError("Completion client base_url cannot be empty")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.model = model
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._transport = transport
        self._codec = OpenAIChatCodec()

        # Lazily created, instance-owned
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> CompletionClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def complete(self, messages: Sequence[Message]) -> str:
        """Send messages and return the assistant's text.

        Raises:
            ProviderError: On transport errors, non-2xx responses, or a
                response without message content.
        """
        body: dict[str, Any] = {
            "model": self.model,
            "messages": self._codec.render(messages),
        }
        if self._max_tokens is not None:
            body["max_tokens"] = self._max_tokens

        url = f"{self._base_url}/chat/completions"
        client = await self._ensure_client()
        try:
            response = await client.post(url, headers=self._build_headers(), json=body)
        except httpx.HTTPError as e:
            raise ProviderError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 400:
            detail = response.text[:MAX_ERROR_BODY_CHARS]
            raise ProviderError(f"API error {response.status_code}: {detail}")

        try:
            data = response.json()
            content = data["choices"][0]["message"].get("content")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Failed to parse API response: {e}") from e

        if not isinstance(content, str):
            raise ProviderError("API response has no message content")

        usage = data.get("usage") or {}
        if usage:
            logger.debug(
                "Completion usage: prompt=%s completion=%s",
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
            )
        return content

    async def __call__(self, ctx: SummarizerContext) -> str:
        """Summarize a scope, building on its previous summary if any."""
        prompt = build_summarize_prompt(ctx.messages, ctx.existing_summary)
        logger.debug("Summarizing scope %r (%d messages)", ctx.scope_id, len(ctx.messages))
        return (await self.complete(prompt)).strip()
