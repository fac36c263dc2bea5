"""OpenRouter API client for code generation and embeddings.

Environment:
    OPENROUTER: OpenRouter API key (required)

Usage:
    client = OpenRouterClient(api_key="sk-or-...")
    text = await client.chat_completion("anthropic/claude-sonnet-4.5", messages)
    vectors = await client.create_embeddings("openai/text-embedding-3-small", ["..."])
    await client.close()
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from codegen import settings
from codegen.config import OPENROUTER_API_BASE, OPENROUTER_API_KEY_ENV, OPENROUTER_APP_TITLE
from codegen.errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger("codegen.integrations.openrouter")


class OpenRouterClient:
    """Async OpenRouter client.

    Args:
        api_key: OpenRouter key. Falls back to the OPENROUTER env var.
        timeout: HTTP request timeout in seconds.
        base_url: API root, defaults to OPENROUTER_API_BASE.
        transport: Optional httpx transport (tests use httpx.MockTransport).

    Error mapping: timeouts, connection errors, 429 and 5xx raise a
    transient ExternalServiceError; other non-200 responses and malformed
    bodies raise a non-transient one.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        base_url: str = OPENROUTER_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or os.getenv(OPENROUTER_API_KEY_ENV, "")
        if not self._api_key:
            raise ConfigurationError([
                f"OpenRouter API key not configured. Set {OPENROUTER_API_KEY_ENV} "
                "or pass api_key= to OpenRouterClient()."
            ])
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout
        self._base_url = base_url
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "X-Title": OPENROUTER_APP_TITLE,
                },
                timeout=self._timeout,
                limits=httpx.Limits(
                    max_connections=settings.OPENROUTER_HTTP_MAX_CONNECTIONS,
                    max_keepalive_connections=settings.OPENROUTER_HTTP_MAX_KEEPALIVE,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make a POST request to the OpenRouter API."""
        client = await self._get_client()
        try:
            resp = await client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(f"OpenRouter timeout: {path}", transient=True) from e
        except httpx.TransportError as e:
            raise ExternalServiceError(
                f"OpenRouter connection error: {path}", transient=True,
            ) from e

        if resp.status_code == 401:
            raise ExternalServiceError(
                "OpenRouter returned 401 Unauthorized. Check the API key.",
                status_code=401,
            )
        if resp.status_code == 429:
            raise ExternalServiceError(
                "OpenRouter rate limit exceeded.", transient=True, status_code=429,
            )
        if resp.status_code >= 500:
            raise ExternalServiceError(
                f"OpenRouter server error {resp.status_code}: {resp.text[:200]}",
                transient=True,
                status_code=resp.status_code,
            )
        if resp.status_code != 200:
            raise ExternalServiceError(
                f"OpenRouter API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"OpenRouter returned invalid JSON: {path}") from e

    # ------------------------------------------------------------------
    # Core API methods
    # ------------------------------------------------------------------

    async def chat_completion(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = settings.CODEGEN_TEMPERATURE,
        max_tokens: int = settings.CODEGEN_MAX_TOKENS,
    ) -> str:
        """POST /chat/completions and return the first choice's text."""
        data = await self._post("/chat/completions", {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError("OpenRouter response has no message content") from e
        if not isinstance(content, str) or not content.strip():
            raise ExternalServiceError("OpenRouter returned an empty completion")

        usage = data.get("usage") or {}
        logger.info(
            "chat_completion: model=%s, prompt_tokens=%s, completion_tokens=%s",
            model, usage.get("prompt_tokens"), usage.get("completion_tokens"),
        )
        return content

    async def create_embeddings(self, model: str, texts: List[str]) -> List[List[float]]:
        """POST /embeddings and return one vector per input, in input order."""
        data = await self._post("/embeddings", {"model": model, "input": texts})
        try:
            items = sorted(data["data"], key=lambda item: item.get("index", 0))
            vectors = [[float(v) for v in item["embedding"]] for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalServiceError("OpenRouter embeddings response is malformed") from e
        if len(vectors) != len(texts):
            raise ExternalServiceError(
                f"OpenRouter returned {len(vectors)} embeddings for {len(texts)} inputs"
            )
        return vectors
