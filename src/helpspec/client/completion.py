"""Asynchronous client for the remote completion service.

This module provides :class:`CompletionClient`, which wraps
:class:`httpx.AsyncClient` and exposes a single operation,
:meth:`CompletionClient.ask`: send one question about a shared documentation
blob and return the textual answer.

Failures are classified as follows:

* network-level errors (connection refused, DNS failure, timeouts) and
  overload statuses (:data:`OVERLOADED_STATUS_CODES`) are retried, waiting
  ``retry_delays[n]`` seconds before retry *n*;
* any other non-2xx status raises
  :class:`~helpspec.exceptions.ServiceRejectedError` immediately;
* a 2xx answer without a text block raises
  :class:`~helpspec.exceptions.MalformedResponseError`.

Once the delay table is exhausted the last retryable failure is raised as
:class:`~helpspec.exceptions.TransportError` or
:class:`~helpspec.exceptions.ServiceOverloadedError`.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Awaitable, Callable, Optional

import httpx

from helpspec.config import resolve_credential
from helpspec.exceptions import (
    HelpspecError,
    MalformedResponseError,
    ServiceOverloadedError,
    ServiceRejectedError,
    TransportError,
)
from helpspec.models import LLMConfig, SynthesisConfig
from helpspec.output import get_output

OVERLOADED_STATUS_CODES = frozenset({429, 503, 529})
"""HTTP statuses meaning "try again later"."""

_MESSAGES_PATH = "/v1/messages"
_ERROR_BODY_LIMIT = 500

_CODE_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n(.*?)\n?```$", re.DOTALL)


class CompletionClient:
    """Asynchronous client for one completion-service endpoint.

    Must be used as an async context manager. The API key is resolved from
    ``config.api_key_source`` on the first request, so a client that is
    never asked anything (e.g. on a cache hit) needs no credentials.

    Args:
        config: Endpoint, model and prompt-caching settings.
        synthesis: Supplies the retry delay table. Defaults to
            :class:`~helpspec.models.SynthesisConfig` defaults.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.
        sleep: Coroutine used to wait between retries.
        api_key: Explicit key overriding ``config.api_key_source``.

    Example::

        async with CompletionClient(config.llm, config.synthesis) as client:
            text = await client.ask(SYSTEM_PROMPT, context, question, 1024)
    """

    def __init__(
        self,
        config: LLMConfig,
        synthesis: Optional[SynthesisConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        api_key: Optional[str] = None,
    ) -> None:
        self._config = config
        self._retry_delays = list((synthesis or SynthesisConfig()).retry_delays)
        self._transport = transport
        self._sleep = sleep
        self._api_key = api_key
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> CompletionClient:
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def ask(
        self,
        system: str,
        context: str,
        question: str,
        max_tokens: int,
    ) -> str:
        """Ask *question* about *context* and return the answer text.

        Args:
            system: System instructions.
            context: The shared documentation blob.
            question: The sub-task's specific question.
            max_tokens: Response size budget.

        Returns:
            The first text block of the answer, with a surrounding code
            fence removed if present.

        Raises:
            TransportError: Network failures outlasted the retry table.
            ServiceOverloadedError: Overload statuses outlasted the retry table.
            ServiceRejectedError: Any other non-2xx response.
            MalformedResponseError: The answer has no text block.
        """
        payload = self._build_payload(system, context, question, max_tokens)
        response = await self._post_with_retry(payload)
        return strip_code_fence(self._extract_text(response))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _build_payload(
        self, system: str, context: str, question: str, max_tokens: int
    ) -> dict[str, Any]:
        content: Any
        if self._config.prompt_caching:
            content = [
                {
                    "type": "text",
                    "text": context,
                    "cache_control": {"type": "ephemeral"},
                },
                {"type": "text", "text": question},
            ]
        else:
            content = f"{context}\n\n{question}"

        return {
            "model": self._config.model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": content}],
        }

    def _headers(self) -> dict[str, str]:
        if self._api_key is None:
            self._api_key = resolve_credential(self._config.api_key_source)
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._config.api_version,
            "content-type": "application/json",
        }

    async def _post_with_retry(self, payload: dict[str, Any]) -> httpx.Response:
        """POST *payload*, retrying network errors and overload statuses.

        The delay before retry *n* is ``retry_delays[n]``; after
        ``len(retry_delays)`` retries the last failure is raised.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        headers = self._headers()
        output = get_output()
        max_retries = len(self._retry_delays)

        for attempt in range(max_retries + 1):
            error: HelpspecError
            try:
                response = await self._client.post(_MESSAGES_PATH, json=payload, headers=headers)
            except httpx.TransportError as exc:
                error = TransportError(f"Connection failed: {exc}")
                error.__cause__ = exc
                reason = f"Connection error: {exc}"
            else:
                if response.is_success:
                    return response
                body = response.text[:_ERROR_BODY_LIMIT]
                message = f"API request failed with status {response.status_code}: {body}"
                if response.status_code not in OVERLOADED_STATUS_CODES:
                    raise ServiceRejectedError(message, response.status_code, body)
                error = ServiceOverloadedError(message, response.status_code, body)
                reason = f"Service overloaded ({response.status_code})"

            if attempt >= max_retries:
                raise error

            delay = self._retry_delays[attempt]
            output.debug(
                f"{reason}, retrying in {delay}s (attempt {attempt + 1}/{max_retries})"
            )
            await self._sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Response is not JSON: {exc}", payload=response.text
            ) from exc

        blocks = data.get("content") if isinstance(data, dict) else None
        for block in blocks or []:
            if isinstance(block, dict) and isinstance(block.get("text"), str):
                return block["text"]
        raise MalformedResponseError("Empty response from API", payload=response.text)


def strip_code_fence(text: str) -> str:
    """Return the inside of a fenced block, or *text* unchanged if it is not fenced.

    Example::

        >>> strip_code_fence('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    match = _CODE_FENCE.match(text.strip())
    if match is None:
        return text
    return match.group(1).strip()
