"""Completion-service client for helpspec.

Provides :class:`CompletionClient`, an asynchronous wrapper around
:class:`httpx.AsyncClient` that sends one question about a shared
documentation blob and returns the answer text, retrying network errors and
overload statuses with a configurable delay table.

:mod:`helpspec.client.prompts` builds the shared documentation blob and the
per-sub-task questions.

Example::

    from helpspec.client import CompletionClient
    from helpspec.client.prompts import SYSTEM_PROMPT, build_context

    async with CompletionClient(config.llm, config.synthesis) as client:
        answer = await client.ask(SYSTEM_PROMPT, context, question, 1024)
"""

from helpspec.client.completion import OVERLOADED_STATUS_CODES, CompletionClient

__all__ = ["CompletionClient", "OVERLOADED_STATUS_CODES"]
