"""Bounded concurrent fan-out of extraction requests.

One synthesis run issues:

1. the **priming** request -- the metadata query (description, danger level,
   subcommands, examples), sent alone and awaited so the service has the
   shared documentation block cached before the burst; followed by a short
   pause;
2. the **fan-out** -- one request per flag group plus the positional-names
   query, at most ``max_concurrency`` in flight. A finished request is
   replaced immediately by the next queued one (streaming replacement via
   :func:`asyncio.wait` with ``FIRST_COMPLETED``). When the positional-names
   query finishes, one detail request per discovered name is queued.

Decode failures of the metadata and positional-names answers degrade to
defaults. Any other failure is terminal: no further requests are started,
requests already in flight are allowed to finish, their results are
discarded, and the first error is raised. A run never yields a partial
result.

Answers are decoded in worker threads (:func:`asyncio.to_thread`) because a
diagnostic sink may write undecodable payloads to disk.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from helpspec.client.prompts import (
    SYSTEM_PROMPT,
    metadata_question,
    option_question,
    positional_names_question,
    positional_question,
)
from helpspec.exceptions import MalformedResponseError
from helpspec.models import (
    CommandOption,
    DangerLevel,
    PositionalArg,
    PositionalNames,
    SpecMetadata,
    SynthesisConfig,
)
from helpspec.output import debug, progress, warning
from helpspec.parser.decoder import (
    DiagnosticSink,
    NullDiagnosticSink,
    decode_metadata,
    decode_option,
    decode_positional,
    decode_positional_names,
)
from helpspec.parser.docs import display_name


class Completer(Protocol):
    """Anything that can answer a question about a documentation blob."""

    async def ask(self, system: str, context: str, question: str, max_tokens: int) -> str:
        ...


@dataclass
class FanOutResult:
    """Everything one run extracted, ready for :func:`~helpspec.generator.assembler.assemble_spec`.

    Attributes:
        metadata: Command-level facts (possibly the degraded defaults).
        positional_names: Positional names in discovery order.
        positionals_first: Whether positionals precede options.
        options: Option details in completion order.
        positionals: Positional details keyed by name.
    """

    metadata: SpecMetadata
    positional_names: list[str] = field(default_factory=list)
    positionals_first: bool = False
    options: list[CommandOption] = field(default_factory=list)
    positionals: dict[str, PositionalArg] = field(default_factory=dict)


@dataclass(frozen=True)
class _Job:
    kind: str
    label: str
    subject: Union[tuple[str, ...], str, None] = None


_NAMES_JOB = _Job(kind="names", label="positional arguments")


class FanOutScheduler:
    """Run the extraction requests of one synthesis with bounded concurrency.

    Args:
        client: The completion client (usually a
            :class:`~helpspec.client.completion.CompletionClient`).
        config: Concurrency bound, priming pause and token budgets.
        sink: Receives undecodable payloads.
        sleep: Coroutine used for the post-priming pause.
    """

    def __init__(
        self,
        client: Completer,
        config: Optional[SynthesisConfig] = None,
        sink: Optional[DiagnosticSink] = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config or SynthesisConfig()
        self._sink = sink or NullDiagnosticSink()
        self._sleep = sleep

    async def run(
        self,
        command_key: str,
        context: str,
        flag_groups: list[list[str]],
    ) -> FanOutResult:
        """Extract metadata, options and positionals for *command_key*.

        Args:
            command_key: Command identity from :func:`~helpspec.parser.docs.command_key`.
            context: The shared documentation blob.
            flag_groups: Flag candidates, one request per group.

        Raises:
            HelpspecError: The first terminal failure of any request.
        """
        metadata = await self._fetch_metadata(command_key, context)
        if self._config.priming_pause > 0:
            await self._sleep(self._config.priming_pause)

        result = FanOutResult(metadata=metadata)
        queue: deque[_Job] = deque([_NAMES_JOB])
        queue.extend(
            _Job(kind="option", label=", ".join(group), subject=tuple(group))
            for group in flag_groups
        )
        total = len(queue)
        completed = 0

        in_flight: dict[asyncio.Task[Any], _Job] = {}
        failure: Optional[BaseException] = None

        try:
            while in_flight or (queue and failure is None):
                while failure is None and queue and len(in_flight) < self._config.max_concurrency:
                    job = queue.popleft()
                    task = asyncio.ensure_future(self._execute(command_key, context, job))
                    in_flight[task] = job

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    job = in_flight.pop(task)
                    exc = task.exception()
                    if failure is not None:
                        continue
                    if exc is not None:
                        failure = exc
                        debug(f"Request for {job.label} failed; waiting for {len(in_flight)} in flight")
                        continue

                    completed += 1
                    progress(f"[{completed}/{total}] {job.label}")
                    outcome = task.result()
                    if job.kind == "names":
                        result.positional_names = list(outcome.positional_args)
                        result.positionals_first = outcome.positionals_first
                        queue.extend(
                            _Job(kind="positional", label=name, subject=name)
                            for name in outcome.positional_args
                        )
                        total += len(outcome.positional_args)
                    elif job.kind == "option":
                        result.options.append(outcome)
                    else:
                        result.positionals[outcome.name] = outcome
        finally:
            for task in in_flight:
                task.cancel()

        if failure is not None:
            raise failure
        return result

    async def _fetch_metadata(self, command_key: str, context: str) -> SpecMetadata:
        raw = await self._client.ask(
            SYSTEM_PROMPT,
            context,
            metadata_question(command_key),
            self._config.metadata_max_tokens,
        )
        name = display_name(command_key)
        try:
            metadata = await asyncio.to_thread(decode_metadata, raw, sink=self._sink)
        except MalformedResponseError as exc:
            warning(f"Using default metadata for {name}: {exc}")
            return SpecMetadata(description=f"Command: {name}", danger_level=DangerLevel.LOW)
        if not metadata.description.strip():
            metadata = metadata.model_copy(update={"description": f"Command: {name}"})
        return metadata

    async def _execute(self, command_key: str, context: str, job: _Job) -> Any:
        max_tokens = self._config.detail_max_tokens

        if job.kind == "names":
            raw = await self._client.ask(
                SYSTEM_PROMPT, context, positional_names_question(command_key), max_tokens
            )
            try:
                return await asyncio.to_thread(decode_positional_names, raw, sink=self._sink)
            except MalformedResponseError as exc:
                warning(f"Assuming no positional arguments for {display_name(command_key)}: {exc}")
                return PositionalNames()

        if job.kind == "option":
            group = list(job.subject)
            raw = await self._client.ask(
                SYSTEM_PROMPT, context, option_question(command_key, group), max_tokens
            )
            return await asyncio.to_thread(decode_option, raw, group, sink=self._sink)

        name = str(job.subject)
        raw = await self._client.ask(
            SYSTEM_PROMPT, context, positional_question(command_key, name), max_tokens
        )
        return await asyncio.to_thread(decode_positional, raw, name, sink=self._sink)
