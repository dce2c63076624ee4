"""Cache-aware synthesis of a command's spec from its documentation.

:class:`Synthesizer` is the entry point of the pipeline::

    documentation --hash--> store hit? --yes--> touch, return cached spec
                                       \\-no--> extract flags -> fan-out
                                                -> assemble -> store -> return

The documentation hash is the only staleness signal: a cached spec is
returned as long as its ``version_hash`` matches, regardless of age.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from helpspec.cache.store import SpecStore
from helpspec.client.prompts import build_context
from helpspec.exceptions import DocumentationUnavailableError
from helpspec.generator.assembler import assemble_spec
from helpspec.generator.scheduler import Completer, FanOutScheduler
from helpspec.models import CommandSpec, SynthesisConfig
from helpspec.output import debug, info
from helpspec.parser.decoder import DiagnosticSink
from helpspec.parser.docs import Documentation, display_name
from helpspec.parser.flags import FlagExtractor, HeuristicFlagExtractor


class Synthesizer:
    """Produce specs, going to the completion service only when needed.

    Args:
        store: Where specs are looked up and saved.
        client: The completion client, already opened.
        config: Synthesis settings passed to the scheduler.
        extractor: Flag-candidate strategy. Defaults to
            :class:`~helpspec.parser.flags.HeuristicFlagExtractor`.
        sink: Receives undecodable payloads.
        sleep: Coroutine used for the scheduler's priming pause.

    Example::

        async with CompletionClient(config.llm, config.synthesis) as client:
            synthesizer = Synthesizer(store, client, config.synthesis)
            spec = await synthesizer.synthesize(command_key("git", ["commit"]), docs)
    """

    def __init__(
        self,
        store: SpecStore,
        client: Completer,
        config: Optional[SynthesisConfig] = None,
        *,
        extractor: Optional[FlagExtractor] = None,
        sink: Optional[DiagnosticSink] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._client = client
        self._config = config or SynthesisConfig()
        self._extractor = extractor or HeuristicFlagExtractor()
        self._sink = sink
        self._sleep = sleep

    async def synthesize(
        self,
        command_key: str,
        documentation: Documentation,
        force_refresh: bool = False,
    ) -> CommandSpec:
        """Return the spec for *command_key*, generating it if the cache is stale.

        Args:
            command_key: Command identity from :func:`~helpspec.parser.docs.command_key`.
            documentation: Current help and man-page text.
            force_refresh: Regenerate even when a fresh entry exists.

        Raises:
            DocumentationUnavailableError: If the help text is empty. Raised
                before any network request.
            HelpspecError: Any terminal failure of the fan-out or the store.
                A prior cache entry is left unchanged.
        """
        name = display_name(command_key)
        if not documentation.help_text.strip():
            raise DocumentationUnavailableError(f"Help text not available for: {name}")

        version_hash = documentation.content_hash

        if not force_refresh:
            cached = self._store.get(command_key)
            if cached is not None and cached.version_hash == version_hash:
                self._store.touch(command_key)
                info(f"Using cached spec for {name}")
                return cached
            if cached is not None:
                info(f"Documentation changed, regenerating spec for {name}")

        info(f"Generating spec for {name}")
        flag_groups = self._extractor.extract(documentation.combined_text())
        basic_flags = {
            flag for group in self._extractor.extract(documentation.help_text) for flag in group
        }
        debug(f"Found {len(flag_groups)} flag groups ({len(basic_flags)} flags in help text)")

        scheduler = FanOutScheduler(self._client, self._config, self._sink, sleep=self._sleep)
        result = await scheduler.run(
            command_key, build_context(command_key, documentation), flag_groups
        )

        spec = assemble_spec(
            name,
            version_hash,
            result.metadata,
            result.options,
            result.positionals,
            positional_order=result.positional_names,
            positionals_first=result.positionals_first,
            basic_flags=basic_flags,
        )
        self._store.put(command_key, spec)
        return spec
