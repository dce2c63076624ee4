"""Spec synthesis pipeline.

Modules:
    :mod:`~helpspec.generator.scheduler` -- bounded concurrent fan-out of
        extraction requests (:class:`FanOutScheduler`).
    :mod:`~helpspec.generator.assembler` -- pure merge of extracted pieces
        into a :class:`~helpspec.models.CommandSpec` (:func:`assemble_spec`).
    :mod:`~helpspec.generator.synthesizer` -- cache-aware orchestration
        (:class:`Synthesizer`).
"""

from helpspec.generator.assembler import assemble_spec
from helpspec.generator.scheduler import FanOutResult, FanOutScheduler
from helpspec.generator.synthesizer import Synthesizer

__all__ = ["FanOutResult", "FanOutScheduler", "Synthesizer", "assemble_spec"]
