"""Compose web pages section by section from captured design sources.

A page plan is an ordered list of sections. Each section either reproduces
part of a captured design verbatim (rendered locally as a crop of the
source's master image), reinterprets a design through the generation service,
or is generated from its label alone. :class:`GenerationScheduler` runs those
attempts concurrently, and :func:`assemble` joins the finished sections into
the final page.

Exports
-------
- ``app``: Cyclopts application behind the ``compose`` console script.
- ``main``: Convenience function that invokes the app.
- ``GenerationScheduler``, ``Section``, ``assemble``: the library surface.

Examples
--------
>>> from section_composer import Section
>>> Section(id="hero", order=0, label="Hero").status_name
'pending'
"""

from __future__ import annotations

from .assembler import AssembledPage, PageAssembler, assemble
from .cli import app, main
from .models import DesignRef, ReferenceConfig, Section
from .scheduler import GenerationOutcome, GenerationScheduler

__all__ = [
    "AssembledPage",
    "DesignRef",
    "GenerationOutcome",
    "GenerationScheduler",
    "PageAssembler",
    "ReferenceConfig",
    "Section",
    "app",
    "assemble",
    "main",
]
