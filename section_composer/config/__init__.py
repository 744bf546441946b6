"""Load and validate composition YAML for section_composer builds.

This subpackage parses a ``composition.yaml`` file describing the page being
composed, how to reach the generation service, where the design library and
project store live, and the ordered section plan. The primary entry point is
:func:`load_composition`, which applies defaults, resolves relative paths
against the file's directory, enforces the plan's id and ordering invariants,
and returns a :class:`CompositionConfig` ready for the scheduler.

Examples
--------
>>> from pathlib import Path
>>> from section_composer.config import load_composition
>>> config = load_composition(Path("composition.yaml"))  # doctest: +SKIP
>>> config.page.name  # doctest: +SKIP
'Landing'
"""

from section_composer.errors import CompositionConfigError

from .loader import load_composition
from .models import (
    CompositionConfig,
    GenerationSettings,
    LibrarySettings,
    PageSettings,
    PersistenceSettings,
)

__all__ = [
    "CompositionConfig",
    "CompositionConfigError",
    "GenerationSettings",
    "LibrarySettings",
    "PageSettings",
    "PersistenceSettings",
    "load_composition",
]
