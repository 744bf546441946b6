"""Read-only access to the library of captured design sources.

The composer never mutates sources: it looks them up by id, picks a device
variant and reads element boxes, styles and the master image. Libraries are
usually exported as YAML or JSON and loaded with
:func:`load_design_library`; tests and embedding applications can use
:class:`InMemoryDesignLibrary` directly.

Examples
--------
>>> from pathlib import Path
>>> from section_composer.library import load_design_library
>>> library = load_design_library(Path("library.yaml"))  # doctest: +SKIP
>>> library.get_source("s1").name  # doctest: +SKIP
'Corporate landing page'
"""

from .loader import DesignLibrary, InMemoryDesignLibrary, load_design_library
from .models import (
    BoundingBox,
    DesignElement,
    DesignSource,
    DeviceVariant,
    MasterImage,
    VerticalSpan,
)

__all__ = [
    "BoundingBox",
    "DesignElement",
    "DesignLibrary",
    "DesignSource",
    "DeviceVariant",
    "InMemoryDesignLibrary",
    "MasterImage",
    "VerticalSpan",
    "load_design_library",
]
