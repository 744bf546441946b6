"""Typed dataclasses describing a composition file."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from section_composer._constants import (
    DEFAULT_IMAGE_MODE,
    DEFAULT_IMAGE_URL_PREFIX,
    DEFAULT_MODEL,
)
from section_composer.generation.client import DEFAULT_API_BASE
from section_composer.generation.payloads import PageContext
from section_composer.models import Section  # noqa: TC001 - runtime field type


@dc.dataclass(slots=True)
class PageSettings:
    """Name and output location of the composed page."""

    name: str
    output: Path = Path("public/index.html")
    lang: str = "ja"


@dc.dataclass(slots=True)
class GenerationSettings:
    """Connection settings for the generation service."""

    api_base: str = DEFAULT_API_BASE
    model: str = DEFAULT_MODEL
    image_mode: str = DEFAULT_IMAGE_MODE
    timeout: float = 120.0


@dc.dataclass(slots=True)
class LibrarySettings:
    """Where the design library export lives."""

    path: Path | None = None
    image_url_prefix: str = DEFAULT_IMAGE_URL_PREFIX


@dc.dataclass(slots=True)
class PersistenceSettings:
    """Project store location; ``api_base`` selects the HTTP service instead."""

    path: Path | None = None
    api_base: str | None = None


@dc.dataclass(slots=True)
class CompositionConfig:
    """A fully resolved composition: page settings plus the section plan."""

    page: PageSettings
    generation: GenerationSettings
    library: LibrarySettings
    persistence: PersistenceSettings
    sections: list[Section]

    def page_context(self, api_key: str | None = None) -> PageContext:
        """Return the page-wide context sent with generation requests."""
        return PageContext(
            page_name=self.page.name,
            model=self.generation.model,
            image_mode=self.generation.image_mode,
            api_key=api_key,
        )


__all__ = [
    "CompositionConfig",
    "GenerationSettings",
    "LibrarySettings",
    "PageSettings",
    "PersistenceSettings",
]
