"""Load composition YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from section_composer.errors import CompositionConfigError
from section_composer.models import validate_plan

from .helpers import _build_section, _optional_str, _resolve_path
from .models import (
    CompositionConfig,
    GenerationSettings,
    LibrarySettings,
    PageSettings,
    PersistenceSettings,
)


def load_composition(path: Path) -> CompositionConfig:
    """Load the YAML file describing a page and its section plan.

    Parameters
    ----------
    path : Path
        Filesystem path to the composition file (for example,
        ``composition.yaml``). Relative paths inside the file resolve against
        its directory.

    Returns
    -------
    CompositionConfig
        Page, generation, library and persistence settings plus the ordered
        section plan, every section pending.

    Raises
    ------
    FileNotFoundError
        If the composition file does not exist at ``path``.
    CompositionConfigError
        If the structure is not a mapping, the page has no name, no sections
        are defined, a field holds an unknown value, or section ids and
        orders violate the plan invariants.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from section_composer.config import load_composition
    >>> config = load_composition(Path("composition.yaml"))  # doctest: +SKIP
    >>> [section.id for section in config.sections]  # doctest: +SKIP
    ['hero', 'features', 'footer']
    """
    if not path.exists():
        msg = f"Composition file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise CompositionConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)
    base_dir = path.resolve().parent

    page_raw = raw.get("page") or {}
    generation_raw = raw.get("generation") or {}
    library_raw = raw.get("library") or {}
    persistence_raw = raw.get("persistence") or {}

    page_name = _optional_str(page_raw.get("name"))
    if page_name is None:
        msg = "Composition is missing 'page.name'."
        raise CompositionConfigError(msg)
    page = PageSettings(
        name=page_name,
        output=_resolve_path(page_raw.get("output"), base_dir)
        or base_dir / "public" / "index.html",
        lang=_optional_str(page_raw.get("lang")) or "ja",
    )

    defaults = GenerationSettings()
    generation = GenerationSettings(
        api_base=_optional_str(generation_raw.get("api_base")) or defaults.api_base,
        model=_optional_str(generation_raw.get("model")) or defaults.model,
        image_mode=_optional_str(generation_raw.get("image_mode"))
        or defaults.image_mode,
        timeout=float(generation_raw.get("timeout", defaults.timeout)),
    )

    library = LibrarySettings(
        path=_resolve_path(library_raw.get("path"), base_dir),
        image_url_prefix=_optional_str(library_raw.get("image_url_prefix"))
        or LibrarySettings().image_url_prefix,
    )
    persistence = PersistenceSettings(
        path=_resolve_path(persistence_raw.get("path"), base_dir),
        api_base=_optional_str(persistence_raw.get("api_base")),
    )

    sections_raw = raw.get("sections") or []
    if not isinstance(sections_raw, list) or not sections_raw:
        msg = "No sections defined in composition."
        raise CompositionConfigError(msg)
    sections = [
        _build_section(payload, position)
        for position, payload in enumerate(sections_raw)
    ]
    try:
        validate_plan(sections)
    except ValueError as exc:
        raise CompositionConfigError(str(exc)) from exc

    return CompositionConfig(
        page=page,
        generation=generation,
        library=library,
        persistence=persistence,
        sections=sections,
    )


__all__ = ["load_composition"]
