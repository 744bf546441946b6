"""Cyclopts CLI entrypoint for composing pages from design sections.

The ``compose`` console script defined here loads a composition plan and its
design library, generates every section (verbatim crops first, then the
sections that need the generation service, concurrently), assembles the
finished sections into a page document and optionally stores the result as a
composition project. Two helper commands print the crop descriptor of a design
reference and list stored projects.

Examples
--------
Compose the page described by ``composition.yaml``:

>>> from section_composer.cli import main
>>> main()  # doctest: +SKIP

Inspect the crop used for two elements of a source:

>>> from section_composer.cli import app
>>> app.run(
...     ["crop", "--library", "library.yaml", "--source", "s1", "--indices", "1", "2"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import os
import typing as typ
from pathlib import Path

import cyclopts
import msgspec
from cyclopts import App, Parameter

from .assembler import PageAssembler
from .config import load_composition
from .crop import compute_crop
from .generation import GenerationServiceClient
from .geometry import resolve_geometry
from .library import InMemoryDesignLibrary, load_design_library
from .models import DesignRef
from .palette import build_palette_css
from .persistence import HttpProjectClient, ProjectStore
from .preview import PageRenderer, PreviewRenderer
from .scheduler import GenerationScheduler

if typ.TYPE_CHECKING:
    from .config import CompositionConfig
    from .library import DesignLibrary
    from .persistence import PersistenceService
    from .scheduler import GenerationOutcome

DEFAULT_CONFIG = Path("composition.yaml")

logger = logging.getLogger(__name__)

app = App(name="compose", config=cyclopts.config.Env("COMPOSER_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_library(config: CompositionConfig) -> DesignLibrary:
    if config.library.path is None:
        return InMemoryDesignLibrary()
    return load_design_library(
        config.library.path, image_url_prefix=config.library.image_url_prefix
    )


def _persistence_for(config: CompositionConfig) -> PersistenceService | None:
    settings = config.persistence
    if settings.api_base:
        return HttpProjectClient(api_base=settings.api_base)
    if settings.path is not None:
        return ProjectStore(settings.path)
    return None


async def _generate_plan(scheduler: GenerationScheduler) -> list[GenerationOutcome]:
    """Render automatic sections, then request every remaining pending one."""
    outcomes = await scheduler.generate_automatic()
    outcomes.extend(await scheduler.generate_all_pending())
    return outcomes


@app.command(help="Generate every section of a composition and write the page.")
def generate(
    *,
    config: typ.Annotated[
        Path, Parameter(help="Path to the composition file")
    ] = DEFAULT_CONFIG,
    output: typ.Annotated[
        Path | None, Parameter(help="Override the page output path")
    ] = None,
    preview: typ.Annotated[
        Path | None, Parameter(help="Also write a preview document to this path")
    ] = None,
    api_key: typ.Annotated[
        str | None,
        Parameter(help="Model API key (falls back to GENERATION_API_KEY)"),
    ] = None,
    save: typ.Annotated[
        bool, Parameter(help="Store the result in the configured project store")
    ] = True,
    log_level: typ.Annotated[str, Parameter(help="Logging level")] = "WARNING",
) -> None:
    """Compose the page described by ``config``.

    Parameters
    ----------
    config : Path, optional
        Composition file; defaults to ``composition.yaml`` (``COMPOSER_CONFIG``).
    output : Path or None, optional
        Override for ``page.output``.
    preview : Path or None, optional
        When set, a preview document showing every section (placeholders for
        the ones left pending or skipped) is written here.
    api_key : str or None, optional
        Key forwarded to the generation service with each request. Falls back
        to ``COMPOSER_API_KEY`` (via the environment config) and then to
        ``GENERATION_API_KEY``.
    save : bool, optional
        Persist the assembled page when a project store is configured.
    log_level : str, optional
        Name of the logging level, ``WARNING`` by default.

    Raises
    ------
    SystemExit
        With status ``1`` when any section is still pending after generation.
    """
    _configure_logging(log_level)
    composition = load_composition(config)
    library = _load_library(composition)
    page = composition.page_context(api_key or os.getenv("GENERATION_API_KEY"))
    client = GenerationServiceClient(
        api_base=composition.generation.api_base,
        timeout=composition.generation.timeout,
    )
    scheduler = GenerationScheduler(
        composition.sections, library=library, service=client, page=page
    )
    try:
        outcomes = asyncio.run(_generate_plan(scheduler))
    finally:
        client.close()

    for outcome in outcomes:
        if outcome.state == "failed":
            print(f"{outcome.section_id}: failed ({outcome.error})")

    sections = scheduler.sections
    palette_css = build_palette_css(sections, library)
    assembled = scheduler.assemble()
    target = output or composition.page.output
    target.parent.mkdir(parents=True, exist_ok=True)
    document = PageRenderer(lang=composition.page.lang).render(
        assembled.html, page_name=composition.page.name, palette_css=palette_css
    )
    target.write_text(document, encoding="utf-8")
    print(f"wrote {_format_path(target)}")

    if preview is not None:
        preview.parent.mkdir(parents=True, exist_ok=True)
        preview.write_text(
            PreviewRenderer(lang=composition.page.lang).render(
                sections, page_name=composition.page.name, palette_css=palette_css
            ),
            encoding="utf-8",
        )
        print(f"wrote {_format_path(preview)}")

    persistence = _persistence_for(composition) if save else None
    if persistence is not None:
        project_id = PageAssembler(persistence, page=page).save(sections)
        print(f"saved project {project_id}")

    pending = [s.id for s in sections if s.status_name == "pending"]
    if pending:
        print(f"pending sections: {', '.join(pending)}")
        raise SystemExit(1)


@app.command(help="Print the crop descriptor for a design reference as JSON.")
def crop(
    *,
    library: typ.Annotated[Path, Parameter(help="Path to the design library export")],
    source: typ.Annotated[str, Parameter(help="Design source id")],
    variant: typ.Annotated[
        str | None, Parameter(help="Device variant, e.g. pc or sp")
    ] = None,
    indices: typ.Annotated[
        list[int] | None, Parameter(help="Element indices to select")
    ] = None,
    image_url_prefix: typ.Annotated[
        str, Parameter(help="Prefix for master image filenames")
    ] = "/api/images/",
) -> None:
    """Resolve ``source`` in ``library`` and print its crop descriptor.

    A reference without ``indices`` covers the whole root box. Lookup
    failures propagate as :class:`~section_composer.errors.SectionLookupError`.
    """
    design_library = load_design_library(library, image_url_prefix=image_url_prefix)
    ref = DesignRef(
        source_id=source, device_variant=variant, element_indices=tuple(indices or ())
    )
    geometry = resolve_geometry(design_library, ref)
    descriptor = compute_crop(geometry.root_box, geometry.selection)
    print(msgspec.json.encode(descriptor).decode("utf-8"))


@app.command(help="List composition projects in a project store.")
def projects(
    *,
    store: typ.Annotated[
        Path, Parameter(help="Path to the project store JSON file")
    ] = Path("data/composition-projects.json"),
) -> None:
    """Print one line per stored project: id, page name and last update."""
    summaries = ProjectStore(store).list_summaries()
    if not summaries:
        print("no projects")
        return
    for summary in summaries:
        print(f"{summary.id}  {summary.page_name}  {summary.updated_at}")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``compose`` command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
