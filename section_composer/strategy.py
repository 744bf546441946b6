"""Choose and run the generation strategy for a section.

Four strategies exist and are modelled as a closed union:

``Crop``
    Verbatim clone with a master image; rendered locally by
    :class:`~section_composer.crop.CropRenderer`, no network call.
``FallbackRender``
    Verbatim clone without a master image; resolved elements go to the generic
    endpoint tagged ``clone``.
``ComposedGenerate``
    Clone with replaced content, or a design reference; resolved elements,
    reference configuration and prior-section context go to the composed
    endpoint.
``GenericGenerate``
    No design reference; only label, role and content flags are sent.

Selection is a pure function of the section, the library, and the context
snapshot, so re-running a strategy with the same inputs is safe.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ

from .crop import CropRenderer, compute_crop
from .errors import MasterImageUnavailableError, SectionLookupError
from .generation.payloads import ComposedRequest, GenerationResult, GenericRequest
from .geometry import resolve_geometry

if typ.TYPE_CHECKING:
    from .generation.payloads import GenerationService, PageContext
    from .geometry import ResolvedGeometry
    from .library import DesignLibrary
    from .models import Section

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class Crop:
    """Render the section by cropping the source's master image."""

    section: Section
    geometry: ResolvedGeometry
    fallback: FallbackRender


@dc.dataclass(frozen=True, slots=True)
class FallbackRender:
    """Render resolved clone elements through the generic endpoint."""

    request: GenericRequest


@dc.dataclass(frozen=True, slots=True)
class ComposedGenerate:
    """Reinterpret a design reference through the composed endpoint."""

    request: ComposedRequest


@dc.dataclass(frozen=True, slots=True)
class GenericGenerate:
    """Generate a section from its label only."""

    request: GenericRequest


Strategy = Crop | FallbackRender | ComposedGenerate | GenericGenerate


@dc.dataclass(frozen=True, slots=True)
class SelectionContext:
    """Inputs shared by every strategy selected during one attempt.

    ``previous_sections_html`` is the context snapshot captured when the
    attempt was initiated; it is never re-read afterwards.
    """

    page: PageContext
    total_sections: int
    previous_sections_html: str = ""


def is_verbatim_clone(section: Section) -> bool:
    """Return ``True`` for ``clone`` sections that keep the source content."""
    return section.mode == "clone" and section.config.clone_content == "keep"


def select_strategy(
    section: Section, library: DesignLibrary, context: SelectionContext
) -> Strategy:
    """Return the strategy that applies to ``section``.

    Raises
    ------
    SectionLookupError
        If a verbatim clone has no source id, or the referenced source or
        element selection cannot be resolved.
    """
    source_id = section.source_id
    config = section.config

    if is_verbatim_clone(section):
        if source_id is None or section.design_ref is None:
            msg = f"Section '{section.label}' reproduces a source but none is selected."
            raise SectionLookupError(msg)
        geometry = resolve_geometry(library, section.design_ref)
        fallback = FallbackRender(
            request=GenericRequest(
                elements=geometry.source_elements,
                page=context.page,
                section_label=section.label,
                role=section.role,
                order=section.order,
                total_sections=context.total_sections,
                mode="clone",
            )
        )
        if geometry.master_image is None:
            return fallback
        return Crop(section=section, geometry=geometry, fallback=fallback)

    if section.mode in ("clone", "reference") and section.design_ref and source_id:
        geometry = resolve_geometry(library, section.design_ref)
        reference_config = (
            config.force_inheritance() if section.mode == "clone" else config
        )
        return ComposedGenerate(
            request=ComposedRequest(
                source_elements=geometry.source_elements,
                reference_config=reference_config,
                section_label=section.label,
                order=section.order,
                total_sections=context.total_sections,
                previous_sections_html=context.previous_sections_html,
                page=context.page,
            )
        )

    return GenericGenerate(
        request=GenericRequest(
            elements=(),
            page=context.page,
            section_label=section.label,
            role=section.role,
            order=section.order,
            total_sections=context.total_sections,
            previous_sections_html=context.previous_sections_html,
            content_mode=config.content_mode,
            manual_content=config.manual_content,
            custom_instructions=config.custom_instructions,
        )
    )


def execute_strategy(
    strategy: Strategy,
    service: GenerationService,
    *,
    renderer: CropRenderer | None = None,
) -> GenerationResult:
    """Run ``strategy`` and return the rendered markup.

    A crop whose master image turns out to be unusable is downgraded to its
    fallback render; the downgrade is decided again on every call.

    Raises
    ------
    GenerationServiceError
        If the generation service fails.
    """
    match strategy:
        case Crop(section=section, geometry=geometry, fallback=fallback):
            try:
                return render_crop(section, geometry, renderer or CropRenderer())
            except MasterImageUnavailableError as exc:
                logger.info("Falling back to element render for %s: %s", section.id, exc)
                return service.generate_generic(fallback.request)
        case FallbackRender(request=request):
            return service.generate_generic(request)
        case ComposedGenerate(request=request):
            return service.generate_composed(request)
        case GenericGenerate(request=request):
            return service.generate_generic(request)
        case _:
            typ.assert_never(strategy)


def render_crop(
    section: Section, geometry: ResolvedGeometry, renderer: CropRenderer
) -> GenerationResult:
    """Render a verbatim crop for ``section`` from its resolved geometry."""
    descriptor = (
        None
        if geometry.selection is None
        else compute_crop(geometry.root_box, geometry.selection)
    )
    html = renderer.render(geometry.master_image, descriptor, alt=section.label)
    return GenerationResult(html=html, code=html)


def is_automatic(section: Section, library: DesignLibrary) -> bool:
    """Return ``True`` when ``section`` would be rendered by a local crop.

    Such sections cost nothing and are deterministic, so they are generated
    without user action. Unresolvable references are not automatic.
    """
    if not is_verbatim_clone(section) or section.design_ref is None:
        return False
    if not section.source_id:
        return False
    try:
        geometry = resolve_geometry(library, section.design_ref)
    except SectionLookupError:
        return False
    return geometry.master_image is not None


def strategy_name(strategy: Strategy) -> str:
    """Return a short label for logs and reports."""
    match strategy:
        case Crop():
            return "crop"
        case FallbackRender():
            return "fallback-render"
        case ComposedGenerate():
            return "composed"
        case GenericGenerate():
            return "generic"
        case _:
            typ.assert_never(strategy)


__all__ = [
    "ComposedGenerate",
    "Crop",
    "FallbackRender",
    "GenericGenerate",
    "SelectionContext",
    "Strategy",
    "execute_strategy",
    "is_automatic",
    "is_verbatim_clone",
    "render_crop",
    "select_strategy",
    "strategy_name",
]
