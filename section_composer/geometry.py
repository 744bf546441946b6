"""Resolve the geometry a section references inside its design source.

The root box of a capture is the element with the largest area, which is not
necessarily the first element: captures often start with small header nodes
before the page wrapper. All crop calculations are made relative to that box.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ._constants import DEFAULT_MASTER_HEIGHT, DEFAULT_MASTER_WIDTH
from .errors import SectionLookupError
from .library.models import BoundingBox, VerticalSpan

if typ.TYPE_CHECKING:
    from .library import DesignLibrary
    from .library.models import DesignElement, DesignSource, MasterImage
    from .models import DesignRef


@dc.dataclass(frozen=True, slots=True)
class ResolvedGeometry:
    """Elements and boxes resolved for one design reference.

    Attributes
    ----------
    source : DesignSource
        The source the reference points at.
    source_elements : tuple[DesignElement, ...]
        Selected elements, or every element for whole-source references.
    root_box : BoundingBox
        Coordinate origin for relative calculations.
    selection : VerticalSpan or None
        Vertical union of the selected elements; ``None`` for whole-source
        references or selections without recorded boxes.
    master_image : MasterImage or None
        Master image of the resolved device variant.
    """

    source: DesignSource
    source_elements: tuple[DesignElement, ...]
    root_box: BoundingBox
    selection: VerticalSpan | None
    master_image: MasterImage | None


def resolve_geometry(library: DesignLibrary, ref: DesignRef) -> ResolvedGeometry:
    """Resolve ``ref`` against ``library``.

    Raises
    ------
    SectionLookupError
        If the source is unknown or an element index is out of range.
    """
    source = library.get_source(ref.source_id)
    if source is None:
        msg = f"Design source '{ref.source_id}' was not found in the library."
        raise SectionLookupError(msg)

    variant = source.variant(ref.device_variant)
    elements = variant.elements
    root_box = find_root_box(elements, variant.master_image)

    if ref.is_whole_source:
        return ResolvedGeometry(
            source=source,
            source_elements=elements,
            root_box=root_box,
            selection=None,
            master_image=variant.master_image,
        )

    selected = select_elements(elements, ref.element_indices, source_id=ref.source_id)
    return ResolvedGeometry(
        source=source,
        source_elements=selected,
        root_box=root_box,
        selection=selection_span(selected),
        master_image=variant.master_image,
    )


def find_root_box(
    elements: cabc.Iterable[DesignElement], master_image: MasterImage | None = None
) -> BoundingBox:
    """Return the largest-area box among ``elements``.

    When no element carries a box, the master image dimensions anchored at the
    origin are used, or 1440x900 when those are unknown too. Ties keep the
    earliest element.
    """
    root: BoundingBox | None = None
    for element in elements:
        box = element.bounding_box
        if box is None:
            continue
        if root is None or box.area > root.area:
            root = box
    if root is not None:
        return root
    width = master_image.width if master_image and master_image.width else 0
    height = master_image.height if master_image and master_image.height else 0
    return BoundingBox(
        x=0.0,
        y=0.0,
        width=float(width or DEFAULT_MASTER_WIDTH),
        height=float(height or DEFAULT_MASTER_HEIGHT),
    )


def select_elements(
    elements: cabc.Sequence[DesignElement],
    indices: cabc.Iterable[int],
    *,
    source_id: str = "",
) -> tuple[DesignElement, ...]:
    """Return the elements at ``indices`` in the given order, without repeats."""
    selected: list[DesignElement] = []
    seen: set[int] = set()
    for index in indices:
        if index < 0 or index >= len(elements):
            msg = (
                f"Element index {index} is out of range for design source "
                f"'{source_id}' ({len(elements)} elements)."
            )
            raise SectionLookupError(msg)
        if index in seen:
            continue
        seen.add(index)
        selected.append(elements[index])
    return tuple(selected)


def selection_span(elements: cabc.Iterable[DesignElement]) -> VerticalSpan | None:
    """Return the vertical union of the boxes carried by ``elements``."""
    spans = [
        VerticalSpan.of(element.bounding_box)
        for element in elements
        if element.bounding_box is not None
    ]
    if not spans:
        return None
    return VerticalSpan(
        min_y=min(span.min_y for span in spans),
        max_y=max(span.max_y for span in spans),
    )


__all__ = [
    "ResolvedGeometry",
    "find_root_box",
    "resolve_geometry",
    "select_elements",
    "selection_span",
]
