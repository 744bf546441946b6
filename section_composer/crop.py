"""Deterministic crop rendering for verbatim section reproduction.

A verbatim section is shown by cropping the source's master image instead of
asking a generation service to rebuild it. :func:`compute_crop` turns the
source's root box and the selected vertical span into two percentages:

- ``translate_y_pct`` shifts the full-width image up so the selection's top edge
  sits at the top of the container;
- ``padding_pct`` sizes the container's height as a share of its width, so the
  crop keeps the selection's aspect ratio at any rendered width.

:class:`CropRenderer` feeds those numbers into a Jinja template. Both steps are
pure: identical inputs always yield byte-identical markup.

Examples
--------
>>> from section_composer.crop import compute_crop
>>> from section_composer.library import BoundingBox, VerticalSpan
>>> root = BoundingBox(x=0, y=0, width=1000, height=2000)
>>> compute_crop(root, VerticalSpan(min_y=200, max_y=500))
CropDescriptor(translate_y_pct=-10.0, padding_pct=30.0)
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ._constants import DEFAULT_PADDING_PCT
from .errors import MasterImageUnavailableError, SectionLookupError

if typ.TYPE_CHECKING:
    from .library.models import BoundingBox, MasterImage, VerticalSpan


@dc.dataclass(frozen=True, slots=True)
class CropDescriptor:
    """Vertical crop parameters expressed as percentages."""

    translate_y_pct: float
    padding_pct: float


def compute_crop(
    root_box: BoundingBox, selection: VerticalSpan | None = None
) -> CropDescriptor:
    """Return the crop descriptor for ``selection`` inside ``root_box``.

    Parameters
    ----------
    root_box : BoundingBox
        Bounding box of the source's root element.
    selection : VerticalSpan, optional
        Vertical union of the selected elements; the full root box is used
        when ``None``.

    Returns
    -------
    CropDescriptor
        ``translate_y_pct`` is ``0`` when the root box has no height;
        ``padding_pct`` falls back to ``10`` when it has no width.

    Raises
    ------
    SectionLookupError
        If the root box has height and the selection starts at or below its
        lower edge, leaving nothing of the image to show.

    Notes
    -----
    With a positive root height the selection is clipped to the root box's
    vertical extent first, which keeps ``translate_y_pct`` within
    ``(-100, 0]``.
    """
    if selection is None:
        min_y, max_y = root_box.y, root_box.bottom
    else:
        min_y, max_y = selection.min_y, selection.max_y

    if root_box.height > 0:
        if min_y >= root_box.bottom:
            msg = (
                f"Selection starting at y={min_y:g} lies below the root box "
                f"ending at y={root_box.bottom:g}."
            )
            raise SectionLookupError(msg)
        min_y = max(min_y, root_box.y)
        max_y = min(max(max_y, min_y), root_box.bottom)

    rel_y = min_y - root_box.y
    crop_height = max(max_y - min_y, 0.0)
    translate = -(rel_y / root_box.height) * 100 if root_box.height > 0 else 0.0
    padding = (
        (crop_height / root_box.width) * 100
        if root_box.width > 0
        else DEFAULT_PADDING_PCT
    )
    # Normalise -0.0 so repeated renders stay byte-identical.
    return CropDescriptor(translate_y_pct=translate + 0.0, padding_pct=padding)


class CropRenderer:
    """Render crop descriptors into self-contained section markup."""

    def __init__(self, *, templates_dir: Path | None = None) -> None:
        """Initialize the renderer and its Jinja environment.

        Parameters
        ----------
        templates_dir : Path, optional
            Directory containing ``crop_section.jinja`` and
            ``full_image.jinja``; defaults to the package templates.
        """
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.crop_template = self.env.get_template("crop_section.jinja")
        self.full_template = self.env.get_template("full_image.jinja")

    def render(
        self,
        image: MasterImage | None,
        descriptor: CropDescriptor | None,
        *,
        alt: str,
    ) -> str:
        """Return HTML showing ``image`` cropped by ``descriptor``.

        A ``None`` descriptor renders the whole image at full width.

        Raises
        ------
        MasterImageUnavailableError
            If ``image`` is missing or has no URL.
        """
        if image is None or not image.url.strip():
            msg = "No usable master image is available for a verbatim crop."
            raise MasterImageUnavailableError(msg)
        if descriptor is None:
            html = self.full_template.render(image_url=image.url, alt=alt)
        else:
            html = self.crop_template.render(
                image_url=image.url,
                alt=alt,
                padding=f"{descriptor.padding_pct:.2f}",
                translate=f"{descriptor.translate_y_pct:.2f}",
            )
        return html.strip()


__all__ = ["CropDescriptor", "CropRenderer", "compute_crop"]
