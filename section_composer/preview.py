"""Render preview and final HTML documents for a composed page.

:class:`PreviewRenderer` shows the whole plan while generation is under way:
finished sections render their markup (the current one outlined and labelled),
in-flight sections render a "generating" placeholder and everything else a
muted placeholder carrying the section label. :class:`PageRenderer` wraps an
assembled page into a standalone document. Both share the palette stylesheet
derived from the referenced design sources.

Typical usage:

>>> renderer = PreviewRenderer()  # doctest: +SKIP
>>> html = renderer.render(scheduler.sections, page_name="Landing", current="hero")  # doctest: +SKIP
"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import Done, Generating, Pending, sort_sections

if typ.TYPE_CHECKING:
    from .models import Section


def _build_environment(templates_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class PreviewRenderer:
    """Render a live preview of every section in a plan."""

    def __init__(self, *, templates_dir: Path | None = None, lang: str = "ja") -> None:
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.lang = lang
        self.env = _build_environment(self.templates_dir)
        self.template = self.env.get_template("preview_page.jinja")

    def render(
        self,
        sections: cabc.Iterable[Section],
        *,
        page_name: str,
        current: str | None = None,
        palette_css: str = "",
    ) -> str:
        """Return the preview document for ``sections``.

        Parameters
        ----------
        sections : Iterable[Section]
            Plan to preview, in any order.
        page_name : str
            Title of the page being composed.
        current : str, optional
            Id of the section to outline as the one under review.
        palette_css : str, optional
            Stylesheet produced by :func:`~section_composer.palette.build_palette_css`.
        """
        parts = [
            {
                "state": _preview_state(section),
                "label": section.label,
                "html": section.html,
                "current": section.id == current,
            }
            for section in sort_sections(sections)
        ]
        return self.template.render(
            parts=parts,
            page_name=page_name,
            palette_css=palette_css,
            lang=self.lang,
        )


class PageRenderer:
    """Wrap assembled page markup into a standalone HTML document."""

    def __init__(self, *, templates_dir: Path | None = None, lang: str = "ja") -> None:
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.lang = lang
        self.env = _build_environment(self.templates_dir)
        self.template = self.env.get_template("page.jinja")

    def render(self, body: str, *, page_name: str, palette_css: str = "") -> str:
        """Return the final document; the output always ends with a newline."""
        html = self.template.render(
            body=body, page_name=page_name, palette_css=palette_css, lang=self.lang
        )
        if not html.endswith("\n"):
            html += "\n"
        return html


def _preview_state(section: Section) -> str:
    if isinstance(section.status, Done):
        return "done"
    if isinstance(section.status, Generating):
        return "generating"
    return "placeholder"


def first_action_needed(
    sections: cabc.Sequence[Section], is_automatic: cabc.Callable[[Section], bool]
) -> int:
    """Return the index of the first section that needs user action, else ``0``."""
    ordered = sort_sections(sections)
    for index, section in enumerate(ordered):
        if not is_automatic(section):
            return index
    return 0


def next_pending_index(sections: cabc.Sequence[Section], current: int) -> int | None:
    """Return the index of the next pending section after ``current``."""
    ordered = sort_sections(sections)
    for index in range(current + 1, len(ordered)):
        if isinstance(ordered[index].status, Pending):
            return index
    return None


def advance_index(sections: cabc.Sequence[Section], current: int) -> int:
    """Return the index to review after approving the section at ``current``.

    The next pending section wins; otherwise the following section, or
    ``current`` when it is the last one.
    """
    pending = next_pending_index(sections, current)
    if pending is not None:
        return pending
    return min(current + 1, max(len(sections) - 1, 0))


__all__ = [
    "PageRenderer",
    "PreviewRenderer",
    "advance_index",
    "first_action_needed",
    "next_pending_index",
]
