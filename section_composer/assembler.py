"""Concatenate finished sections into the final page and persist it."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from .models import Done, sort_sections
from .persistence import ProjectRecord, section_to_record

if typ.TYPE_CHECKING:
    from .generation.payloads import PageContext
    from .models import Section
    from .persistence import PersistenceService

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class AssembledPage:
    """Final markup and source of a composed page."""

    html: str
    code: str
    section_ids: tuple[str, ...]


def assemble(sections: cabc.Iterable[Section]) -> AssembledPage:
    """Join the output of finished sections in ``order``.

    Pending and skipped sections are left out silently; no separator is
    inserted between sections.
    """
    finished = [s for s in sort_sections(sections) if isinstance(s.status, Done)]
    return AssembledPage(
        html="".join(section.html for section in finished),
        code="".join(section.code for section in finished),
        section_ids=tuple(section.id for section in finished),
    )


class PageAssembler:
    """Assemble a plan and hand the result to a persistence service."""

    def __init__(self, persistence: PersistenceService, *, page: PageContext) -> None:
        self.persistence = persistence
        self.page = page

    def save(
        self, sections: cabc.Sequence[Section], *, optimized_html: str | None = None
    ) -> str:
        """Assemble ``sections``, store the page and return the project id."""
        assembled = assemble(sections)
        record = ProjectRecord(
            page_name=self.page.page_name,
            model=self.page.model,
            image_mode=self.page.image_mode,
            sections=[section_to_record(s) for s in sort_sections(sections)],
            final_html=assembled.html,
            final_code=assembled.code,
            optimized_html=optimized_html,
        )
        project_id = self.persistence.save(record)
        logger.info(
            "Saved page %r with %d sections as %s",
            self.page.page_name,
            len(assembled.section_ids),
            project_id,
        )
        return project_id


__all__ = ["AssembledPage", "PageAssembler", "assemble"]
