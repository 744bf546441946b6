"""Request and response shapes exchanged with the generation service."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from section_composer._constants import DEFAULT_IMAGE_MODE, DEFAULT_MODEL

if typ.TYPE_CHECKING:
    from section_composer.library.models import DesignElement
    from section_composer.models import ContentMode, ReferenceConfig

# Placeholder element sent when a section has no design reference.
BLANK_SECTION_ELEMENT: dict[str, typ.Any] = {
    "tagName": "section",
    "styles": {},
    "textContent": "",
    "children": [],
}


@dc.dataclass(frozen=True, slots=True)
class PageContext:
    """Page-wide values forwarded with every generation request."""

    page_name: str
    model: str = DEFAULT_MODEL
    image_mode: str = DEFAULT_IMAGE_MODE
    api_key: str | None = dc.field(default=None, repr=False)


@dc.dataclass(frozen=True, slots=True)
class ComposedRequest:
    """Request for a section generated from a design reference."""

    source_elements: tuple[DesignElement, ...]
    reference_config: ReferenceConfig
    section_label: str
    order: int
    total_sections: int
    previous_sections_html: str
    page: PageContext

    def to_payload(self) -> dict[str, typ.Any]:
        """Return the JSON body for the composed endpoint."""
        payload: dict[str, typ.Any] = {
            "sourceElements": [el.to_payload() for el in self.source_elements],
            "referenceConfig": self.reference_config.to_payload(),
            "sectionLabel": self.section_label,
            "sectionIndex": self.order,
            "totalSections": self.total_sections,
            "previousSectionsHtml": self.previous_sections_html,
            "pageName": self.page.page_name,
            "imageMode": self.page.image_mode,
            "model": self.page.model,
        }
        if self.page.api_key:
            payload["apiKey"] = self.page.api_key
        return payload


@dc.dataclass(frozen=True, slots=True)
class GenericRequest:
    """Request for the generic section endpoint.

    ``mode`` is ``"clone"`` when the request renders resolved source elements
    without a master image; it is ``None`` for label-only generation.
    """

    elements: tuple[DesignElement, ...]
    page: PageContext
    section_label: str
    role: str
    order: int
    total_sections: int
    previous_sections_html: str = ""
    content_mode: ContentMode = "ai"
    manual_content: str = ""
    custom_instructions: str = ""
    mode: str | None = None

    def to_payload(self) -> dict[str, typ.Any]:
        """Return the JSON body for the generic endpoint."""
        elements: list[dict[str, typ.Any]] = [el.to_payload() for el in self.elements]
        payload: dict[str, typ.Any] = {
            "dnaElements": elements or [dict(BLANK_SECTION_ELEMENT)],
            "pageTitle": self.page.page_name,
            "sectionLabel": self.section_label,
            "sectionIndex": self.order,
            "totalSections": self.total_sections,
            "previousSectionsHtml": self.previous_sections_html,
            "contentMode": self.content_mode,
            "manualContent": self.manual_content,
            "customInstructions": self.custom_instructions,
            "fontMode": "google",
            "model": self.page.model,
        }
        if self.mode is not None:
            payload["partConfig"] = {
                "mode": self.mode,
                "role": self.role,
                "sourceElements": elements,
            }
        if self.page.api_key:
            payload["apiKey"] = self.page.api_key
        return payload


@dc.dataclass(frozen=True, slots=True)
class GenerationResult:
    """Rendered markup returned by a strategy."""

    html: str
    code: str

    @classmethod
    def from_payload(cls, payload: cabc.Mapping[str, typ.Any]) -> GenerationResult:
        """Build a result from a service response body.

        Both the service's ``sectionHtml``/``sectionCode`` keys and plain
        ``html``/``code`` keys are accepted. Missing code falls back to the HTML.
        """
        html = payload.get("sectionHtml", payload.get("html")) or ""
        code = payload.get("sectionCode", payload.get("code")) or ""
        html = str(html)
        return cls(html=html, code=str(code) or html)


class GenerationService(typ.Protocol):
    """Contract of the generation service collaborator."""

    def generate_composed(self, request: ComposedRequest) -> GenerationResult:
        """Generate a section from resolved source elements and context."""
        ...

    def generate_generic(self, request: GenericRequest) -> GenerationResult:
        """Generate a section from a label and content flags."""
        ...


__all__ = [
    "BLANK_SECTION_ELEMENT",
    "ComposedRequest",
    "GenerationResult",
    "GenerationService",
    "GenericRequest",
    "PageContext",
]
