"""Section model and lifecycle states shared by the composition pipeline.

A page plan is an ordered list of :class:`Section` values. Sections are
immutable: every transition produces a new value via :func:`dataclasses.replace`
so the scheduler can swap whole sections keyed by id. The lifecycle is a tagged
variant (:class:`Pending`, :class:`Generating`, :class:`Done`,
:class:`Skipped`) in which rendered markup only exists on :class:`Done`, so a
finished section without HTML cannot be built.

Examples
--------
>>> from section_composer.models import Done, Section
>>> section = Section(id="hero", order=0, label="Hero")
>>> section.status_name
'pending'
>>> section.with_status(Done(html="<section></section>")).html
'<section></section>'
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from .errors import InvalidTransitionError

Role = typ.Literal["header", "hero", "section", "footer", "nav", "cta", "card", "other"]
Mode = typ.Literal["clone", "reference", "none"]
CloneContent = typ.Literal["keep", "replace"]
ContentMode = typ.Literal["ai", "dummy", "manual"]

ROLES: tuple[str, ...] = typ.get_args(Role)
MODES: tuple[str, ...] = typ.get_args(Mode)
CLONE_CONTENT_CHOICES: tuple[str, ...] = typ.get_args(CloneContent)
CONTENT_MODES: tuple[str, ...] = typ.get_args(ContentMode)
ROLE_ALIASES: dict[str, str] = {"fv": "hero", "generic": "section"}


@dc.dataclass(frozen=True, slots=True)
class DesignRef:
    """Pointer from a section to (part of) a design source."""

    source_id: str
    device_variant: str | None = None
    element_indices: tuple[int, ...] = ()

    @property
    def is_whole_source(self) -> bool:
        """Return ``True`` when no element subset was selected."""
        return not self.element_indices


@dc.dataclass(frozen=True, slots=True)
class ReferenceConfig:
    """Generation knobs attached to a section.

    Attributes
    ----------
    clone_content : {"keep", "replace"}
        ``keep`` reproduces the source verbatim; ``replace`` keeps the look but
        swaps text and images.
    inherit_colors, inherit_fonts, inherit_layout : bool
        Which visual traits of the source the generated section must follow.
    content_mode : {"ai", "dummy", "manual"}
        How copy is produced for generated sections.
    manual_content : str
        Copy used verbatim when ``content_mode`` is ``manual``.
    custom_instructions : str
        Free-form instructions forwarded to the generation service.
    """

    clone_content: CloneContent = "keep"
    inherit_colors: bool = True
    inherit_fonts: bool = True
    inherit_layout: bool = False
    content_mode: ContentMode = "ai"
    manual_content: str = ""
    custom_instructions: str = ""

    def force_inheritance(self) -> ReferenceConfig:
        """Return a copy that inherits colours, fonts and layout."""
        return dc.replace(
            self, inherit_colors=True, inherit_fonts=True, inherit_layout=True
        )

    def to_payload(self) -> dict[str, typ.Any]:
        """Serialize using the camelCase keys expected by the generation service."""
        return {
            "cloneContent": self.clone_content,
            "inheritColors": self.inherit_colors,
            "inheritFonts": self.inherit_fonts,
            "inheritLayout": self.inherit_layout,
            "contentMode": self.content_mode,
            "manualContent": self.manual_content,
            "customInstructions": self.custom_instructions,
        }


@dc.dataclass(frozen=True, slots=True)
class Pending:
    """Section has no render and is waiting for generation."""

    name: typ.ClassVar[str] = "pending"


@dc.dataclass(frozen=True, slots=True)
class Generating:
    """A generation attempt identified by ``ticket`` is in flight."""

    ticket: int
    name: typ.ClassVar[str] = "generating"


@dc.dataclass(frozen=True, slots=True)
class Done:
    """Section holds exactly one render."""

    html: str
    code: str = ""
    name: typ.ClassVar[str] = "done"

    def __post_init__(self) -> None:
        if not self.html.strip():
            msg = "A finished section requires non-empty HTML."
            raise ValueError(msg)


@dc.dataclass(frozen=True, slots=True)
class Skipped:
    """User chose to leave the section out of the page."""

    name: typ.ClassVar[str] = "skipped"


SectionStatus = Pending | Generating | Done | Skipped
STATUS_NAMES: tuple[str, ...] = ("pending", "generating", "done", "skipped")

_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"generating", "skipped"}),
    "generating": frozenset({"done", "pending"}),
    "done": frozenset({"pending", "skipped"}),
    "skipped": frozenset(),
}


@dc.dataclass(frozen=True, slots=True)
class Section:
    """One ordered unit of the page being composed."""

    id: str
    order: int
    label: str
    role: Role = "section"
    mode: Mode = "none"
    design_ref: DesignRef | None = None
    reference_config: ReferenceConfig | None = None
    status: SectionStatus = dc.field(default_factory=Pending)

    @property
    def status_name(self) -> str:
        """Return the lifecycle state as a plain string."""
        return self.status.name

    @property
    def html(self) -> str:
        """Return the rendered markup, or an empty string when not done."""
        return self.status.html if isinstance(self.status, Done) else ""

    @property
    def code(self) -> str:
        """Return the source representation, or an empty string when not done."""
        return self.status.code if isinstance(self.status, Done) else ""

    @property
    def config(self) -> ReferenceConfig:
        """Return the reference configuration, falling back to defaults."""
        return self.reference_config or ReferenceConfig()

    @property
    def source_id(self) -> str | None:
        """Return the referenced design source id, if any."""
        if self.design_ref is None:
            return None
        return self.design_ref.source_id or None

    def with_status(self, status: SectionStatus) -> Section:
        """Return a copy of the section moved to ``status``.

        Raises
        ------
        InvalidTransitionError
            If the lifecycle does not allow moving from the current state.
        """
        allowed = _ALLOWED_TRANSITIONS[self.status.name]
        if status.name not in allowed:
            msg = (
                f"Section '{self.id}' cannot move from {self.status.name} "
                f"to {status.name}."
            )
            raise InvalidTransitionError(msg)
        return dc.replace(self, status=status)

    def edited(self, **changes: typ.Any) -> Section:  # noqa: ANN401
        """Return an edited copy; any previous render is discarded.

        Identity and ordering cannot be edited here, and skipped or in-flight
        sections are not editable.
        """
        forbidden = {"id", "order", "status"} & changes.keys()
        if forbidden:
            msg = f"Cannot edit {', '.join(sorted(forbidden))} on section '{self.id}'."
            raise InvalidTransitionError(msg)
        if isinstance(self.status, Skipped | Generating):
            msg = f"Section '{self.id}' is {self.status.name} and cannot be edited."
            raise InvalidTransitionError(msg)
        return dc.replace(self, status=Pending(), **changes)


def sort_sections(sections: cabc.Iterable[Section]) -> list[Section]:
    """Return ``sections`` ordered by their ``order`` value."""
    return sorted(sections, key=lambda section: section.order)


def validate_plan(sections: cabc.Sequence[Section]) -> None:
    """Check that ids are unique and orders are unique and contiguous.

    Raises
    ------
    ValueError
        If two sections share an id, or ``order`` values are not exactly
        ``0..n-1``.
    """
    ids = [section.id for section in sections]
    duplicates = sorted({value for value in ids if ids.count(value) > 1})
    if duplicates:
        msg = f"Duplicate section ids in plan: {', '.join(duplicates)}"
        raise ValueError(msg)
    orders = sorted(section.order for section in sections)
    if orders != list(range(len(sections))):
        msg = f"Section orders must be unique and contiguous from 0, got {orders}"
        raise ValueError(msg)


def normalize_role(value: object) -> Role:
    """Return a known role for ``value``; unknown roles map to ``other``."""
    text = str(value or "section").strip().lower()
    text = ROLE_ALIASES.get(text, text)
    if text in ROLES:
        return typ.cast("Role", text)
    return "other"


__all__ = [
    "CLONE_CONTENT_CHOICES",
    "CONTENT_MODES",
    "MODES",
    "ROLES",
    "STATUS_NAMES",
    "CloneContent",
    "ContentMode",
    "DesignRef",
    "Done",
    "Generating",
    "Mode",
    "Pending",
    "ReferenceConfig",
    "Role",
    "Section",
    "SectionStatus",
    "Skipped",
    "normalize_role",
    "sort_sections",
    "validate_plan",
]
