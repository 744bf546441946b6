"""Typed dataclasses describing captured design sources."""

from __future__ import annotations

import dataclasses as dc
import typing as typ


@dc.dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in source pixel coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        """Return the box area, treating negative extents as empty."""
        return max(self.width, 0.0) * max(self.height, 0.0)

    @property
    def bottom(self) -> float:
        """Return the y coordinate of the lower edge."""
        return self.y + self.height


@dc.dataclass(frozen=True, slots=True)
class VerticalSpan:
    """Vertical extent of a selection, expressed as top and bottom edges."""

    min_y: float
    max_y: float

    @classmethod
    def of(cls, box: BoundingBox) -> VerticalSpan:
        """Return the vertical span covered by ``box``."""
        return cls(min_y=box.y, max_y=box.bottom)


@dc.dataclass(frozen=True, slots=True)
class DesignElement:
    """One captured element of a design source.

    Attributes
    ----------
    tag_name : str
        Lower-case HTML tag recorded at capture time.
    bounding_box : BoundingBox or None
        Position of the element; ``None`` when the capture did not record one.
    styles : dict[str, dict[str, str]]
        Computed styles grouped as ``visual``, ``typography`` and ``layout``.
    text_content : str
        Visible text captured for the element.
    children : tuple[DesignElement, ...]
        Nested elements, in document order.
    """

    tag_name: str = "div"
    bounding_box: BoundingBox | None = None
    styles: dict[str, dict[str, str]] = dc.field(default_factory=dict)
    text_content: str = ""
    children: tuple[DesignElement, ...] = ()

    def style(self, group: str, name: str) -> str | None:
        """Return a single style value from ``group`` or ``None``."""
        value = self.styles.get(group, {}).get(name)
        return value or None

    def to_payload(self) -> dict[str, typ.Any]:
        """Serialize the element using the camelCase keys of the capture format."""
        payload: dict[str, typ.Any] = {
            "tagName": self.tag_name,
            "styles": {group: dict(values) for group, values in self.styles.items()},
            "textContent": self.text_content,
            "children": [child.to_payload() for child in self.children],
        }
        if self.bounding_box is not None:
            payload["boundingBox"] = {
                "x": self.bounding_box.x,
                "y": self.bounding_box.y,
                "width": self.bounding_box.width,
                "height": self.bounding_box.height,
            }
        return payload


@dc.dataclass(frozen=True, slots=True)
class MasterImage:
    """High-fidelity raster snapshot of a source."""

    url: str
    width: int = 0
    height: int = 0


@dc.dataclass(frozen=True, slots=True)
class DeviceVariant:
    """Device-specific capture (for example ``pc`` or ``sp``) of a source."""

    elements: tuple[DesignElement, ...]
    master_image: MasterImage | None = None


@dc.dataclass(frozen=True, slots=True)
class DesignSource:
    """A captured design sample available to the composer."""

    source_id: str
    elements: tuple[DesignElement, ...]
    name: str = ""
    master_image: MasterImage | None = None
    variants: dict[str, DeviceVariant] = dc.field(default_factory=dict)

    def variant(self, device: str | None) -> DeviceVariant:
        """Return the named device variant, falling back to the base capture."""
        if device and device in self.variants:
            return self.variants[device]
        return DeviceVariant(elements=self.elements, master_image=self.master_image)


__all__ = [
    "BoundingBox",
    "DesignElement",
    "DesignSource",
    "DeviceVariant",
    "MasterImage",
    "VerticalSpan",
]
