"""Derive a shared stylesheet from the design sources a plan references."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

if typ.TYPE_CHECKING:
    from .library import DesignLibrary
    from .library.models import DesignElement
    from .models import Section

TRANSPARENT = "rgba(0, 0, 0, 0)"
DEFAULT_FONT_STACK = "'Noto Sans JP', sans-serif"


def collect_palette(
    sections: cabc.Iterable[Section], library: DesignLibrary
) -> list[str]:
    """Return CSS custom property declarations for the referenced sources.

    Background colours, ``rgb`` text colours and font families are collected
    in plan order; each distinct value is declared once. Colour properties are
    numbered by the running count of distinct values seen so far.
    """
    rules: list[str] = []
    seen: set[str] = set()
    for section in sections:
        ref = section.design_ref
        if ref is None or not ref.source_id:
            continue
        source = library.get_source(ref.source_id)
        if source is None:
            continue
        for element in source.variant(ref.device_variant).elements:
            rules.extend(_element_rules(element, seen))
    return rules


def _element_rules(element: DesignElement, seen: set[str]) -> list[str]:
    rules: list[str] = []
    background = element.style("visual", "backgroundColor")
    if background and background != TRANSPARENT and background not in seen:
        seen.add(background)
        rules.append(f"  --src-bg-{len(seen)}: {background};")
    color = element.style("typography", "color")
    if color and color.startswith("rgb") and color not in seen:
        seen.add(color)
        rules.append(f"  --src-text-{len(seen)}: {color};")
    font = element.style("typography", "fontFamily")
    if font and f"font:{font}" not in seen:
        seen.add(f"font:{font}")
        rules.append(f"  --src-font: {font}, sans-serif;")
    return rules


def build_palette_css(sections: cabc.Iterable[Section], library: DesignLibrary) -> str:
    """Return a ``:root`` block plus a section font rule, or ``""``."""
    rules = collect_palette(sections, library)
    if not rules:
        return ""
    body = "\n".join(rules)
    return (
        f":root {{\n{body}\n}}\n"
        f"section {{ font-family: var(--src-font, {DEFAULT_FONT_STACK}); }}"
    )


__all__ = ["build_palette_css", "collect_palette"]
