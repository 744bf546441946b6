"""Utility helpers shared by the composition loader."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from section_composer.errors import CompositionConfigError
from section_composer.models import (
    CLONE_CONTENT_CHOICES,
    CONTENT_MODES,
    MODES,
    DesignRef,
    ReferenceConfig,
    Section,
    normalize_role,
)

_REFERENCE_DEFAULTS = ReferenceConfig()


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_path(value: object | None, base_dir: Path) -> Path | None:
    """Resolve ``value`` against ``base_dir`` unless it is already absolute."""
    text = _optional_str(value)
    if text is None:
        return None
    path = Path(text).expanduser()
    return path if path.is_absolute() else base_dir / path


def _choice(
    value: object | None, allowed: tuple[str, ...], field: str, default: str
) -> str:
    """Return ``value`` lower-cased when it is one of ``allowed``."""
    text = _optional_str(value)
    if text is None:
        return default
    lowered = text.lower()
    if lowered not in allowed:
        msg = f"'{field}' must be one of {', '.join(allowed)}; got '{text}'."
        raise CompositionConfigError(msg)
    return lowered


def _build_design_ref(payload: object, key: str) -> DesignRef | None:
    """Build a DesignRef from a mapping; ``None`` when no source is named."""
    if payload is None:
        return None
    if not isinstance(payload, typ.Mapping):
        msg = f"Section '{key}': 'design_ref' must be a mapping."
        raise CompositionConfigError(msg)
    source_id = _optional_str(payload.get("source_id") or payload.get("dna_id"))
    if source_id is None:
        return None
    raw_indices = payload.get("element_indices") or []
    if not isinstance(raw_indices, list):
        msg = f"Section '{key}': 'element_indices' must be a list of integers."
        raise CompositionConfigError(msg)
    try:
        indices = tuple(int(index) for index in raw_indices)
    except (TypeError, ValueError) as exc:
        msg = f"Section '{key}': 'element_indices' must be a list of integers."
        raise CompositionConfigError(msg) from exc
    return DesignRef(
        source_id=source_id,
        device_variant=_optional_str(
            payload.get("device_variant") or payload.get("device_frame")
        ),
        element_indices=indices,
    )


def _build_reference_config(payload: object, key: str) -> ReferenceConfig | None:
    """Merge a reference configuration mapping over the defaults."""
    if payload is None:
        return None
    if not isinstance(payload, typ.Mapping):
        msg = f"Section '{key}': 'reference_config' must be a mapping."
        raise CompositionConfigError(msg)
    base = _REFERENCE_DEFAULTS
    return ReferenceConfig(
        clone_content=typ.cast(
            "typ.Any",
            _choice(
                payload.get("clone_content"),
                CLONE_CONTENT_CHOICES,
                "clone_content",
                base.clone_content,
            ),
        ),
        inherit_colors=bool(payload.get("inherit_colors", base.inherit_colors)),
        inherit_fonts=bool(payload.get("inherit_fonts", base.inherit_fonts)),
        inherit_layout=bool(payload.get("inherit_layout", base.inherit_layout)),
        content_mode=typ.cast(
            "typ.Any",
            _choice(
                payload.get("content_mode"),
                CONTENT_MODES,
                "content_mode",
                base.content_mode,
            ),
        ),
        manual_content=str(payload.get("manual_content") or ""),
        custom_instructions=str(payload.get("custom_instructions") or ""),
    )


def _build_section(payload: object, position: int) -> Section:
    """Build a pending Section from one ``sections`` entry."""
    if not isinstance(payload, typ.Mapping):
        msg = f"Section entry {position} must be a mapping."
        raise CompositionConfigError(msg)
    key = _optional_str(payload.get("id")) or f"section-{position + 1}"
    label = _optional_str(payload.get("label")) or key.replace("-", " ").title()
    order = payload.get("order", position)
    if not isinstance(order, int) or isinstance(order, bool):
        msg = f"Section '{key}': 'order' must be an integer."
        raise CompositionConfigError(msg)
    return Section(
        id=key,
        order=order,
        label=label,
        role=normalize_role(payload.get("role")),
        mode=typ.cast("typ.Any", _choice(payload.get("mode"), MODES, "mode", "none")),
        design_ref=_build_design_ref(payload.get("design_ref"), key),
        reference_config=_build_reference_config(payload.get("reference_config"), key),
    )


__all__ = [
    "_build_design_ref",
    "_build_reference_config",
    "_build_section",
    "_choice",
    "_optional_str",
    "_resolve_path",
]
