"""Load design sources from YAML or JSON exports into typed dataclasses."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from ruamel.yaml import YAML

from section_composer._constants import DEFAULT_IMAGE_URL_PREFIX
from section_composer.errors import CompositionConfigError

from .models import (
    BoundingBox,
    DesignElement,
    DesignSource,
    DeviceVariant,
    MasterImage,
)

if typ.TYPE_CHECKING:
    from pathlib import Path


class DesignLibrary(typ.Protocol):
    """Lookup contract for the design library collaborator."""

    def get_source(self, source_id: str) -> DesignSource | None:
        """Return the source identified by ``source_id`` or ``None``."""
        ...


class InMemoryDesignLibrary:
    """Design library backed by a dictionary of already parsed sources."""

    def __init__(self, sources: cabc.Iterable[DesignSource] = ()) -> None:
        self._sources = {source.source_id: source for source in sources}

    def get_source(self, source_id: str) -> DesignSource | None:
        """Return the source identified by ``source_id`` or ``None``."""
        return self._sources.get(source_id)

    def add(self, source: DesignSource) -> None:
        """Register ``source``, replacing any source with the same id."""
        self._sources[source.source_id] = source

    def __iter__(self) -> cabc.Iterator[DesignSource]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)


def load_design_library(
    path: Path, *, image_url_prefix: str = DEFAULT_IMAGE_URL_PREFIX
) -> InMemoryDesignLibrary:
    """Load a design library export from ``path``.

    Parameters
    ----------
    path : Path
        YAML or JSON file whose top-level ``sources`` entry is either a
        mapping keyed by source id or a list of sources carrying an ``id``.
    image_url_prefix : str, optional
        Prefix joined to master image ``filename`` values when no explicit
        ``url`` is recorded. Defaults to ``/api/images/``.

    Returns
    -------
    InMemoryDesignLibrary
        Library containing every parsed source.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    CompositionConfigError
        If the export is not a mapping or a source entry is malformed.
    """
    if not path.exists():
        msg = f"Design library '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level design library structure must be a mapping."
        raise CompositionConfigError(msg)

    sources_raw = loaded.get("sources") or {}
    entries: list[tuple[str, cabc.Mapping[str, typ.Any]]] = []
    match sources_raw:
        case dict():
            entries = [(str(key), value or {}) for key, value in sources_raw.items()]
        case list():
            for item in sources_raw:
                if not isinstance(item, dict) or not item.get("id"):
                    msg = "Design sources listed as a sequence must carry an 'id'."
                    raise CompositionConfigError(msg)
                entries.append((str(item["id"]), item))
        case _:
            msg = "'sources' must be a mapping or a list."
            raise CompositionConfigError(msg)

    return InMemoryDesignLibrary(
        _build_source(source_id, payload, image_url_prefix)
        for source_id, payload in entries
    )


def _pick(payload: cabc.Mapping[str, typ.Any], *keys: str) -> typ.Any:  # noqa: ANN401
    """Return the first present value among ``keys`` (snake or camel case)."""
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _build_source(
    source_id: str, payload: cabc.Mapping[str, typ.Any], image_url_prefix: str
) -> DesignSource:
    if not isinstance(payload, cabc.Mapping):
        msg = f"Design source '{source_id}' must be a mapping."
        raise CompositionConfigError(msg)
    variants_raw = _pick(payload, "variants", "device_frames", "deviceFrames") or {}
    variants: dict[str, DeviceVariant] = {}
    for device, variant_payload in variants_raw.items():
        if not isinstance(variant_payload, cabc.Mapping):
            continue
        variants[str(device)] = DeviceVariant(
            elements=_build_elements(variant_payload.get("elements"), source_id),
            master_image=_build_master_image(
                _pick(variant_payload, "master_image", "masterImage"),
                image_url_prefix,
            ),
        )
    return DesignSource(
        source_id=source_id,
        name=str(payload.get("name") or source_id),
        elements=_build_elements(payload.get("elements"), source_id),
        master_image=_build_master_image(
            _pick(payload, "master_image", "masterImage"), image_url_prefix
        ),
        variants=variants,
    )


def _build_elements(raw: object, source_id: str) -> tuple[DesignElement, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"Elements of design source '{source_id}' must be a list."
        raise CompositionConfigError(msg)
    return tuple(_build_element(item, source_id) for item in raw)


def _build_element(raw: object, source_id: str) -> DesignElement:
    if not isinstance(raw, cabc.Mapping):
        msg = f"Element entries of design source '{source_id}' must be mappings."
        raise CompositionConfigError(msg)
    styles_raw = raw.get("styles") or {}
    styles = {
        str(group): {str(name): str(value) for name, value in (values or {}).items()}
        for group, values in styles_raw.items()
        if isinstance(values, cabc.Mapping) or values is None
    }
    return DesignElement(
        tag_name=str(_pick(raw, "tag_name", "tagName") or "div").lower(),
        bounding_box=_build_box(_pick(raw, "bounding_box", "boundingBox")),
        styles=styles,
        text_content=str(_pick(raw, "text_content", "textContent") or ""),
        children=_build_elements(raw.get("children"), source_id),
    )


def _build_box(raw: object) -> BoundingBox | None:
    if not isinstance(raw, cabc.Mapping):
        return None
    try:
        return BoundingBox(
            x=float(raw.get("x", 0) or 0),
            y=float(raw.get("y", 0) or 0),
            width=float(raw.get("width", 0) or 0),
            height=float(raw.get("height", 0) or 0),
        )
    except (TypeError, ValueError):
        return None


def _build_master_image(raw: object, image_url_prefix: str) -> MasterImage | None:
    if not isinstance(raw, cabc.Mapping):
        return None
    url = raw.get("url")
    filename = raw.get("filename")
    if not url and filename:
        url = f"{image_url_prefix.rstrip('/')}/{str(filename).lstrip('/')}"
    if not url:
        return None
    return MasterImage(
        url=str(url),
        width=int(raw.get("width", 0) or 0),
        height=int(raw.get("height", 0) or 0),
    )


__all__ = ["DesignLibrary", "InMemoryDesignLibrary", "load_design_library"]
