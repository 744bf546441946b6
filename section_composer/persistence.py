"""Persist assembled pages as composition projects.

Two implementations of :class:`PersistenceService` are provided:

- :class:`ProjectStore` keeps every project in one JSON file, encoded and
  decoded with ``msgspec``. It also supports listing, updating and deleting
  projects so saved compositions can be reopened.
- :class:`HttpProjectClient` posts the project to the composition server's
  ``save-project`` endpoint.

Example
-------
>>> from pathlib import Path
>>> from section_composer.persistence import ProjectStore
>>> store = ProjectStore(Path("data/composition-projects.json"))  # doctest: +SKIP
>>> [summary.page_name for summary in store.list_summaries()]  # doctest: +SKIP
['Landing']
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ
import uuid
from http import HTTPStatus

import msgspec
import requests

from ._constants import DEFAULT_IMAGE_MODE, DEFAULT_MODEL, SAVE_PROJECT_ENDPOINT

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .models import Section


class ProjectStoreError(RuntimeError):
    """Raised when a project cannot be stored or the store cannot be read."""


@dc.dataclass(slots=True)
class SectionRecord:
    """Serializable snapshot of a section at save time."""

    id: str
    order: int
    label: str
    role: str
    mode: str
    status: str
    html: str = ""
    code: str = ""
    design_ref: dict[str, typ.Any] | None = None
    reference_config: dict[str, typ.Any] | None = None


@dc.dataclass(slots=True)
class ProjectRecord:
    """A stored composition project."""

    page_name: str
    sections: list[SectionRecord] = dc.field(default_factory=list)
    final_html: str = ""
    final_code: str = ""
    optimized_html: str | None = None
    model: str = DEFAULT_MODEL
    image_mode: str = DEFAULT_IMAGE_MODE
    id: str = ""
    created_at: str = ""
    updated_at: str = ""


@dc.dataclass(slots=True)
class ProjectSummary:
    """Lightweight listing entry without section bodies or markup."""

    id: str
    page_name: str
    model: str
    image_mode: str
    created_at: str
    updated_at: str


class PersistenceService(typ.Protocol):
    """Contract of the persistence collaborator."""

    def save(self, record: ProjectRecord) -> str:
        """Store ``record`` and return its project id."""
        ...


def section_to_record(section: Section) -> SectionRecord:
    """Return a serializable snapshot of ``section``."""
    design_ref = None
    if section.design_ref is not None:
        design_ref = {
            "source_id": section.design_ref.source_id,
            "device_variant": section.design_ref.device_variant,
            "element_indices": list(section.design_ref.element_indices),
        }
    reference_config = (
        dc.asdict(section.reference_config) if section.reference_config else None
    )
    return SectionRecord(
        id=section.id,
        order=section.order,
        label=section.label,
        role=section.role,
        mode=section.mode,
        status=section.status_name,
        html=section.html,
        code=section.code,
        design_ref=design_ref,
        reference_config=reference_config,
    )


def _now() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


class ProjectStore:
    """File-backed project store using a single JSON document."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._decoder = msgspec.json.Decoder(list[ProjectRecord])
        self._encoder = msgspec.json.Encoder()

    def save(self, record: ProjectRecord) -> str:
        """Append ``record`` with a fresh id and timestamps; return the id."""
        projects = self._read()
        stamp = _now()
        stored = dc.replace(
            record, id=str(uuid.uuid4()), created_at=stamp, updated_at=stamp
        )
        projects.append(stored)
        self._write(projects)
        return stored.id

    def get(self, project_id: str) -> ProjectRecord | None:
        """Return the project with ``project_id`` or ``None``."""
        return next((p for p in self._read() if p.id == project_id), None)

    def list_summaries(self) -> list[ProjectSummary]:
        """Return every project without its sections and markup."""
        return [
            ProjectSummary(
                id=p.id,
                page_name=p.page_name,
                model=p.model,
                image_mode=p.image_mode,
                created_at=p.created_at,
                updated_at=p.updated_at,
            )
            for p in self._read()
        ]

    def update(self, project_id: str, **changes: typ.Any) -> ProjectRecord | None:  # noqa: ANN401
        """Apply ``changes`` to a stored project and bump ``updated_at``."""
        if {"id", "created_at"} & changes.keys():
            msg = "Project id and creation time cannot be changed."
            raise ProjectStoreError(msg)
        projects = self._read()
        for index, project in enumerate(projects):
            if project.id == project_id:
                projects[index] = dc.replace(project, **changes, updated_at=_now())
                self._write(projects)
                return projects[index]
        return None

    def delete(self, project_id: str) -> bool:
        """Remove a stored project; return ``False`` when it does not exist."""
        projects = self._read()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self._write(remaining)
        return True

    def _read(self) -> list[ProjectRecord]:
        if not self.path.exists():
            return []
        try:
            return self._decoder.decode(self.path.read_bytes())
        except msgspec.DecodeError as exc:
            msg = f"Project store '{self.path}' is not valid: {exc}"
            raise ProjectStoreError(msg) from exc

    def _write(self, projects: list[ProjectRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = msgspec.json.format(self._encoder.encode(projects), indent=2)
        self.path.write_bytes(payload)


class HttpProjectClient:
    """Persistence service that posts projects to the composition server."""

    def __init__(
        self,
        *,
        api_base: str,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_base = api_base.rstrip("/")
        self._session = session or requests.Session()
        self.timeout = timeout
        self._headers = {"Content-Type": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def save(self, record: ProjectRecord) -> str:
        """Post ``record`` and return the server-assigned project id."""
        payload = {
            "pageName": record.page_name,
            "aiModel": record.model,
            "imageMode": record.image_mode,
            "sections": msgspec.to_builtins(record.sections),
            "finalHtml": record.final_html,
            "finalCode": record.final_code,
            "optimizedHtml": record.optimized_html,
        }
        url = f"{self._api_base}{SAVE_PROJECT_ENDPOINT}"
        try:
            response = self._session.post(
                url, json=payload, headers=self._headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach the project service: {exc}"
            raise ProjectStoreError(msg) from exc
        if response.status_code >= HTTPStatus.BAD_REQUEST:
            msg = f"Saving '{record.page_name}' failed with status {response.status_code}"
            raise ProjectStoreError(msg)
        try:
            body = response.json()
        except ValueError as exc:
            msg = "Project service response was not valid JSON"
            raise ProjectStoreError(msg) from exc
        project_id = body.get("projectId") if isinstance(body, dict) else None
        if not project_id:
            msg = "Project service did not return a project id"
            raise ProjectStoreError(msg)
        return str(project_id)


__all__ = [
    "HttpProjectClient",
    "PersistenceService",
    "ProjectRecord",
    "ProjectStore",
    "ProjectStoreError",
    "ProjectSummary",
    "SectionRecord",
    "section_to_record",
]
