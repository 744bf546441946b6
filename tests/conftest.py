"""Shared fixtures for the section composer test-suite."""

from __future__ import annotations

import threading
import time
import typing as typ

import pytest

from section_composer.generation import GenerationResult, GenerationServiceError
from section_composer.library import (
    BoundingBox,
    DesignElement,
    DesignSource,
    DeviceVariant,
    InMemoryDesignLibrary,
    MasterImage,
)

if typ.TYPE_CHECKING:
    from section_composer.generation import ComposedRequest, GenericRequest


def element(
    y: float,
    height: float,
    *,
    width: float = 1000.0,
    tag: str = "div",
    styles: dict[str, dict[str, str]] | None = None,
) -> DesignElement:
    """Return a design element spanning ``y .. y + height``."""
    return DesignElement(
        tag_name=tag,
        bounding_box=BoundingBox(x=0.0, y=y, width=width, height=height),
        styles=styles or {},
    )


class StubGenerationService:
    """Thread-safe generation service double that records every request.

    ``failures`` maps a section label to the exception raised for it and
    ``delays`` to seconds slept before answering. Markup is derived from the
    label so callers can tell results apart.
    """

    def __init__(self) -> None:
        self.composed: list[ComposedRequest] = []
        self.generic: list[GenericRequest] = []
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls_by_label: dict[str, int] = {}
        self._lock = threading.Lock()

    def generate_composed(self, request: ComposedRequest) -> GenerationResult:
        with self._lock:
            self.composed.append(request)
        return self._respond(request.section_label)

    def generate_generic(self, request: GenericRequest) -> GenerationResult:
        with self._lock:
            self.generic.append(request)
        return self._respond(request.section_label)

    def _respond(self, label: str) -> GenerationResult:
        with self._lock:
            count = self.calls_by_label.get(label, 0) + 1
            self.calls_by_label[label] = count
            failure = self.failures.get(label)
            delay = self.delays.get(label, 0.0)
        if delay:
            time.sleep(delay)
        if failure is not None:
            raise failure
        html = f"<section>{label} #{count}</section>"
        return GenerationResult(html=html, code=html)


@pytest.fixture
def service() -> StubGenerationService:
    """Return a fresh recording generation service."""
    return StubGenerationService()


@pytest.fixture
def library() -> InMemoryDesignLibrary:
    """Return a library with one imaged source and one source without image.

    ``s1`` has a small header element first and a larger page wrapper second,
    so its root box is not the first element. ``s2`` has no master image.
    ``s1`` also carries an ``sp`` device variant.
    """
    s1_elements = (
        element(0.0, 100.0, width=300.0, tag="header"),
        element(0.0, 2000.0, tag="main"),
        element(200.0, 300.0, tag="section"),
        element(600.0, 200.0, tag="section"),
    )
    s1 = DesignSource(
        source_id="s1",
        name="Landing capture",
        elements=s1_elements,
        master_image=MasterImage(url="/api/images/s1.png", width=1000, height=2000),
        variants={
            "sp": DeviceVariant(
                elements=(element(0.0, 1600.0, width=400.0),),
                master_image=MasterImage(url="/api/images/s1-sp.png"),
            )
        },
    )
    s2 = DesignSource(
        source_id="s2",
        name="No image capture",
        elements=(element(0.0, 800.0), element(100.0, 200.0)),
    )
    return InMemoryDesignLibrary([s1, s2])


def failing(message: str) -> GenerationServiceError:
    """Return the service error a stub should raise."""
    return GenerationServiceError(message)
