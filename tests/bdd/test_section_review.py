"""Behaviour tests for reviewing generated sections using pytest-bdd.

The scenarios cover the user-driven part of the lifecycle: skipping a
finished section, regenerating one, and retrying a section whose generation
failed. A recording service double stands in for the generation service.
"""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

import pytest
from conftest import StubGenerationService, failing
from pytest_bdd import given, scenarios, then, when

from section_composer.generation import GenerationResult, PageContext
from section_composer.library import InMemoryDesignLibrary
from section_composer.models import Section
from section_composer.scheduler import GenerationScheduler

if typ.TYPE_CHECKING:
    from section_composer.generation import GenericRequest

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "section_review.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


class FlakyService(StubGenerationService):
    """Service double that fails the first request for one label."""

    def __init__(self, label: str) -> None:
        super().__init__()
        self.flaky_label = label

    def generate_generic(self, request: GenericRequest) -> GenerationResult:
        if request.section_label == self.flaky_label and not any(
            r.section_label == self.flaky_label for r in self.generic
        ):
            self.generic.append(request)
            raise failing("upstream timeout")
        return super().generate_generic(request)


@pytest.fixture
def scenario_state() -> ScenarioState:
    """Share mutable scenario data across pytest-bdd steps."""
    return {}


def _scheduler(service: StubGenerationService) -> GenerationScheduler:
    plan = [
        Section(id="intro", order=0, label="Intro", role="hero"),
        Section(id="pricing", order=1, label="Pricing"),
        Section(id="footer", order=2, label="Footer", role="footer"),
    ]
    return GenerationScheduler(
        plan,
        library=InMemoryDesignLibrary(),
        service=service,
        page=PageContext(page_name="Landing"),
    )


@given("a three section plan that has been fully generated")
def given_generated_plan(scenario_state: ScenarioState) -> None:
    """Generate all three label-only sections."""
    scheduler = _scheduler(StubGenerationService())
    asyncio.run(scheduler.generate_all_pending())
    assert scheduler.all_settled(), "expected every section to finish"
    scenario_state["scheduler"] = scheduler


@given("a three section plan whose middle section fails once")
def given_flaky_plan(scenario_state: ScenarioState) -> None:
    """Build a plan whose middle section fails on its first request."""
    service = FlakyService("Pricing")
    scenario_state["service"] = service
    scenario_state["scheduler"] = _scheduler(service)


@when("I skip the middle section")
def when_skip(scenario_state: ScenarioState) -> None:
    """Skip the pricing section."""
    scenario_state["scheduler"].skip("pricing")


@when("I regenerate the middle section")
def when_regenerate(scenario_state: ScenarioState) -> None:
    """Reset the pricing section."""
    scenario_state["scheduler"].regenerate("pricing")


@when("I generate every pending section")
def when_generate_pending(scenario_state: ScenarioState) -> None:
    """Request every pending section concurrently."""
    asyncio.run(scenario_state["scheduler"].generate_all_pending())


@then("the assembled page contains only the first and last sections")
def then_first_and_last(scenario_state: ScenarioState) -> None:
    """The page joins intro and footer with nothing in between."""
    page = scenario_state["scheduler"].assemble()

    assert page.section_ids == ("intro", "footer"), (
        f"expected intro and footer only, got {page.section_ids!r}"
    )
    assert page.html == "<section>Intro #1</section><section>Footer #1</section>"


@then("the middle section is pending again")
def then_middle_pending(scenario_state: ScenarioState) -> None:
    """Regenerate drops the render."""
    pricing = scenario_state["scheduler"].get("pricing")

    assert pricing.status_name == "pending"
    assert pricing.html == ""


@then("every section is done")
def then_all_done(scenario_state: ScenarioState) -> None:
    """All three sections finished after the retry."""
    scheduler = typ.cast("GenerationScheduler", scenario_state["scheduler"])

    assert [s.status_name for s in scheduler.sections] == ["done", "done", "done"]
    assert scheduler.approved_count() == 3


@then("the middle section was requested twice")
def then_requested_twice(scenario_state: ScenarioState) -> None:
    """The retry re-sent pricing while siblings were requested once."""
    service = typ.cast("FlakyService", scenario_state["service"])
    labels = [r.section_label for r in service.generic]

    assert labels.count("Pricing") == 2, f"unexpected request log {labels!r}"
    assert labels.count("Intro") == 1
    assert labels.count("Footer") == 1
