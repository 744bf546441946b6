"""Behavioural tests for the concurrent generation scheduler."""

from __future__ import annotations

import asyncio

import pytest
from conftest import StubGenerationService, failing

from section_composer.errors import InvalidTransitionError
from section_composer.generation import PageContext
from section_composer.library import DesignSource, InMemoryDesignLibrary, MasterImage
from section_composer.models import DesignRef, Done, Generating, Section
from section_composer.scheduler import GenerationScheduler

PAGE = PageContext(page_name="Landing")


def _plan() -> list[Section]:
    return [
        Section(
            id="hero",
            order=0,
            label="Hero",
            role="hero",
            mode="clone",
            design_ref=DesignRef(source_id="s1", element_indices=(2,)),
        ),
        Section(id="features", order=1, label="Features"),
        Section(
            id="story",
            order=2,
            label="Story",
            mode="reference",
            design_ref=DesignRef(source_id="s1", element_indices=(3,)),
        ),
        Section(id="footer", order=3, label="Footer", role="footer"),
    ]


@pytest.fixture
def scheduler(
    library: InMemoryDesignLibrary, service: StubGenerationService
) -> GenerationScheduler:
    return GenerationScheduler(_plan(), library=library, service=service, page=PAGE)


def test_automatic_sections_render_without_service(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    outcomes = asyncio.run(scheduler.generate_automatic())

    assert [o.section_id for o in outcomes] == ["hero"], (
        f"expected only the verbatim crop to run automatically, got {outcomes!r}"
    )
    hero = scheduler.get("hero")
    assert hero.status_name == "done"
    assert "translateY(-10.00%)" in hero.html
    assert service.generic == [], "expected no generation request for crops"
    assert service.composed == []
    assert scheduler.pending_manual_ids() == ["features", "story", "footer"]


def test_bulk_generation_uses_snapshots_taken_at_start(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    asyncio.run(scheduler.generate_automatic())
    hero_html = scheduler.get("hero").html

    outcomes = asyncio.run(scheduler.generate_all_pending())

    assert {o.state for o in outcomes} == {"done"}, f"unexpected outcomes {outcomes!r}"
    by_label = {r.section_label: r for r in service.generic}
    assert by_label["Features"].previous_sections_html == hero_html
    assert by_label["Footer"].previous_sections_html == hero_html, (
        "expected concurrent siblings to be excluded from the context snapshot"
    )
    assert service.composed[0].previous_sections_html == hero_html
    assert scheduler.approved_count() == 4


def test_sequential_generation_sees_earlier_results(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    async def run() -> None:
        await scheduler.generate("features")
        await scheduler.generate("footer")

    asyncio.run(run())

    footer_request = service.generic[-1]
    assert footer_request.previous_sections_html == "<section>Features #1</section>", (
        f"expected the finished sibling in context, got {footer_request!r}"
    )


def test_context_snapshot_joins_lower_done_sections(
    library: InMemoryDesignLibrary, service: StubGenerationService
) -> None:
    plan = [
        Section(id="a", order=0, label="A", status=Done(html="<a/>")),
        Section(id="b", order=1, label="B", status=Done(html="<b/>")),
        Section(id="c", order=2, label="C"),
    ]
    scheduler = GenerationScheduler(plan, library=library, service=service, page=PAGE)

    assert scheduler.context_snapshot("c") == "<a/>\n<b/>"
    assert scheduler.context_snapshot("a") == ""


def test_failure_reverts_only_the_failing_section(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    service.failures["Story"] = failing("model overloaded")

    outcomes = asyncio.run(scheduler.generate_all_pending())

    states = {o.section_id: o.state for o in outcomes}
    assert states == {"features": "done", "story": "failed", "footer": "done"}, (
        f"expected sibling generations to survive a failure, got {states!r}"
    )
    assert scheduler.get("story").status_name == "pending"
    assert scheduler.last_error is not None
    assert "model overloaded" in scheduler.last_error
    assert scheduler.in_flight == frozenset()


def test_retry_after_failure_sends_identical_request(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    service.failures["Features"] = failing("timeout")
    first = asyncio.run(scheduler.generate("features"))
    del service.failures["Features"]
    second = asyncio.run(scheduler.generate("features"))

    assert (first.state, second.state) == ("failed", "done")
    assert service.generic[0] == service.generic[1], (
        "expected a retry with unchanged inputs to send the same request"
    )
    assert scheduler.get("features").html == "<section>Features #2</section>"


def test_lookup_failure_leaves_section_pending(
    library: InMemoryDesignLibrary, service: StubGenerationService
) -> None:
    plan = [
        Section(
            id="broken",
            order=0,
            label="Broken",
            mode="reference",
            design_ref=DesignRef(source_id="s1", element_indices=(40,)),
        )
    ]
    scheduler = GenerationScheduler(plan, library=library, service=service, page=PAGE)

    outcome = asyncio.run(scheduler.generate("broken"))

    assert outcome.state == "failed"
    assert "out of range" in (outcome.error or "")
    assert scheduler.get("broken").status_name == "pending"


def test_generating_state_tracks_in_flight_set(
    scheduler: GenerationScheduler,
) -> None:
    async def run() -> tuple[bool, str, bool, str]:
        task = scheduler.start("features")
        during = (scheduler.is_generating("features"), scheduler.get("features").status_name)
        await task
        return (
            *during,
            scheduler.is_generating("features"),
            scheduler.get("features").status_name,
        )

    assert asyncio.run(run()) == (True, "generating", False, "done")


def test_regenerate_while_generating_discards_stale_result(
    scheduler: GenerationScheduler,
) -> None:
    async def run() -> tuple[str, str]:
        stale = scheduler.start("features")
        scheduler.regenerate("features")
        fresh = scheduler.start("features")
        first, second = await asyncio.gather(stale, fresh)
        return first.state, second.state

    states = asyncio.run(run())

    assert states == ("discarded", "done"), f"unexpected outcome states {states!r}"
    features = scheduler.get("features")
    assert features.status_name == "done"
    assert features.html.startswith("<section>Features #")
    assert scheduler.in_flight == frozenset()


def test_regenerate_done_section_clears_output(scheduler: GenerationScheduler) -> None:
    asyncio.run(scheduler.generate("features"))

    section = scheduler.regenerate("features")

    assert section.status_name == "pending"
    assert section.html == ""
    assert scheduler.assemble().section_ids == ()


def test_start_rejects_non_pending_sections(scheduler: GenerationScheduler) -> None:
    asyncio.run(scheduler.generate("features"))

    async def run() -> None:
        scheduler.start("features")

    with pytest.raises(InvalidTransitionError):
        asyncio.run(run())


def test_skip_is_refused_while_in_flight(scheduler: GenerationScheduler) -> None:
    async def run() -> None:
        task = scheduler.start("footer")
        try:
            with pytest.raises(InvalidTransitionError):
                scheduler.skip("footer")
        finally:
            await task

    asyncio.run(run())
    assert scheduler.skip("footer").status_name == "skipped"


def test_edit_discards_output_and_returns_to_pending(
    scheduler: GenerationScheduler,
) -> None:
    asyncio.run(scheduler.generate("footer"))

    edited = scheduler.edit("footer", label="Contact")

    assert edited.status_name == "pending"
    assert scheduler.get("footer").label == "Contact"


def test_unexpected_errors_fail_only_their_section(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    service.failures["Features"] = ConnectionError("connection reset")
    service.delays["Footer"] = 0.05

    outcomes = asyncio.run(scheduler.generate_all_pending())

    states = {o.section_id: o.state for o in outcomes}
    assert states == {"features": "failed", "story": "done", "footer": "done"}, (
        f"expected a slow sibling to finish despite the error, got {states!r}"
    )
    assert scheduler.get("features").status_name == "pending"
    assert scheduler.get("footer").html == "<section>Footer #1</section>"
    assert "connection reset" in (scheduler.last_error or "")
    assert scheduler.in_flight == frozenset()


def test_cancelled_attempt_returns_to_pending(
    scheduler: GenerationScheduler, service: StubGenerationService
) -> None:
    service.delays["Features"] = 0.05

    async def run() -> None:
        task = scheduler.start("features")
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())

    assert scheduler.get("features").status_name == "pending", (
        "expected a cancelled attempt to release its section"
    )
    assert scheduler.in_flight == frozenset()
    assert asyncio.run(scheduler.generate("features")).state == "done"


@pytest.mark.parametrize(
    "section_ids",
    [["features", "footer", "features"], ["features", "hero-missing"]],
)
def test_generate_many_validates_before_starting(
    scheduler: GenerationScheduler,
    service: StubGenerationService,
    section_ids: list[str],
) -> None:
    with pytest.raises((InvalidTransitionError, KeyError)):
        asyncio.run(scheduler.generate_many(section_ids))

    assert service.generic == [], "expected no attempt to start for a rejected batch"
    assert scheduler.get("features").status_name == "pending"
    assert scheduler.in_flight == frozenset()


def test_generate_many_rejects_duplicate_ids(scheduler: GenerationScheduler) -> None:
    with pytest.raises(InvalidTransitionError, match="more than once"):
        asyncio.run(scheduler.generate_many(["footer", "footer"]))


def test_scheduler_rejects_invalid_plans(
    library: InMemoryDesignLibrary, service: StubGenerationService
) -> None:
    with pytest.raises(ValueError, match="contiguous"):
        GenerationScheduler(
            [Section(id="a", order=1, label="A")],
            library=library,
            service=service,
            page=PAGE,
        )
    with pytest.raises(InvalidTransitionError):
        GenerationScheduler(
            [Section(id="a", order=0, label="A", status=Generating(ticket=1))],
            library=library,
            service=service,
            page=PAGE,
        )


def test_assemble_after_full_run(scheduler: GenerationScheduler) -> None:
    async def run() -> None:
        await scheduler.generate_automatic()
        await scheduler.generate_all_pending()

    asyncio.run(run())
    scheduler.skip("story")
    page = scheduler.assemble()

    assert page.section_ids == ("hero", "features", "footer"), (
        f"expected skipped sections to be omitted, got {page.section_ids!r}"
    )
    assert scheduler.all_settled()
    assert page.html.endswith("<section>Footer #1</section>")


def test_unusable_master_image_falls_back_to_element_render(
    library: InMemoryDesignLibrary, service: StubGenerationService
) -> None:
    library.add(
        DesignSource(source_id="blank", elements=(), master_image=MasterImage(url=""))
    )
    plan = [
        Section(
            id="blank",
            order=0,
            label="Blank",
            mode="clone",
            design_ref=DesignRef(source_id="blank"),
        )
    ]
    scheduler = GenerationScheduler(plan, library=library, service=service, page=PAGE)

    outcome = asyncio.run(scheduler.generate("blank"))

    assert outcome.state == "done", f"expected the fallback render to finish, got {outcome!r}"
    assert [r.mode for r in service.generic] == ["clone"]
    assert scheduler.get("blank").html == "<section>Blank #1</section>"
