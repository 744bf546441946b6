"""Drive sections through generation concurrently on one event loop.

:class:`GenerationScheduler` is the single owner of a page plan. Generation
attempts run as independent ``asyncio`` tasks; the plan itself is only touched
from the event loop and always by replacing whole sections keyed by id.

Lifecycle handled here::

    pending -> generating -> done
                          -> pending   (failure, or regenerate while in flight)
    done    -> pending                 (regenerate or edit)
    pending | done -> skipped          (user skip)

When an attempt starts, the scheduler captures the HTML of every lower-order
``done`` section. That snapshot travels with the attempt, so siblings that
finish later never change a request that is already in flight. Each attempt
also carries a ticket; results from superseded tickets are dropped.

Example
-------
>>> import asyncio
>>> scheduler = GenerationScheduler(plan, library=lib, service=svc, page=page)  # doctest: +SKIP
>>> asyncio.run(scheduler.generate_all_pending())  # doctest: +SKIP
[GenerationOutcome(section_id='hero', state='done', error=None), ...]
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import itertools
import logging
import typing as typ

from ._constants import CONTEXT_SEPARATOR
from .assembler import AssembledPage, assemble
from .crop import CropRenderer
from .errors import InvalidTransitionError, SectionLookupError
from .generation.client import GenerationServiceError
from .models import Done, Generating, Pending, Skipped, sort_sections, validate_plan
from .strategy import (
    SelectionContext,
    execute_strategy,
    is_automatic,
    select_strategy,
    strategy_name,
)

if typ.TYPE_CHECKING:
    from .generation.payloads import GenerationResult, GenerationService, PageContext
    from .library import DesignLibrary
    from .models import Section
    from .strategy import Strategy

logger = logging.getLogger(__name__)

OutcomeState = typ.Literal["done", "failed", "discarded"]


@dc.dataclass(frozen=True, slots=True)
class GenerationOutcome:
    """Result of one generation attempt.

    ``discarded`` means the attempt finished after the section had already
    moved on (regenerated or edited), so its result was dropped.
    """

    section_id: str
    state: OutcomeState
    error: str | None = None


class GenerationScheduler:
    """Own a section plan and run generation attempts against it."""

    def __init__(
        self,
        sections: cabc.Iterable[Section],
        *,
        library: DesignLibrary,
        service: GenerationService,
        page: PageContext,
        renderer: CropRenderer | None = None,
    ) -> None:
        """Initialise the scheduler with a validated plan.

        Parameters
        ----------
        sections : Iterable[Section]
            Page plan; ids must be unique and orders contiguous from zero.
        library : DesignLibrary
            Lookup used to resolve design references.
        service : GenerationService
            Collaborator used by network-backed strategies. Calls are blocking
            and run in worker threads.
        page : PageContext
            Page-wide values sent with every request.
        renderer : CropRenderer, optional
            Renderer for verbatim crops; a default renderer is built when
            omitted.

        Raises
        ------
        ValueError
            If the plan violates the id or ordering invariants.
        """
        plan = sort_sections(sections)
        validate_plan(plan)
        for section in plan:
            if not isinstance(section.status, Pending | Done | Skipped):
                msg = f"Section '{section.id}' cannot enter a plan while generating."
                raise InvalidTransitionError(msg)
        self._sections: dict[str, Section] = {section.id: section for section in plan}
        self._in_flight: set[str] = set()
        self._tasks: dict[str, asyncio.Task[GenerationOutcome]] = {}
        self._tickets = itertools.count(1)
        self.library = library
        self.service = service
        self.page = page
        self.renderer = renderer or CropRenderer()
        self.last_error: str | None = None

    @property
    def sections(self) -> list[Section]:
        """Return the current plan in display order."""
        return sort_sections(self._sections.values())

    @property
    def in_flight(self) -> frozenset[str]:
        """Return the ids of sections with an attempt in flight."""
        return frozenset(self._in_flight)

    def get(self, section_id: str) -> Section:
        """Return the current value of the section with ``section_id``."""
        try:
            return self._sections[section_id]
        except KeyError as exc:
            msg = f"Unknown section '{section_id}'."
            raise KeyError(msg) from exc

    def is_generating(self, section_id: str) -> bool:
        """Return ``True`` while an attempt for ``section_id`` is in flight."""
        return section_id in self._in_flight

    def is_automatic(self, section_id: str) -> bool:
        """Return ``True`` when the section renders as a local crop."""
        return is_automatic(self.get(section_id), self.library)

    def context_snapshot(self, section_id: str) -> str:
        """Return the HTML of finished sections that precede ``section_id``."""
        target = self.get(section_id)
        return CONTEXT_SEPARATOR.join(
            section.html
            for section in self.sections
            if section.order < target.order and isinstance(section.status, Done)
        )

    def start(self, section_id: str) -> asyncio.Task[GenerationOutcome]:
        """Begin generating ``section_id`` and return the running task.

        Must be called from a running event loop. The context snapshot and the
        section value the strategy is selected from are fixed here, before the
        task first runs.

        Raises
        ------
        InvalidTransitionError
            If the section is not pending.
        """
        section = self._require_pending(section_id)
        ticket = next(self._tickets)
        context = SelectionContext(
            page=self.page,
            total_sections=len(self._sections),
            previous_sections_html=self.context_snapshot(section_id),
        )
        self._replace(section.with_status(Generating(ticket=ticket)))
        self._in_flight.add(section_id)
        self.last_error = None
        logger.info("Generating section %s (order %d)", section_id, section.order)
        task = asyncio.get_running_loop().create_task(
            self._run(section, context, ticket), name=f"generate-{section_id}"
        )
        self._tasks[section_id] = task
        return task

    async def generate(self, section_id: str) -> GenerationOutcome:
        """Generate one section and wait for the outcome."""
        return await self.start(section_id)

    async def generate_many(
        self, section_ids: cabc.Iterable[str]
    ) -> list[GenerationOutcome]:
        """Start every section in ``section_ids`` and wait for all outcomes.

        Every id is checked before the first attempt starts, so a rejected
        batch leaves the plan untouched.

        Raises
        ------
        InvalidTransitionError
            If an id is listed twice or names a section that is not pending.
        KeyError
            If an id names no section.
        """
        ids = list(section_ids)
        seen: set[str] = set()
        for section_id in ids:
            if section_id in seen:
                msg = f"Section '{section_id}' is listed more than once."
                raise InvalidTransitionError(msg)
            seen.add(section_id)
            self._require_pending(section_id)
        if not ids:
            return []
        tasks = [self.start(section_id) for section_id in ids]
        return list(await asyncio.gather(*tasks))

    async def generate_automatic(self) -> list[GenerationOutcome]:
        """Generate every pending section rendered by a local crop."""
        return await self.generate_many(
            section.id
            for section in self.sections
            if isinstance(section.status, Pending) and self.is_automatic(section.id)
        )

    async def generate_all_pending(self) -> list[GenerationOutcome]:
        """Generate every pending section that is not automatic, concurrently."""
        return await self.generate_many(self.pending_manual_ids())

    def pending_manual_ids(self) -> list[str]:
        """Return ids of pending sections that need an explicit request."""
        return [
            section.id
            for section in self.sections
            if isinstance(section.status, Pending) and not self.is_automatic(section.id)
        ]

    async def wait_idle(self) -> None:
        """Wait until no attempt is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()))

    def regenerate(self, section_id: str) -> Section:
        """Discard the section's render (or in-flight attempt) and reset it.

        Returns
        -------
        Section
            The section, now pending with empty output.
        """
        section = self.get(section_id)
        if isinstance(section.status, Pending):
            return section
        updated = section.with_status(Pending())
        self._in_flight.discard(section_id)
        self._tasks.pop(section_id, None)
        self.last_error = None
        return self._replace(updated)

    def skip(self, section_id: str) -> Section:
        """Mark the section as skipped; its render is dropped."""
        section = self.get(section_id)
        if section_id in self._in_flight:
            msg = f"Section '{section_id}' is generating and cannot be skipped."
            raise InvalidTransitionError(msg)
        return self._replace(section.with_status(Skipped()))

    def edit(self, section_id: str, **changes: typ.Any) -> Section:  # noqa: ANN401
        """Replace editable fields; the section returns to pending."""
        return self._replace(self.get(section_id).edited(**changes))

    def assemble(self) -> AssembledPage:
        """Assemble the current plan."""
        return assemble(self._sections.values())

    def all_settled(self) -> bool:
        """Return ``True`` when every section is done or skipped."""
        return all(
            isinstance(section.status, Done | Skipped)
            for section in self._sections.values()
        )

    def approved_count(self) -> int:
        """Return the number of finished sections."""
        return sum(isinstance(s.status, Done) for s in self._sections.values())

    async def _run(
        self, section: Section, context: SelectionContext, ticket: int
    ) -> GenerationOutcome:
        try:
            strategy = select_strategy(section, self.library, context)
            result = await self._execute(strategy)
        except (SectionLookupError, GenerationServiceError) as exc:
            return self._fail(section.id, ticket, str(exc))
        except asyncio.CancelledError:
            self._abandon(section.id, ticket)
            raise
        except Exception as exc:
            logger.exception("Unexpected error generating section %s", section.id)
            return self._fail(section.id, ticket, f"Unexpected error: {exc}")
        return self._succeed(section.id, ticket, result)

    async def _execute(self, strategy: Strategy) -> GenerationResult:
        logger.debug("Running %s strategy", strategy_name(strategy))
        return await asyncio.to_thread(
            execute_strategy, strategy, self.service, renderer=self.renderer
        )

    def _succeed(
        self, section_id: str, ticket: int, result: GenerationResult
    ) -> GenerationOutcome:
        if not self._owns(section_id, ticket):
            logger.debug("Discarding stale result for section %s", section_id)
            return GenerationOutcome(section_id, "discarded")
        try:
            done = Done(html=result.html, code=result.code)
        except ValueError as exc:
            return self._fail(section_id, ticket, f"{section_id}: {exc}")
        self._replace(self._sections[section_id].with_status(done))
        self._release(section_id)
        logger.info("Section %s generated", section_id)
        return GenerationOutcome(section_id, "done")

    def _fail(self, section_id: str, ticket: int, message: str) -> GenerationOutcome:
        if not self._owns(section_id, ticket):
            logger.debug("Discarding stale failure for section %s", section_id)
            return GenerationOutcome(section_id, "discarded", message)
        self._replace(self._sections[section_id].with_status(Pending()))
        self._release(section_id)
        self.last_error = message
        logger.warning("Section %s failed: %s", section_id, message)
        return GenerationOutcome(section_id, "failed", message)

    def _abandon(self, section_id: str, ticket: int) -> None:
        if not self._owns(section_id, ticket):
            return
        self._replace(self._sections[section_id].with_status(Pending()))
        self._release(section_id)
        logger.info("Generation of section %s was cancelled", section_id)

    def _require_pending(self, section_id: str) -> Section:
        section = self.get(section_id)
        if not isinstance(section.status, Pending):
            msg = (
                f"Section '{section_id}' is {section.status_name}; only pending "
                "sections can be generated."
            )
            raise InvalidTransitionError(msg)
        return section

    def _owns(self, section_id: str, ticket: int) -> bool:
        current = self._sections.get(section_id)
        if current is None:
            return False
        status = current.status
        return isinstance(status, Generating) and status.ticket == ticket

    def _release(self, section_id: str) -> None:
        self._in_flight.discard(section_id)
        self._tasks.pop(section_id, None)

    def _replace(self, section: Section) -> Section:
        self._sections[section.id] = section
        return section


__all__ = ["GenerationOutcome", "GenerationScheduler", "OutcomeState"]
