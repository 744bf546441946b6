"""Exception types raised by the composition pipeline.

Every failure here is local to one section: the scheduler converts lookup and
generation failures into a message and a ``pending`` section, and downgrades
master-image precondition failures to the fallback renderer. None of these
errors is meant to stop a whole plan.
"""

from __future__ import annotations


class SectionLookupError(LookupError):
    """Raised when a design source or an element selection cannot be resolved."""


class MasterImageUnavailableError(RuntimeError):
    """Raised when a verbatim crop is attempted without a usable master image."""


class InvalidTransitionError(ValueError):
    """Raised when a section is asked to move to a state it cannot reach."""


class CompositionConfigError(ValueError):
    """Raised when a composition or design library file is invalid."""


__all__ = [
    "CompositionConfigError",
    "InvalidTransitionError",
    "MasterImageUnavailableError",
    "SectionLookupError",
]
