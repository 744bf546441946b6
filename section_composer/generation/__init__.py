"""Generation service contract, payloads, and HTTP client."""

from .client import GenerationServiceClient, GenerationServiceError
from .payloads import (
    ComposedRequest,
    GenerationResult,
    GenerationService,
    GenericRequest,
    PageContext,
)

__all__ = [
    "ComposedRequest",
    "GenerationResult",
    "GenerationService",
    "GenerationServiceClient",
    "GenerationServiceError",
    "GenericRequest",
    "PageContext",
]
