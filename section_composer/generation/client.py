r"""HTTP client for the section generation service.

This module wraps the two endpoints the composer calls: the composed endpoint,
which reinterprets resolved source elements under a reference configuration,
and the generic endpoint, which renders a section from its label (or, for
sources without a master image, from raw elements tagged ``clone``). Responses
are normalised into :class:`GenerationResult` values and every failure surfaces
as :class:`GenerationServiceError` with a single readable message.

Example
-------
>>> from section_composer.generation import GenerationServiceClient
>>> client = GenerationServiceClient(api_base="http://localhost:3001")  # doctest: +SKIP
>>> result = client.generate_generic(request)  # doctest: +SKIP
>>> result.html[:9]  # doctest: +SKIP
'<section '
"""

from __future__ import annotations

import json
import typing as typ
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from section_composer._constants import COMPOSED_ENDPOINT, GENERIC_ENDPOINT

from .payloads import GenerationResult

if typ.TYPE_CHECKING:
    from .payloads import ComposedRequest, GenericRequest

DEFAULT_API_BASE = "http://localhost:3001"


class GenerationServiceError(RuntimeError):
    """Raised when the generation service fails or returns unusable markup."""


class GenerationServiceClient:
    """Thin wrapper around the generation service endpoints.

    The client centralises authentication, timeouts and error handling. Both
    endpoints are safe to retry because identical requests yield equivalent
    markup, so transient gateway errors are retried by the transport adapter.
    """

    default_api_base = DEFAULT_API_BASE

    def __init__(
        self,
        *,
        api_base: str = DEFAULT_API_BASE,
        token: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 120.0,
    ) -> None:
        """Initialise the client with optional authentication and transport.

        Parameters
        ----------
        api_base : str, optional
            Base URL of the service. Defaults to ``DEFAULT_API_BASE``.
        token : str | None, optional
            Bearer token sent in the ``Authorization`` header when provided.
        session : requests.Session, optional
            Preconfigured session to reuse connections. Defaults to a new
            session with a retrying adapter mounted.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``120.0``.
        """
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session or _build_session()
        self.timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "section-composer/0.1",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def generate_composed(self, request: ComposedRequest) -> GenerationResult:
        """Generate a section that reinterprets a design reference."""
        return self._post(COMPOSED_ENDPOINT, request.to_payload(), request.section_label)

    def generate_generic(self, request: GenericRequest) -> GenerationResult:
        """Generate a section from a label or from raw clone elements."""
        return self._post(GENERIC_ENDPOINT, request.to_payload(), request.section_label)

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    def _post(
        self, endpoint: str, payload: dict[str, typ.Any], label: str
    ) -> GenerationResult:
        url = f"{self._api_base}{endpoint}"
        try:
            response = self._session.post(
                url, json=payload, headers=self._headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach the generation service for '{label}': {exc}"
            raise GenerationServiceError(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            msg = (
                f"Generating '{label}' failed with status {response.status_code}: "
                f"{_error_detail(response)}"
            )
            raise GenerationServiceError(msg)

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Generation service response for '{label}' was not valid JSON"
            raise GenerationServiceError(msg) from exc
        if not isinstance(body, dict):
            msg = f"Generation service response for '{label}' was not an object"
            raise GenerationServiceError(msg)
        if body.get("error"):
            msg = f"Generating '{label}' failed: {body['error']}"
            raise GenerationServiceError(msg)

        result = GenerationResult.from_payload(body)
        if not result.html.strip():
            msg = f"Generation service returned empty markup for '{label}'"
            raise GenerationServiceError(msg)
        return result


def _build_session() -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=2,
        connect=2,
        read=0,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=("POST",),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _error_detail(response: requests.Response) -> str:
    """Return the service's ``error`` field or a short body snippet."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text[:200]


__all__ = ["DEFAULT_API_BASE", "GenerationServiceClient", "GenerationServiceError"]
