"""Unit tests for the generation service HTTP client."""

from __future__ import annotations

import typing as typ

import pytest
import requests

from section_composer.generation import (
    GenerationServiceClient,
    GenerationServiceError,
    GenericRequest,
    PageContext,
)

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

REQUEST = GenericRequest(
    elements=(),
    page=PageContext(page_name="Landing", api_key="sk-test"),
    section_label="Features",
    role="section",
    order=1,
    total_sections=3,
)


def _session(mocker: MockerFixture, status: int, body: object) -> typ.Any:  # noqa: ANN401
    session = mocker.Mock(spec=requests.Session)
    response = mocker.Mock()
    response.status_code = status
    response.text = str(body)
    response.json.return_value = body
    session.post.return_value = response
    return session


def test_client_posts_generic_request(mocker: MockerFixture) -> None:
    session = _session(
        mocker, 200, {"sectionHtml": "<section>F</section>", "sectionCode": "<F/>"}
    )
    client = GenerationServiceClient(
        api_base="http://gen.invalid/", token="secret", session=session, timeout=5
    )

    result = client.generate_generic(REQUEST)

    assert (result.html, result.code) == ("<section>F</section>", "<F/>")
    url = session.post.call_args.args[0]
    assert url == "http://gen.invalid/api/export/generate-section", (
        f"expected the generic endpoint, got {url!r}"
    )
    kwargs = session.post.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 5
    assert kwargs["json"]["apiKey"] == "sk-test"
    assert kwargs["json"]["fontMode"] == "google"


def test_code_falls_back_to_html(mocker: MockerFixture) -> None:
    session = _session(mocker, 200, {"html": "<section>F</section>"})
    client = GenerationServiceClient(session=session)

    result = client.generate_generic(REQUEST)

    assert result.code == "<section>F</section>", (
        f"expected code to mirror html when absent, got {result.code!r}"
    )


@pytest.mark.parametrize(
    ("status", "body", "fragment"),
    [
        (500, {"error": "model down"}, "status 500: model down"),
        (200, {"error": "quota"}, "quota"),
        (200, {"sectionHtml": "   "}, "empty markup"),
        (200, ["not", "an", "object"], "not an object"),
    ],
)
def test_client_surfaces_failures(
    mocker: MockerFixture, status: int, body: object, fragment: str
) -> None:
    client = GenerationServiceClient(session=_session(mocker, status, body))

    with pytest.raises(GenerationServiceError, match=fragment):
        client.generate_generic(REQUEST)


def test_client_wraps_transport_errors(mocker: MockerFixture) -> None:
    session = mocker.Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("refused")
    client = GenerationServiceClient(session=session)

    with pytest.raises(GenerationServiceError, match="Failed to reach"):
        client.generate_generic(REQUEST)


def test_client_rejects_invalid_json(mocker: MockerFixture) -> None:
    session = _session(mocker, 200, None)
    session.post.return_value.json.side_effect = ValueError("no json")
    client = GenerationServiceClient(session=session)

    with pytest.raises(GenerationServiceError, match="not valid JSON"):
        client.generate_generic(REQUEST)


def test_generic_payload_without_api_key_omits_it() -> None:
    request = GenericRequest(
        elements=(),
        page=PageContext(page_name="Landing"),
        section_label="Hero",
        role="hero",
        order=0,
        total_sections=1,
    )

    payload = request.to_payload()

    assert "apiKey" not in payload
    assert payload["pageTitle"] == "Landing"
    assert payload["dnaElements"] == [
        {"tagName": "section", "styles": {}, "textContent": "", "children": []}
    ]
