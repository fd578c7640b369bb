"""Behavioural coverage for the gatekeeper runtime service."""

from __future__ import annotations

import json
import typing as typ

import falcon.testing
import pytest
from pytest_bdd import given, parsers, scenario, then, when

from tests.helpers.webhooks import GITHUB_SECRET, SLACK_SECRET, slack_headers

if typ.TYPE_CHECKING:
    from falcon.testing.client import Result


class RuntimeContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    client: falcon.testing.TestClient
    response: Result


@scenario("../runtime.feature", "Health endpoint returns ok status")
def test_health_endpoint_returns_ok() -> None:
    """Wrap the pytest-bdd scenario for health endpoint."""


@scenario("../runtime.feature", "Unsigned GitHub deliveries are rejected")
def test_unsigned_github_delivery_rejected() -> None:
    """Wrap the pytest-bdd scenario for signature rejection."""


@scenario("../runtime.feature", "Slack URL verification echoes the challenge")
def test_slack_url_verification() -> None:
    """Wrap the pytest-bdd scenario for the Slack handshake."""


@pytest.fixture
def runtime_context(monkeypatch: pytest.MonkeyPatch) -> RuntimeContext:
    """Provision a test client for the runtime app built from the environment."""
    from gatekeeper.runtime import create_app

    for name in (
        "GATEKEEPER_NOTION_TOKEN",
        "GATEKEEPER_NOTION_DATABASE_ID",
        "GATEKEEPER_GITHUB_TOKEN",
        "GATEKEEPER_GITHUB_REPO",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GATEKEEPER_GITHUB_WEBHOOK_SECRET", GITHUB_SECRET)
    monkeypatch.setenv("GATEKEEPER_SLACK_SIGNING_SECRET", SLACK_SECRET)
    monkeypatch.setenv("GATEKEEPER_SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setenv("GATEKEEPER_SLACK_INCIDENTS_CHANNEL_ID", "C-INC")

    return {"client": falcon.testing.TestClient(create_app())}


@given("a running gatekeeper runtime app")
def given_running_app(runtime_context: RuntimeContext) -> None:
    """Ensure the runtime app is available via the test client."""
    assert "client" in runtime_context, "client should be set by fixture"


@when(parsers.parse("I request GET {path}"))
def when_request_get(runtime_context: RuntimeContext, path: str) -> None:
    """Issue a GET request to the given path."""
    runtime_context["response"] = runtime_context["client"].simulate_get(path)


@when(parsers.parse("I POST an unsigned body to {path}"))
def when_post_unsigned(runtime_context: RuntimeContext, path: str) -> None:
    """POST a body without signature headers."""
    runtime_context["response"] = runtime_context["client"].simulate_post(
        path, body=b'{"ref": "refs/heads/main"}', headers={"X-GitHub-Event": "push"}
    )


@when(
    parsers.parse('Slack sends a signed url_verification with challenge "{challenge}"')
)
def when_slack_handshake(runtime_context: RuntimeContext, challenge: str) -> None:
    """POST a signed Slack handshake."""
    body = json.dumps({"type": "url_verification", "challenge": challenge}).encode()
    runtime_context["response"] = runtime_context["client"].simulate_post(
        "/slack/events", body=body, headers=slack_headers(body)
    )


@then(parsers.parse("the response status is {status:d}"))
def then_response_status(runtime_context: RuntimeContext, status: int) -> None:
    """Assert the HTTP response status code."""
    response = runtime_context["response"]
    assert response.status_code == status, (
        f"expected status {status}, got {response.status_code}"
    )


@then(parsers.parse('the response body is {{"status": "{expected_status}"}}'))
def then_response_body_status(
    runtime_context: RuntimeContext, expected_status: str
) -> None:
    """Assert the response JSON body contains the expected status."""
    assert runtime_context["response"].json == {"status": expected_status}


@then(parsers.parse('the response text is "{text}"'))
def then_response_text(runtime_context: RuntimeContext, text: str) -> None:
    """Assert the plain-text response body."""
    assert runtime_context["response"].text == text
