"""Shared fixtures and steps for the deployment pipeline scenarios.

Every delivery runs through ``falcon.testing.ASGIConductor`` inside its own
event loop and drains the background runner before returning, so ``then``
steps observe the finished side effects.
"""

from __future__ import annotations

import asyncio
import typing as typ

import falcon.testing
import pytest
from pytest_bdd import given, parsers, then, when

from gatekeeper.api.app import create_app
from gatekeeper.deployments import LedgerStatus
from gatekeeper.dispatch import DispatchAPIError
from tests.helpers.fakes import RecordingDispatcher
from tests.helpers.pipeline import Pipeline, build_pipeline
from tests.helpers.webhooks import (
    encode,
    github_headers,
    push_payload,
    reaction_envelope,
    slack_headers,
)

if typ.TYPE_CHECKING:
    from falcon.testing.client import Result


class DeploymentContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    pipeline: Pipeline
    response: Result
    deployment_id: str
    announcement_channel: str
    announcement_ts: str


def run_async[T](coro: typ.Coroutine[typ.Any, typ.Any, T]) -> T:
    """Run async coroutines in sync BDD step functions."""
    return asyncio.run(coro)


async def _post(
    pipeline: Pipeline, path: str, body: bytes, headers: dict[str, str]
) -> Result:
    async with falcon.testing.ASGIConductor(create_app(pipeline.deps)) as conductor:
        result = await conductor.simulate_post(path, body=body, headers=headers)
        await pipeline.deps.runner.drain()
    return result


@pytest.fixture
def deployment_context() -> DeploymentContext:
    """Provide empty scenario state."""
    return {}


@given("a gatekeeper service with CI dispatch configured")
def given_service_with_dispatch(deployment_context: DeploymentContext) -> None:
    """Wire the pipeline with a working dispatcher."""
    deployment_context["pipeline"] = build_pipeline()


@given("a gatekeeper service without CI dispatch")
def given_service_without_dispatch(deployment_context: DeploymentContext) -> None:
    """Wire the pipeline with dispatch unconfigured."""
    deployment_context["pipeline"] = build_pipeline(with_dispatch=False)


@given("a gatekeeper service whose CI dispatch fails")
def given_service_with_failing_dispatch(
    deployment_context: DeploymentContext,
) -> None:
    """Wire the pipeline with a dispatcher that errors."""
    dispatcher = RecordingDispatcher(
        error=DispatchAPIError.http_error(404, "workflow not found")
    )
    deployment_context["pipeline"] = build_pipeline(dispatcher=dispatcher)


def _deliver_push(deployment_context: DeploymentContext, branch: str) -> None:
    pipeline = deployment_context["pipeline"]
    body = encode(push_payload(ref=f"refs/heads/{branch}"))
    response = run_async(
        _post(pipeline, "/webhooks/github", body, github_headers(body))
    )
    deployment_context["response"] = response
    if response.json.get("status") != "received":
        return
    deployment_context["deployment_id"] = response.json["deployment_id"]
    announcement = pipeline.chat.top_level()[0]
    deployment_context["announcement_channel"] = announcement.channel
    deployment_context["announcement_ts"] = announcement.ts


@given(parsers.parse('GitHub has delivered a signed push to "{branch}"'))
def given_push_delivered(deployment_context: DeploymentContext, branch: str) -> None:
    """Deliver a push and record the resulting announcement."""
    _deliver_push(deployment_context, branch)
    assert "announcement_ts" in deployment_context, "push should be announced"


@when(parsers.parse('GitHub delivers a signed push to "{branch}"'))
def when_push_delivered(deployment_context: DeploymentContext, branch: str) -> None:
    """Deliver a push to the GitHub webhook."""
    _deliver_push(deployment_context, branch)


@when(parsers.parse('"{user}" reacts with "{reaction}" to the announcement'))
def when_user_reacts(
    deployment_context: DeploymentContext, user: str, reaction: str
) -> None:
    """Deliver a signed ``reaction_added`` callback for the announcement."""
    body = encode(
        reaction_envelope(
            reaction=reaction,
            channel=deployment_context["announcement_channel"],
            ts=deployment_context["announcement_ts"],
            user=user,
        )
    )
    deployment_context["response"] = run_async(
        _post(
            deployment_context["pipeline"], "/slack/events", body, slack_headers(body)
        )
    )


@then(parsers.parse('the webhook is acknowledged with status "{status}"'))
def then_acknowledged(deployment_context: DeploymentContext, status: str) -> None:
    """Assert the webhook's JSON acknowledgement."""
    response = deployment_context["response"]
    assert response.status_code == 200
    assert response.json["status"] == status


@then(parsers.parse('the announcement is posted to channel "{channel}"'))
def then_announced_in(deployment_context: DeploymentContext, channel: str) -> None:
    """Assert the announcement went to ``channel`` and names the deployment."""
    [announcement] = deployment_context["pipeline"].chat.top_level()
    assert announcement.channel == channel
    assert deployment_context["deployment_id"] in announcement.text


@then(parsers.parse('the ledger records the deployment as "{status}"'))
def then_ledger_status(deployment_context: DeploymentContext, status: str) -> None:
    """Assert the ledger entry's current status."""
    ledger = deployment_context["pipeline"].ledger
    assert ledger.entries[deployment_context["deployment_id"]] is LedgerStatus(status)


@then(parsers.parse('the thread says "{text}"'))
def then_thread_says(deployment_context: DeploymentContext, text: str) -> None:
    """Assert some reply in the announcement thread contains ``text``."""
    replies = deployment_context["pipeline"].chat.replies(
        deployment_context["announcement_ts"]
    )
    assert any(text in reply for reply in replies), f"{text!r} not in {replies!r}"


@then(parsers.parse('the thread quotes the command "{command}"'))
def then_thread_quotes(deployment_context: DeploymentContext, command: str) -> None:
    """Assert the manual command appears as a code block."""
    replies = deployment_context["pipeline"].chat.replies(
        deployment_context["announcement_ts"]
    )
    assert any(f"```\n{command}\n```" in reply for reply in replies)


@then(parsers.parse('the deploy workflow is dispatched once approved by "{approver}"'))
def then_dispatched_once(deployment_context: DeploymentContext, approver: str) -> None:
    """Assert exactly one dispatch for this deployment."""
    dispatcher = deployment_context["pipeline"].dispatcher
    assert dispatcher is not None
    assert dispatcher.calls == [(deployment_context["deployment_id"], approver)]


@then("no deploy workflow is dispatched")
def then_not_dispatched(deployment_context: DeploymentContext) -> None:
    """Assert the dispatcher was never called."""
    dispatcher = deployment_context["pipeline"].dispatcher
    assert dispatcher is not None
    assert dispatcher.calls == []


@then("nothing is posted to chat")
def then_nothing_posted(deployment_context: DeploymentContext) -> None:
    """Assert the chat client received no messages."""
    assert deployment_context["pipeline"].chat.posts == []
