"""Builders for pipeline records."""

from __future__ import annotations

from gatekeeper.deployments import DeploymentEvent, encode_deployment_id
from tests.helpers.webhooks import FIXED_MILLIS


def deployment_event(
    branch: str = "main", *, millis: int = FIXED_MILLIS
) -> DeploymentEvent:
    """Return the event a push to ``branch`` would produce."""
    return DeploymentEvent(
        repository="octo/reef",
        branch=branch,
        commit_sha="abc1234",
        commit_message="Fix login redirect",
        commit_author="Ada Lovelace",
        pusher="ada",
        deployment_id=encode_deployment_id(branch, millis),
        triggered_at="2024-01-01T00:00:00.000Z",
    )
