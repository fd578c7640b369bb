"""Derive deployment events and destinations from push metadata.

Only three branch families are deployable: ``feature/*`` goes to DEV,
``develop`` to QA and ``main`` to PROD. Every other branch is ignored at
the webhook, and :func:`route_branch` sends anything that slips through to
INCIDENTS, so routing never yields nothing.
"""

from __future__ import annotations

import typing as typ

from gatekeeper.common.time import epoch_millis, isoformat_z, utcnow
from gatekeeper.deployments.identifier import encode_deployment_id
from gatekeeper.deployments.models import DeploymentEvent, Environment

if typ.TYPE_CHECKING:
    import datetime as dt

    from gatekeeper.deployments.models import PushPayload

__all__ = [
    "BRANCH_REF_PREFIX",
    "FEATURE_BRANCH_PREFIX",
    "branch_from_ref",
    "build_deployment_event",
    "is_deployment_branch",
    "route_branch",
    "status_label",
]

BRANCH_REF_PREFIX = "refs/heads/"
FEATURE_BRANCH_PREFIX = "feature/"
_SHORT_SHA_LENGTH = 7

_EXACT_BRANCHES: dict[str, Environment] = {
    "develop": Environment.QA,
    "main": Environment.PROD,
}


def branch_from_ref(ref: str) -> str:
    """Strip the ``refs/heads/`` prefix from a Git ref."""
    return ref.removeprefix(BRANCH_REF_PREFIX)


def is_deployment_branch(branch: str) -> bool:
    """Return True for ``feature/*``, ``develop`` and ``main``."""
    return branch.startswith(FEATURE_BRANCH_PREFIX) or branch in _EXACT_BRANCHES


def route_branch(branch: str) -> Environment:
    """Map any branch name to exactly one environment.

    >>> route_branch("feature/x"), route_branch("hotfix")
    (<Environment.DEV: 'DEV'>, <Environment.INCIDENTS: 'INCIDENTS'>)

    """
    if branch.startswith(FEATURE_BRANCH_PREFIX):
        return Environment.DEV
    return _EXACT_BRANCHES.get(branch, Environment.INCIDENTS)


def status_label(branch: str) -> str:
    """Return the headline used in the announcement for ``branch``."""
    environment = route_branch(branch)
    if environment is Environment.INCIDENTS:
        return "deployment pending"
    return f"{environment} deployment pending"


def _first_line(message: str) -> str:
    return message.split("\n", 1)[0].strip()


def build_deployment_event(
    payload: PushPayload,
    *,
    delivery_id: str | None = None,
    now: dt.datetime | None = None,
) -> DeploymentEvent | None:
    """Build the event for a push, or ``None`` when it is not deployable.

    The newest commit (last in the list) represents the push. The
    identifier embeds the receipt time in epoch milliseconds, so replaying
    the same delivery yields a new identifier.

    Parameters
    ----------
    payload
        Decoded push body.
    delivery_id
        ``X-GitHub-Delivery`` header value, if present.
    now
        Receipt time; defaults to the current UTC time.

    Returns
    -------
    DeploymentEvent | None
        ``None`` when the branch is untracked or the push has no commits.

    """
    branch = branch_from_ref(payload.ref)
    if not is_deployment_branch(branch) or not payload.commits:
        return None

    received_at = now or utcnow()
    latest = payload.commits[-1]
    return DeploymentEvent(
        repository=payload.repository.full_name,
        branch=branch,
        commit_sha=latest.id[:_SHORT_SHA_LENGTH],
        commit_message=_first_line(latest.message),
        commit_author=latest.author.name,
        pusher=payload.pusher.name,
        deployment_id=encode_deployment_id(branch, epoch_millis(received_at)),
        triggered_at=isoformat_z(received_at),
        delivery_id=delivery_id,
    )
