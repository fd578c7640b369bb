"""Application factory for the Gatekeeper Falcon ASGI application.

This module provides ``create_app()`` which builds the Falcon ASGI
application with health endpoints and, when pipeline dependencies are
supplied, the GitHub and Slack webhook endpoints.

Usage
-----
Create a health-only app (no credentials)::

    app = create_app()

Create the full webhook service::

    from gatekeeper.api.app import AppDependencies, create_app

    deps = AppDependencies(
        secrets=secrets,
        fanout=fanout,
        approvals=approvals,
        runner=runner,
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from gatekeeper.api.errors import (
    InvalidPayloadError,
    SignatureVerificationError,
    handle_invalid_payload,
    handle_signature_verification,
)
from gatekeeper.api.health.resources import HealthResource, ReadyResource
from gatekeeper.api.middleware import LifespanManager
from gatekeeper.api.webhooks import GitHubWebhookResource, SlackEventsResource
from gatekeeper.common.time import utcnow

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from gatekeeper.api.middleware import SupportsAclose
    from gatekeeper.config import WebhookSecrets
    from gatekeeper.observability import PipelineEventLogger
    from gatekeeper.pipeline.approvals import ApprovalStateMachine
    from gatekeeper.pipeline.notifications import NotificationFanout
    from gatekeeper.pipeline.tasks import BackgroundTaskRunner

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Collaborators for the webhook endpoints, built once per process.

    Attributes
    ----------
    secrets
        GitHub webhook secret and Slack signing secret.
    fanout
        Announcement and ledger fan-out for accepted pushes.
    approvals
        Reaction-driven approval state machine.
    runner
        Tracks work scheduled after each acknowledgement.
    event_logger
        Structured event sink shared with the pipeline.
    resources
        Outbound clients closed at shutdown.
    clock
        Receipt-time source for push deliveries.

    """

    secrets: WebhookSecrets
    fanout: NotificationFanout
    approvals: ApprovalStateMachine
    runner: BackgroundTaskRunner
    event_logger: PipelineEventLogger | None = None
    resources: tuple[SupportsAclose, ...] = ()
    clock: cabc.Callable[[], dt.datetime] = utcnow


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    When *dependencies* is given the app exposes ``POST /webhooks/github``
    and ``POST /slack/events`` and drains background work on shutdown.
    Otherwise only ``/health`` and ``/ready`` are registered.

    Parameters
    ----------
    dependencies
        Optional pipeline collaborators.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    if dependencies is not None:
        middleware.append(
            LifespanManager(dependencies.runner, dependencies.resources)
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready",
        ReadyResource(dependencies.runner if dependencies is not None else None),
    )

    if dependencies is not None:
        app.add_route(
            "/webhooks/github",
            GitHubWebhookResource(
                secret=dependencies.secrets.github_webhook_secret,
                fanout=dependencies.fanout,
                runner=dependencies.runner,
                event_logger=dependencies.event_logger,
                clock=dependencies.clock,
            ),
        )
        app.add_route(
            "/slack/events",
            SlackEventsResource(
                signing_secret=dependencies.secrets.slack_signing_secret,
                approvals=dependencies.approvals,
                runner=dependencies.runner,
            ),
        )

    app.add_error_handler(SignatureVerificationError, handle_signature_verification)
    app.add_error_handler(InvalidPayloadError, handle_invalid_payload)

    return app
