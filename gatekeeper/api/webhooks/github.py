"""GitHub push webhook resource.

The handler is two-phase. Synchronously it verifies the signature over the
raw body, decodes the push and derives the deployment event, then answers
GitHub. The Slack announcement and ledger entry are produced afterwards by
a tracked background task, so a slow downstream never delays the ack.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from gatekeeper.api.errors import InvalidPayloadError, SignatureVerificationError
from gatekeeper.common.time import utcnow
from gatekeeper.deployments.models import PushPayload
from gatekeeper.deployments.routing import branch_from_ref, build_deployment_event
from gatekeeper.observability import PipelineEventLogger
from gatekeeper.security import verify_github_signature

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from falcon.asgi import Request, Response

    from gatekeeper.pipeline.notifications import NotificationFanout
    from gatekeeper.pipeline.tasks import BackgroundTaskRunner

__all__ = ["GitHubWebhookResource"]

_PUSH_EVENT = "push"


class GitHubWebhookResource:
    """Accept ``push`` deliveries and schedule the announcement fan-out.

    Parameters
    ----------
    secret
        Shared webhook secret used for ``X-Hub-Signature-256``.
    fanout
        Announcement and ledger fan-out run after the ack.
    runner
        Background task runner owning the fan-out task.
    event_logger
        Structured event sink.
    clock
        Receipt-time source; injectable for deterministic identifiers.

    """

    def __init__(
        self,
        *,
        secret: str,
        fanout: NotificationFanout,
        runner: BackgroundTaskRunner,
        event_logger: PipelineEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Store collaborators."""
        self._secret = secret
        self._fanout = fanout
        self._runner = runner
        self._events = event_logger or PipelineEventLogger()
        self._clock = clock

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /webhooks/github."""
        body = await req.stream.read()
        if not verify_github_signature(
            body, self._secret, req.get_header("X-Hub-Signature-256")
        ):
            raise SignatureVerificationError("github")

        event_name = req.get_header("X-GitHub-Event")
        if event_name != _PUSH_EVENT:
            self._events.log_push_ignored(
                ref="-", reason=f"unhandled event {event_name!r}"
            )
            resp.media = {"status": "ignored", "reason": "not a push event"}
            resp.status = HTTPStatus.OK
            return

        try:
            payload = msgspec.json.decode(body, type=PushPayload)
        except msgspec.DecodeError as exc:
            raise InvalidPayloadError(str(exc)) from exc

        event = build_deployment_event(
            payload,
            delivery_id=req.get_header("X-GitHub-Delivery"),
            now=self._clock(),
        )
        if event is None:
            reason = "push has no commits" if payload.commits else "untracked branch"
            self._events.log_push_ignored(ref=payload.ref, reason=reason)
            resp.media = {
                "status": "ignored",
                "reason": reason,
                "branch": branch_from_ref(payload.ref),
            }
            resp.status = HTTPStatus.OK
            return

        self._events.log_push_received(
            deployment_id=event.deployment_id,
            branch=event.branch,
            repository=event.repository,
            delivery_id=event.delivery_id,
        )
        resp.media = {
            "status": "received",
            "deployment_id": event.deployment_id,
            "branch": event.branch,
        }
        resp.status = HTTPStatus.OK
        self._runner.spawn(
            self._fanout.announce(event),
            name="announce",
            correlation_id=event.deployment_id,
        )
