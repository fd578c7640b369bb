"""Slack Events API resource.

Every request is signature-checked. ``url_verification`` handshakes are
answered inline by echoing the challenge; ``reaction_added`` callbacks are
acknowledged immediately and handed to the approval state machine in a
background task. Other event types are acknowledged and dropped.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon
import msgspec

from gatekeeper.api.errors import InvalidPayloadError, SignatureVerificationError
from gatekeeper.deployments.models import ReactionEvent, SlackEnvelope
from gatekeeper.logging import get_logger, log_debug
from gatekeeper.security import verify_slack_signature

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gatekeeper.pipeline.approvals import ApprovalStateMachine
    from gatekeeper.pipeline.tasks import BackgroundTaskRunner

__all__ = ["SlackEventsResource"]

logger = get_logger(__name__)

_URL_VERIFICATION = "url_verification"
_EVENT_CALLBACK = "event_callback"
_REACTION_ADDED = "reaction_added"


class SlackEventsResource:
    """Acknowledge Slack events and route reactions to the approvals flow.

    Parameters
    ----------
    signing_secret
        Slack app signing secret.
    approvals
        State machine that handles ``reaction_added`` events.
    runner
        Background task runner owning the reaction task.

    """

    def __init__(
        self,
        *,
        signing_secret: str,
        approvals: ApprovalStateMachine,
        runner: BackgroundTaskRunner,
    ) -> None:
        """Store collaborators."""
        self._signing_secret = signing_secret
        self._approvals = approvals
        self._runner = runner

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST /slack/events."""
        body = await req.stream.read()
        if not verify_slack_signature(
            body,
            self._signing_secret,
            req.get_header("X-Slack-Request-Timestamp"),
            req.get_header("X-Slack-Signature"),
        ):
            raise SignatureVerificationError("slack")

        try:
            envelope = msgspec.json.decode(body, type=SlackEnvelope)
        except msgspec.DecodeError as exc:
            raise InvalidPayloadError(str(exc)) from exc

        if envelope.type == _URL_VERIFICATION:
            if envelope.challenge is None:
                msg = "url_verification without challenge"
                raise InvalidPayloadError(msg)
            resp.content_type = falcon.MEDIA_TEXT
            resp.text = envelope.challenge
            resp.status = HTTPStatus.OK
            return

        resp.media = {"ok": True}
        resp.status = HTTPStatus.OK

        event = envelope.event
        if (
            envelope.type != _EVENT_CALLBACK
            or event is None
            or event.type != _REACTION_ADDED
        ):
            log_debug(
                logger,
                "[slack] acknowledged %s event without processing",
                event.type if event is not None else envelope.type,
            )
            return

        reaction = ReactionEvent.from_slack(event)
        self._runner.spawn(
            self._approvals.handle_reaction(reaction),
            name="reaction",
            correlation_id=f"{reaction.channel}/{reaction.message_ts}",
        )
