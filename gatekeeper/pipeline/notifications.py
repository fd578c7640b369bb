"""Announcement fan-out for a newly pushed deployment.

Publishing the Slack announcement and creating the ledger entry run
concurrently and independently: each branch catches its own failure, so
neither can cancel or block the other. A failed announcement is reported
to the INCIDENTS channel on a best-effort basis; a failed ledger write only
degrades the pipeline to "no durable record".
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from gatekeeper.deployments.models import Environment, NotificationRecord
from gatekeeper.deployments.routing import route_branch, status_label
from gatekeeper.logging import get_logger, log_warning
from gatekeeper.observability import PipelineEventLogger

if typ.TYPE_CHECKING:
    from gatekeeper.chat import ChatClient
    from gatekeeper.config import ChannelMap
    from gatekeeper.deployments.models import DeploymentEvent
    from gatekeeper.ledger import DeploymentLedger

__all__ = [
    "FanoutResult",
    "NotificationFanout",
    "render_announcement",
    "render_incident_notice",
    "render_next_steps_hint",
]

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class FanoutResult:
    """What the fan-out achieved for one deployment."""

    notification: NotificationRecord
    ledger_page_id: str | None


def render_announcement(event: DeploymentEvent) -> str:
    """Render the announcement posted to the environment channel."""
    return (
        f"{status_label(event.branch)} - {event.deployment_id}\n"
        "\n"
        f"Repository: {event.repository}\n"
        f"Branch: {event.branch}\n"
        f"Commit: <{event.commit_url}|{event.commit_sha}> - {event.commit_message}\n"
        f"Author: {event.commit_author}\n"
        f"Triggered: {event.triggered_at}"
    )


def render_incident_notice(event: DeploymentEvent, error: BaseException) -> str:
    """Render the INCIDENTS message sent when an announcement fails."""
    return (
        ":x: Failed to send deployment notification for "
        f"{event.deployment_id}\n\nError: {error}\n\nBranch: {event.branch}"
    )


def render_next_steps_hint(event: DeploymentEvent) -> str:
    """Render the thread reply telling reviewers how to decide."""
    return (
        ":bulb: React to the message above to decide this deployment:\n"
        "• :white_check_mark: or :+1: approves and starts the deploy\n"
        "• :x: or :-1: rejects it\n"
        f"\nDeployment ID: `{event.deployment_id}`"
    )


class NotificationFanout:
    """Announce a deployment and record it, failure-isolated.

    Parameters
    ----------
    chat
        Chat client used for the announcement, incident notice and hint.
    channels
        Environment to channel mapping.
    ledger
        Ledger client, or ``None`` when the ledger is not configured.
    event_logger
        Structured event sink.

    """

    def __init__(
        self,
        chat: ChatClient,
        channels: ChannelMap,
        *,
        ledger: DeploymentLedger | None = None,
        event_logger: PipelineEventLogger | None = None,
    ) -> None:
        """Store collaborators."""
        self._chat = chat
        self._channels = channels
        self._ledger = ledger
        self._events = event_logger or PipelineEventLogger()

    async def announce(self, event: DeploymentEvent) -> FanoutResult:
        """Publish and record ``event`` concurrently, then post the hint."""
        notification, page_id = await asyncio.gather(
            self._publish(event),
            self._record(event),
        )
        if notification.delivered and notification.thread_ts is not None:
            await self._post_hint(event, notification)
        return FanoutResult(notification=notification, ledger_page_id=page_id)

    async def _publish(self, event: DeploymentEvent) -> NotificationRecord:
        channel = self._channels.resolve(route_branch(event.branch))
        try:
            if not channel:
                msg = f"no Slack channel configured for branch {event.branch!r}"
                raise LookupError(msg)  # noqa: TRY301 - same incident path as API errors
            thread_ts = await self._chat.post_message(
                channel, render_announcement(event)
            )
        except Exception as exc:  # noqa: BLE001 - announcement failure is degraded, not fatal
            self._events.log_announcement_failed(
                deployment_id=event.deployment_id, channel=channel, error=exc
            )
            await self._notify_incidents(event, exc)
            return NotificationRecord(
                channel=channel, thread_ts=None, delivered=False, error=str(exc)
            )

        self._events.log_announcement_published(
            deployment_id=event.deployment_id, channel=channel, thread_ts=thread_ts
        )
        return NotificationRecord(channel=channel, thread_ts=thread_ts, delivered=True)

    async def _notify_incidents(
        self, event: DeploymentEvent, error: BaseException
    ) -> None:
        incidents = self._channels.resolve(Environment.INCIDENTS)
        try:
            await self._chat.post_message(incidents, render_incident_notice(event, error))
        except Exception as exc:  # noqa: BLE001 - best effort only
            self._events.log_incident_notice_failed(
                deployment_id=event.deployment_id, error=exc
            )

    async def _record(self, event: DeploymentEvent) -> str | None:
        if self._ledger is None:
            self._events.log_ledger_skipped(
                deployment_id=event.deployment_id, reason="ledger not configured"
            )
            return None
        try:
            page_id = await self._ledger.create_entry(event)
        except Exception as exc:  # noqa: BLE001 - pipeline continues without a record
            self._events.log_ledger_failed(
                deployment_id=event.deployment_id, operation="create", error=exc
            )
            return None

        self._events.log_ledger_created(
            deployment_id=event.deployment_id, page_id=page_id
        )
        return page_id

    async def _post_hint(
        self, event: DeploymentEvent, notification: NotificationRecord
    ) -> None:
        try:
            await self._chat.post_message(
                notification.channel,
                render_next_steps_hint(event),
                thread_ts=notification.thread_ts,
            )
        except Exception as exc:  # noqa: BLE001 - hint is cosmetic
            log_warning(
                logger,
                "[notifications] deployment_id=%s failed to post next-steps hint: %s",
                event.deployment_id,
                exc,
            )
