"""Typed models for deployment events, announcements, and reactions.

Inbound webhook bodies are decoded into ``msgspec`` structs so payload
shape is validated once at the HTTP boundary. The domain records passed
between pipeline stages are frozen dataclasses.
"""

from __future__ import annotations

import dataclasses as dc
import enum

import msgspec

__all__ = [
    "TERMINAL_STATUSES",
    "DeploymentEvent",
    "Environment",
    "LedgerStatus",
    "NotificationRecord",
    "PushAuthor",
    "PushCommit",
    "PushPayload",
    "PushPusher",
    "PushRepository",
    "ReactionEvent",
    "SlackEnvelope",
    "SlackEvent",
    "SlackItem",
]


class Environment(enum.StrEnum):
    """Deployment environments, each announced in its own channel."""

    DEV = "DEV"
    QA = "QA"
    PROD = "PROD"
    INCIDENTS = "INCIDENTS"


class LedgerStatus(enum.StrEnum):
    """Lifecycle states recorded in the deployment ledger."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    DEPLOYED = "Deployed"
    FAILED = "Failed"


TERMINAL_STATUSES: frozenset[LedgerStatus] = frozenset(
    {LedgerStatus.DEPLOYED, LedgerStatus.REJECTED, LedgerStatus.FAILED}
)


# -- inbound GitHub push payload ---------------------------------------------


class PushAuthor(msgspec.Struct):
    """Commit author as reported in a push payload."""

    name: str = ""


class PushCommit(msgspec.Struct):
    """One commit in a push payload."""

    id: str
    message: str = ""
    author: PushAuthor = msgspec.field(default_factory=PushAuthor)


class PushRepository(msgspec.Struct):
    """Repository block of a push payload."""

    full_name: str


class PushPusher(msgspec.Struct):
    """Account that performed the push."""

    name: str = ""


class PushPayload(msgspec.Struct):
    """Subset of GitHub's ``push`` webhook body used by Gatekeeper."""

    repository: PushRepository
    ref: str
    pusher: PushPusher = msgspec.field(default_factory=PushPusher)
    commits: list[PushCommit] = msgspec.field(default_factory=list)


# -- inbound Slack Events API payload ----------------------------------------


class SlackItem(msgspec.Struct):
    """Target of a reaction."""

    type: str
    channel: str = ""
    ts: str = ""


class SlackEvent(msgspec.Struct):
    """Inner ``event`` object of an ``event_callback`` envelope."""

    type: str
    user: str = ""
    reaction: str = ""
    item: SlackItem | None = None


class SlackEnvelope(msgspec.Struct):
    """Outer Slack Events API body."""

    type: str
    event: SlackEvent | None = None
    challenge: str | None = None


# -- pipeline records --------------------------------------------------------


@dc.dataclass(frozen=True, slots=True)
class DeploymentEvent:
    """A tracked push, derived once and passed by value to the fan-out.

    Attributes
    ----------
    repository
        ``owner/name`` of the pushed repository.
    branch
        Branch name with ``refs/heads/`` removed; may contain ``/``.
    commit_sha
        Seven-character short SHA of the newest commit.
    commit_message
        First line of the newest commit's message.
    commit_author
        Author name of the newest commit.
    pusher
        Account that performed the push.
    deployment_id
        ``deploy-<branch>-<epoch-millis>``.
    triggered_at
        ISO-8601 UTC receipt time.
    delivery_id
        GitHub ``X-GitHub-Delivery`` value, if supplied.

    """

    repository: str
    branch: str
    commit_sha: str
    commit_message: str
    commit_author: str
    pusher: str
    deployment_id: str
    triggered_at: str
    delivery_id: str | None = None

    @property
    def commit_url(self) -> str:
        """Link to the representative commit on GitHub."""
        return f"https://github.com/{self.repository}/commit/{self.commit_sha}"


@dc.dataclass(frozen=True, slots=True)
class NotificationRecord:
    """Outcome of publishing a deployment announcement."""

    channel: str
    thread_ts: str | None
    delivered: bool
    error: str | None = None


@dc.dataclass(frozen=True, slots=True)
class ReactionEvent:
    """A ``reaction_added`` event reduced to the fields the pipeline needs."""

    user: str
    reaction: str
    item_type: str
    channel: str
    message_ts: str

    @classmethod
    def from_slack(cls, event: SlackEvent) -> ReactionEvent:
        """Build from a decoded Slack ``reaction_added`` event."""
        item = event.item or SlackItem(type="")
        return cls(
            user=event.user,
            reaction=event.reaction,
            item_type=item.type,
            channel=item.channel,
            message_ts=item.ts,
        )

    @property
    def targets_message(self) -> bool:
        """Return True when the reaction was added to a chat message."""
        return self.item_type == "message"
