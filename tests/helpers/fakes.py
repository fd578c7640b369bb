"""In-memory collaborators for pipeline tests.

The fakes implement the same protocols as the production clients so tests
can assert on what would have been sent to Slack, Notion and GitHub.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from gatekeeper.chat import ChatAPIError
from gatekeeper.deployments.models import TERMINAL_STATUSES, LedgerStatus
from gatekeeper.ledger import LedgerAPIError, LedgerEntry, TransitionResult

if typ.TYPE_CHECKING:
    from gatekeeper.deployments.models import DeploymentEvent

ACTIONS_URL = "https://github.com/octo/reef/actions/workflows/deploy.yml"


@dc.dataclass(frozen=True, slots=True)
class PostedMessage:
    """A message the fake chat client accepted."""

    channel: str
    text: str
    thread_ts: str | None
    ts: str


class FakeChatClient:
    """Records posts and serves user names and message text from memory."""

    def __init__(
        self,
        *,
        users: dict[str, str] | None = None,
        failing_channels: typ.Iterable[str] = (),
        fail_thread_replies: bool = False,
    ) -> None:
        self.posts: list[PostedMessage] = []
        self.messages: dict[tuple[str, str], str] = {}
        self.users = users or {}
        self.failing_channels = set(failing_channels)
        self.fail_thread_replies = fail_thread_replies
        self.closed = False
        self._counter = 0

    async def post_message(
        self, channel: str, text: str, *, thread_ts: str | None = None
    ) -> str:
        if channel in self.failing_channels or (
            thread_ts is not None and self.fail_thread_replies
        ):
            raise ChatAPIError.from_slack("chat.postMessage", "channel_not_found")
        self._counter += 1
        ts = f"1700000000.{self._counter:06d}"
        self.posts.append(PostedMessage(channel, text, thread_ts, ts))
        if thread_ts is None:
            self.messages[(channel, ts)] = text
        return ts

    async def get_display_name(self, user_id: str) -> str:
        return self.users.get(user_id, user_id)

    async def fetch_message_text(self, channel: str, ts: str) -> str | None:
        return self.messages.get((channel, ts))

    async def aclose(self) -> None:
        self.closed = True

    def top_level(self) -> list[PostedMessage]:
        """Messages that started a thread."""
        return [post for post in self.posts if post.thread_ts is None]

    def replies(self, thread_ts: str) -> list[str]:
        """Texts posted into ``thread_ts``, oldest first."""
        return [post.text for post in self.posts if post.thread_ts == thread_ts]


class InMemoryLedger:
    """Ledger with the same conditional-transition semantics as Notion's.

    ``transition`` yields to the event loop between reading and writing so
    unsynchronized callers can interleave.
    """

    def __init__(
        self, *, fail_create: bool = False, fail_transition: bool = False
    ) -> None:
        self.entries: dict[str, LedgerStatus] = {}
        self.history: list[tuple[str, LedgerStatus, str | None]] = []
        self.fail_create = fail_create
        self.fail_transition = fail_transition
        self.closed = False

    async def find_entry(self, deployment_id: str) -> LedgerEntry | None:
        status = self.entries.get(deployment_id)
        if status is None:
            return None
        return LedgerEntry(f"page-{deployment_id}", deployment_id, status)

    async def create_entry(self, event: DeploymentEvent) -> str:
        if self.fail_create:
            raise LedgerAPIError.http_error(503, "service unavailable")
        self.entries[event.deployment_id] = LedgerStatus.PENDING
        return f"page-{event.deployment_id}"

    async def transition(
        self,
        deployment_id: str,
        target: LedgerStatus,
        *,
        expected: LedgerStatus,
        actor: str | None = None,
    ) -> TransitionResult:
        if self.fail_transition:
            raise LedgerAPIError.http_error(502, "bad gateway")
        current = self.entries.get(deployment_id)
        await asyncio.sleep(0)
        if current is None:
            return TransitionResult.NOT_FOUND
        if current in TERMINAL_STATUSES or current is not expected:
            return TransitionResult.CONFLICT
        self.entries[deployment_id] = target
        self.history.append((deployment_id, target, actor))
        return TransitionResult.APPLIED

    async def aclose(self) -> None:
        self.closed = True


class RecordingDispatcher:
    """Records dispatch calls; raises ``error`` when one is set."""

    actions_url = ACTIONS_URL

    def __init__(self, *, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error
        self.closed = False

    async def dispatch_deployment(self, deployment_id: str, approver: str) -> None:
        self.calls.append((deployment_id, approver))
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True
