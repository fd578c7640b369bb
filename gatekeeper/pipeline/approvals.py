"""Reaction-driven approve/reject state machine.

A reviewer decides a deployment by reacting to its announcement:

=====================================  ===========
reaction                               decision
=====================================  ===========
``white_check_mark``, ``+1``           approve
``x``, ``-1``                          reject
anything else                          ignored
=====================================  ===========

Approval moves the ledger entry ``Pending -> Approved`` and runs the
trigger chain; rejection moves it ``Pending -> Rejected``. Decisions for
the same deployment are serialized with a per-identifier lock, and the
ledger write is conditional on the entry still being ``Pending``, so two
racing reactions produce one decision and at most one dispatch.

Nothing here raises to the caller: failures are logged and answered in the
deployment thread.
"""

from __future__ import annotations

import asyncio
import collections
import contextlib
import dataclasses as dc
import enum
import typing as typ

from gatekeeper.config import ApprovalConfig
from gatekeeper.deployments.identifier import (
    UNKNOWN_DEPLOYMENT_ID,
    extract_deployment_id,
)
from gatekeeper.deployments.models import LedgerStatus
from gatekeeper.ledger import TransitionResult
from gatekeeper.logging import get_logger, log_error
from gatekeeper.observability import PipelineEventLogger
from gatekeeper.pipeline.triggers import TriggerContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gatekeeper.chat import ChatClient
    from gatekeeper.deployments.models import ReactionEvent
    from gatekeeper.ledger import DeploymentLedger
    from gatekeeper.pipeline.triggers import DeploymentTriggerChain

__all__ = [
    "REACTION_DECISIONS",
    "ApprovalStateMachine",
    "Decision",
    "ReactionOutcome",
    "ReactionResult",
    "resolve_reaction",
]

logger = get_logger(__name__)

# Bound on remembered decisions used to refuse repeats when no ledger is set.
_DECIDED_MEMORY = 1024


class Decision(enum.StrEnum):
    """What a reaction asks the state machine to do."""

    APPROVE = "approve"
    REJECT = "reject"
    IGNORE = "ignore"


REACTION_DECISIONS: typ.Mapping[str, Decision] = {
    "white_check_mark": Decision.APPROVE,
    "+1": Decision.APPROVE,
    "x": Decision.REJECT,
    "-1": Decision.REJECT,
}

_TARGET_STATUS = {
    Decision.APPROVE: LedgerStatus.APPROVED,
    Decision.REJECT: LedgerStatus.REJECTED,
}

_NOUN = {Decision.APPROVE: "approval", Decision.REJECT: "rejection"}


def resolve_reaction(symbol: str) -> Decision:
    """Map a Slack reaction name to a decision."""
    return REACTION_DECISIONS.get(symbol, Decision.IGNORE)


class ReactionOutcome(enum.StrEnum):
    """How a reaction was handled."""

    IGNORED = "ignored"
    APPROVED = "approved"
    REJECTED = "rejected"
    REFUSED = "refused"
    ALREADY_DECIDED = "already_decided"
    ERRORED = "errored"


@dc.dataclass(frozen=True, slots=True)
class ReactionResult:
    """Outcome of handling one reaction."""

    outcome: ReactionOutcome
    deployment_id: str | None = None


class _KeyedLocks:
    """``asyncio.Lock`` per key, dropped once no coroutine holds or awaits it."""

    def __init__(self) -> None:
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @contextlib.asynccontextmanager
    async def hold(self, key: str) -> cabc.AsyncIterator[None]:
        lock, users = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users == 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        return len(self._locks)


class ApprovalStateMachine:
    """Turn reviewer reactions into recorded deployment decisions.

    Parameters
    ----------
    chat
        Chat client for user lookup, message lookup and thread replies.
    trigger_chain
        Chain run after an approval is recorded.
    ledger
        Ledger client, or ``None`` when the ledger is not configured.
    approvals
        Allow-list of approvers; empty admits everyone.
    event_logger
        Structured event sink.

    """

    def __init__(
        self,
        chat: ChatClient,
        trigger_chain: DeploymentTriggerChain,
        *,
        ledger: DeploymentLedger | None = None,
        approvals: ApprovalConfig | None = None,
        event_logger: PipelineEventLogger | None = None,
    ) -> None:
        """Store collaborators."""
        self._chat = chat
        self._trigger_chain = trigger_chain
        self._ledger = ledger
        self._approvals = approvals or ApprovalConfig()
        self._events = event_logger or PipelineEventLogger()
        self._locks = _KeyedLocks()
        self._decided: collections.OrderedDict[str, Decision] = collections.OrderedDict()

    async def handle_reaction(self, event: ReactionEvent) -> ReactionResult:
        """Apply ``event`` to the deployment it was added to."""
        if not event.targets_message:
            self._events.log_reaction_ignored(
                reaction=event.reaction,
                user=event.user,
                item_type=event.item_type,
                reason="target is not a message",
            )
            return ReactionResult(ReactionOutcome.IGNORED)

        decision = resolve_reaction(event.reaction)
        if decision is Decision.IGNORE:
            self._events.log_reaction_ignored(
                reaction=event.reaction,
                user=event.user,
                item_type=event.item_type,
                reason="reaction is not a decision",
            )
            return ReactionResult(ReactionOutcome.IGNORED)

        try:
            return await self._decide(event, decision)
        except Exception as exc:  # noqa: BLE001 - reaction failures end in the thread
            log_error(
                logger,
                "[approvals] %s by user=%s on %s/%s failed: %s",
                _NOUN[decision],
                event.user,
                event.channel,
                event.message_ts,
                exc,
                exc_info=exc,
            )
            await self._reply(
                event, f"Error processing {_NOUN[decision]}: {exc}"
            )
            return ReactionResult(ReactionOutcome.ERRORED)

    async def _decide(self, event: ReactionEvent, decision: Decision) -> ReactionResult:
        actor = await self._chat.get_display_name(event.user)
        text = await self._chat.fetch_message_text(event.channel, event.message_ts)
        deployment_id = extract_deployment_id(text)

        if not self._approvals.is_allowed(event.user):
            self._events.log_transition_refused(
                deployment_id=deployment_id,
                decision=decision,
                actor=actor,
                reason="actor not in approver allow-list",
            )
            await self._reply(
                event,
                f":no_entry: {actor} is not allowed to decide deployments; "
                f"{_NOUN[decision]} ignored.",
            )
            return ReactionResult(ReactionOutcome.REFUSED, deployment_id)

        async with self._locks.hold(deployment_id):
            seen = self._seen(deployment_id)
            ledger_result = (
                None if seen else await self._record(deployment_id, decision, actor)
            )
            if seen or ledger_result is TransitionResult.CONFLICT:
                self._events.log_transition_refused(
                    deployment_id=deployment_id,
                    decision=decision,
                    actor=actor,
                    reason="deployment already decided",
                )
                await self._reply(
                    event,
                    f":warning: {deployment_id} has already been decided; "
                    f"{_NOUN[decision]} by {actor} ignored.",
                )
                return ReactionResult(ReactionOutcome.ALREADY_DECIDED, deployment_id)
            self._remember(deployment_id, decision)

            self._events.log_decision_recorded(
                deployment_id=deployment_id,
                decision=decision,
                actor=actor,
                ledger=ledger_result or "skipped",
            )

            if decision is Decision.REJECT:
                await self._reply(event, f":x: Deployment rejected by {actor}")
                return ReactionResult(ReactionOutcome.REJECTED, deployment_id)

            await self._reply(
                event, f":white_check_mark: Deployment approved by {actor}"
            )
            await self._trigger_chain.run(
                TriggerContext(
                    deployment_id=deployment_id,
                    approver=actor,
                    channel=event.channel,
                    thread_ts=event.message_ts,
                )
            )
            return ReactionResult(ReactionOutcome.APPROVED, deployment_id)

    async def _record(
        self, deployment_id: str, decision: Decision, actor: str
    ) -> TransitionResult | None:
        """Write the decision to the ledger; ``None`` when it was not written."""
        if self._ledger is None:
            return None
        if deployment_id == UNKNOWN_DEPLOYMENT_ID:
            self._events.log_ledger_skipped(
                deployment_id=deployment_id, reason="deployment id not recoverable"
            )
            return None
        try:
            return await self._ledger.transition(
                deployment_id,
                _TARGET_STATUS[decision],
                expected=LedgerStatus.PENDING,
                actor=actor,
            )
        except Exception as exc:  # noqa: BLE001 - decision stands without a record
            self._events.log_ledger_failed(
                deployment_id=deployment_id,
                operation=f"transition:{_TARGET_STATUS[decision]}",
                error=exc,
            )
            return None

    def _seen(self, deployment_id: str) -> bool:
        return deployment_id != UNKNOWN_DEPLOYMENT_ID and deployment_id in self._decided

    def _remember(self, deployment_id: str, decision: Decision) -> None:
        if deployment_id == UNKNOWN_DEPLOYMENT_ID:
            return
        self._decided[deployment_id] = decision
        while len(self._decided) > _DECIDED_MEMORY:
            self._decided.popitem(last=False)

    async def _reply(self, event: ReactionEvent, text: str) -> None:
        """Post a best-effort thread reply."""
        try:
            await self._chat.post_message(
                event.channel, text, thread_ts=event.message_ts
            )
        except Exception as exc:  # noqa: BLE001 - nothing further to report to
            log_error(
                logger,
                "[approvals] failed to post reply to %s/%s: %s",
                event.channel,
                event.message_ts,
                exc,
            )
