"""Ordered fallback chain that starts an approved deployment.

Strategies are tried in order until one reports ``SUCCEEDED``:

1. :class:`CIDispatchStrategy` sends ``repository_dispatch`` to GitHub and
   replies with a link to the workflow. It is ``UNAVAILABLE`` when dispatch
   is not configured and ``FAILED`` when the call errors after retries.
2. :class:`ManualFallbackStrategy` posts the literal command an operator
   should run, together with the deployment identifier.

The ledger follows the outcome: a CI dispatch moves the entry to
``Deployed``; exhausting every strategy moves it to ``Failed``.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from gatekeeper.deployments.identifier import UNKNOWN_DEPLOYMENT_ID
from gatekeeper.deployments.models import LedgerStatus
from gatekeeper.logging import get_logger, log_warning
from gatekeeper.observability import PipelineEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gatekeeper.chat import ChatClient
    from gatekeeper.dispatch import DeploymentDispatcher
    from gatekeeper.ledger import DeploymentLedger

__all__ = [
    "CIDispatchStrategy",
    "DeploymentTriggerChain",
    "ManualFallbackStrategy",
    "StrategyResult",
    "TriggerContext",
    "TriggerOutcome",
    "TriggerReport",
    "TriggerStrategy",
    "render_dispatch_success",
    "render_manual_fallback",
]

logger = get_logger(__name__)


class TriggerOutcome(enum.StrEnum):
    """Result of a single trigger strategy."""

    SUCCEEDED = "succeeded"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dc.dataclass(frozen=True, slots=True)
class TriggerContext:
    """An approved deployment and the thread to report into."""

    deployment_id: str
    approver: str
    channel: str
    thread_ts: str


@dc.dataclass(frozen=True, slots=True)
class StrategyResult:
    """Outcome reported by one strategy."""

    strategy: str
    outcome: TriggerOutcome
    detail: str | None = None


@dc.dataclass(frozen=True, slots=True)
class TriggerReport:
    """Every strategy attempted for one approval, in order."""

    results: tuple[StrategyResult, ...]

    @property
    def succeeded_by(self) -> str | None:
        """Name of the strategy that succeeded, if any."""
        for result in self.results:
            if result.outcome is TriggerOutcome.SUCCEEDED:
                return result.strategy
        return None


class TriggerStrategy(typ.Protocol):
    """One way of starting a deployment."""

    name: str

    async def attempt(self, context: TriggerContext) -> StrategyResult:
        """Try to start the deployment; never raise."""
        ...


def render_dispatch_success(actions_url: str, deployment_id: str) -> str:
    """Render the reply posted after a successful dispatch."""
    return (
        ":white_check_mark: Deployment initiated!\n\n"
        f"<{actions_url}|View deployment in GitHub Actions>\n\n"
        f"Deployment ID: {deployment_id}"
    )


def render_manual_fallback(command: str, deployment_id: str) -> str:
    """Render the manual deployment instructions."""
    return (
        "Manual deployment fallback:\n"
        f"```\n{command}\n```\n\n"
        f"Deployment ID: {deployment_id}"
    )


class CIDispatchStrategy:
    """Start the deploy workflow through GitHub ``repository_dispatch``."""

    name = "ci_dispatch"

    def __init__(
        self, dispatcher: DeploymentDispatcher | None, chat: ChatClient
    ) -> None:
        """Store collaborators; ``dispatcher`` is ``None`` when unconfigured."""
        self._dispatcher = dispatcher
        self._chat = chat

    async def attempt(self, context: TriggerContext) -> StrategyResult:
        """Dispatch the event and link the run in the thread."""
        if self._dispatcher is None:
            return StrategyResult(
                self.name, TriggerOutcome.UNAVAILABLE, "dispatch not configured"
            )
        try:
            await self._dispatcher.dispatch_deployment(
                context.deployment_id, context.approver
            )
        except Exception as exc:  # noqa: BLE001 - falls through to the next strategy
            return StrategyResult(self.name, TriggerOutcome.FAILED, str(exc))

        try:
            await self._chat.post_message(
                context.channel,
                render_dispatch_success(
                    self._dispatcher.actions_url, context.deployment_id
                ),
                thread_ts=context.thread_ts,
            )
        except Exception as exc:  # noqa: BLE001 - the dispatch itself succeeded
            log_warning(
                logger,
                "[triggers] deployment_id=%s dispatched but success reply failed: %s",
                context.deployment_id,
                exc,
            )
        return StrategyResult(self.name, TriggerOutcome.SUCCEEDED)


class ManualFallbackStrategy:
    """Tell operators how to deploy by hand."""

    name = "manual_fallback"

    def __init__(self, chat: ChatClient, command: str) -> None:
        """Store the chat client and the command to quote."""
        self._chat = chat
        self._command = command

    async def attempt(self, context: TriggerContext) -> StrategyResult:
        """Post the manual command into the deployment thread."""
        try:
            await self._chat.post_message(
                context.channel,
                render_manual_fallback(self._command, context.deployment_id),
                thread_ts=context.thread_ts,
            )
        except Exception as exc:  # noqa: BLE001 - reported as a failed outcome
            return StrategyResult(self.name, TriggerOutcome.FAILED, str(exc))
        return StrategyResult(self.name, TriggerOutcome.SUCCEEDED)


class DeploymentTriggerChain:
    """Run trigger strategies in order until one succeeds.

    Parameters
    ----------
    strategies
        Strategies in priority order.
    ledger
        Ledger updated with ``Deployed`` or ``Failed``; optional.
    event_logger
        Structured event sink.

    """

    def __init__(
        self,
        strategies: cabc.Sequence[TriggerStrategy],
        *,
        ledger: DeploymentLedger | None = None,
        event_logger: PipelineEventLogger | None = None,
    ) -> None:
        """Store the ordered strategies."""
        if not strategies:
            msg = "at least one trigger strategy is required"
            raise ValueError(msg)
        self._strategies = tuple(strategies)
        self._ledger = ledger
        self._events = event_logger or PipelineEventLogger()

    async def run(self, context: TriggerContext) -> TriggerReport:
        """Attempt each strategy in turn and record the final state."""
        results: list[StrategyResult] = []
        for strategy in self._strategies:
            result = await strategy.attempt(context)
            results.append(result)
            self._events.log_trigger_outcome(
                deployment_id=context.deployment_id,
                strategy=result.strategy,
                outcome=result.outcome,
                detail=result.detail,
            )
            if result.outcome is TriggerOutcome.SUCCEEDED:
                break

        report = TriggerReport(results=tuple(results))
        await self._record(context, report)
        return report

    async def _record(self, context: TriggerContext, report: TriggerReport) -> None:
        if report.succeeded_by == CIDispatchStrategy.name:
            target = LedgerStatus.DEPLOYED
        elif report.succeeded_by is None:
            target = LedgerStatus.FAILED
        else:
            return

        if self._ledger is None or context.deployment_id == UNKNOWN_DEPLOYMENT_ID:
            return
        try:
            result = await self._ledger.transition(
                context.deployment_id, target, expected=LedgerStatus.APPROVED
            )
        except Exception as exc:  # noqa: BLE001 - ledger is best effort here
            self._events.log_ledger_failed(
                deployment_id=context.deployment_id,
                operation=f"transition:{target}",
                error=exc,
            )
            return
        self._events.log_decision_recorded(
            deployment_id=context.deployment_id,
            decision=target,
            actor=context.approver,
            ledger=result,
        )
