"""Deployment approval pipeline: fan-out, approvals, triggers and tasks."""

from __future__ import annotations

from .approvals import (
    REACTION_DECISIONS,
    ApprovalStateMachine,
    Decision,
    ReactionOutcome,
    ReactionResult,
    resolve_reaction,
)
from .notifications import (
    FanoutResult,
    NotificationFanout,
    render_announcement,
    render_incident_notice,
    render_next_steps_hint,
)
from .tasks import BackgroundTaskRunner
from .triggers import (
    CIDispatchStrategy,
    DeploymentTriggerChain,
    ManualFallbackStrategy,
    StrategyResult,
    TriggerContext,
    TriggerOutcome,
    TriggerReport,
    TriggerStrategy,
)

__all__ = [
    "REACTION_DECISIONS",
    "ApprovalStateMachine",
    "BackgroundTaskRunner",
    "CIDispatchStrategy",
    "Decision",
    "DeploymentTriggerChain",
    "FanoutResult",
    "ManualFallbackStrategy",
    "NotificationFanout",
    "ReactionOutcome",
    "ReactionResult",
    "StrategyResult",
    "TriggerContext",
    "TriggerOutcome",
    "TriggerReport",
    "TriggerStrategy",
    "render_announcement",
    "render_incident_notice",
    "render_next_steps_hint",
    "resolve_reaction",
]
