"""Deployment events, identifiers, and branch routing."""

from __future__ import annotations

from .identifier import (
    UNKNOWN_DEPLOYMENT_ID,
    Matched,
    Unmatched,
    decode_deployment_id,
    encode_deployment_id,
    extract_deployment_id,
)
from .models import (
    TERMINAL_STATUSES,
    DeploymentEvent,
    Environment,
    LedgerStatus,
    NotificationRecord,
    PushPayload,
    ReactionEvent,
    SlackEnvelope,
)
from .routing import (
    branch_from_ref,
    build_deployment_event,
    is_deployment_branch,
    route_branch,
    status_label,
)

__all__ = [
    "TERMINAL_STATUSES",
    "UNKNOWN_DEPLOYMENT_ID",
    "DeploymentEvent",
    "Environment",
    "LedgerStatus",
    "Matched",
    "NotificationRecord",
    "PushPayload",
    "ReactionEvent",
    "SlackEnvelope",
    "Unmatched",
    "branch_from_ref",
    "build_deployment_event",
    "decode_deployment_id",
    "encode_deployment_id",
    "extract_deployment_id",
    "is_deployment_branch",
    "route_branch",
    "status_label",
]
