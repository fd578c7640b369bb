"""Request authenticity checks for inbound webhooks."""

from .signatures import (
    REPLAY_WINDOW_S,
    compute_github_signature,
    compute_slack_signature,
    verify_github_signature,
    verify_slack_signature,
)

__all__ = [
    "REPLAY_WINDOW_S",
    "compute_github_signature",
    "compute_slack_signature",
    "verify_github_signature",
    "verify_slack_signature",
]
