"""HMAC verification for inbound GitHub and Slack webhooks.

Both senders sign the raw request body with a shared secret. GitHub sends
``X-Hub-Signature-256: sha256=<hex>``; Slack signs
``v0:<timestamp>:<body>`` and sends the timestamp alongside so stale
deliveries can be refused. Every digest comparison goes through
``hmac.compare_digest``.
"""

from __future__ import annotations

import hashlib
import hmac
import time

from gatekeeper.logging import get_logger, log_warning

__all__ = [
    "GITHUB_SIGNATURE_PREFIX",
    "REPLAY_WINDOW_S",
    "SLACK_SIGNATURE_VERSION",
    "compute_github_signature",
    "compute_slack_signature",
    "verify_github_signature",
    "verify_slack_signature",
]

logger = get_logger(__name__)

GITHUB_SIGNATURE_PREFIX = "sha256="
SLACK_SIGNATURE_VERSION = "v0"
REPLAY_WINDOW_S = 300


def _hex_hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def compute_github_signature(body: bytes, secret: str) -> str:
    """Return the ``X-Hub-Signature-256`` header value for ``body``."""
    return GITHUB_SIGNATURE_PREFIX + _hex_hmac(secret, body)


def compute_slack_signature(body: bytes, secret: str, timestamp: str | int) -> str:
    """Return the ``X-Slack-Signature`` header value for ``body``."""
    base = f"{SLACK_SIGNATURE_VERSION}:{timestamp}:".encode() + body
    return f"{SLACK_SIGNATURE_VERSION}=" + _hex_hmac(secret, base)


def verify_github_signature(body: bytes, secret: str, header: str | None) -> bool:
    """Return True when ``header`` carries the HMAC-SHA256 of ``body``.

    Parameters
    ----------
    body
        Raw request body exactly as received.
    secret
        Webhook secret configured on the GitHub side.
    header
        Value of ``X-Hub-Signature-256``; ``None`` or empty rejects.

    """
    if not header:
        log_warning(logger, "[github] missing X-Hub-Signature-256 header")
        return False
    if not secret:
        log_warning(logger, "[github] webhook secret is empty; refusing delivery")
        return False

    expected = compute_github_signature(body, secret)
    return hmac.compare_digest(expected.encode(), header.encode())


def verify_slack_signature(
    body: bytes,
    secret: str,
    timestamp: str | None,
    signature: str | None,
    *,
    now: float | None = None,
) -> bool:
    """Return True when a Slack request is authentic and fresh.

    Rejects when the timestamp or signature is missing, the timestamp is
    not an integer, the timestamp lies more than ``REPLAY_WINDOW_S``
    seconds from ``now`` in either direction, or the digest differs.
    """
    if not timestamp or not signature:
        log_warning(logger, "[slack] missing timestamp or signature header")
        return False
    if not secret:
        log_warning(logger, "[slack] signing secret is empty; refusing request")
        return False

    try:
        parsed = int(timestamp)
    except ValueError:
        log_warning(logger, "[slack] non-integer request timestamp %r", timestamp)
        return False

    current = time.time() if now is None else now
    if abs(current - parsed) > REPLAY_WINDOW_S:
        log_warning(
            logger,
            "[slack] request timestamp %d outside %ds replay window",
            parsed,
            REPLAY_WINDOW_S,
        )
        return False

    expected = compute_slack_signature(body, secret, timestamp)
    return hmac.compare_digest(expected.encode(), signature.encode())
