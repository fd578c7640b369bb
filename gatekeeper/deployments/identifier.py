"""Text encoding for deployment identifiers.

A deployment identifier correlates a push with its announcement, its
ledger entry and any reactions. It travels inside free-text chat messages,
so it has a small, explicit grammar (version 1)::

    deployment-id := "deploy-" branch "-" epoch-millis
    branch        := 1*( ALPHA / DIGIT / "." / "_" / "/" / "*" / "-" )
    epoch-millis  := 1*DIGIT

``branch`` may itself contain ``-`` and ``/`` (``feature/auth-v2``), so the
decoder anchors on the *last* ``-<digits>`` run. Decoding never raises:
callers get :class:`Matched` or :class:`Unmatched`, and
:func:`extract_deployment_id` collapses the latter to ``"unknown"``.
"""

from __future__ import annotations

import dataclasses as dc
import re

__all__ = [
    "ENCODING_VERSION",
    "ID_PREFIX",
    "UNKNOWN_DEPLOYMENT_ID",
    "Matched",
    "Unmatched",
    "decode_deployment_id",
    "encode_deployment_id",
    "extract_deployment_id",
]

ENCODING_VERSION = 1
ID_PREFIX = "deploy-"
UNKNOWN_DEPLOYMENT_ID = "unknown"

_BRANCH_CHARSET = r"A-Za-z0-9._/*\-"
_DEPLOYMENT_ID_RE = re.compile(
    rf"{re.escape(ID_PREFIX)}(?P<branch>[{_BRANCH_CHARSET}]+)-(?P<millis>\d+)"
)


@dc.dataclass(frozen=True, slots=True)
class Matched:
    """A deployment identifier found in text."""

    deployment_id: str
    branch: str
    epoch_millis: int


@dc.dataclass(frozen=True, slots=True)
class Unmatched:
    """No deployment identifier could be recovered."""

    reason: str


def encode_deployment_id(branch: str, epoch_millis: int) -> str:
    """Build the canonical identifier for a push received at ``epoch_millis``."""
    if not branch:
        msg = "branch must be non-empty"
        raise ValueError(msg)
    if epoch_millis < 0:
        msg = f"epoch_millis must be non-negative, got {epoch_millis}"
        raise ValueError(msg)
    return f"{ID_PREFIX}{branch}-{epoch_millis}"


def decode_deployment_id(text: str | None) -> Matched | Unmatched:
    """Find the first deployment identifier in ``text``."""
    if not text:
        return Unmatched(reason="empty text")

    match = _DEPLOYMENT_ID_RE.search(text)
    if match is None:
        return Unmatched(reason="no deployment identifier in text")

    return Matched(
        deployment_id=match.group(0),
        branch=match.group("branch"),
        epoch_millis=int(match.group("millis")),
    )


def extract_deployment_id(text: str | None) -> str:
    """Return the identifier in ``text`` or ``"unknown"``.

    >>> extract_deployment_id("DEV deployment pending - deploy-feature/x-17")
    'deploy-feature/x-17'
    >>> extract_deployment_id(None)
    'unknown'

    """
    match decode_deployment_id(text):
        case Matched(deployment_id=deployment_id):
            return deployment_id
        case Unmatched():
            return UNKNOWN_DEPLOYMENT_ID
