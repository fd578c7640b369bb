"""Durable deployment ledger stored in a Notion database."""

from __future__ import annotations

from .client import DeploymentLedger, LedgerEntry, NotionLedgerClient, TransitionResult
from .errors import LedgerAPIError, LedgerConfigError, LedgerError, LedgerResponseShapeError

__all__ = [
    "DeploymentLedger",
    "LedgerAPIError",
    "LedgerConfigError",
    "LedgerEntry",
    "LedgerError",
    "LedgerResponseShapeError",
    "NotionLedgerClient",
    "TransitionResult",
]
