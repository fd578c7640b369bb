"""Slack client used as the approval surface."""

from __future__ import annotations

from .client import ChatClient, SlackChatClient
from .errors import ChatAPIError

__all__ = ["ChatAPIError", "ChatClient", "SlackChatClient"]
