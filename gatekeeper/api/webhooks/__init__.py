"""Inbound webhook resources for GitHub pushes and Slack events."""

from __future__ import annotations

from .github import GitHubWebhookResource
from .slack import SlackEventsResource

__all__ = ["GitHubWebhookResource", "SlackEventsResource"]
