"""Gatekeeper: chat-driven deployment approvals.

A GitHub push to a tracked branch is announced in the environment's Slack
channel and recorded in a Notion ledger. Reviewers approve or reject by
reacting to the announcement; approval starts the deploy workflow through
GitHub ``repository_dispatch`` or, failing that, posts manual instructions.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
