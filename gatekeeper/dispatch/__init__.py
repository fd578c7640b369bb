"""CI dispatch for approved deployments."""

from __future__ import annotations

from .client import DeploymentDispatcher, GitHubDispatchClient
from .errors import DispatchAPIError, DispatchConfigError

__all__ = [
    "DeploymentDispatcher",
    "DispatchAPIError",
    "DispatchConfigError",
    "GitHubDispatchClient",
]
