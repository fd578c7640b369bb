"""Behavioural coverage for the manual deployment fallback."""

from __future__ import annotations

from pytest_bdd import scenario


@scenario(
    "../manual_fallback.feature",
    "Approval without dispatch posts the manual command",
)
def test_approval_without_dispatch() -> None:
    """Wrap the pytest-bdd scenario for unconfigured dispatch."""


@scenario(
    "../manual_fallback.feature",
    "A failing dispatch falls back to the manual command",
)
def test_failing_dispatch_falls_back() -> None:
    """Wrap the pytest-bdd scenario for a dispatch error."""
