"""Unit tests for the lifespan middleware."""

from __future__ import annotations

import asyncio

import pytest

from gatekeeper.api.middleware import LifespanManager
from gatekeeper.pipeline import BackgroundTaskRunner
from tests.helpers.fakes import FakeChatClient, InMemoryLedger


class _FailingResource:
    """A resource whose close raises."""

    def __init__(self) -> None:
        self.attempted = False

    async def aclose(self) -> None:
        self.attempted = True
        msg = "already closed"
        raise RuntimeError(msg)


@pytest.mark.asyncio
async def test_shutdown_drains_then_closes() -> None:
    """Outstanding tasks finish before clients are closed."""
    runner = BackgroundTaskRunner()
    chat = FakeChatClient()
    order: list[str] = []

    async def _work() -> None:
        await asyncio.sleep(0)
        order.append(f"work closed={chat.closed}")

    runner.spawn(_work(), name="work", correlation_id="deploy-main-1")

    await LifespanManager(runner, [chat]).process_shutdown({}, {})

    assert order == ["work closed=False"]
    assert chat.closed


@pytest.mark.asyncio
async def test_close_failure_does_not_stop_others() -> None:
    """Every resource is closed even if an earlier one fails."""
    failing = _FailingResource()
    ledger = InMemoryLedger()

    await LifespanManager(BackgroundTaskRunner(), [failing, ledger]).process_shutdown(
        {}, {}
    )

    assert failing.attempted
    assert ledger.closed
