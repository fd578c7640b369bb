"""Tracked background tasks for work that runs after the HTTP ack.

Webhook resources answer the sender first and hand every network-bound
side effect to :class:`BackgroundTaskRunner`. Each task runs inside its own
error boundary: an exception is logged with the deployment identifier and
never reaches the event loop's default handler. The runner keeps strong
references so tasks are not garbage-collected mid-flight, and
:meth:`BackgroundTaskRunner.drain` lets shutdown (and tests) wait for
outstanding work.
"""

from __future__ import annotations

import asyncio
import typing as typ

from gatekeeper.observability import PipelineEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = ["BackgroundTaskRunner"]


class BackgroundTaskRunner:
    """Spawn and track fire-and-forget coroutines.

    Parameters
    ----------
    event_logger
        Receives ``pipeline.task.failed`` events.

    """

    def __init__(self, event_logger: PipelineEventLogger | None = None) -> None:
        """Initialise an empty task set."""
        self._tasks: set[asyncio.Task[None]] = set()
        self._events = event_logger or PipelineEventLogger()

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished."""
        return sum(1 for task in self._tasks if not task.done())

    def spawn(
        self,
        coro: cabc.Coroutine[typ.Any, typ.Any, object],
        *,
        name: str,
        correlation_id: str,
    ) -> asyncio.Task[None]:
        """Schedule ``coro`` on the running loop and track it."""
        task = asyncio.create_task(
            self._guard(coro, name=name, correlation_id=correlation_id),
            name=f"{name}:{correlation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(
        self,
        coro: cabc.Coroutine[typ.Any, typ.Any, object],
        *,
        name: str,
        correlation_id: str,
    ) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - task error boundary
            self._events.log_task_failed(
                correlation_id=correlation_id, task_name=name, error=exc
            )

    async def drain(self) -> None:
        """Wait until every tracked task, including ones spawned meanwhile, ends."""
        while outstanding := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*outstanding)
