"""In-flight request deduplication.

IdempotencyGuard prevents duplicate concurrent operations for the same key.
If operation A is running for key "ctx:ab12" and operation B arrives for
the same key, B attaches to A's task instead of running a duplicate.

Single-process, single event loop only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any


class IdempotencyGuard:
    """Deduplicates in-flight async operations by key.

    Usage::

        guard = IdempotencyGuard()
        result = await guard.execute("ctx:ab12", my_async_fn)

    The shared work runs in its own task. A caller that is cancelled
    while waiting detaches without cancelling the work for the others.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task[Any]] = {}

    async def execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run operation, deduplicating by key.

        No await separates the lookup from the registration, so two
        callers on the same loop can never both become owners.
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(operation())
            self._in_flight[key] = task
            task.add_done_callback(
                lambda done, key=key: self._release(key, done)
            )
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark the exception retrieved; every waiter may have detached.
        if not task.cancelled():
            task.exception()

    @property
    def active_keys(self) -> list[str]:
        """Return currently in-flight operation keys."""
        return list(self._in_flight.keys())

    def __len__(self) -> int:
        return len(self._in_flight)
