"""Fire-and-forget task handling for cache warm-up and background refresh."""

import asyncio
import functools
from typing import Any, Coroutine, Optional, Set

from .logger import StructuredLogger, get_logger


class BackgroundTasks:
    """
    Holds strong references to detached tasks until they finish and logs
    their failures, so an unobserved exception is never left on the loop.
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or get_logger()
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> Optional[asyncio.Task]:
        """Schedule ``coro`` without awaiting it. Returns None outside an event loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            self.logger.warning("No running event loop, background task skipped", task=name)
            return None

        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._on_done, name))
        return task

    def _on_done(self, name: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.warning(f"Background task {name} failed", error=str(error))

    async def drain(self) -> None:
        """Wait for every pending task (shutdown and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
