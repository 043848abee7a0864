from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Gibt nur den zuletzt übergebenen Wert weiter, nachdem `delay_seconds`
    lang kein neuer Wert eingetroffen ist. Ein einziger Timer für den ganzen
    Wert: jeder `push` startet ihn neu.
    """

    def __init__(
        self,
        delay_seconds: float,
        on_emit: Callable[[T], Awaitable[None] | None],
    ) -> None:
        self._delay = delay_seconds
        self._on_emit = on_emit
        self._latest: T | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def is_waiting(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        if self._closed:
            return
        self._latest = value
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._emit)

    def close(self) -> None:
        """Stops future emissions. Work already emitted keeps running."""
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Waits for emitted callbacks that are still running."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _emit(self) -> None:
        self._handle = None
        value = self._latest
        result = self._on_emit(value)  # type: ignore[arg-type]
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced callback failed", exc_info=task.exception())
