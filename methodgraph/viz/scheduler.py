"""Cooperative frame scheduling: steppers, the asyncio frame loop, debouncing."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Generic, Protocol, TypeVar

from methodgraph.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Stepper(Protocol):
    def advance(self, elapsed: float) -> bool:
        """Advance by one frame; return False once there is nothing left to do."""
        ...


class FrameLoop:
    """Drives a stepper once per frame on the running event loop.

    The loop parks itself when the stepper reports it is idle; ``wake``
    resumes it (after a reheat or a drag). ``on_frame`` runs after every
    completed step so rendering always reflects the latest finished step.
    """

    def __init__(
        self,
        stepper: Stepper,
        on_frame: Callable[[], None] | None = None,
        fps: int = 60,
    ) -> None:
        self._stepper = stepper
        self._on_frame = on_frame
        self._interval = 1.0 / fps
        self._task: asyncio.Task | None = None
        self._stopped = False
        self.frames = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._stopped or self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    def wake(self) -> None:
        try:
            self.start()
        except RuntimeError:
            # No running event loop: the caller steps synchronously.
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        last = loop.time()
        while not self._stopped:
            now = loop.time()
            active = self._stepper.advance(now - last)
            last = now
            self.frames += 1
            if self._on_frame is not None and not self._stopped:
                self._on_frame()
            if not active:
                logger.debug("frame_loop_idle", frames=self.frames)
                return
            await asyncio.sleep(self._interval)

    async def wait_idle(self) -> None:
        if self._task is not None:
            await asyncio.shield(self._task)

    def stop(self) -> None:
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class Debouncer(Generic[T]):
    """Coalesces calls: only the latest value fires, ``delay`` after the last call."""

    def __init__(self, delay: float, callback: Callable[[T], Any]) -> None:
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, value: T) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("rebuild_coalesced", delay=self._delay)
        self._handle = loop.call_later(self._delay, self._fire, value)

    def _fire(self, value: T) -> None:
        self._handle = None
        result = self._callback(value)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
