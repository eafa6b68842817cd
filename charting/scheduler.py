"""Frame-aligned scheduling of deferred chart work.

Hover updates are not applied inside the pointer handler; they are queued and
run at the next frame boundary. A scheduler hands out integer handles so a
pending task can be cancelled before it runs.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from core.config import HoverCfg

logger = logging.getLogger(__name__)

FrameCallback = Callable[[], None]


class FrameScheduler(Protocol):
    """Anything that can run a callback at the next frame and cancel it."""

    def request_frame(self, callback: FrameCallback) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...


class FrameQueue:
    """Explicit task queue drained one frame at a time.

    The owner of the queue (a render loop, or a test) calls ``run_frame()`` at
    each frame boundary. Callbacks requested while a frame is running are kept
    for the following frame.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._pending: OrderedDict[int, FrameCallback] = OrderedDict()

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for the next frame."""
        return len(self._pending)

    def run_frame(self) -> int:
        """Run every callback queued before this call.

        Returns:
            Number of callbacks executed
        """
        batch = list(self._pending.keys())
        executed = 0
        for handle in batch:
            callback = self._pending.pop(handle, None)
            if callback is None:
                # cancelled by an earlier callback in this frame
                continue
            callback()
            executed += 1
        return executed


class AsyncioFrameScheduler:
    """Run frame callbacks on an asyncio event loop after a fixed interval."""

    def __init__(
        self,
        frame_interval_sec: float = 1.0 / 60.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if frame_interval_sec <= 0:
            raise ValueError(f"frame_interval_sec must be positive, got {frame_interval_sec}")
        self.frame_interval_sec = frame_interval_sec
        self._loop = loop
        self._ids = itertools.count(1)
        self._timers: dict[int, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)

        def _run() -> None:
            self._timers.pop(handle, None)
            callback()

        self._timers[handle] = self._get_loop().call_later(self.frame_interval_sec, _run)
        return handle

    def cancel_frame(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.cancel()
            logger.debug("frame cancelled handle=%s", handle)

    @property
    def pending(self) -> int:
        return len(self._timers)


def frame_scheduler(
    cfg: HoverCfg,
    loop: asyncio.AbstractEventLoop | None = None,
) -> AsyncioFrameScheduler:
    """Event-loop scheduler running hover frames at ``cfg.frame_interval_sec``."""
    return AsyncioFrameScheduler(frame_interval_sec=cfg.frame_interval_sec, loop=loop)
