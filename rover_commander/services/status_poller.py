from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Awaitable, Callable

from rover_commander.common.logging_config import TRACE
from rover_commander.constants import POLL_INTERVAL_S
from rover_commander.services.device_gateway import DeviceGateway
from rover_commander.state import RobotState, RobotStatus


class StatusPoller:
    """
    Pulls telemetry from the gateway on a fixed period and merges it into state.

    Polls are serialized: the next tick is armed only once the previous
    get_status() has resolved. A tick that raises is logged and the loop
    carries on. Ticks stay on ``interval_s`` boundaries of the
    injected clock; an overrun poll is followed immediately by the next one
    and the schedule re-anchors from there.
    """

    def __init__(
        self,
        gateway: DeviceGateway,
        state: RobotState,
        interval_s: float = POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.gateway = gateway
        self.state = state
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.poll_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> RobotStatus:
        token = self.state.begin_poll()
        status = await self.gateway.get_status()
        self.state.merge(status, issued_at=token)
        self.poll_count += 1
        logging.log(TRACE, "Status poll #%d: %s", self.poll_count, status)
        return status

    async def _run(self) -> None:
        next_tick = self._clock()
        while True:
            try:
                await self.poll_once()
            except Exception:
                # Keep polling after a failed tick
                logging.exception("Status poll failed")
            next_tick += self.interval_s
            delay = next_tick - self._clock()
            if delay < 0:
                logging.debug("Status poll overran period by %.3f s", -delay)
                next_tick = self._clock()
                delay = 0.0
            await self._sleep(delay)

    def start(self) -> None:
        """Start polling (first poll runs right away). No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="status-poller")
        logging.info("Status poller started (every %.1fs)", self.interval_s)

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logging.info("Status poller stopped after %d polls", self.poll_count)
