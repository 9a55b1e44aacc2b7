from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from rover_commander.services.device_gateway import OK, CallResult, VideoFeedKind
from rover_commander.state import OFFLINE_STATUS, MoveCommand, RobotMode, RobotStatus


@dataclass
class RecorderGateway:
    """Records every call in order; get_status hands out queued statuses."""

    calls: list[tuple[str, object]] = field(default_factory=list)
    statuses: list[RobotStatus] = field(default_factory=list)
    default_status: RobotStatus = OFFLINE_STATUS
    closed: bool = False

    async def send_command(self, command: MoveCommand) -> CallResult:
        self.calls.append(("send_command", command))
        return OK

    async def set_servo_angle(self, angle: int) -> CallResult:
        self.calls.append(("set_servo_angle", angle))
        return OK

    async def set_mode(self, mode: RobotMode) -> CallResult:
        self.calls.append(("set_mode", mode))
        return OK

    async def get_status(self) -> RobotStatus:
        self.calls.append(("get_status", None))
        if self.statuses:
            return self.statuses.pop(0)
        return self.default_status

    def stream_url(self, feed: VideoFeedKind) -> str:
        return f"http://device.test/{feed.value}"

    async def close(self) -> None:
        self.closed = True

    @property
    def commands(self) -> list[MoveCommand]:
        return [arg for name, arg in self.calls if name == "send_command"]  # type: ignore[misc]

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


class FakeClock:
    """Manual clock; sleep() resolves only when advance() passes its deadline."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._waiters: list[tuple[float, asyncio.Future]] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        if delay <= 0:
            await asyncio.sleep(0)
            return
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + delay, fut))
        await fut

    async def advance(self, dt: float) -> None:
        self.now += dt
        due = [(t, f) for t, f in self._waiters if t <= self.now + 1e-9]
        self._waiters = [(t, f) for t, f in self._waiters if t > self.now + 1e-9]
        for _, fut in due:
            if not fut.done():
                fut.set_result(None)
        await settle()


async def settle(turns: int = 10) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(turns):
        await asyncio.sleep(0)
