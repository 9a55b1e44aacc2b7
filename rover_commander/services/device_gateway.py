from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import httpx

from rover_commander.config import Config
from rover_commander.constants import (
    ENDPOINT_CONTROL,
    ENDPOINT_MODE,
    ENDPOINT_SERVO,
    ENDPOINT_STATUS,
    ENDPOINT_VIDEO_MAIN,
    ENDPOINT_VIDEO_THERMAL,
    SERVO_MAX_DEG,
    SERVO_MIN_DEG,
)
from rover_commander.state import (
    OFFLINE_STATUS,
    GpsFix,
    MoveCommand,
    RobotMode,
    RobotStatus,
)


class VideoFeedKind(str, Enum):
    VISUAL = "visual"
    THERMAL = "thermal"


_FEED_PATHS = {
    VideoFeedKind.VISUAL: ENDPOINT_VIDEO_MAIN,
    VideoFeedKind.THERMAL: ENDPOINT_VIDEO_THERMAL,
}

MOCK_STATUS = RobotStatus(
    online=True,
    battery_voltage=12.4,
    cpu_temp=45.2,
    mode=RobotMode.MANUAL,
    gps=GpsFix(lat=40.7128, lng=-74.0060, satellites=8),
    heading=45.0,
)


class GatewayError(Exception):
    """Base class for failures talking to the device."""


class TransportFailure(GatewayError):
    """Device unreachable, timed out, or answered with a non-2xx status."""


class DecodeFailure(GatewayError):
    """Device answered but the telemetry body could not be decoded."""


@dataclass(frozen=True)
class CallResult:
    """Outcome of a fire-and-forget call; callers are free to discard it."""

    ok: bool
    error: str | None = None


OK = CallResult(ok=True)


def clamp_servo_angle(angle: float) -> int:
    return int(max(SERVO_MIN_DEG, min(SERVO_MAX_DEG, int(round(angle)))))


class DeviceGateway(Protocol):
    async def send_command(self, command: MoveCommand) -> CallResult: ...

    async def set_servo_angle(self, angle: int) -> CallResult: ...

    async def set_mode(self, mode: RobotMode) -> CallResult: ...

    async def get_status(self) -> RobotStatus: ...

    def stream_url(self, feed: VideoFeedKind) -> str: ...

    async def close(self) -> None: ...


class MockDeviceGateway:
    """Fabricates telemetry and accepts every command without any networking."""

    def __init__(
        self,
        base_url: str = "",
        latency_s: float = 0.1,
        status: RobotStatus = MOCK_STATUS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.latency_s = latency_s
        self.status = status

    async def send_command(self, command: MoveCommand) -> CallResult:
        logging.info("Sending command: %s", command.value)
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)
        return OK

    async def set_servo_angle(self, angle: int) -> CallResult:
        safe_angle = clamp_servo_angle(angle)
        logging.info("Setting servo: %s°", safe_angle)
        return OK

    async def set_mode(self, mode: RobotMode) -> CallResult:
        logging.info("Setting mode: %s", mode.value)
        return OK

    async def get_status(self) -> RobotStatus:
        return self.status

    def stream_url(self, feed: VideoFeedKind) -> str:
        return f"{self.base_url}{_FEED_PATHS[feed]}"

    async def close(self) -> None:
        return None


class HttpDeviceGateway:
    """
    Talks to the device's Flask API over HTTP.

    Failures never leave this class. Commands come back as a failed
    CallResult, and telemetry falls back to OFFLINE_STATUS.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._link_up = True

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    # ---- Transport ----

    async def _post(self, path: str, body: dict[str, Any]) -> None:
        try:
            resp = await self.client.post(path, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportFailure(f"POST {path} -> HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"POST {path} failed: {e!r}") from e

    async def _get_json(self, path: str) -> Any:
        try:
            resp = await self.client.get(path)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportFailure(f"GET {path} -> HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"GET {path} failed: {e!r}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise DecodeFailure(f"GET {path}: body is not JSON") from e

    async def _call(self, what: str, path: str, body: dict[str, Any]) -> CallResult:
        try:
            await self._post(path, body)
        except GatewayError as e:
            logging.warning("Failed to %s: %s", what, e)
            return CallResult(ok=False, error=str(e))
        return OK

    # ---- Operations ----

    async def send_command(self, command: MoveCommand) -> CallResult:
        logging.info("Sending command: %s", command.value)
        return await self._call("send command", ENDPOINT_CONTROL, {"command": command.value})

    async def set_servo_angle(self, angle: int) -> CallResult:
        safe_angle = clamp_servo_angle(angle)
        logging.debug("Setting servo: %s°", safe_angle)
        return await self._call("set servo", ENDPOINT_SERVO, {"angle": safe_angle})

    async def set_mode(self, mode: RobotMode) -> CallResult:
        logging.info("Setting mode: %s", mode.value)
        return await self._call("set mode", ENDPOINT_MODE, {"mode": mode.value})

    async def get_status(self) -> RobotStatus:
        try:
            payload = await self._get_json(ENDPOINT_STATUS)
            try:
                status = RobotStatus.from_payload(payload)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                raise DecodeFailure(f"malformed status: {e!r}") from e
        except GatewayError as e:
            # Log once per outage, keep later failures quiet
            if self._link_up:
                logging.warning("Status fetch failed, reporting offline: %s", e)
            else:
                logging.debug("Status fetch still failing: %s", e)
            self._link_up = False
            return OFFLINE_STATUS
        if not self._link_up:
            logging.info("Status link restored")
        self._link_up = True
        return status

    def stream_url(self, feed: VideoFeedKind) -> str:
        return f"{self.base_url}{_FEED_PATHS[feed]}"

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def create_gateway(cfg: Config) -> DeviceGateway:
    """Pick the mock or live gateway once, at construction."""
    if cfg.MOCK:
        logging.info("Device gateway: MOCK (no network)")
        return MockDeviceGateway(base_url=cfg.DEVICE_URL, latency_s=cfg.MOCK_LATENCY_S)
    logging.info("Device gateway: HTTP %s (timeout %.1fs)", cfg.DEVICE_URL, cfg.REQUEST_TIMEOUT_S)
    return HttpDeviceGateway(base_url=cfg.DEVICE_URL, timeout=cfg.REQUEST_TIMEOUT_S)
