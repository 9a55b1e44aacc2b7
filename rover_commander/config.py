from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlsplit

from rover_commander.constants import (
    DEVICE_URL,
    LOG_LEVEL,
    MOCK_LATENCY_S,
    MOCK_MODE,
    POLL_INTERVAL_S,
    REQUEST_TIMEOUT_S,
    SERVER_HOST,
    SERVER_PORT,
    resolve_log_level,
)

_TRUTHY = ("1", "true", "True", "yes", "YES")


@dataclass
class Config:
    """Runtime configuration for the dashboard and its device connection."""

    DEVICE_URL: str = DEVICE_URL
    MOCK: bool = MOCK_MODE
    MOCK_LATENCY_S: float = MOCK_LATENCY_S
    POLL_INTERVAL_S: float = POLL_INTERVAL_S
    REQUEST_TIMEOUT_S: float = REQUEST_TIMEOUT_S
    HOST: str = SERVER_HOST
    PORT: int = SERVER_PORT  # NiceGUI server port
    LOG_LEVEL: int = LOG_LEVEL

    def __post_init__(self) -> None:
        self.DEVICE_URL = self.DEVICE_URL.rstrip("/")
        parts = urlsplit(self.DEVICE_URL)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Device URL must be http(s)://host[:port]: {self.DEVICE_URL!r}")
        if self.POLL_INTERVAL_S <= 0:
            raise ValueError("POLL_INTERVAL_S must be > 0")
        if self.REQUEST_TIMEOUT_S <= 0:
            raise ValueError("REQUEST_TIMEOUT_S must be > 0")
        if self.MOCK_LATENCY_S < 0:
            raise ValueError("MOCK_LATENCY_S must be >= 0")
        if not 1 <= self.PORT <= 65535:
            raise ValueError(f"PORT out of range: {self.PORT}")

    @classmethod
    def from_env(cls) -> "Config":
        poll = float(os.getenv("ROVER_POLL_INTERVAL_S", str(POLL_INTERVAL_S)))
        return cls(
            DEVICE_URL=os.getenv("ROVER_DEVICE_URL", DEVICE_URL),
            MOCK=os.getenv("ROVER_MOCK", "1") in _TRUTHY,
            MOCK_LATENCY_S=float(os.getenv("ROVER_MOCK_LATENCY_S", str(MOCK_LATENCY_S))),
            POLL_INTERVAL_S=poll,
            # Unset timeout follows the poll period
            REQUEST_TIMEOUT_S=float(os.getenv("ROVER_REQUEST_TIMEOUT_S", str(poll))),
            HOST=os.getenv("ROVER_SERVER_IP", SERVER_HOST),
            PORT=int(os.getenv("ROVER_SERVER_PORT", str(SERVER_PORT))),
            LOG_LEVEL=resolve_log_level(),
        )
