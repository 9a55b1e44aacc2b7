from __future__ import annotations

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from nicegui import binding


class RobotMode(str, Enum):
    MANUAL = "MANUAL"
    AUTOMATIC = "AUTOMATIC"


class MoveCommand(str, Enum):
    FORWARD = "FORWARD"
    BACKWARD = "BACKWARD"
    ROTATE_CW = "ROTATE_CW"
    ROTATE_CCW = "ROTATE_CCW"
    STOP = "STOP"


def _finite(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite number: {value!r}")
    return number


@dataclass(frozen=True)
class GpsFix:
    lat: float = 0.0  # deg
    lng: float = 0.0  # deg
    satellites: int = 0


@dataclass(frozen=True)
class RobotStatus:
    """One telemetry snapshot as reported by the device."""

    online: bool = False
    battery_voltage: float = 0.0  # V
    cpu_temp: float = 0.0  # C
    mode: RobotMode = RobotMode.MANUAL
    gps: GpsFix = field(default_factory=GpsFix)
    heading: float = 0.0  # deg, 0-360

    @classmethod
    def from_payload(cls, payload: Any) -> "RobotStatus":
        """
        Decode the camelCase JSON body of GET /api/status.

        Raises:
            KeyError, TypeError, ValueError: if a field is missing, malformed
                or not a finite number
        """
        if not isinstance(payload, Mapping):
            raise TypeError(f"status payload must be an object, got {type(payload).__name__}")
        gps = payload["gps"]
        if not isinstance(gps, Mapping):
            raise TypeError("gps must be an object")
        online = payload["online"]
        if not isinstance(online, bool):
            raise TypeError("online must be a boolean")
        return cls(
            online=online,
            battery_voltage=_finite(payload["batteryVoltage"]),
            cpu_temp=_finite(payload["cpuTemp"]),
            mode=RobotMode(payload["mode"]),
            gps=GpsFix(
                lat=_finite(gps["lat"]),
                lng=_finite(gps["lng"]),
                satellites=int(_finite(gps["satellites"])),
            ),
            heading=_finite(payload["heading"]) % 360.0,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "online": self.online,
            "batteryVoltage": self.battery_voltage,
            "cpuTemp": self.cpu_temp,
            "mode": self.mode.value,
            "gps": {
                "lat": self.gps.lat,
                "lng": self.gps.lng,
                "satellites": self.gps.satellites,
            },
            "heading": self.heading,
        }


# Returned by the gateway whenever the device cannot be reached or decoded
OFFLINE_STATUS = RobotStatus()

_STATUS_FIELDS = ("online", "battery_voltage", "cpu_temp", "mode", "heading")
_GPS_FIELDS = ("lat", "lng", "satellites")


@binding.bindable_dataclass
class RobotState:
    """
    Shared status cell for the dashboard.

    Created by the application controller and handed to the poller, the
    dispatcher and the panels. All writes are synchronous, so a replace or
    merge is atomic with respect to other event-loop turns.
    """

    online: bool = False
    battery_voltage: float = 0.0
    cpu_temp: float = 0.0
    mode: RobotMode = RobotMode.MANUAL
    lat: float = 0.0
    lng: float = 0.0
    satellites: int = 0
    heading: float = 0.0
    last_update_ts: float = 0.0
    # Monotonic write counter; polls and local mode writes take a token from it
    version: int = 0
    mode_set_version: int = 0

    # ---- Read ----

    @property
    def status(self) -> RobotStatus:
        return RobotStatus(
            online=self.online,
            battery_voltage=self.battery_voltage,
            cpu_temp=self.cpu_temp,
            mode=self.mode,
            gps=GpsFix(lat=self.lat, lng=self.lng, satellites=self.satellites),
            heading=self.heading,
        )

    # ---- Write ----

    def begin_poll(self) -> int:
        """Return a version token for a poll that is about to be issued."""
        self.version += 1
        return self.version

    def merge(self, update: RobotStatus | Mapping[str, Any], issued_at: int | None = None) -> None:
        """
        Merge telemetry field by field.

        ``update`` is either a full RobotStatus or a partial mapping using
        RobotStatus attribute names (``gps`` may itself be partial). Fields it
        does not carry keep their prior values. When ``issued_at`` predates the
        last local mode change, the update's mode is ignored.
        """
        if isinstance(update, RobotStatus):
            fields: dict[str, Any] = {name: getattr(update, name) for name in _STATUS_FIELDS}
            gps: dict[str, Any] = {name: getattr(update.gps, name) for name in _GPS_FIELDS}
        else:
            fields = {k: update[k] for k in _STATUS_FIELDS if k in update}
            raw_gps = update.get("gps")
            if isinstance(raw_gps, GpsFix):
                gps = {name: getattr(raw_gps, name) for name in _GPS_FIELDS}
            elif isinstance(raw_gps, Mapping):
                gps = {k: raw_gps[k] for k in _GPS_FIELDS if k in raw_gps}
            else:
                gps = {}

        if "mode" in fields:
            stale = issued_at is not None and issued_at < self.mode_set_version
            if stale:
                del fields["mode"]
            else:
                fields["mode"] = RobotMode(fields["mode"])

        for name, value in fields.items():
            setattr(self, name, value)
        for name, value in gps.items():
            setattr(self, name, value)
        self.last_update_ts = time.time()

    def set_mode(self, mode: RobotMode) -> None:
        """Record a user-initiated mode change ahead of device confirmation."""
        self.version += 1
        self.mode_set_version = self.version
        self.mode = mode


def toggled(mode: RobotMode) -> RobotMode:
    return RobotMode.AUTOMATIC if mode == RobotMode.MANUAL else RobotMode.MANUAL
