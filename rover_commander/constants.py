from __future__ import annotations

import logging
import os

APP_TITLE = "PI-BOT Commander"
FW_VERSION = "1.0.0"

# Remote device (Flask API on the Pi)
DEVICE_URL: str = os.getenv("ROVER_DEVICE_URL", "http://raspberrypi.local:5000")
MOCK_MODE: bool = os.getenv("ROVER_MOCK", "1") in (
    "1",
    "true",
    "True",
    "yes",
    "YES",
)
MOCK_LATENCY_S: float = float(os.getenv("ROVER_MOCK_LATENCY_S", "0.1"))

ENDPOINT_CONTROL = "/api/control"
ENDPOINT_MODE = "/api/mode"
ENDPOINT_SERVO = "/api/servo"
ENDPOINT_STATUS = "/api/status"
ENDPOINT_VIDEO_MAIN = "/video_feed"
ENDPOINT_VIDEO_THERMAL = "/thermal_feed"

# Telemetry polling; request timeout defaults to one poll period
POLL_INTERVAL_S: float = float(os.getenv("ROVER_POLL_INTERVAL_S", "2.0"))
REQUEST_TIMEOUT_S: float = float(
    os.getenv("ROVER_REQUEST_TIMEOUT_S", str(POLL_INTERVAL_S))
)

# Camera gimbal servo range (degrees)
SERVO_MIN_DEG = 0
SERVO_MAX_DEG = 150
SERVO_CENTER_DEG = 75
SERVO_PRESETS: tuple[tuple[str, int], ...] = (
    ("RESET 0°", SERVO_MIN_DEG),
    ("CENTER 75°", SERVO_CENTER_DEG),
    ("MAX 150°", SERVO_MAX_DEG),
)

# Header indicator thresholds
BATTERY_LOW_V = 11.0
CPU_HOT_C = 70.0

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("ROVER_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("ROVER_SERVER_PORT", "8080"))


def resolve_log_level() -> int:
    s = os.getenv("ROVER_LOG_LEVEL")
    if s:
        name = s.strip().upper()
        mapping = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return mapping.get(name, logging.INFO)
    else:
        return logging.INFO


LOG_LEVEL: int = resolve_log_level()
