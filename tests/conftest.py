from __future__ import annotations

import os

import pytest

from tests.utils.fakes import RecorderGateway

pytest_plugins = ["nicegui.testing.user_plugin"]


@pytest.fixture(scope="session", autouse=True)
def webapp_env_session() -> None:
    """
    Global test defaults for the dashboard (set at session start via os.environ):
      - Mock device gateway, so nothing touches the network
      - No simulated command latency
    These can still be overridden per-test with monkeypatch.setenv if needed.
    """
    os.environ["ROVER_MOCK"] = "1"
    os.environ["ROVER_MOCK_LATENCY_S"] = "0"


@pytest.fixture
def gateway() -> RecorderGateway:
    return RecorderGateway()
