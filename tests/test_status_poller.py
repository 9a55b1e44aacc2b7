from __future__ import annotations

import asyncio

import pytest

from rover_commander.services.device_gateway import MOCK_STATUS, MockDeviceGateway
from rover_commander.services.status_poller import StatusPoller
from rover_commander.state import OFFLINE_STATUS, RobotMode, RobotState, RobotStatus
from tests.utils.fakes import FakeClock, RecorderGateway, settle


def _poller(gateway, state=None, clock=None) -> tuple[StatusPoller, FakeClock]:
    clock = clock or FakeClock()
    poller = StatusPoller(
        gateway,
        state if state is not None else RobotState(),
        interval_s=2.0,
        clock=clock,
        sleep=clock.sleep,
    )
    return poller, clock


@pytest.mark.unit
async def test_polls_immediately_then_every_period_until_stopped(gateway):
    poller, clock = _poller(gateway)

    poller.start()
    await settle()
    assert gateway.count("get_status") == 1

    await clock.advance(1.999)
    assert gateway.count("get_status") == 1

    await clock.advance(0.001)
    assert gateway.count("get_status") == 2

    await clock.advance(2.0)
    assert gateway.count("get_status") == 3

    await poller.stop()
    assert not poller.running

    await clock.advance(10.0)
    assert gateway.count("get_status") == 3


@pytest.mark.unit
async def test_start_twice_runs_a_single_loop(gateway):
    poller, clock = _poller(gateway)

    poller.start()
    poller.start()
    await settle()
    await clock.advance(2.0)

    assert gateway.count("get_status") == 2
    await poller.stop()
    # Second stop is a no-op
    await poller.stop()


@pytest.mark.unit
async def test_polls_are_serialized_and_reanchor_after_overrun():
    clock = FakeClock()
    release = asyncio.Event()
    started: list[float] = []

    class SlowGateway(RecorderGateway):
        async def get_status(self) -> RobotStatus:
            started.append(clock.now)
            if len(started) == 2:
                # Second poll stalls past the next boundary
                await release.wait()
                clock.now += 3.0
            return MOCK_STATUS

    poller, _ = _poller(SlowGateway(), clock=clock)
    poller.start()
    await settle()
    await clock.advance(2.0)
    assert started == [0.0, 2.0]

    # While the second poll hangs, no further poll is issued
    await clock.advance(2.0)
    assert len(started) == 2

    release.set()
    await settle()
    # Overran: next poll starts right away, then the period resumes from there
    assert len(started) == 3
    await clock.advance(2.0)
    assert len(started) == 4
    await poller.stop()


@pytest.mark.unit
async def test_failed_polls_keep_the_loop_running(gateway):
    gateway.default_status = OFFLINE_STATUS
    state = RobotState()
    poller, clock = _poller(gateway, state=state)

    poller.start()
    await settle()
    for _ in range(3):
        await clock.advance(2.0)

    assert gateway.count("get_status") == 4
    assert state.online is False
    await poller.stop()


@pytest.mark.unit
async def test_raising_tick_is_logged_and_polling_continues(caplog):
    class FlakyGateway(RecorderGateway):
        async def get_status(self) -> RobotStatus:
            status = await super().get_status()
            if self.count("get_status") == 1:
                raise OverflowError("cannot convert float infinity to integer")
            return status

    gateway = FlakyGateway(default_status=MOCK_STATUS)
    state = RobotState()
    poller, clock = _poller(gateway, state=state)

    poller.start()
    await settle()
    assert gateway.count("get_status") == 1
    assert poller.running
    assert "Status poll failed" in caplog.text
    assert state.online is False

    await clock.advance(2.0)
    assert gateway.count("get_status") == 2
    assert state.online is True
    assert poller.running
    await poller.stop()


@pytest.mark.unit
async def test_merge_error_does_not_stop_polling():
    class BadModeGateway(RecorderGateway):
        async def get_status(self):
            await super().get_status()
            if self.count("get_status") == 1:
                return {"online": True, "mode": "TURBO"}
            return MOCK_STATUS

    gateway = BadModeGateway()
    state = RobotState()
    poller, clock = _poller(gateway, state=state)

    poller.start()
    await settle()
    await clock.advance(2.0)

    assert gateway.count("get_status") == 2
    assert state.status == MOCK_STATUS
    await poller.stop()


@pytest.mark.unit
async def test_first_tick_in_mock_mode_fills_state_with_canned_record():
    state = RobotState()
    poller, _ = _poller(MockDeviceGateway(latency_s=0), state=state)

    poller.start()
    await settle()

    assert state.status == RobotStatus(
        online=True,
        battery_voltage=12.4,
        cpu_temp=45.2,
        mode=RobotMode.MANUAL,
        gps=MOCK_STATUS.gps,
        heading=45.0,
    )
    assert state.lat == 40.7128 and state.lng == -74.0060 and state.satellites == 8
    await poller.stop()


@pytest.mark.unit
async def test_stale_poll_does_not_undo_local_mode_toggle():
    state = RobotState()
    release = asyncio.Event()

    class InFlightGateway(RecorderGateway):
        async def get_status(self) -> RobotStatus:
            await release.wait()
            return MOCK_STATUS  # still reports MANUAL

    poller = StatusPoller(InFlightGateway(), state)
    task = asyncio.create_task(poller.poll_once())
    await settle()

    # User flips to AUTOMATIC while the poll is in flight
    state.set_mode(RobotMode.AUTOMATIC)
    release.set()
    await task

    assert state.mode == RobotMode.AUTOMATIC
    assert state.online is True

    # A poll issued after the toggle is authoritative again
    release.set()
    await poller.poll_once()
    assert state.mode == RobotMode.MANUAL


@pytest.mark.unit
def test_interval_must_be_positive(gateway):
    with pytest.raises(ValueError):
        StatusPoller(gateway, RobotState(), interval_s=0)
