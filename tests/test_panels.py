from __future__ import annotations

import pytest

from rover_commander.panels.controls import ControlsPanel
from rover_commander.panels.header import NEGATIVE, POSITIVE, HeaderPanel
from rover_commander.services.command_dispatcher import CommandDispatcher
from rover_commander.state import MoveCommand, RobotMode, RobotState


class FakeElement:
    """Stands in for a NiceGUI element; records every update sent to the page."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, object]] = []

    def style(self, value: str) -> FakeElement:
        self.updates.append(("style", value))
        return self

    def props(self, value: str) -> FakeElement:
        self.updates.append(("props", value))
        return self

    def classes(self, add: str | None = None, remove: str | None = None) -> FakeElement:
        self.updates.append(("classes", add or f"-{remove}"))
        return self


@pytest.fixture
def state() -> RobotState:
    return RobotState()


@pytest.mark.unit
def test_header_refresh_only_sends_changes(gateway, state):
    header = HeaderPanel(state, CommandDispatcher(gateway, state))
    link, battery, cpu, mode = FakeElement(), FakeElement(), FakeElement(), FakeElement()
    header.link_label, header.battery_label, header.cpu_label, header.mode_button = (
        link,
        battery,
        cpu,
        mode,
    )

    header.refresh()
    header.refresh()
    header.refresh()
    assert link.updates == [("style", f"color: {NEGATIVE}")]
    assert len(battery.updates) == len(cpu.updates) == len(mode.updates) == 1

    state.online = True
    state.mode = RobotMode.AUTOMATIC
    header.refresh()
    header.refresh()
    assert link.updates[-1] == ("style", f"color: {POSITIVE}")
    assert len(link.updates) == 2
    assert mode.updates == [("props", "color=grey-8"), ("props", "color=info")]
    assert len(battery.updates) == 1


@pytest.mark.unit
async def test_pad_highlight_only_sends_changes(gateway, state):
    dispatcher = CommandDispatcher(gateway, state)
    controls = ControlsPanel(dispatcher)
    forward, backward = FakeElement(), FakeElement()
    controls.pad_buttons = {MoveCommand.FORWARD: forward, MoveCommand.BACKWARD: backward}

    controls.refresh()
    sent = len(forward.updates)
    controls.refresh()
    assert len(forward.updates) == sent

    await dispatcher.on_input(MoveCommand.FORWARD, True)
    controls.refresh()
    controls.refresh()
    assert forward.updates[-1] == ("props", "color=info")
    assert len(forward.updates) == sent + 2

    await dispatcher.on_input(MoveCommand.FORWARD, False)
    controls.refresh()
    assert forward.updates[-1] == ("props", "color=grey-9")
    assert backward.updates[-1] == ("props", "color=grey-9")
