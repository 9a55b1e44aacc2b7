from __future__ import annotations

import logging
from typing import Literal

from rover_commander.constants import SERVO_CENTER_DEG
from rover_commander.services.device_gateway import DeviceGateway, clamp_servo_angle
from rover_commander.state import MoveCommand, RobotMode, RobotState, toggled

PointerEvent = Literal["press", "release", "leave"]

# WASD drive mapping; any release sends STOP
KEY_COMMANDS: dict[str, MoveCommand] = {
    "w": MoveCommand.FORWARD,
    "s": MoveCommand.BACKWARD,
    "a": MoveCommand.ROTATE_CCW,
    "d": MoveCommand.ROTATE_CW,
}


class CommandDispatcher:
    """
    Turns keyboard, pad button, slider and mode-toggle events into device calls.

    Mode is read from the shared RobotState; the dispatcher only owns the
    active movement command and the gimbal angle. Gateway results are
    discarded on purpose: a dropped command is logged by the gateway and the
    next telemetry poll shows the real device state.
    """

    def __init__(self, gateway: DeviceGateway, state: RobotState) -> None:
        self.gateway = gateway
        self.state = state
        self.active_command: MoveCommand | None = None
        self.servo_angle: int = SERVO_CENTER_DEG
        self._held_keys: set[str] = set()

    @property
    def controls_locked(self) -> bool:
        return self.state.mode == RobotMode.AUTOMATIC

    # ---- Movement ----

    async def on_input(self, command: MoveCommand, is_pressed: bool) -> None:
        """Press starts ``command``; release of any control stops the vehicle."""
        if self.controls_locked:
            return

        if is_pressed:
            previous = self.active_command
            if previous is not None and previous != command:
                _ = await self.gateway.send_command(MoveCommand.STOP)
            self.active_command = command
            _ = await self.gateway.send_command(command)
        else:
            self.active_command = None
            _ = await self.gateway.send_command(MoveCommand.STOP)

    async def on_key(self, key: str, keydown: bool, repeat: bool = False) -> None:
        name = (key or "").lower()
        command = KEY_COMMANDS.get(name)
        if command is None:
            return
        if keydown:
            # Auto-repeat and duplicate downs while held are dropped
            if repeat or name in self._held_keys:
                return
            self._held_keys.add(name)
            await self.on_input(command, True)
        else:
            self._held_keys.discard(name)
            await self.on_input(command, False)

    async def on_pointer(self, command: MoveCommand, event: PointerEvent) -> None:
        if event == "press":
            await self.on_input(command, True)
        elif event == "release":
            await self.on_input(command, False)
        elif event == "leave":
            # Sliding off a held button counts as a release
            if self.active_command == command:
                await self.on_input(command, False)
        else:
            raise ValueError(f"Unknown pointer event: {event!r}")

    # ---- Gimbal ----

    async def on_servo_drag(self, value: float) -> None:
        """Every drag tick is transmitted; no debouncing."""
        self.servo_angle = clamp_servo_angle(value)
        _ = await self.gateway.set_servo_angle(self.servo_angle)

    async def servo_preset(self, value: int) -> None:
        await self.on_servo_drag(value)

    # ---- Mode ----

    async def on_mode_toggle(self) -> RobotMode:
        new_mode = toggled(self.state.mode)
        # Optimistic: the UI flips before the device confirms
        self.state.set_mode(new_mode)
        if new_mode == RobotMode.AUTOMATIC:
            self.active_command = None
            self._held_keys.clear()
        logging.info("Mode -> %s", new_mode.value)
        _ = await self.gateway.set_mode(new_mode)
        return new_mode
