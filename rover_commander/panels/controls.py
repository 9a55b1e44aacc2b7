from __future__ import annotations

import logging
from functools import partial

from nicegui import events, ui

from rover_commander.constants import SERVO_MAX_DEG, SERVO_MIN_DEG, SERVO_PRESETS
from rover_commander.services.command_dispatcher import CommandDispatcher, PointerEvent
from rover_commander.state import MoveCommand, RobotMode

# (command, icon, label) in pad order
PAD_BUTTONS: tuple[tuple[MoveCommand, str, str], ...] = (
    (MoveCommand.FORWARD, "arrow_upward", "FWD"),
    (MoveCommand.ROTATE_CCW, "rotate_left", "CCW"),
    (MoveCommand.BACKWARD, "arrow_downward", "BWD"),
    (MoveCommand.ROTATE_CW, "rotate_right", "CW"),
)


class ControlsPanel:
    """Movement pad (buttons + WASD) and the camera gimbal slider."""

    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self.dispatcher = dispatcher
        self.pad_buttons: dict[MoveCommand, ui.button] = {}
        self.servo_slider: ui.slider | None = None
        self.keyboard: ui.keyboard | None = None
        self._highlighted: MoveCommand | None = None
        self._highlight_synced = False

    # ---- Movement ----

    async def _pointer(self, command: MoveCommand, event: PointerEvent) -> None:
        try:
            await self.dispatcher.on_pointer(command, event)
        except Exception as e:
            logging.error("%s %s failed: %s", command.value, event, e)
        self.refresh()

    async def _on_key(self, e: events.KeyEventArguments) -> None:
        if not (e.action.keydown or e.action.keyup):
            return
        try:
            await self.dispatcher.on_key(
                e.key.name, keydown=e.action.keydown, repeat=e.action.repeat
            )
        except Exception as ex:
            logging.error("Key %s failed: %s", e.key.name, ex)
        self.refresh()

    def refresh(self) -> None:
        """Highlight the active pad button; only touches the page when it changes."""
        active = self.dispatcher.active_command
        if self._highlight_synced and active == self._highlighted:
            return
        self._highlighted = active
        self._highlight_synced = bool(self.pad_buttons)
        for command, button in self.pad_buttons.items():
            if command == active:
                button.classes(add="is-pressed")
                button.props("color=info")
            else:
                button.classes(remove="is-pressed")
                button.props("color=grey-9")

    # ---- Gimbal ----

    async def _on_servo(self, e: events.ValueChangeEventArguments) -> None:
        value = int(e.value)
        if value == self.dispatcher.servo_angle:
            # Programmatic sync after a preset; already transmitted
            return
        try:
            await self.dispatcher.on_servo_drag(value)
        except Exception as ex:
            logging.error("Servo update failed: %s", ex)

    async def _on_preset(self, value: int) -> None:
        try:
            await self.dispatcher.servo_preset(value)
        except Exception as e:
            logging.error("Servo preset failed: %s", e)
        if self.servo_slider:
            self.servo_slider.set_value(self.dispatcher.servo_angle)

    # ---- UI ----

    def _pad_button(self, command: MoveCommand, icon: str, label: str) -> ui.button:
        state = self.dispatcher.state
        button = (
            ui.button(label, icon=icon)
            .props("stack unelevated color=grey-9")
            .classes("w-24 h-24 font-mono text-xs")
            .bind_enabled_from(state, "mode", backward=lambda m: m != RobotMode.AUTOMATIC)
            .mark(f"pad-{command.value.lower()}")
        )
        button.on("mousedown", partial(self._pointer, command, "press"))
        button.on("mouseup", partial(self._pointer, command, "release"))
        button.on("mouseleave", partial(self._pointer, command, "leave"))
        button.on("touchstart.prevent", partial(self._pointer, command, "press"))
        button.on("touchend.prevent", partial(self._pointer, command, "release"))
        # Interrupted touch never sends touchend
        button.on("touchcancel", partial(self._pointer, command, "leave"))
        self.pad_buttons[command] = button
        return button

    def build(self) -> None:
        state = self.dispatcher.state
        self.keyboard = ui.keyboard(on_key=self._on_key)

        with ui.row().classes("w-full gap-6 items-stretch no-wrap"):
            with ui.card().classes("flex-1 items-center relative"):
                ui.label("LOCOMOTION").classes("text-xs font-mono self-start opacity-60")
                ui.label("CONTROLS LOCKED (AUTO MODE)").classes(
                    "text-xs font-mono text-negative"
                ).bind_visibility_from(
                    state, "mode", backward=lambda m: m == RobotMode.AUTOMATIC
                )
                forward, ccw, backward, cw = PAD_BUTTONS
                with ui.grid(columns=3).classes("gap-3 mt-2"):
                    ui.element("div")
                    self._pad_button(*forward)
                    ui.element("div")
                    self._pad_button(*ccw)
                    self._pad_button(*backward)
                    self._pad_button(*cw)
                ui.label("KEYBOARD: WASD").classes("text-xs font-mono opacity-50 mt-2")

            with ui.card().classes("flex-1"):
                ui.label("CAMERA GIMBAL").classes("text-xs font-mono opacity-60")
                with ui.row().classes("w-full justify-between text-xs font-mono"):
                    ui.label(f"{SERVO_MIN_DEG}° (DOWN)")
                    angle_label = ui.label().classes("text-lg font-bold text-info")
                    ui.label(f"{SERVO_MAX_DEG}° (UP)")
                self.servo_slider = ui.slider(
                    min=SERVO_MIN_DEG,
                    max=SERVO_MAX_DEG,
                    step=1,
                    value=self.dispatcher.servo_angle,
                    on_change=self._on_servo,
                ).classes("w-full")
                angle_label.bind_text_from(
                    self.servo_slider, "value", backward=lambda v: f"{int(v)}°"
                )
                with ui.row().classes("w-full gap-2 no-wrap"):
                    for text, value in SERVO_PRESETS:
                        ui.button(text, on_click=partial(self._on_preset, value)).props(
                            "outline dense"
                        ).classes("flex-1 font-mono text-xs")
        self.refresh()
