from __future__ import annotations

import logging

from nicegui import ui

from rover_commander.constants import APP_TITLE, BATTERY_LOW_V, CPU_HOT_C, FW_VERSION
from rover_commander.services.command_dispatcher import CommandDispatcher
from rover_commander.state import RobotMode, RobotState

POSITIVE = "#21BA45"
NEGATIVE = "#DB2828"
WARNING = "#F2C037"
INFO = "#31CCEC"


def link_color(online: bool) -> str:
    return POSITIVE if online else NEGATIVE


def battery_color(voltage: float) -> str:
    return WARNING if voltage < BATTERY_LOW_V else POSITIVE


def cpu_color(temp_c: float) -> str:
    return NEGATIVE if temp_c > CPU_HOT_C else INFO


class HeaderPanel:
    """Brand, link/battery/CPU indicators and the MANUAL/AUTO switch."""

    def __init__(self, state: RobotState, dispatcher: CommandDispatcher) -> None:
        self.state = state
        self.dispatcher = dispatcher
        self.link_label: ui.label | None = None
        self.battery_label: ui.label | None = None
        self.cpu_label: ui.label | None = None
        self.mode_button: ui.button | None = None
        # Last value pushed per indicator
        self._applied: dict[str, str] = {}

    async def toggle_mode(self) -> None:
        try:
            mode = await self.dispatcher.on_mode_toggle()
            ui.notify(f"Mode: {mode.value}", color="primary")
        except Exception as e:
            logging.error("Mode toggle failed: %s", e)

    def _apply(self, key: str, value: str, update) -> None:
        if self._applied.get(key) == value:
            return
        self._applied[key] = value
        update(value)

    def refresh(self) -> None:
        """Recolor indicators from the latest state (called by the page timer)."""
        if self.link_label:
            self._apply("link", f"color: {link_color(self.state.online)}", self.link_label.style)
        if self.battery_label:
            self._apply(
                "battery",
                f"color: {battery_color(self.state.battery_voltage)}",
                self.battery_label.style,
            )
        if self.cpu_label:
            self._apply("cpu", f"color: {cpu_color(self.state.cpu_temp)}", self.cpu_label.style)
        if self.mode_button:
            auto = self.state.mode == RobotMode.AUTOMATIC
            self._apply("mode", f"color={'info' if auto else 'grey-8'}", self.mode_button.props)

    def build(self) -> None:
        with ui.header().classes("items-center justify-between px-4 py-2"):
            with ui.column().classes("gap-0"):
                ui.label(APP_TITLE.upper()).classes("text-xl font-bold")
                ui.label(f"RASPBERRY PI 5 • SYSTEM V{FW_VERSION}").classes(
                    "text-xs font-mono opacity-60"
                )
            with ui.row().classes("items-center gap-4 font-mono text-sm"):
                self.link_label = ui.label("OFFLINE").bind_text_from(
                    self.state, "online", backward=lambda v: "ONLINE" if v else "OFFLINE"
                )
                ui.label("|").classes("opacity-40")
                self.battery_label = ui.label("0.0V").bind_text_from(
                    self.state, "battery_voltage", backward=lambda v: f"{float(v):.1f}V"
                )
                ui.label("|").classes("opacity-40")
                self.cpu_label = ui.label("0.0°C").bind_text_from(
                    self.state, "cpu_temp", backward=lambda v: f"{float(v):.1f}°C"
                )
                self.mode_button = (
                    ui.button("MANUAL", on_click=self.toggle_mode)
                    .bind_text_from(
                        self.state,
                        "mode",
                        backward=lambda m: "AUTO" if m == RobotMode.AUTOMATIC else "MANUAL",
                    )
                    .props("rounded unelevated")
                    .classes("w-32 font-mono")
                    .mark("mode-toggle")
                )
        self.refresh()
