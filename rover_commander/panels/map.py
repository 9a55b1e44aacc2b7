from __future__ import annotations

from nicegui import ui

from rover_commander.state import RobotState

DARK_TILES = "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png"


def _coords(lat: float, lng: float) -> str:
    return f"{lat:.6f}, {lng:.6f}"


class MapPanel:
    """GPS position on a dark Leaflet map with a SAT/HDG overlay."""

    def __init__(self, state: RobotState) -> None:
        self.state = state
        self.leaflet: ui.leaflet | None = None
        self.marker = None
        self.coords_label: ui.label | None = None
        self._last_pos: tuple[float, float] | None = None

    def refresh(self) -> None:
        """Follow the vehicle when telemetry reports a new position."""
        pos = (self.state.lat, self.state.lng)
        if self.leaflet is None or self.marker is None or pos == self._last_pos:
            return
        self._last_pos = pos
        if self.coords_label:
            self.coords_label.text = _coords(*pos)
        self.marker.move(*pos)
        self.leaflet.set_center(pos)

    def build(self) -> None:
        pos = (self.state.lat, self.state.lng)
        with ui.card().classes("w-full h-full p-0 gap-0"):
            with ui.row().classes("w-full items-start justify-between px-3 py-2 font-mono"):
                with ui.column().classes("gap-0"):
                    ui.label("GPS LOCALIZATION").classes("text-xs font-bold text-info")
                    self.coords_label = ui.label(_coords(*pos)).classes("text-xs opacity-60")
                with ui.column().classes("gap-1 items-end text-xs"):
                    ui.label().bind_text_from(
                        self.state, "satellites", backward=lambda n: f"SAT: {n}"
                    )
                    ui.label().bind_text_from(
                        self.state, "heading", backward=lambda h: f"HDG: {float(h):.0f}°"
                    )
            self._last_pos = pos
            self.leaflet = ui.leaflet(
                center=self._last_pos,
                zoom=18,
                options={"zoomControl": False, "attributionControl": False},
            ).classes("w-full").style("height: 320px")
            self.leaflet.clear_layers()
            self.leaflet.tile_layer(
                url_template=DARK_TILES,
                options={"maxZoom": 20, "subdomains": "abcd"},
            )
            self.marker = self.leaflet.marker(latlng=self._last_pos)
