from __future__ import annotations

import logging

from nicegui import binding, ui

from rover_commander.services.device_gateway import VideoFeedKind


class VideoFeedPanel:
    """One camera tile; the <img> points straight at the device's stream."""

    loading = binding.BindableProperty()
    error = binding.BindableProperty()

    def __init__(self, src: str, title: str, kind: VideoFeedKind) -> None:
        self.src = src
        self.title = title
        self.kind = kind
        self.loading = True
        self.error = False
        self.image: ui.image | None = None

    def _on_load(self) -> None:
        self.loading = False

    def _on_error(self) -> None:
        if not self.error:
            logging.warning("%s: no signal from %s", self.title, self.src)
        self.error = True
        self.loading = False

    def build(self) -> None:
        accent = "#22D3EE" if self.kind == VideoFeedKind.VISUAL else "#F43F5E"
        with ui.card().classes("w-full p-0 gap-0").style(f"border: 2px solid {accent}55"):
            with ui.row().classes("w-full items-center justify-between px-3 py-2"):
                ui.label(self.title.upper()).classes("text-xs font-mono font-bold").style(
                    f"color: {accent}"
                )
                ui.badge("NO SIGNAL", color="negative").classes("font-mono").bind_visibility_from(
                    self, "error"
                )
            with ui.element("div").classes("w-full relative").style(
                "aspect-ratio: 16 / 9; background: #030712"
            ):
                ui.label("CONNECTING FEED...").classes(
                    "absolute-center text-xs font-mono text-grey-6"
                ).bind_visibility_from(self, "loading")
                # Static placeholder once the stream has failed
                ui.icon("videocam_off", size="48px").classes(
                    "absolute-center text-grey-8"
                ).bind_visibility_from(self, "error")
                self.image = (
                    ui.image(self.src)
                    .classes("w-full h-full")
                    .props("fit=cover no-spinner")
                    .bind_visibility_from(self, "error", backward=lambda e: not e)
                )
                if self.kind == VideoFeedKind.THERMAL:
                    self.image.style("filter: contrast(1.25) saturate(2) hue-rotate(15deg)")
                self.image.on("load", self._on_load)
                self.image.on("error", self._on_error)
