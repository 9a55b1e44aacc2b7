import argparse
import logging
import os
import sys
from dataclasses import replace

from nicegui import app as ng_app
from nicegui import ui

from rover_commander.common.logging_config import (
    LEVEL_NAMES,
    configure_logging,
    event_log,
)
from rover_commander.config import Config
from rover_commander.constants import APP_TITLE
from rover_commander.panels.controls import ControlsPanel
from rover_commander.panels.header import HeaderPanel
from rover_commander.panels.map import MapPanel
from rover_commander.panels.video import VideoFeedPanel
from rover_commander.services.command_dispatcher import CommandDispatcher
from rover_commander.services.device_gateway import (
    DeviceGateway,
    VideoFeedKind,
    create_gateway,
)
from rover_commander.services.status_poller import StatusPoller
from rover_commander.state import RobotState

# Per-client UI refresh for colors, pad highlight and map follow
UI_REFRESH_S = 0.25


class Commander:
    """
    Application controller: owns the shared state and the services around it.

    One instance per process. The poller runs from app startup to app
    shutdown; every browser tab builds its own panels on top of it.
    """

    def __init__(self, cfg: Config, gateway: DeviceGateway | None = None) -> None:
        self.cfg = cfg
        self.state = RobotState()
        self.gateway = gateway if gateway is not None else create_gateway(cfg)
        self.dispatcher = CommandDispatcher(self.gateway, self.state)
        self.poller = StatusPoller(self.gateway, self.state, interval_s=cfg.POLL_INTERVAL_S)

    async def startup(self) -> None:
        self.poller.start()

    async def shutdown(self) -> None:
        await self.poller.stop()
        await self.gateway.close()


commander = Commander(Config.from_env())


# --------------- App lifecycle ---------------


async def _app_startup() -> None:
    await commander.startup()
    logging.info("Dashboard ready (device=%s, mock=%s)", commander.cfg.DEVICE_URL, commander.cfg.MOCK)


async def _app_shutdown() -> None:
    try:
        await commander.shutdown()
    except Exception as e:
        logging.error("Shutdown failed: %s", e)


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


# --------------- Page ---------------


def build_footer() -> None:
    with ui.footer().classes("column items-stretch px-3 py-1 gap-1"):
        log_view = ui.log(max_lines=200).classes("w-full font-mono text-xs").style("height: 90px")
        ui.label("SYSTEM READY • WAITING FOR INPUT").classes(
            "text-xs font-mono text-center opacity-50"
        )
    event_log.attach(log_view)
    ui.context.client.on_disconnect(lambda: event_log.detach(log_view))


@ui.page("/")
def index() -> None:
    header = HeaderPanel(commander.state, commander.dispatcher)
    controls = ControlsPanel(commander.dispatcher)
    map_panel = MapPanel(commander.state)

    header.build()
    with ui.column().classes("w-full max-w-screen-2xl mx-auto p-4 gap-8"):
        with ui.row().classes("w-full gap-6 no-wrap"):
            for title, kind in (
                ("Visual Optic Feed", VideoFeedKind.VISUAL),
                ("Thermal Infrared Feed", VideoFeedKind.THERMAL),
            ):
                with ui.column().classes("flex-1"):
                    VideoFeedPanel(commander.gateway.stream_url(kind), title, kind).build()

        with ui.row().classes("w-full items-center gap-4 opacity-30"):
            ui.separator().classes("flex-1")
            ui.label("MISSION CONTROL").classes("text-xs font-mono")
            ui.separator().classes("flex-1")

        with ui.row().classes("w-full gap-6 no-wrap items-stretch"):
            with ui.column().classes("flex-[2]"):
                controls.build()
            with ui.column().classes("flex-1"):
                map_panel.build()
    build_footer()

    def _refresh() -> None:
        header.refresh()
        controls.refresh()
        map_panel.refresh()

    ui.timer(UI_REFRESH_S, _refresh)


if __name__ in {"__main__", "__mp_main__"}:
    parser = argparse.ArgumentParser(description=f"{APP_TITLE} Webserver")
    parser.add_argument("--host", default=commander.cfg.HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=commander.cfg.PORT, help="Webserver bind port")
    parser.add_argument("--device-url", default=commander.cfg.DEVICE_URL, help="Vehicle API base URL")
    mock_group = parser.add_mutually_exclusive_group()
    mock_group.add_argument("--mock", dest="mock", action="store_true", default=None, help="Fabricate telemetry")
    mock_group.add_argument("--live", dest="mock", action="store_false", help="Talk to the real device")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=commander.cfg.POLL_INTERVAL_S,
        help="Telemetry poll period in seconds",
    )
    parser.add_argument("--log-level", choices=list(LEVEL_NAMES), help="Set log level")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=DEBUG, -vv=TRACE",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only WARNING and above")
    args, _ = parser.parse_known_args()

    # Resolve log level priority: explicit --log-level > -v/-q > env default
    if args.log_level:
        log_level = LEVEL_NAMES[args.log_level]
    elif args.verbose >= 2:
        log_level = LEVEL_NAMES["TRACE"]
    elif args.verbose == 1:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING
    else:
        log_level = commander.cfg.LOG_LEVEL
    configure_logging(log_level)

    cfg = replace(
        commander.cfg,
        HOST=args.host,
        PORT=int(args.port),
        DEVICE_URL=args.device_url,
        MOCK=commander.cfg.MOCK if args.mock is None else args.mock,
        POLL_INTERVAL_S=args.poll_interval,
        # Timeout tracks the poll period unless pinned in the environment
        REQUEST_TIMEOUT_S=(
            commander.cfg.REQUEST_TIMEOUT_S
            if "ROVER_REQUEST_TIMEOUT_S" in os.environ
            else args.poll_interval
        ),
        LOG_LEVEL=log_level,
    )
    if cfg != commander.cfg:
        commander = Commander(cfg)
    logging.info(f"Webserver bind: host={cfg.HOST} port={cfg.PORT}")
    logging.info(f"Device target: {cfg.DEVICE_URL} ({'mock' if cfg.MOCK else 'live'})")

    ui.run(
        title=APP_TITLE,
        host=cfg.HOST,
        port=cfg.PORT,
        reload=False,
        show=False,
        dark=True,
        loop="uvloop" if sys.platform != "win32" else "asyncio",
        http="httptools",
        ws="wsproto",
        binding_refresh_interval=0.1,
    )
