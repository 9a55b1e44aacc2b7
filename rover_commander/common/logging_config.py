from __future__ import annotations

import logging
import sys
import weakref
from collections import deque

# Per-poll telemetry chatter sits below DEBUG
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVEL_NAMES = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_LEVEL_COLORS = {
    "TRACE": "\033[32m",
    "DEBUG": "\033[36m",
    "INFO": "\033[37m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m",
}
_RESET = "\033[0m"
_DIM = "\033[2m"


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: msg``; level names colored when stderr is a TTY."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        color = _LEVEL_COLORS.get(record.levelname)
        if not (self.colored and color):
            return base
        ts, _, rest = base.partition(" ")
        rest = rest.replace(record.levelname, f"{color}{record.levelname}{_RESET}", 1)
        return f"{_DIM}{ts}{_RESET} {rest}"


class EventLogHandler(logging.Handler):
    """
    Mirrors operator-relevant records into the footer event log of every page.

    Only INFO and above pass: commands sent, link lost/restored, mode changes.
    DEBUG/TRACE chatter stays on the console. The last
    ``backlog`` lines are kept, and a page opened later starts with them.
    Widgets are held weakly; deleted ones drop out on the next record.
    """

    def __init__(self, backlog: int = 50) -> None:
        super().__init__(level=logging.INFO)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))
        self.history: deque[str] = deque(maxlen=backlog)
        self._sinks: list[weakref.ref] = []

    def attach(self, log_widget) -> None:
        """Register a ui.log and replay the backlog into it."""
        self.acquire()
        try:
            backlog = list(self.history)
            self._sinks.append(weakref.ref(log_widget))
        finally:
            self.release()
        for line in backlog:
            log_widget.push(line)

    def detach(self, log_widget) -> None:
        self.acquire()
        try:
            self._sinks = [
                ref for ref in self._sinks if ref() is not None and ref() is not log_widget
            ]
        finally:
            self.release()

    def emit(self, record: logging.LogRecord) -> None:
        # Called under the handler lock
        line = self.format(record)
        self.history.append(line)
        alive: list[weakref.ref] = []
        for ref in self._sinks:
            widget = ref()
            if widget is None or getattr(widget, "is_deleted", False):
                continue
            try:
                widget.push(line)
            except Exception:
                # Client went away between the check and the push
                continue
            alive.append(ref)
        self._sinks = alive


# Shared by every page of the process
event_log = EventLogHandler()


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure the root logger once per process:
      - colored console handler on stderr at ``level``
      - the page event log mirror (INFO and above)
    httpx request lines are held at WARNING or above so polling stays quiet.
    """
    root = logging.getLogger()
    root.setLevel(level)

    console = next(
        (h for h in root.handlers if isinstance(h.formatter, ConsoleFormatter)), None
    )
    if console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(ConsoleFormatter())
        root.addHandler(console)
    console.setLevel(level)

    if event_log not in root.handlers:
        root.addHandler(event_log)

    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return root
