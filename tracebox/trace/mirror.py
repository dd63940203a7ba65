"""Human-readable side-channel copy of the event stream."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import TextIO

from .events import Event
from .formatting import render_value

__all__ = ["EventLogMirror", "format_line"]


def format_line(event: Event) -> str:
    """Render ``event`` as a single log line."""

    line = f"{event.kind} {render_value(dict(event.payload))}"
    return line.replace("\r", "\\r").replace("\n", "\\n") + "\n"


class EventLogMirror:
    """Write one line per event to ``path``.

    The file is truncated when the mirror is created, so each run starts from
    an empty log. Lines are flushed as they are written.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle: TextIO | None = self.path.open("w", encoding="utf-8")
        self._lines = 0

    def __call__(self, event: Event) -> None:
        self.write(event)

    def write(self, event: Event) -> None:
        """Append ``event`` to the mirror file."""

        self.write_line(format_line(event))

    def write_line(self, line: str) -> None:
        """Append a line already rendered by :func:`format_line`."""

        with self._lock:
            if self._handle is None:
                raise ValueError(f"log mirror {self.path} is closed")
            self._handle.write(line)
            self._handle.flush()
            self._lines += 1

    @property
    def lines_written(self) -> int:
        return self._lines

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                try:
                    self._handle.flush()
                finally:
                    self._handle.close()
                    self._handle = None

    def __enter__(self) -> "EventLogMirror":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
