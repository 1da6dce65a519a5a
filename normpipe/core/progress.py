from __future__ import annotations
import sys
import threading
from typing import Optional, TextIO

from .models import JobOutcome


class ProgressLine:
    """Single updating `<done> / <total> (<percent>%)` line.

    Per-file errors are printed as `ERROR <path> <message>` on their own
    line; the progress line is redrawn below them.
    """

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout
        self._last = ""
        self._lock = threading.Lock()

    @staticmethod
    def format(done: int, total: int) -> str:
        pct = 100.0 * done / total if total else 100.0
        return f"{done} / {total} ({pct:.0f}%)"

    def __call__(self, outcome: JobOutcome, done: int, total: int) -> None:
        with self._lock:
            if outcome.failed:
                self._clear()
                print("ERROR", outcome.path, outcome.message, file=self.out)
            self._draw(self.format(done, total))

    def _clear(self) -> None:
        if self._last:
            n = len(self._last)
            self.out.write("\b" * n + " " * n + "\b" * n)
            self._last = ""

    def _draw(self, msg: str) -> None:
        self.out.write("\b" * len(self._last) + msg)
        self.out.flush()
        self._last = msg

    def finish(self) -> None:
        with self._lock:
            if self._last:
                self.out.write("\n")
                self.out.flush()
                self._last = ""
