"""Simple monotonic stopwatch helpers."""

from __future__ import annotations

import time


class Stopwatch:
    """Measures elapsed wall time on the monotonic clock."""

    def __init__(self) -> None:
        self._start = time.monotonic()

    def tic(self) -> None:
        """Restart the stopwatch."""
        self._start = time.monotonic()

    def tocq(self) -> float:
        """Return the seconds elapsed since the last tic, quietly."""
        return time.monotonic() - self._start

    def toc(self) -> float:
        """Print and return the seconds elapsed since the last tic."""
        elapsed = self.tocq()
        print(f"Elapsed time is {elapsed} seconds.")
        return elapsed


_default = Stopwatch()


def tic() -> None:
    """Restart the shared stopwatch."""
    _default.tic()


def toc() -> float:
    """Print and return the time elapsed on the shared stopwatch."""
    return _default.toc()


def tocq() -> float:
    """Return the time elapsed on the shared stopwatch without printing."""
    return _default.tocq()