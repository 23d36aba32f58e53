"""Progress bars that draw only when the output is a character device."""

from __future__ import annotations

import io
import os
import stat
import sys
from typing import IO, Protocol

from tqdm import tqdm


class ProgressBar(Protocol):
    def start(self, total: int) -> None: ...

    def increment(self) -> None: ...

    def finish(self) -> None: ...


class NoOpProgressBar:
    """A progress bar that counts progress but draws nothing."""

    def __init__(self) -> None:
        self.total = 0
        self.current = 0
        self.is_started = False

    def start(self, total: int) -> None:
        self.total = total
        self.current = 0
        self.is_started = True

    def increment(self) -> None:
        self.current += 1

    def finish(self) -> None:
        self.is_started = False


class DefaultProgressBar:
    """A titled progress bar drawn on a terminal."""

    def __init__(self, title: str = "", out: IO[str] | None = None) -> None:
        self.title = title
        self.out = out
        self._bar: tqdm | None = None
        self._count = 0

    @property
    def is_started(self) -> bool:
        return self._bar is not None

    @property
    def current(self) -> int:
        return self._count

    def start(self, total: int) -> None:
        """Begin drawing a bar that runs up to total."""
        self._count = 0
        self._bar = tqdm(
            total=total,
            desc=f"{self.title}:",
            file=self.out if self.out is not None else sys.stdout,
            ascii=".>",
        )

    def increment(self) -> None:
        if self._bar is None:
            raise RuntimeError("progress bar is not started")
        self._bar.update(1)
        self._count += 1

    def finish(self) -> None:
        if self._bar is None:
            raise RuntimeError("progress bar is not started")
        self._bar.close()
        self._bar = None


def _is_terminal(out: IO[str]) -> bool:
    try:
        descriptor = out.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return False
    try:
        return stat.S_ISCHR(os.fstat(descriptor).st_mode)
    except OSError:
        return False


def get_progress_bar(out: IO[str], title: str) -> ProgressBar:
    """Return a drawing bar for character devices and a silent one otherwise."""
    if _is_terminal(out):
        return DefaultProgressBar(title=title, out=out)
    return NoOpProgressBar()