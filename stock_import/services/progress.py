from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.events import (
    CompleteEvent,
    ProgressEvent,
    ProgressUpdateEvent,
    RowErrorEvent,
    StartEvent,
)

"""Progress display service with tqdm (TTY only).

ProgressTracker is an `on_progress` callback for the submission client:
- start: creates the bar (total = rows announced by the server)
- progress: advances the bar to `current`, shows the barcode being processed
- error (row): increments the error counter shown as postfix
- complete: closes the bar

In non-TTY environments (CI, piped output) no bar is created, to avoid ANSI
control sequence spam.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and a progress bar should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """tqdm-backed progress callback for one import run."""

    def __init__(self, *, description: str = "Importing rows") -> None:
        self.description = description
        self.current = 0
        self.errors = 0
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None

    def __call__(self, event: ProgressEvent) -> None:
        if isinstance(event, StartEvent):
            self.start(event.total)
        elif isinstance(event, ProgressUpdateEvent):
            self.advance(event.current, barcode=event.barcode)
        elif isinstance(event, RowErrorEvent) and not event.is_fatal:
            self.errors += 1
            self.set_postfix(errors=self.errors)
        elif isinstance(event, CompleteEvent):
            self.close()

    def start(self, total: int) -> None:
        self.current = 0
        if self.enabled and self.pbar is None:
            self.pbar = tqdm(
                total=total,
                desc=self.description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def advance(self, current: int, *, barcode: str = "") -> None:
        step = current - self.current
        if step <= 0:
            return
        self.current = current
        if self.enabled and self.pbar is not None:
            self.pbar.update(step)
            if barcode:
                self.pbar.set_description(f"{self.description} ({barcode})")

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(self.description)
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
