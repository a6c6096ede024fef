"""Operator stop signal, honored at unit boundaries only."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()


@contextmanager
def sigint_cancels(token: CancelToken) -> Iterator[CancelToken]:
    """Turn the first Ctrl-C into a graceful stop request.

    A publish may already be in flight and cannot be safely interrupted, so
    the first SIGINT only sets the token; the orchestrator reports it at the
    next unit boundary. A second SIGINT restores the previous handler and
    interrupts immediately.

    Child processes run in their own session (see platform.process), so a
    terminal Ctrl-C reaches only this process.
    """
    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: FrameType | None) -> None:
        del signum, frame
        if token.cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        # Nothing is printed here: the handler may run in the middle of a
        # console write.
        token.cancel("interrupted by operator")

    signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
