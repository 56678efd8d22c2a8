"""Cooperative cancellation of a linking run."""

from __future__ import annotations

import threading


class CancellationToken:
    """Thread-safe flag checked by publish tasks before they start.

    Cancelling never interrupts a request in flight; tasks that have not
    started yet are abandoned.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


__all__ = ["CancellationToken"]
