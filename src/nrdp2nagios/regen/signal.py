"""Single-slot, non-blocking reload signal."""

from __future__ import annotations

import queue


class ReloadSignal:
    """A payload-free mailbox holding at most one pending signal.

    Senders never block: when a signal is already waiting to be
    consumed, further sends are dropped, so any number of unconsumed
    signals collapse to one.
    """

    def __init__(self) -> None:
        self._slot: queue.Queue[None] = queue.Queue(maxsize=1)

    def try_send(self) -> bool:
        """Post a signal. Returns False if one was already pending."""
        try:
            self._slot.put_nowait(None)
        except queue.Full:
            return False
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Consume the pending signal, waiting up to timeout seconds.

        Returns True if a signal was consumed.
        """
        try:
            self._slot.get(timeout=timeout)
        except queue.Empty:
            return False
        return True

    @property
    def pending(self) -> bool:
        return self._slot.full()
