from __future__ import annotations

import threading
from enum import Enum


class AbortReason(str, Enum):
    PAUSE = "pause"
    CANCEL = "cancel"
    TIMEOUT = "timeout"


class TransferOutcome(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


class CancellationToken:
    """Cooperative cancellation signal shared between the scheduler and a transfer.

    The first reason given to ``cancel`` wins; later calls are ignored so a pause
    that races with a timeout keeps its original meaning.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: AbortReason | None = None

    def cancel(self, reason: AbortReason) -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> AbortReason | None:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    @property
    def is_deliberate(self) -> bool:
        return self._reason in (AbortReason.PAUSE, AbortReason.CANCEL)
