"""Cooperative cancellation for execution units."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from core.errors import ExecutionCancelledError


@dataclass
class CancellationToken:
    """Set by the scheduler; checked by handlers between Graph Document calls.

    A child token is cancelled when either it or its parent is.
    """

    reason: str = ""
    parent: CancellationToken | None = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    def child(self) -> CancellationToken:
        return CancellationToken(parent=self)

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.parent is not None and self.parent.cancelled

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExecutionCancelledError(self.reason or "cancelled")
        if self.parent is not None:
            self.parent.raise_if_cancelled()
