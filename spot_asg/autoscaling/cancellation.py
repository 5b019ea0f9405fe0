"""Caller-supplied cancellation signal with an optional deadline."""

from __future__ import annotations

import threading
import time

from ..exceptions import DiscoveryCancelled


class CancelToken:
    """Checked before every page request; cancel() or an expired deadline stops the call.

    Usage:
        token = CancelToken.with_timeout(30)
        lister.list_groups(tags, cancel=token)
    """

    def __init__(self, deadline: float | None = None):
        self._event = threading.Event()
        self._deadline = deadline  # time.monotonic() value
        self._reason = ""

    @classmethod
    def with_timeout(cls, seconds: float | None) -> CancelToken:
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, where: str) -> None:
        if self._event.is_set():
            raise DiscoveryCancelled(f"{where}: {self._reason}")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise DiscoveryCancelled(f"{where}: deadline exceeded")


def check(token: CancelToken | None, where: str) -> None:
    """raise_if_cancelled() that tolerates a missing token."""
    if token is not None:
        token.raise_if_cancelled(where)
