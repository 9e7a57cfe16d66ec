"""
Cancellable single-shot timer guarding operations the server may never answer.

The scheduler is anything shaped like an asyncio event loop's `call_later`;
tests inject a manual clock instead of waiting on the wall clock.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_CREATE_TIMEOUT_S = 30.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class PendingOperationTimer:
    def __init__(self, timeout: float = DEFAULT_CREATE_TIMEOUT_S, scheduler: Optional[Scheduler] = None):
        self._timeout = timeout
        self._scheduler = scheduler
        self._handle: Optional[TimerHandle] = None
        self._attempt = 0

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, on_timeout: Callable[[], None]) -> None:
        """Arm a new attempt, superseding any attempt still pending."""
        self.cancel()
        self._attempt += 1
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._handle = scheduler.call_later(self._timeout, self._fire, self._attempt, on_timeout)

    def cancel(self) -> bool:
        """Cancel the pending attempt. Returns False if nothing was pending."""
        handle, self._handle = self._handle, None
        if handle is None:
            return False
        handle.cancel()
        return True

    def _fire(self, attempt: int, on_timeout: Callable[[], None]) -> None:
        # A handle that fires after cancel() or after a newer start() is stale.
        if attempt != self._attempt or self._handle is None:
            return
        self._handle = None
        logger.debug("Pending operation timed out after %ss", self._timeout)
        on_timeout()
