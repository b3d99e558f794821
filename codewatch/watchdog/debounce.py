# codewatch/watchdog/debounce.py

"""
Debounced flush scheduling for file system events
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class LoopClock:
    """
    Timer source backed by an asyncio event loop

    Callbacks run on the loop thread, the same thread that consumes
    file system events, so they never interleave with event handling.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class DebounceScheduler:
    """
    Single-slot restartable timer

    Every accepted event re-arms the timer, so ``on_fire`` runs once the
    quiet period has elapsed since the most recent event. At most one timer
    is outstanding at any time.
    """

    def __init__(self, quiet_period: float, on_fire: Callable[[], Any],
                 clock: Optional[Any] = None):
        """
        Initialize scheduler

        Args:
            quiet_period: Seconds of inactivity before firing
            on_fire: Callback invoked when the timer expires
            clock: Object with ``call_later(delay, callback)`` returning a
                handle with ``cancel()``; defaults to the running event loop
        """
        self.quiet_period = quiet_period
        self.on_fire = on_fire
        self.clock = clock or LoopClock()

        self._handle = None

        self.stats = {
            'events': 0,
            'resets': 0,
            'fires': 0,
            'errors': 0,
        }

    @property
    def pending(self) -> bool:
        """True while a timer is armed"""
        return self._handle is not None

    def on_event(self):
        """Register an accepted change and restart the quiet period"""
        self.stats['events'] += 1
        self.reset()

    def reset(self):
        """Cancel any pending timer and arm a new one"""
        if self._handle is not None:
            self._handle.cancel()
            self.stats['resets'] += 1

        self._handle = self.clock.call_later(self.quiet_period, self._fire)

    def cancel(self):
        """Drop the pending timer without firing"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        self.stats['fires'] += 1

        try:
            self.on_fire()
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Error in debounce callback: {e}", exc_info=True)

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics"""
        return {
            **self.stats,
            'pending': self.pending,
            'quiet_period': self.quiet_period,
        }
