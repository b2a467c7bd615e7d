"""Debounced execution of a callable on a background timer."""
import logging
import threading
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Collapses bursts of triggers into a single call after a quiet window.

    Every trigger cancels the pending call and schedules a new one with
    the latest arguments. Calls never overlap: a timer that fires while
    the action is still running waits for it to finish.
    """

    def __init__(self, action: Callable[..., Any], wait_seconds: float):
        """
        Args:
            action: Callable to run once a burst settles
            wait_seconds: Quiet window length in seconds
        """
        self.action = action
        self.wait_seconds = wait_seconds
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending_args: Optional[Tuple[Any, ...]] = None

    def trigger(self, *args: Any) -> None:
        """Schedule the action, superseding any pending call. Never blocks."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending_args = args
            self._timer = threading.Timer(
                self.wait_seconds, self._fire, args=(self._generation,)
            )
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending_args is not None

    def flush(self) -> bool:
        """
        Run the pending call now on the calling thread.

        Returns:
            True if a pending call was run
        """
        with self._lock:
            generation = self._generation
        return self._fire(generation)

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending_args = None

    def _fire(self, generation: int) -> bool:
        with self._lock:
            # A newer trigger superseded this timer
            if generation != self._generation or self._pending_args is None:
                return False
            args = self._pending_args
            self._pending_args = None
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None

        with self._run_lock:
            try:
                self.action(*args)
            except Exception as e:
                logger.error(f"Debounced action failed: {e}", exc_info=True)
        return True
