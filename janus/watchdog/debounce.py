# janus/watchdog/debounce.py

"""
Per-path debouncing of synchronisation dispatches
"""
import logging
import threading
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delay actions per key until no newer action for the same key arrived
    within the debounce time. The newest action replaces any pending one.
    """

    def __init__(self, debounce_time: float = 0.0):
        """
        Initialize debouncer

        Args:
            debounce_time: Quiet period in seconds. 0 runs actions inline.
        """
        self.debounce_time = debounce_time
        self._timers: Dict[str, Tuple[threading.Timer, Callable[[], Any]]] = {}
        self._lock = threading.Lock()

        # Statistics
        self.stats = {
            'submitted': 0,
            'debounced': 0,
            'fired': 0,
            'cancelled': 0,
        }

    def submit(self, key: str, action: Callable[[], Any]):
        """
        Schedule action for key

        Args:
            key: Grouping key, usually the file path
            action: Callable to run once the key has been quiet
        """
        self.stats['submitted'] += 1

        if self.debounce_time <= 0:
            self._run(key, action)
            return

        with self._lock:
            pending = self._timers.pop(key, None)
            if pending:
                pending[0].cancel()
                self.stats['debounced'] += 1
                logger.debug(f"Debounced {key}")

            timer = threading.Timer(self.debounce_time, self._fire, args=(key,))
            timer.daemon = True
            self._timers[key] = (timer, action)
            timer.start()

    def _fire(self, key: str):
        with self._lock:
            pending = self._timers.get(key)
            # a newer submit may have replaced this timer already
            if pending is None or pending[0] is not threading.current_thread():
                return
            del self._timers[key]

        self._run(key, pending[1])

    def _run(self, key: str, action: Callable[[], Any]):
        self.stats['fired'] += 1
        try:
            action()
        except Exception as e:
            logger.error(f"Error running debounced action for {key}: {e}")

    def flush(self) -> int:
        """Run every pending action now. Returns the number run."""
        with self._lock:
            pending = list(self._timers.items())
            self._timers.clear()

        for key, (timer, action) in pending:
            timer.cancel()
            self._run(key, action)
        return len(pending)

    def cancel_all(self) -> int:
        """Drop every pending action. Returns the number dropped."""
        with self._lock:
            pending = list(self._timers.values())
            self._timers.clear()

        for timer, _ in pending:
            timer.cancel()
        self.stats['cancelled'] += len(pending)
        return len(pending)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'pending': self.pending_count(),
            'debounce_time': self.debounce_time,
        }
