"""Periodic duration tick for recording sessions."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DurationTicker:
    """Calls a callback once per interval on a daemon thread until stopped."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.thread is not None:
            logger.warning("Ticker already started")
            return
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = "DurationTickerThread"
        self.thread.start()

    def stop(self) -> None:
        """Cancel further ticks. Safe to call repeatedly."""
        self.stop_event.set()
        thread = self.thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Ticker thread did not stop cleanly")

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stop_event.is_set()

    def _run(self) -> None:
        while not self.stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Tick callback error: {e}", exc_info=True)
