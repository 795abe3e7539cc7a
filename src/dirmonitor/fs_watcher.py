"""Polling loop driving a tree observer."""

import logging
import threading
from typing import Optional

from .observer import TreeObserver

logger = logging.getLogger(__name__)


class PollingWatcher:
    """
    Runs a TreeObserver on a fixed interval in a background thread.

    The observer is initialized on start, so the tree present at that moment
    is the baseline and produces no events.
    """

    def __init__(self, observer: TreeObserver, interval_ms: int):
        """
        Initialize the watcher.

        Args:
            observer: Observer to check on every tick
            interval_ms: Milliseconds between the end of one check and the
                start of the next
        """
        self.observer = observer
        self.interval_ms = interval_ms
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Initialize the observer and start polling.

        Returns:
            True if polling started, False if already running
        """
        with self._lock:
            if self._thread is not None:
                return False

            self.observer.initialize()
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._poll_loop,
                name="PollingWatcher",
                daemon=True,
            )
            self._thread.start()

        logger.info(f"Starting monitor. Checking every {self.interval_ms} MS")
        return True

    def stop(self, grace_period_ms: int = 1000) -> bool:
        """
        Stop polling.

        An in-flight check is given the grace period to finish. The thread is
        a daemon, so a check still running afterwards does not block exit.

        Args:
            grace_period_ms: Time to wait for the current check

        Returns:
            True if the loop finished within the grace period
        """
        with self._lock:
            thread = self._thread
            self._thread = None

        if thread is None:
            return True

        self._stop_event.set()
        thread.join(timeout=grace_period_ms / 1000.0)
        if thread.is_alive():
            logger.warning(
                f"Directory scan still running after {grace_period_ms} MS, abandoning it"
            )
            return False
        return True

    def run_once(self) -> None:
        """Run a single check in the calling thread."""
        self.observer.check_and_notify()

    def _poll_loop(self) -> None:
        interval = self.interval_ms / 1000.0
        logger.debug(f"Poll loop started, interval={interval}s")

        while not self._stop_event.is_set():
            try:
                self.observer.check_and_notify()
            except Exception as e:
                logger.error(f"Poll loop error: {e}", exc_info=True)

            self._stop_event.wait(timeout=interval)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()
