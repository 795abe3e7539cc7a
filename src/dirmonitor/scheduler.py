"""Background timers for reconciliation passes."""

import logging
import threading
import time
from typing import Callable, Optional

from .controller import ChangeController

logger = logging.getLogger(__name__)


class ReconciliationScheduler:
    """
    Runs the controller's reconciliation passes on a background thread.

    The startup catch-up pass runs once after the startup delay. The retry
    sweep runs every retry period, starting one period after start. Both
    share one thread, so they never overlap.
    """

    def __init__(
        self,
        controller: ChangeController,
        startup_delay_ms: int = 10000,
        retry_period_ms: int = 120000,
    ):
        self.controller = controller
        self.startup_delay_ms = startup_delay_ms
        self.retry_period_ms = retry_period_ms
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Start the scheduler thread.

        Returns:
            True if started, False if already running
        """
        with self._lock:
            if self._thread is not None:
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="ReconciliationScheduler",
                daemon=True,
            )
            self._thread.start()
            return True

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the scheduler; a pass in progress is not interrupted."""
        with self._lock:
            thread = self._thread
            self._thread = None

        if thread is None:
            return

        self._stop_event.set()
        thread.join(timeout=timeout)

    def _run(self) -> None:
        now = time.monotonic()
        catch_up_at: Optional[float] = now + self.startup_delay_ms / 1000.0
        retry_at = now + self.retry_period_ms / 1000.0

        while not self._stop_event.is_set():
            now = time.monotonic()
            if catch_up_at is not None and now >= catch_up_at:
                catch_up_at = None
                self._run_pass("startup catch-up", self.controller.check_for_changes_since_last_run)
            elif now >= retry_at:
                retry_at = now + self.retry_period_ms / 1000.0
                self._run_pass("retry sweep", self.controller.retry_unprocessed)

            due = retry_at if catch_up_at is None else min(catch_up_at, retry_at)
            self._stop_event.wait(timeout=max(0.0, due - time.monotonic()))

    def _run_pass(self, name: str, action: Callable[[], None]) -> None:
        logger.debug(f"Running {name}")
        try:
            action()
        except Exception as e:
            logger.error(f"Error during {name}: {e}", exc_info=True)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()
