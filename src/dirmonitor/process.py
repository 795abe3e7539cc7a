"""Main monitor process orchestrator."""

import logging
import threading
from typing import Dict, Optional

from .config import MonitorConfig
from .controller import ChangeController, ControllerEventHandler
from .exceptions import DirectoryNotFoundError, MonitorAlreadyRunningError
from .fs_watcher import PollingWatcher
from .observer import TreeObserver
from .processor import Processor, ProcessorRegistry, create_default_registry
from .scheduler import ReconciliationScheduler
from .store import PathRecordStore

logger = logging.getLogger(__name__)


class MonitorProcess:
    """
    Main orchestrator for one monitored directory.

    Wires the record store, the selected processor, the tree observer and the
    change controller together, and runs the polling loop and the
    reconciliation scheduler.
    """

    def __init__(
        self,
        config: MonitorConfig,
        store: Optional[PathRecordStore] = None,
        registry: Optional[ProcessorRegistry] = None,
    ):
        """
        Initialize the monitor process.

        Args:
            config: Monitor configuration
            store: Record store (defaults to a SQLite store at config.db_path)
            registry: Processor registry (defaults to the built-in processors)

        Raises:
            DirectoryNotFoundError: If the monitored directory does not exist
        """
        self.config = config

        directory = config.directory
        if not directory.exists():
            raise DirectoryNotFoundError(
                f"Monitored directory does not exist: {directory.absolute()}"
            )
        logger.info(f"Monitoring directory: {directory.resolve()}")

        self._owns_store = store is None
        self.store = store if store is not None else PathRecordStore(config.db_path)

        self.registry = registry or create_default_registry()
        self.processor: Processor = self.registry.resolve(config.processor_id)
        logger.info(f"Using processor: {self.processor.processor_id}")

        self.controller = ChangeController(self.store, self.processor, config)
        self.observer = TreeObserver(directory, config.matches)
        self.observer.add_listener(ControllerEventHandler(self.controller))

        self._watcher = PollingWatcher(self.observer, config.check_period_ms)
        self._scheduler = ReconciliationScheduler(
            self.controller,
            startup_delay_ms=config.startup_delay_ms,
            retry_period_ms=config.retry_period_ms,
        )

        self._running = False
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    def start(self) -> None:
        """
        Start monitoring (blocking).

        Blocks until stop() is called or the process is interrupted.

        Raises:
            MonitorAlreadyRunningError: If already running
        """
        self.start_async()
        try:
            while not self._stop_event.is_set():
                self._stop_event.wait(timeout=0.5)
        except KeyboardInterrupt:
            pass
        finally:
            self._shutdown()

    def start_async(self) -> None:
        """
        Start monitoring in the background.

        Raises:
            MonitorAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running:
                raise MonitorAlreadyRunningError("Monitor is already running")
            self._running = True
            self._stop_event.clear()

        self._watcher.start()
        self._scheduler.start()

    def stop(self) -> None:
        """Stop monitoring. Safe to call more than once."""
        self._stop_event.set()
        self._shutdown()

    def _shutdown(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False

        logger.info("Shutting down...")
        self._scheduler.stop()
        self._watcher.stop(self.config.shutdown_grace_ms)

    def get_stats(self) -> Dict[str, int]:
        """Return the number of records per status name."""
        return {status.name: n for status, n in self.store.count_by_status().items()}

    @property
    def is_running(self) -> bool:
        """Check if the monitor is running."""
        return self._running

    def close(self) -> None:
        """Stop monitoring and release the store if this process opened it."""
        self.stop()
        if self._owns_store:
            self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
