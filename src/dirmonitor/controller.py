"""
Change lifecycle controller.

Turns filesystem notifications into processor calls and persists the outcome
of each call as a path record, so that failed work is retried and finished
work is never repeated.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .config import MonitorConfig
from .models import PathRecord, Status
from .processor import Processor
from .store import PathRecordStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _modified_time(path: str) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class ChangeController:
    """
    Drives a processor from create, update and delete notifications.

    The three entry points share one re-entrant lock, so only one of them runs
    at a time. Every read-modify-write of a record therefore happens without
    interference. The stability wait runs while holding the lock.
    """

    def __init__(
        self,
        store: PathRecordStore,
        processor: Processor,
        config: MonitorConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the controller.

        Args:
            store: Path record store, written only by this controller
            processor: Processor to drive
            config: Monitor configuration (directory, filter, stability period)
            sleep: Function used to wait between stability checks
            clock: Wall clock compared against file modification times
        """
        self.store = store
        self.processor = processor
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.RLock()

    def wait_for_stability(self, path: PathLike) -> None:
        """
        Block until the file has not been modified for the stability period.

        Returns early if the file disappears.
        """
        path = str(path)
        period = self.config.stability_period
        while True:
            modified = _modified_time(path)
            if modified is None or self._clock() - modified >= period:
                return
            logger.debug(f"Waiting for {path} to stabilize")
            self._sleep(period)

    def on_create(self, path: PathLike) -> None:
        """Handle a file that appeared."""
        path = os.path.abspath(str(path))
        with self._lock:
            self.wait_for_stability(path)
            modified = _modified_time(path)
            if modified is None:
                logger.debug(f"File vanished before create could be processed: {path}")
                return

            record = self.store.find_by_path(path)
            if record is not None and record.status != Status.UNPROCESSED:
                return

            logger.info(f"Notify file created: {path}")
            external_id = None
            status = Status.UNPROCESSED
            try:
                external_id = self.processor.process_create(Path(path))
                status = Status.PROCESSED
            except Exception:
                logger.warning(f"Error processing create event for {path}", exc_info=True)

            if record is None:
                record = PathRecord(path=path)
            record.external_id = external_id
            record.modified = modified
            record.status = status
            self.store.save(record)

    def on_update(self, path: PathLike) -> None:
        """Handle a file that changed."""
        path = os.path.abspath(str(path))
        with self._lock:
            self.wait_for_stability(path)
            modified = _modified_time(path)
            if modified is None:
                logger.debug(f"File vanished before update could be processed: {path}")
                return

            record = self.store.find_by_path(path)
            if record is None:
                self.on_create(path)
                return

            # A failed update is retried even though its stored time is current
            if record.modified >= modified and record.status != Status.UNPROCESSED_UPDATE:
                return

            logger.info(f"Notify file updated: {path}")
            try:
                self.processor.process_update(Path(path), record.external_id)
                record.modified = modified
                record.status = Status.PROCESSED
            except Exception:
                logger.warning(f"Error processing update event for {path}", exc_info=True)
                record.status = Status.UNPROCESSED_UPDATE

            self.store.save(record)

    def on_delete(self, path: PathLike) -> None:
        """Handle a file that disappeared."""
        path = os.path.abspath(str(path))
        with self._lock:
            record = self.store.find_by_path(path)
            if record is None:
                return

            if record.status == Status.UNPROCESSED:
                # Never created upstream, nothing to delete there
                logger.debug(f"Purging never processed file: {path}")
                self.store.delete_by_path(path)
                return

            logger.info(f"Notify file deleted: {path}")
            try:
                self.processor.process_delete(Path(path), record.external_id)
                self.store.delete_by_path(path)
            except Exception:
                logger.warning(f"Error processing delete event for {path}", exc_info=True)
                record.status = Status.UNPROCESSED_DELETE
                self.store.save(record)

    # Reconciliation passes

    def check_for_changes_since_last_run(self) -> None:
        """Catch up with changes made while the monitor was not running."""
        self.check_for_new_files()
        self.check_for_deleted_files()

    def check_for_new_files(self) -> None:
        """Walk the tree and process files that are unknown or newer than recorded."""
        start = time.monotonic()
        known: Dict[str, float] = {
            record.path: record.modified for record in self.store.find_all()
        }

        def on_walk_error(error: OSError) -> None:
            raise error

        root = os.path.abspath(str(self.config.directory))
        try:
            for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error, followlinks=True):
                dirnames[:] = sorted(
                    d for d in dirnames if self.config.matches(os.path.join(dirpath, d), True)
                )
                for name in sorted(filenames):
                    path = os.path.join(dirpath, name)
                    if not self.config.matches(path, False):
                        continue
                    current = _modified_time(path)
                    if current is None:
                        continue
                    stored = known.get(path, 0)
                    if stored == 0:
                        self._safely(self.on_create, path)
                    elif current > stored:
                        self._safely(self.on_update, path)
        except OSError as e:
            logger.warning(f"Error encountered while checking for new files: {e}")

        logger.info(f"New file check took {time.monotonic() - start:.3f} seconds")

    def check_for_deleted_files(self) -> None:
        """Process stored paths that are no longer files on disk."""
        start = time.monotonic()
        for record in self.store.find_all():
            if not os.path.isfile(record.path):
                self._safely(self.on_delete, record.path)
        logger.info(f"Deleted files check took {time.monotonic() - start:.3f} seconds")

    def retry_unprocessed(self) -> None:
        """Re-drive every record left in a pending status."""
        start = time.monotonic()
        handlers = {
            Status.UNPROCESSED: self.on_create,
            Status.UNPROCESSED_UPDATE: self.on_update,
            Status.UNPROCESSED_DELETE: self.on_delete,
        }
        for status in Status:
            if not status.is_pending:
                continue
            for record in self.store.find_by_status(status):
                # Create and update need the file itself
                if status is not Status.UNPROCESSED_DELETE and not os.path.isfile(record.path):
                    continue
                self._safely(handlers[status], record.path)
        logger.info(f"Retry of unprocessed files took {time.monotonic() - start:.3f} seconds")

    def _safely(self, handler: Callable[[str], None], path: str) -> None:
        try:
            handler(path)
        except Exception as e:
            logger.error(f"Error handling {path}: {e}", exc_info=True)


class ControllerEventHandler(FileSystemEventHandler):
    """Forwards file events from a tree observer to a controller."""

    def __init__(self, controller: ChangeController):
        super().__init__()
        self.controller = controller

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.controller.on_create(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            # Records only describe files, so one here means a file became a directory
            self.controller.on_delete(event.src_path)
        else:
            self.controller.on_update(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.controller.on_delete(event.src_path)
