"""
Polling tree observer with snapshot diffing.

The observer keeps an in-memory snapshot of the monitored tree and, on each
check, compares it against a fresh listing to emit created, modified and
deleted events to watchdog event handlers.

Unlike a naive snapshot diff, a root that becomes unreachable (for example an
unmounted network share) does not produce a delete event for every known
file. Diffing is suspended instead, and when the root comes back the current
tree is taken as the new baseline.
"""

import logging
import os
import stat
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)

from .models import EventKind

logger = logging.getLogger(__name__)

FileFilter = Callable[[str, bool], bool]


class TreeEntry:
    """
    One node of the observer's snapshot.

    Each entry exclusively owns its children, which are kept sorted by name.
    """

    __slots__ = ("path", "name", "exists", "is_directory", "modified", "size", "children")

    def __init__(self, path: str):
        self.path = path
        self.name = os.path.basename(path)
        self.exists = False
        self.is_directory = False
        self.modified = 0
        self.size = 0
        self.children: List["TreeEntry"] = []

    @property
    def signature(self) -> Tuple[bool, bool, int, int]:
        return (self.exists, self.is_directory, self.modified, self.size)

    def refresh(self) -> bool:
        """
        Re-read the entry's attributes from disk.

        Returns:
            True if existence, type, modification time or size changed
        """
        previous = self.signature
        try:
            st = os.stat(self.path)
        except OSError:
            self.exists = False
            self.is_directory = False
            self.modified = 0
            self.size = 0
        else:
            self.exists = True
            self.is_directory = stat.S_ISDIR(st.st_mode)
            self.modified = st.st_mtime_ns
            self.size = 0 if self.is_directory else st.st_size
        return self.signature != previous

    def __repr__(self) -> str:
        return f"TreeEntry(path={self.path!r}, is_directory={self.is_directory}, children={len(self.children)})"


class TreeObserver:
    """
    Observes a directory tree by periodic snapshot comparison.

    Events are delivered in a deterministic order within one check: children
    of a directory are visited in ascending name order, a created directory
    is reported before its descendants, and a subtree's events are reported
    before the change or deletion of the directory that holds it.
    """

    def __init__(self, root: Union[str, Path], file_filter: Optional[FileFilter] = None):
        """
        Initialize the observer.

        Args:
            root: Directory to observe
            file_filter: Predicate over (path, is_directory); entries it
                rejects are neither reported nor descended into
        """
        self._root_entry = TreeEntry(os.path.abspath(str(root)))
        self.file_filter = file_filter
        self._listeners: List[FileSystemEventHandler] = []
        self._listeners_lock = threading.Lock()
        self._check_lock = threading.Lock()

    @property
    def directory(self) -> Path:
        """The directory being observed."""
        return Path(self._root_entry.path)

    @property
    def is_available(self) -> bool:
        """Whether the root was reachable at the last check."""
        return self._root_entry.exists

    @property
    def root_entry(self) -> TreeEntry:
        return self._root_entry

    def add_listener(self, listener: FileSystemEventHandler) -> None:
        """Register an event handler."""
        if listener is None:
            return
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: FileSystemEventHandler) -> None:
        """Unregister every registration of an event handler."""
        with self._listeners_lock:
            self._listeners = [l for l in self._listeners if l is not listener]

    @property
    def listeners(self) -> Tuple[FileSystemEventHandler, ...]:
        with self._listeners_lock:
            return tuple(self._listeners)

    def initialize(self) -> None:
        """Take the current tree as the baseline without firing events."""
        root = self._root_entry
        root.refresh()
        root.children = self._build_children(root.path)
        logger.debug(f"Initialized snapshot of {root.path}")

    def check_and_notify(self) -> None:
        """Compare the tree against the snapshot and fire events."""
        with self._check_lock:
            start = time.monotonic()
            root = self._root_entry

            if self._root_readable():
                if not root.exists:
                    logger.info(
                        f"Monitored directory [{root.path}] has become available. Resuming monitoring."
                    )
                    try:
                        self.initialize()
                    except OSError as e:
                        logger.error(
                            f"Could not initialize monitored directory after it became available: {e}"
                        )
                self._check_and_notify(root, root.children, self._list_files(root.path))
            elif root.exists:
                logger.warning(
                    f"Monitored directory [{root.path}] no longer available. "
                    "Suspending monitoring until directory becomes available"
                )
                root.exists = False

            logger.debug(f"Directory scan took {time.monotonic() - start:.3f} seconds")

    def _root_readable(self) -> bool:
        path = self._root_entry.path
        return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)

    def _check_and_notify(
        self, parent: TreeEntry, previous: List[TreeEntry], files: List[str]
    ) -> None:
        """
        Compare previous children of a directory against its current listing.

        Args:
            parent: The directory entry
            previous: Snapshot children, sorted by name
            files: Current child paths, sorted by name
        """
        current: List[TreeEntry] = []
        c = 0
        for entry in previous:
            while c < len(files) and entry.name > os.path.basename(files[c]):
                created = self._create_entry(files[c])
                current.append(created)
                self._do_create(created)
                c += 1

            if c < len(files) and entry.name == os.path.basename(files[c]):
                changed = entry.refresh()
                self._check_and_notify(entry, entry.children, self._list_files(files[c]))
                if changed:
                    self._fire(EventKind.CHANGED, entry)
                current.append(entry)
                c += 1
            else:
                self._check_and_notify(entry, entry.children, [])
                self._fire(EventKind.DELETED, entry)

        for path in files[c:]:
            created = self._create_entry(path)
            current.append(created)
            self._do_create(created)

        parent.children = current

    def _create_entry(self, path: str) -> TreeEntry:
        entry = TreeEntry(path)
        entry.refresh()
        entry.children = self._build_children(path)
        return entry

    def _build_children(self, path: str) -> List[TreeEntry]:
        return [self._create_entry(child) for child in self._list_files(path)]

    def _list_files(self, path: str) -> List[str]:
        """
        List the filtered children of a directory, sorted by name.

        Returns an empty list for files and for directories that cannot be
        read.
        """
        if not os.path.isdir(path):
            return []
        try:
            with os.scandir(path) as it:
                children = []
                for child in it:
                    try:
                        is_dir = child.is_dir()
                    except OSError:
                        is_dir = False
                    if self.file_filter is None or self.file_filter(child.path, is_dir):
                        children.append(child.path)
        except OSError as e:
            logger.debug(f"Could not list {path}: {e}")
            return []
        children.sort(key=os.path.basename)
        return children

    def _do_create(self, entry: TreeEntry) -> None:
        self._fire(EventKind.CREATED, entry)
        for child in entry.children:
            self._do_create(child)

    def _fire(self, kind: EventKind, entry: TreeEntry) -> None:
        event = _make_event(kind, entry.path, entry.is_directory)
        for listener in self.listeners:
            try:
                listener.dispatch(event)
            except Exception:
                logger.exception(f"Listener failed handling {kind.value} event for {entry.path}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}[file='{self._root_entry.path}', listeners={len(self.listeners)}]"


_EVENT_TYPES = {
    (EventKind.CREATED, False): FileCreatedEvent,
    (EventKind.CREATED, True): DirCreatedEvent,
    (EventKind.CHANGED, False): FileModifiedEvent,
    (EventKind.CHANGED, True): DirModifiedEvent,
    (EventKind.DELETED, False): FileDeletedEvent,
    (EventKind.DELETED, True): DirDeletedEvent,
}


def _make_event(kind: EventKind, path: str, is_directory: bool) -> FileSystemEvent:
    return _EVENT_TYPES[(kind, is_directory)](path)
