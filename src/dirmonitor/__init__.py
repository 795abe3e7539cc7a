"""
Directory Monitor Package

Watches a directory tree by periodic polling and drives a pluggable processor
once per observed file change, keeping per-file processing state in SQLite so
that work survives restarts and failed calls are retried.

Features:
- Snapshot diffing that tolerates a temporarily unavailable root
- Stability wait before processing files that are still being written
- Idempotent create/update/delete handling backed by persistent records
- Startup catch-up pass and periodic retry sweep
- Processor plugins selected by identifier
"""

from .models import (
    Status,
    EventKind,
    PathRecord,
    compute_path_digest,
)

from .config import MonitorConfig

from .exceptions import (
    MonitorError,
    ConfigError,
    DirectoryNotFoundError,
    StoreError,
    StoreClosedError,
    ProcessorError,
    MonitorAlreadyRunningError,
)

from .store import PathRecordStore
from .processor import (
    Processor,
    DefaultProcessor,
    ProcessorRegistry,
    create_default_registry,
)
from .observer import TreeEntry, TreeObserver
from .controller import ChangeController, ControllerEventHandler
from .fs_watcher import PollingWatcher
from .scheduler import ReconciliationScheduler
from .process import MonitorProcess


__all__ = [
    # Models
    "Status",
    "EventKind",
    "PathRecord",
    "compute_path_digest",
    # Config
    "MonitorConfig",
    # Exceptions
    "MonitorError",
    "ConfigError",
    "DirectoryNotFoundError",
    "StoreError",
    "StoreClosedError",
    "ProcessorError",
    "MonitorAlreadyRunningError",
    # Components
    "PathRecordStore",
    "Processor",
    "DefaultProcessor",
    "ProcessorRegistry",
    "create_default_registry",
    "TreeEntry",
    "TreeObserver",
    "ChangeController",
    "ControllerEventHandler",
    "PollingWatcher",
    "ReconciliationScheduler",
    # Main Process
    "MonitorProcess",
]

__version__ = "0.1.0"
