"""Configuration for the directory monitor package."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .exceptions import ConfigError

DEFAULT_FILE_REGEX = ".*"
DEFAULT_CHECK_PERIOD_MS = 10000
DEFAULT_STABILITY_PERIOD_MS = 2000
MIN_STABILITY_PERIOD_MS = 1000
DEFAULT_PROCESSOR_ID = "Default"

ENV_PREFIX = "MONITOR_"


@dataclass
class MonitorConfig:
    """
    Configuration options for the directory monitor.

    Attributes:
        directory: Directory to monitor (must exist at start)
        file_regex: Regular expression file names must fully match
        check_period_ms: Interval between tree scans
        stability_period_ms: Quiet time required before a file is processed
        processor_id: Identifier of the processor plugin to use
        db_path: Path to the SQLite database holding path records
        startup_delay_ms: Delay before the startup catch-up pass
        retry_period_ms: Interval between retry sweeps
        shutdown_grace_ms: Time given to an in-flight scan on shutdown
    """
    directory: Path
    file_regex: Optional[str] = DEFAULT_FILE_REGEX
    check_period_ms: Optional[int] = DEFAULT_CHECK_PERIOD_MS
    stability_period_ms: Optional[int] = DEFAULT_STABILITY_PERIOD_MS
    processor_id: Optional[str] = DEFAULT_PROCESSOR_ID
    db_path: Path = field(default_factory=lambda: Path("monitor.db"))
    startup_delay_ms: int = 10000
    retry_period_ms: int = 120000
    shutdown_grace_ms: int = 1000

    def __post_init__(self):
        if isinstance(self.directory, str):
            self.directory = Path(self.directory)
        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)

        if self.file_regex is None:
            self.file_regex = DEFAULT_FILE_REGEX
        if self.check_period_ms is None or self.check_period_ms <= 0:
            self.check_period_ms = DEFAULT_CHECK_PERIOD_MS
        if self.stability_period_ms is None or self.stability_period_ms < MIN_STABILITY_PERIOD_MS:
            self.stability_period_ms = DEFAULT_STABILITY_PERIOD_MS
        if not self.processor_id:
            self.processor_id = DEFAULT_PROCESSOR_ID

        try:
            self._pattern = re.compile(self.file_regex)
        except re.error as e:
            raise ConfigError(f"Invalid file regex {self.file_regex!r}: {e}") from e

    @property
    def stability_period(self) -> float:
        """Stability period in seconds."""
        return self.stability_period_ms / 1000.0

    @property
    def check_period(self) -> float:
        """Scan interval in seconds."""
        return self.check_period_ms / 1000.0

    def matches(self, path: Union[str, Path], is_directory: bool) -> bool:
        """
        Check whether a path passes the content filter.

        Hidden entries never match. Directories otherwise always match so
        that their contents are observed; files must fully match the
        configured regular expression.

        Args:
            path: Path to check
            is_directory: Whether the path is a directory

        Returns:
            True if the path should be observed
        """
        name = os.path.basename(str(path))
        if name.startswith("."):
            return False
        if is_directory:
            return True
        return self._pattern.fullmatch(name) is not None

    @classmethod
    def from_env(cls, **overrides) -> "MonitorConfig":
        """
        Build a configuration from MONITOR_* environment variables.

        Keyword overrides that are not None take precedence over the
        environment.

        Raises:
            ConfigError: If no directory is configured or a value is malformed
        """
        values = {
            "directory": os.environ.get(f"{ENV_PREFIX}DIR"),
            "file_regex": os.environ.get(f"{ENV_PREFIX}FILE_REGEX"),
            "check_period_ms": _env_int("CHECK_PERIOD"),
            "stability_period_ms": _env_int("STABILITY_PERIOD"),
            "processor_id": os.environ.get(f"{ENV_PREFIX}PROCESSOR_ID"),
            "db_path": os.environ.get(f"{ENV_PREFIX}DB"),
            "startup_delay_ms": _env_int("STARTUP_DELAY"),
            "retry_period_ms": _env_int("RETRY_PERIOD"),
            "shutdown_grace_ms": _env_int("SHUTDOWN_GRACE"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        if not values.get("directory"):
            raise ConfigError(f"No directory configured (set {ENV_PREFIX}DIR or --dir)")

        # Fields without normalization keep their dataclass defaults
        for key in ("db_path", "startup_delay_ms", "retry_period_ms", "shutdown_grace_ms"):
            if values[key] is None:
                del values[key]

        return cls(**values)


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e
