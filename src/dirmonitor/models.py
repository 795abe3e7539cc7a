"""Data models for the directory monitor package."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union
import hashlib


class Status(Enum):
    """Processing status of a known path."""
    UNPROCESSED = 0
    UNPROCESSED_UPDATE = 1
    UNPROCESSED_DELETE = 2
    PROCESSED = 3

    @property
    def is_pending(self) -> bool:
        """True for the statuses picked up by the retry sweep."""
        return self is not Status.PROCESSED


class EventKind(Enum):
    """Kinds of changes reported by the tree observer."""
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass
class PathRecord:
    """
    Persistent processing state for one filesystem path.

    Attributes:
        path: Absolute path of the file, unique key
        external_id: Identifier returned by the processor on create
        modified: Modification time recorded at the last processing attempt
        status: Current processing status
    """
    path: str
    external_id: Optional[str] = None
    modified: float = 0.0
    status: Status = Status.UNPROCESSED

    def __post_init__(self):
        if isinstance(self.path, Path):
            self.path = str(self.path)
        if not Path(self.path).is_absolute():
            raise ValueError(f"path must be absolute: {self.path}")
        if isinstance(self.status, int):
            self.status = Status(self.status)


def compute_path_digest(path: Union[str, Path], algorithm: str = "sha1") -> str:
    """
    Compute a content-address style identifier for a path.

    The digest is taken over the UTF-8 encoded absolute path, not over the
    file contents.

    Args:
        path: Path to identify
        algorithm: Hash algorithm to use (default: sha1)

    Returns:
        Lowercase hex digest
    """
    absolute = str(Path(path).absolute())
    return hashlib.new(algorithm, absolute.encode("utf-8")).hexdigest()
