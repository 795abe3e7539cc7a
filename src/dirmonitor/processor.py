"""
Processor plugins and registry.

A processor is the external pipeline driven by the monitor: it is told when
a matching file was created, updated or deleted. Processors are selected at
startup by identifier from a registry, falling back to the default processor.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from .config import DEFAULT_PROCESSOR_ID
from .models import compute_path_digest

logger = logging.getLogger(__name__)


class Processor(ABC):
    """Abstract base class for processors."""

    @property
    @abstractmethod
    def processor_id(self) -> str:
        """Identifier used to select this processor."""
        pass

    @abstractmethod
    def process_create(self, path: Path) -> Optional[str]:
        """
        Handle a newly discovered file.

        Args:
            path: The file that was discovered

        Returns:
            An external id to associate with the file. It is handed back on
            later update and delete calls. May be None.

        Raises:
            Exception: Any failure; the monitor retries later
        """
        pass

    @abstractmethod
    def process_update(self, path: Path, external_id: Optional[str]) -> None:
        """
        Handle a modified file.

        Args:
            path: The file that was updated
            external_id: Id returned by process_create, may be None
        """
        pass

    @abstractmethod
    def process_delete(self, path: Path, external_id: Optional[str]) -> None:
        """
        Handle a deleted file.

        Args:
            path: The file that was deleted
            external_id: Id returned by process_create, may be None
        """
        pass


class DefaultProcessor(Processor):
    """
    Reference processor.

    Creates return the SHA-1 digest of the absolute path. Updates and
    deletes only count invocations.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.create_count = 0
        self.update_count = 0
        self.delete_count = 0

    @property
    def processor_id(self) -> str:
        return DEFAULT_PROCESSOR_ID

    def process_create(self, path: Path) -> Optional[str]:
        with self._lock:
            self.create_count += 1
        return compute_path_digest(path)

    def process_update(self, path: Path, external_id: Optional[str]) -> None:
        with self._lock:
            self.update_count += 1

    def process_delete(self, path: Path, external_id: Optional[str]) -> None:
        with self._lock:
            self.delete_count += 1


class ProcessorRegistry:
    """Registry of processors keyed by identifier."""

    def __init__(self):
        self._processors: Dict[str, Processor] = {}

    def register(self, processor: Processor) -> None:
        """
        Register a processor, replacing any with the same id.

        Args:
            processor: Processor instance to register
        """
        self._processors[processor.processor_id] = processor

    def get(self, processor_id: str) -> Optional[Processor]:
        """Get a processor by id, or None."""
        return self._processors.get(processor_id)

    def resolve(self, processor_id: Optional[str]) -> Processor:
        """
        Select the processor to run with.

        Args:
            processor_id: Configured identifier

        Returns:
            The matching processor, or the default processor when the id is
            unknown
        """
        processor = self._processors.get(processor_id or DEFAULT_PROCESSOR_ID)
        if processor is not None:
            return processor

        logger.warning(
            f"Unknown processor '{processor_id}', falling back to '{DEFAULT_PROCESSOR_ID}'"
        )
        return self._processors.get(DEFAULT_PROCESSOR_ID) or DefaultProcessor()

    def ids(self) -> List[str]:
        """Return the registered ids in registration order."""
        return list(self._processors)

    def __contains__(self, processor_id: str) -> bool:
        return processor_id in self._processors

    def __len__(self) -> int:
        return len(self._processors)


def create_default_registry() -> ProcessorRegistry:
    """Create a registry with the built-in processors."""
    registry = ProcessorRegistry()
    registry.register(DefaultProcessor())
    return registry
