"""Shared fixtures for directory monitor tests."""

import os
import time
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from src.dirmonitor.config import MonitorConfig
from src.dirmonitor.controller import ChangeController
from src.dirmonitor.exceptions import ProcessorError
from src.dirmonitor.processor import Processor
from src.dirmonitor.store import PathRecordStore


class RecordingProcessor(Processor):
    """Processor that records calls and fails a configurable number of times."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Optional[str]]] = []
        self.fail_create = 0
        self.fail_update = 0
        self.fail_delete = 0
        self._next_id = 0

    @property
    def processor_id(self) -> str:
        return "Recording"

    def process_create(self, path: Path) -> Optional[str]:
        self.calls.append(("create", str(path), None))
        if self.fail_create:
            self.fail_create -= 1
            raise ProcessorError("create failed")
        self._next_id += 1
        return f"id-{self._next_id}"

    def process_update(self, path: Path, external_id: Optional[str]) -> None:
        self.calls.append(("update", str(path), external_id))
        if self.fail_update:
            self.fail_update -= 1
            raise RuntimeError("update failed")

    def process_delete(self, path: Path, external_id: Optional[str]) -> None:
        self.calls.append(("delete", str(path), external_id))
        if self.fail_delete:
            self.fail_delete -= 1
            raise RuntimeError("delete failed")

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def summary(self) -> set:
        return {(op, os.path.basename(path)) for op, path, _ in self.calls}


def write_file(path: Path, content: str = "data", mtime: Optional[float] = None) -> Path:
    """Write a file and optionally pin its modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def watched_dir(tmp_path):
    directory = tmp_path / "watched"
    directory.mkdir()
    return directory


@pytest.fixture
def config(watched_dir, tmp_path):
    return MonitorConfig(directory=watched_dir, db_path=tmp_path / "records.db")


@pytest.fixture
def store(tmp_path):
    store = PathRecordStore(tmp_path / "records.db")
    yield store
    store.close()


@pytest.fixture
def processor():
    return RecordingProcessor()


@pytest.fixture
def controller(store, processor, config):
    # Clock an hour ahead so every file counts as stable
    return ChangeController(
        store,
        processor,
        config,
        sleep=lambda seconds: None,
        clock=lambda: time.time() + 3600,
    )


@pytest.fixture
def make_file():
    return write_file


@pytest.fixture
def processor_factory():
    return RecordingProcessor
