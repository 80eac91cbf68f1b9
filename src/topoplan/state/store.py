"""State store: last-applied attributes and identifiers per resource."""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field, ValidationError
from ..utils.errors import StateError
from ..utils.logging import get_logger

logger = get_logger("state.store")

STATE_FORMAT_VERSION = 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StateRecord(BaseModel):
    """Snapshot of a resource's last successfully applied state."""
    address: str = Field(..., description="Resource address, also the store key")
    type: str = Field(..., description="Resource type")
    identifier: str = Field(..., description="Provider-assigned identifier")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Resolved attributes as applied")
    outputs: Dict[str, Any] = Field(default_factory=dict, description="Provider outputs after apply")
    dependencies: List[str] = Field(default_factory=list, description="Addresses this resource referenced")
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def output(self, name: str) -> Any:
        """Output value by name; ``id`` is the identifier."""
        if name == "id":
            return self.identifier
        return self.outputs.get(name)

    def has_output(self, name: str) -> bool:
        return name == "id" or name in self.outputs


class StateStore(ABC):
    """Key -> StateRecord mapping, safe for concurrent writers on different keys."""

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, key: str) -> threading.RLock:
        """Per-key lock serialising read-modify-write of one record."""
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @abstractmethod
    def load(self) -> Dict[str, StateRecord]:
        """All records, in the order they were first saved."""
        pass

    @abstractmethod
    def save(self, key: str, record: StateRecord) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    def get(self, key: str) -> Optional[StateRecord]:
        return self.load().get(key)


class MemoryStateStore(StateStore):
    """In-process store, mostly for tests and dry runs."""

    def __init__(self, records: Optional[Dict[str, StateRecord]] = None):
        super().__init__()
        self._records: Dict[str, StateRecord] = dict(records or {})
        self._doc_lock = threading.Lock()

    def load(self) -> Dict[str, StateRecord]:
        with self._doc_lock:
            return {k: v.model_copy(deep=True) for k, v in self._records.items()}

    def get(self, key: str) -> Optional[StateRecord]:
        with self._doc_lock:
            record = self._records.get(key)
            return record.model_copy(deep=True) if record else None

    def save(self, key: str, record: StateRecord) -> None:
        with self.lock_for(key):
            with self._doc_lock:
                self._records[key] = record.model_copy(deep=True)

    def delete(self, key: str) -> None:
        with self.lock_for(key):
            with self._doc_lock:
                self._records.pop(key, None)


class FileStateStore(StateStore):
    """JSON document on disk, rewritten atomically on every change."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._doc_lock = threading.Lock()
        self._serial = 0
        self._records: Dict[str, StateRecord] = self._read()

    def _read(self) -> Dict[str, StateRecord]:
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting empty")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateError(f"Invalid JSON in state file {self.path}: {e}")
        except OSError as e:
            raise StateError(f"Error reading state file {self.path}: {e}")

        if not isinstance(data, dict) or not isinstance(data.get("resources", {}), dict):
            raise StateError(f"State file {self.path} must contain a 'resources' mapping")

        version = data.get("version", STATE_FORMAT_VERSION)
        if version != STATE_FORMAT_VERSION:
            raise StateError(f"Unsupported state format version {version} in {self.path}")

        self._serial = int(data.get("serial", 0))
        records = {}
        for key, raw in data.get("resources", {}).items():
            try:
                records[key] = StateRecord(**raw)
            except (ValidationError, TypeError) as e:
                raise StateError(f"Invalid state record for {key}: {e}")

        logger.info(f"Loaded state from {self.path} (serial: {self._serial}, resources: {len(records)})")
        return records

    def _write(self, records: Dict[str, StateRecord]) -> None:
        """Persist records as the next serial; in-memory state moves only once the file is replaced."""
        serial = self._serial + 1
        document = {
            "version": STATE_FORMAT_VERSION,
            "serial": serial,
            "resources": {k: v.model_dump(mode="json") for k, v in records.items()},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".state-", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(document, f, indent=2, default=str)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StateError(f"Failed to write state file {self.path}: {e}")
        self._records = records
        self._serial = serial
        logger.debug(f"Written state serial {serial} to {self.path}")

    @property
    def serial(self) -> int:
        return self._serial

    def load(self) -> Dict[str, StateRecord]:
        with self._doc_lock:
            return {k: v.model_copy(deep=True) for k, v in self._records.items()}

    def get(self, key: str) -> Optional[StateRecord]:
        with self._doc_lock:
            record = self._records.get(key)
            return record.model_copy(deep=True) if record else None

    def save(self, key: str, record: StateRecord) -> None:
        with self.lock_for(key):
            with self._doc_lock:
                records = dict(self._records)
                records[key] = record.model_copy(deep=True)
                self._write(records)

    def delete(self, key: str) -> None:
        with self.lock_for(key):
            with self._doc_lock:
                if key in self._records:
                    records = dict(self._records)
                    del records[key]
                    self._write(records)
