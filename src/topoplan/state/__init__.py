"""State persistence for last-applied resources."""

from .store import FileStateStore, MemoryStateStore, StateRecord, StateStore

__all__ = ["FileStateStore", "MemoryStateStore", "StateRecord", "StateStore"]
