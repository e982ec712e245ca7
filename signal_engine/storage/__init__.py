"""Storage: key-value persistence for learning state."""

from signal_engine.storage.base import KeyValueStore, StoreError
from signal_engine.storage.json_store import JsonFileStore
from signal_engine.storage.memory import MemoryStore

__all__ = ["KeyValueStore", "StoreError", "JsonFileStore", "MemoryStore"]
