"""In-process store, for tests and one-off runs."""

from __future__ import annotations
import copy
from typing import Dict, Optional

from signal_engine.storage.base import KeyValueStore


class MemoryStore(KeyValueStore):

    def __init__(self):
        self._data: Dict[str, dict] = {}

    def load(self, symbol: str) -> Optional[dict]:
        payload = self._data.get(symbol.upper())
        return copy.deepcopy(payload) if payload is not None else None

    def save(self, symbol: str, payload: dict) -> None:
        self._data[symbol.upper()] = copy.deepcopy(payload)

    def reset(self, symbol: str) -> None:
        self._data.pop(symbol.upper(), None)
