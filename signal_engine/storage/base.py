"""Abstract key-value persistence for weight maps and learning state."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional


class StoreError(Exception):
    """Stored payload could not be read or written."""


class KeyValueStore(ABC):
    """Per-symbol JSON-compatible payloads."""

    @abstractmethod
    def load(self, symbol: str) -> Optional[dict]:
        """Stored payload for symbol, or None if nothing is stored. Raises StoreError if unreadable."""
        pass

    @abstractmethod
    def save(self, symbol: str, payload: dict) -> None:
        """Replace the payload for symbol."""
        pass

    @abstractmethod
    def reset(self, symbol: str) -> None:
        """Remove the payload for symbol. No-op if absent."""
        pass
