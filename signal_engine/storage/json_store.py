"""
JSON file store: one file per namespace and symbol under a state directory.
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional

from signal_engine.storage.base import KeyValueStore, StoreError

logger = logging.getLogger("signal_engine.storage")


class JsonFileStore(KeyValueStore):
    """Stores payloads as <directory>/<namespace>_<SYMBOL>.json."""

    def __init__(self, directory: Path, namespace: str = "adaptive_weight_learning"):
        self.directory = Path(directory)
        self.namespace = namespace

    def path_for(self, symbol: str) -> Path:
        return self.directory / f"{self.namespace}_{symbol.upper()}.json"

    def load(self, symbol: str) -> Optional[dict]:
        path = self.path_for(symbol)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path}: {e}") from e
        if not isinstance(payload, dict):
            raise StoreError(f"Unexpected payload in {path}")
        return payload

    def save(self, symbol: str, payload: dict) -> None:
        path = self.path_for(symbol)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            tmp.replace(path)
        except (OSError, TypeError) as e:
            raise StoreError(f"Cannot write {path}: {e}") from e
        logger.debug("Saved %s", path)

    def reset(self, symbol: str) -> None:
        path = self.path_for(symbol)
        try:
            path.unlink()
            logger.info("Removed %s", path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreError(f"Cannot remove {path}: {e}") from e
