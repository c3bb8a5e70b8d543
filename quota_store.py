"""Key-value storage adapters backing the daily usage counters."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol


logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the underlying store cannot be read or written."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


@dataclass
class MemoryStore:
    data: Dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class RocksStore:
    """RocksDB-backed store shared by every browser session of the process."""

    def __init__(self, path: str) -> None:
        from rocksdict import Rdict

        os.makedirs(path, exist_ok=True)
        try:
            self._db = Rdict(path)
        except Exception as exc:
            raise StorageError(f"Could not open quota store at {path}: {exc}") from exc
        self.path = path

    def get(self, key: str) -> Optional[str]:
        try:
            raw = self._db.get(key.encode("utf-8"))
        except Exception as exc:
            raise StorageError(f"Could not read {key}: {exc}") from exc
        return raw.decode("utf-8") if raw else None

    def set(self, key: str, value: str) -> None:
        try:
            self._db[key.encode("utf-8")] = value.encode("utf-8")
        except Exception as exc:
            raise StorageError(f"Could not write {key}: {exc}") from exc

    def close(self) -> None:
        self._db.close()


@dataclass
class ScopedStore:
    """Namespace every key under ``scope`` (one scope per browser)."""

    store: KeyValueStore
    scope: str

    def _key(self, key: str) -> str:
        return f"{self.scope}::{key}"

    def get(self, key: str) -> Optional[str]:
        return self.store.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.store.set(self._key(key), value)


def open_store(backend: str, path: str = "quota-data") -> KeyValueStore:
    if backend == "memory":
        return MemoryStore()
    if backend == "rocksdict":
        logger.info("Opening quota store at %s", path)
        return RocksStore(path)
    raise ValueError(f"Unknown quota backend: {backend}")


__all__ = ["KeyValueStore", "MemoryStore", "RocksStore", "ScopedStore", "StorageError", "open_store"]
