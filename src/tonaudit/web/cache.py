"""In-process LRU cache of scan results keyed by a content hash."""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict


def content_hash(source: str, catalog_name: str = "") -> str:
    """sha256 of the exact source text, salted with the catalog name.

    Results carry line numbers and patched text, so any layout change is a
    different key.
    """
    digest = hashlib.sha256()
    digest.update(catalog_name.encode("utf-8"))
    digest.update(b"\0")
    digest.update(source.encode("utf-8"))
    return digest.hexdigest()


class ResultCache:
    """Thread-safe bounded mapping; least recently used entries are evicted."""

    def __init__(self, max_size: int = 128) -> None:
        self._max_size = max_size
        self._data: OrderedDict[str, dict] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> dict | None:
        with self._lock:
            value = self._data.get(key)
            if value is not None:
                self._data.move_to_end(key)
            return value

    def put(self, key: str, value: dict) -> None:
        if self._max_size <= 0:
            return
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self._max_size:
                self._data.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
