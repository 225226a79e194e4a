from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Dict, Optional

from models.records import ReadingKey, ReadingName


class ReadingStore:
    """Latest decoded value per reading, shared by the decoder and the exporter.

    A single lock guards every key. Telegrams arrive every few seconds, so a
    coarse lock never holds a writer or a scrape back for long.
    """

    def __init__(self) -> None:
        self._values: Dict[ReadingKey, float] = {}
        self._telegrams_processed = 0
        self._lock = Lock()

    def set(self, name: ReadingName, discriminator: Optional[str], value: float) -> None:
        key = ReadingKey(name, discriminator)
        with self._lock:
            self._values[key] = float(value)

    def get(self, name: ReadingName, discriminator: Optional[str] = None) -> Optional[float]:
        with self._lock:
            return self._values.get(ReadingKey(name, discriminator))

    def snapshot(self) -> Dict[ReadingKey, float]:
        """Return a point-in-time copy of every reading set so far."""

        with self._lock:
            return dict(self._values)

    def increment_telegrams(self) -> int:
        with self._lock:
            self._telegrams_processed += 1
            return self._telegrams_processed

    @property
    def telegrams_processed(self) -> int:
        with self._lock:
            return self._telegrams_processed


@lru_cache
def build_default_store() -> ReadingStore:
    return ReadingStore()
