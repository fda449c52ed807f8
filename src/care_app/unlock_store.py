"""Remembers which emergency-info records the user has unlocked.

Durable storage is the single source of truth; the in-memory set is only a
read-through cache, dropped whenever another handle writes the key. The flag
is advisory: the server still decides whether sensitive fields are returned.
"""
import enum
import json
import logging
from typing import Optional, Set


class UnlockState(str, enum.Enum):
    LOCKED = 'locked'
    UNLOCKED = 'unlocked'


class UnlockStore:
    STORAGE_KEY = 'emergency_pins_unlocked'

    def __init__(self, storage):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.storage = storage
        self._cache: Optional[Set[int]] = None
        storage.subscribe(self._on_storage_change)

    def _load(self) -> Set[int]:
        if self._cache is not None:
            return self._cache

        raw = self.storage.get(self.STORAGE_KEY)
        unlocked = set()
        if raw:
            try:
                unlocked = {int(item) for item in json.loads(raw)}
            except (TypeError, ValueError) as e:
                self.logger.warning(f"Ignoring malformed unlock list in storage: {e}")
        self._cache = unlocked
        return unlocked

    def _save(self, unlocked: Set[int]):
        self.storage.set(self.STORAGE_KEY, json.dumps(sorted(unlocked)))
        self._cache = set(unlocked)

    def is_unlocked(self, record_id) -> bool:
        return int(record_id) in self._load()

    def state(self, record_id) -> UnlockState:
        return UnlockState.UNLOCKED if self.is_unlocked(record_id) else UnlockState.LOCKED

    def unlocked_ids(self) -> Set[int]:
        return set(self._load())

    def unlock(self, record_id):
        unlocked = set(self._load())
        if int(record_id) in unlocked:
            return
        unlocked.add(int(record_id))
        self._save(unlocked)
        self.logger.info(f"Unlocked emergency info {record_id}")

    def lock(self, record_id):
        unlocked = set(self._load())
        if int(record_id) not in unlocked:
            return
        unlocked.discard(int(record_id))
        self._save(unlocked)
        self.logger.info(f"Locked emergency info {record_id}")

    def clear(self):
        self.storage.remove(self.STORAGE_KEY)
        self._cache = set()
        self.logger.info("Cleared all emergency info unlocks")

    def _on_storage_change(self, key):
        if key == self.STORAGE_KEY:
            self._cache = None
