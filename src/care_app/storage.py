"""Durable key/value storage for client state shared between views.

Values are strings. Every handle can `subscribe` to change notifications;
like browser storage events, a handle's subscribers hear about writes made
through *other* handles over the same data, not about their own writes.
"""
import json
import os
import logging
import tempfile
import weakref
from pathlib import Path
from appdirs import user_data_dir


class Storage:
    """Interface shared by the storage backends."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._subscribers = []

    def get(self, key, default=None):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def remove(self, key):
        raise NotImplementedError

    def subscribe(self, callback):
        """Register `callback(key)` for changes made elsewhere; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self, key):
        for callback in list(self._subscribers):
            callback(key)


class _SharedData:
    """Backing dict plus every MemoryStorage handle reading it."""

    def __init__(self):
        self.data = {}
        self.handles = weakref.WeakSet()


class MemoryStorage(Storage):
    """In-memory storage. `sibling()` opens a second handle over the same data, like a second window."""

    def __init__(self, initial=None, _shared=None):
        super().__init__()
        self._shared = _shared or _SharedData()
        self._shared.handles.add(self)
        if initial:
            self._shared.data.update({k: str(v) for k, v in initial.items()})

    def sibling(self):
        return MemoryStorage(_shared=self._shared)

    def get(self, key, default=None):
        return self._shared.data.get(key, default)

    def set(self, key, value):
        self._shared.data[key] = str(value)
        self._broadcast(key)

    def remove(self, key):
        if self._shared.data.pop(key, None) is not None:
            self._broadcast(key)

    def _broadcast(self, key):
        for handle in list(self._shared.handles):
            if handle is not self:
                handle._notify(key)


class JSONFileStorage(Storage):
    """Storage persisted to one JSON file in the user data directory.

    The file is the single source of truth: every read goes to disk. Writes from
    other processes are picked up by `poll()`, which the UI loop calls.
    """

    def __init__(self, path=None):
        super().__init__()
        if path is None:
            path = Path(user_data_dir("care_app", "caretracker")) / "storage.json"
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._snapshot = self._read()

    def _read(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring malformed storage file {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data):
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix='.storage-', suffix='.json')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._snapshot = dict(data)

    def get(self, key, default=None):
        return self._read().get(key, default)

    def set(self, key, value):
        data = self._read()
        data[key] = str(value)
        self._write(data)

    def remove(self, key):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def poll(self):
        """Notify subscribers about keys changed on disk since the last look; returns those keys."""
        current = self._read()
        changed = [
            key for key in set(current) | set(self._snapshot)
            if current.get(key) != self._snapshot.get(key)
        ]
        self._snapshot = current
        for key in sorted(changed):
            self.logger.debug(f"Storage key changed externally: {key}")
            self._notify(key)
        return changed
