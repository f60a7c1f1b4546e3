# logic_engine/adapters/storage.py
from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any, Optional, Protocol

Watcher = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class KeyValueStore(Protocol):
    """Key-value storage capability for adapters that need durability beyond process memory."""

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class WatchableKeyValueStore(KeyValueStore, Protocol):
    def watch(self, key: str, callback: Watcher) -> Unsubscribe:
        """Call `callback(value)` after every `set` of `key`; returns an unsubscribe function."""
        ...


class InMemoryKeyValueStore:
    """Process-local store; values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._watchers: dict[str, list[Watcher]] = {}

    def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        for callback in list(self._watchers.get(key, ())):
            callback(copy.deepcopy(value))

    def watch(self, key: str, callback: Watcher) -> Unsubscribe:
        self._watchers.setdefault(key, []).append(callback)

        def _unsubscribe() -> None:
            callbacks = self._watchers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return _unsubscribe

    def keys(self) -> list[str]:
        return list(self._data)
