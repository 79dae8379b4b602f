"""Operator kill switch for the deferred flush."""

from __future__ import annotations

from typing import Protocol

from cf_cache_controller.invalidation.store import KeyValueStore

DISABLE_KEY = "c3_disabled_cron_retry"


class DisableSwitch(Protocol):
    def is_cron_retry_disabled(self) -> bool: ...


class StaticDisableSwitch:
    def __init__(self, disabled: bool = False) -> None:
        self.disabled = disabled

    def is_cron_retry_disabled(self) -> bool:
        return self.disabled


class StoreDisableSwitch:
    """Flag kept in the key-value store so it can be flipped at runtime."""

    def __init__(self, store: KeyValueStore, default: bool = False, key: str = DISABLE_KEY) -> None:
        self._store = store
        self._default = default
        self._key = key

    def is_cron_retry_disabled(self) -> bool:
        value = self._store.get(self._key)
        if value is None:
            return self._default
        return bool(value)

    def set_disabled(self, disabled: bool) -> None:
        self._store.set(self._key, disabled)
