"""Deferred job scheduling contract and a store-backed implementation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from cf_cache_controller.invalidation.store import KeyValueStore, MemoryStore
from cf_cache_controller.utils.time import parse_iso_timestamp, utc_now

logger = logging.getLogger(__name__)

CRON_HOOK = "c3_cron_invalidation"

_DUE_KEY_PREFIX = "cron:"


class Scheduler(Protocol):
    def schedule_once(self, hook_id: str, delay_seconds: int) -> datetime: ...

    def cancel(self, hook_id: str) -> None: ...

    def next_scheduled(self, hook_id: str) -> datetime | None: ...

    def register(self, hook_id: str, callback: Callable[[], object]) -> None: ...


class LocalScheduler:
    """Keyed single-shot jobs fired by ``run_pending``.

    Each hook holds at most one due time; scheduling again replaces it. A due
    job is unscheduled before its callback runs, so one arming fires once.
    There is no recurrence. Due times live in the key-value store, so a job
    armed by one process is fired by whichever process polls ``run_pending``.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._callbacks: dict[str, Callable[[], object]] = {}
        self._lock = threading.Lock()

    def register(self, hook_id: str, callback: Callable[[], object]) -> None:
        with self._lock:
            self._callbacks[hook_id] = callback

    def schedule_once(self, hook_id: str, delay_seconds: int) -> datetime:
        due = self._clock() + timedelta(seconds=delay_seconds)
        with self._lock:
            self._store.set(_DUE_KEY_PREFIX + hook_id, due.isoformat())
        logger.debug("Scheduled %s at %s", hook_id, due.isoformat())
        return due

    def cancel(self, hook_id: str) -> None:
        with self._lock:
            self._store.delete(_DUE_KEY_PREFIX + hook_id)

    def next_scheduled(self, hook_id: str) -> datetime | None:
        with self._lock:
            return self._load_due(hook_id)

    def run_pending(self, now: datetime | None = None) -> list[str]:
        """Fire every registered job whose due time has passed.

        Returns the hooks that were fired, earliest first.
        """
        current = now or self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        with self._lock:
            due_times: dict[str, datetime] = {}
            for hook_id in self._callbacks:
                due = self._load_due(hook_id)
                if due is not None and due <= current:
                    due_times[hook_id] = due
            ready = sorted(due_times, key=due_times.__getitem__)
            for hook_id in ready:
                self._store.delete(_DUE_KEY_PREFIX + hook_id)
            callbacks = [(hook_id, self._callbacks[hook_id]) for hook_id in ready]

        fired: list[str] = []
        for hook_id, callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Scheduled hook %s failed", hook_id)
            fired.append(hook_id)
        return fired

    def _load_due(self, hook_id: str) -> datetime | None:
        raw = self._store.get(_DUE_KEY_PREFIX + hook_id)
        if not isinstance(raw, str):
            return None
        return parse_iso_timestamp(raw)
