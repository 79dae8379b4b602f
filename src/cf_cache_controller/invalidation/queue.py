"""Persisted invalidation batch awaiting the deferred flush."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cf_cache_controller.errors import InvalidationError
from cf_cache_controller.invalidation.models import InvalidationBatch
from cf_cache_controller.invalidation.store import KeyValueStore

logger = logging.getLogger(__name__)

QUEUE_KEY = "c3_invalidation"


class InvalidationQueue:
    """Single-slot queue: one mergeable batch under a fixed key."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = QUEUE_KEY,
        ttl_seconds: int | None = None,
    ) -> None:
        self._store = store
        self._key = key
        self._ttl_seconds = ttl_seconds

    def load_batch(self) -> InvalidationBatch:
        raw = self._store.get(self._key)
        if not raw:
            return InvalidationBatch()
        if not isinstance(raw, dict):
            logger.warning("Discarding malformed queued invalidation batch")
            return InvalidationBatch()
        try:
            return InvalidationBatch.from_query(raw)
        except InvalidationError as exc:
            logger.warning("Discarding malformed queued invalidation batch: %s", exc)
            return InvalidationBatch()

    def save_batch(self, batch: InvalidationBatch) -> None:
        self._store.set(self._key, batch.to_wire(), ttl_seconds=self._ttl_seconds)

    def merge(self, paths: Iterable[str]) -> InvalidationBatch:
        """Union *paths* into the stored batch and persist the result."""
        batch = self.load_batch().merged(paths)
        self.save_batch(batch)
        return batch

    def clear_batch(self) -> None:
        self._store.delete(self._key)
