"""Invalidation queueing, scheduling and flushing."""

from cf_cache_controller.invalidation.cron import CronService
from cf_cache_controller.invalidation.models import (
    WILDCARD_PATH,
    DispatchResult,
    InvalidationBatch,
    InvalidationRequest,
)
from cf_cache_controller.invalidation.queue import InvalidationQueue
from cf_cache_controller.invalidation.scheduler import CRON_HOOK, LocalScheduler
from cf_cache_controller.invalidation.service import InvalidationOutcome, InvalidationService
from cf_cache_controller.invalidation.store import MemoryStore, SqliteStore
from cf_cache_controller.invalidation.switches import StaticDisableSwitch, StoreDisableSwitch

__all__ = [
    "CRON_HOOK",
    "CronService",
    "DispatchResult",
    "InvalidationBatch",
    "InvalidationOutcome",
    "InvalidationQueue",
    "InvalidationRequest",
    "InvalidationService",
    "LocalScheduler",
    "MemoryStore",
    "SqliteStore",
    "StaticDisableSwitch",
    "StoreDisableSwitch",
    "WILDCARD_PATH",
]
