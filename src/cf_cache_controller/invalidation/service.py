"""Change-event entry points: decide, queue and arm the deferred flush."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from cf_cache_controller.config import InvalidationSettings
from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.errors import InvalidationError
from cf_cache_controller.invalidation.models import (
    WILDCARD_PATH,
    DispatchResult,
    InvalidationBatch,
    InvalidationDispatcher,
    InvalidationRequest,
    normalize_paths,
)
from cf_cache_controller.invalidation.queue import InvalidationQueue
from cf_cache_controller.invalidation.scheduler import CRON_HOOK, Scheduler
from cf_cache_controller.invalidation.switches import DisableSwitch

logger = logging.getLogger(__name__)


@dataclass
class InvalidationOutcome:
    """What ``invalidate_paths`` did with a change event.

    ``action`` is one of ``"queued"``, ``"dispatched"`` or ``"skipped"``.
    """

    action: str
    paths: list[str] = field(default_factory=list)
    scheduled: bool = False
    result: DispatchResult | None = None


class InvalidationService:
    def __init__(
        self,
        queue: InvalidationQueue,
        scheduler: Scheduler,
        switch: DisableSwitch,
        dispatcher: InvalidationDispatcher,
        debug_logger: DebugLogger | None = None,
        settings: InvalidationSettings | None = None,
    ) -> None:
        self._queue = queue
        self._scheduler = scheduler
        self._switch = switch
        self._dispatcher = dispatcher
        self._debug = debug_logger or DebugLogger()
        self._settings = settings or InvalidationSettings()

    def should_invalidate(self, new_status: str | None, old_status: str | None) -> bool:
        """True when the content moves into or out of the published state."""
        published = self._settings.published_status
        return (new_status == published) != (old_status == published)

    def register_cron_event(self, query: Mapping[str, Any] | InvalidationBatch | None) -> bool:
        """Arm (or re-arm) the single deferred flush for a queued batch.

        Refuses empty batches, batches containing ``/*`` (a full-distribution
        purge is never deferred) and registrations while the disable switch
        is on. Returns True when the flush was armed.
        """
        self._debug.log_cron_registration_start()
        try:
            batch = InvalidationBatch.from_query(query)
        except InvalidationError as exc:
            self._debug.log_cron_registration_skip(
                "===== C3 CRON Job registration [SKIP | INVALID QUERY] ===",
                {"error": str(exc)},
            )
            return False

        if batch.is_empty():
            self._debug.log_cron_registration_skip(
                "===== C3 CRON Job registration [SKIP | NO ITEM] ==="
            )
            return False

        if batch.has_wildcard():
            self._debug.log_cron_registration_skip(
                "===== C3 CRON Job registration [SKIP | FULL INVALIDATION] ==="
            )
            return False

        if self._switch.is_cron_retry_disabled():
            self._debug.log_cron_registration_skip(
                "===== C3 CRON Job registration [SKIP | DISABLED] ==="
            )
            return False

        self._scheduler.cancel(CRON_HOOK)
        due = self._scheduler.schedule_once(CRON_HOOK, self._settings.debounce_seconds)
        self._debug.log_cron_registration_complete({"scheduled_at": due.isoformat()})
        return True

    def invalidate_paths(self, paths: Iterable[str]) -> InvalidationOutcome:
        """Queue changed paths for the next flush, or purge everything now.

        Paths beyond the item limit collapse to ``/*``; a wildcard batch is
        dispatched immediately instead of being queued.
        """
        normalized = normalize_paths(paths)
        if not normalized:
            return InvalidationOutcome(action="skipped")

        if WILDCARD_PATH in normalized or len(normalized) > self._settings.item_limit:
            return self._dispatch_now([WILDCARD_PATH])

        batch = self._queue.merge(normalized)
        self._debug.log_invalidation_params(
            "C3 queued invalidation paths", {"paths": batch.items}
        )
        scheduled = self.register_cron_event(batch)
        return InvalidationOutcome(action="queued", paths=batch.items, scheduled=scheduled)

    def handle_status_transition(
        self,
        new_status: str | None,
        old_status: str | None,
        paths: Iterable[str],
    ) -> InvalidationOutcome:
        if not self.should_invalidate(new_status, old_status):
            return InvalidationOutcome(action="skipped")
        return self.invalidate_paths(paths)

    def cancel(self) -> None:
        """Drop the queued batch and any pending flush."""
        self._queue.clear_batch()
        self._scheduler.cancel(CRON_HOOK)

    def _dispatch_now(self, paths: list[str]) -> InvalidationOutcome:
        distribution_id = self._dispatcher.get_distribution_id()
        if not distribution_id:
            logger.warning("Immediate invalidation skipped: no distribution id configured")
            return InvalidationOutcome(action="skipped", paths=paths)

        request = InvalidationRequest(
            distribution_id=distribution_id,
            invalidation_batch=InvalidationBatch.from_paths(paths),
        )
        self._debug.log_invalidation_request(
            {"force": True, "distribution_id": distribution_id, "paths": paths}
        )
        result = self._dispatcher.create_invalidation(request)
        if not result.success:
            logger.warning("Immediate invalidation failed: %s", result.error)
        return InvalidationOutcome(action="dispatched", paths=paths, result=result)
