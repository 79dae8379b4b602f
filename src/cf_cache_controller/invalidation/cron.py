"""Deferred flush handler for the queued invalidation batch."""

from __future__ import annotations

import logging

from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.invalidation.models import (
    DispatchResult,
    InvalidationDispatcher,
    InvalidationRequest,
)
from cf_cache_controller.invalidation.queue import InvalidationQueue
from cf_cache_controller.invalidation.scheduler import CRON_HOOK, Scheduler
from cf_cache_controller.invalidation.switches import DisableSwitch

logger = logging.getLogger(__name__)


class CronService:
    """Drains the queue into one CloudFront call per fired flush.

    Dispatch is at-most-once: the batch is cleared whether the call succeeds
    or fails, and nothing is re-queued. The disable switch is the only gate
    that leaves the batch in place.
    """

    def __init__(
        self,
        queue: InvalidationQueue,
        switch: DisableSwitch,
        dispatcher: InvalidationDispatcher,
        debug_logger: DebugLogger | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._queue = queue
        self._switch = switch
        self._dispatcher = dispatcher
        self._debug = debug_logger or DebugLogger()
        if scheduler is not None:
            scheduler.register(CRON_HOOK, self.run_schedule_invalidate)

    def run_schedule_invalidate(self) -> bool:
        self._debug.log_cron_start()
        if self._switch.is_cron_retry_disabled():
            self._debug.log_cron_skip(
                "===== C3 Invalidation cron has been SKIPPED [Disabled] ==="
            )
            return False

        batch = self._queue.load_batch()
        self._debug.log_invalidation_params("", {"batch": batch.to_wire()})
        if batch.is_empty():
            self._debug.log_cron_skip(
                "===== C3 Invalidation cron has been SKIPPED [No Target Item] ==="
            )
            return False

        distribution_id = self._dispatcher.get_distribution_id()
        if distribution_id:
            request = InvalidationRequest(
                distribution_id=distribution_id, invalidation_batch=batch
            )
            self._debug.log_invalidation_params("", {"query": request.to_wire()})
            result = self._dispatch(request)
        else:
            result = DispatchResult(success=False, error="distribution id is not configured")

        if result.success:
            self._debug.log_cron_result("C3 Cron: Invalidation completed successfully")
        else:
            logger.warning("Scheduled invalidation failed: %s", result.error)
            self._debug.log_cron_result(
                f"C3 Cron: Invalidation failed: {result.error}", failed=True
            )

        self._queue.clear_batch()
        self._debug.log_cron_complete()
        return True

    def _dispatch(self, request: InvalidationRequest) -> DispatchResult:
        try:
            return self._dispatcher.create_invalidation(request)
        except Exception as exc:
            logger.exception("Invalidation dispatcher raised")
            return DispatchResult(success=False, error=str(exc))
