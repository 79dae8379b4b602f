"""Category-gated debug logging for cron and invalidation activity.

Two categories can be switched on independently:

- cron operations: registration and execution of the deferred flush;
- invalidation parameters: the paths and requests sent to CloudFront.

Every method is a no-op when its category is off and never raises, so it can
sit on the invalidation path without affecting it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from cf_cache_controller.config import DebugSettings
from cf_cache_controller.utils.masking import redact_sensitive_fields

_CRON_START = "===== C3 Invalidation cron is started ==="
_CRON_COMPLETE = "===== C3 Invalidation cron has been COMPLETED ==="
_REGISTRATION_START = "===== C3 CRON Job registration [START] ==="
_REGISTRATION_COMPLETE = "===== C3 CRON Job registration [COMPLETE] ==="


class DebugLogger:
    def __init__(
        self,
        log_cron_operations: bool = False,
        log_invalidation_params: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._log_cron_operations = log_cron_operations
        self._log_invalidation_params = log_invalidation_params
        self._logger = logger or logging.getLogger("cf_cache_controller.debug")

    @classmethod
    def from_settings(
        cls, settings: DebugSettings, logger: logging.Logger | None = None
    ) -> "DebugLogger":
        return cls(
            log_cron_operations=settings.log_cron_operations,
            log_invalidation_params=settings.log_invalidation_params,
            logger=logger,
        )

    def should_log_cron_operations(self) -> bool:
        return self._log_cron_operations

    def should_log_invalidation_params(self) -> bool:
        return self._log_invalidation_params

    def log_cron_start(
        self, message: str = _CRON_START, context: Mapping[str, object] | None = None
    ) -> None:
        if self._log_cron_operations:
            self._emit(message, context)

    def log_cron_skip(self, reason: str, context: Mapping[str, object] | None = None) -> None:
        if self._log_cron_operations:
            self._emit(reason, context)

    def log_cron_complete(self, context: Mapping[str, object] | None = None) -> None:
        if self._log_cron_operations:
            self._emit(_CRON_COMPLETE, context)

    def log_cron_result(self, message: str, *, failed: bool = False) -> None:
        if self._log_cron_operations:
            self._emit(message, None, level=logging.WARNING if failed else logging.INFO)

    def log_cron_registration_start(self, context: Mapping[str, object] | None = None) -> None:
        if self._log_cron_operations:
            self._emit(_REGISTRATION_START, context)

    def log_cron_registration_skip(
        self, reason: str, context: Mapping[str, object] | None = None
    ) -> None:
        if self._log_cron_operations:
            self._emit(reason, context)

    def log_cron_registration_complete(
        self, context: Mapping[str, object] | None = None
    ) -> None:
        if self._log_cron_operations:
            self._emit(_REGISTRATION_COMPLETE, context)

    def log_invalidation_params(
        self, message: str, context: Mapping[str, object] | None = None
    ) -> None:
        if self._log_invalidation_params:
            self._emit(message, context)

    def log_invalidation_request(self, params: Mapping[str, object]) -> None:
        """Log the pieces of an invalidation request that are present."""
        if not self._log_invalidation_params:
            return
        labels = (
            ("query", "C3 Invalidation Started - Query"),
            ("force", "C3 Invalidation Started - Force"),
            ("distribution_id", "C3 CloudFront Invalidation Request - Distribution ID"),
            ("paths", "C3 CloudFront Invalidation Request - Paths"),
            ("full_params", "C3 CloudFront Invalidation Request - Full Params"),
        )
        for key, label in labels:
            if key in params:
                self._emit(label, {key: params[key]})

    def _emit(
        self,
        message: str,
        context: Mapping[str, object] | None,
        level: int = logging.INFO,
    ) -> None:
        try:
            if message:
                self._logger.log(level, message)
            if context:
                self._logger.log(level, "%s", redact_sensitive_fields(dict(context)))
        except Exception:  # noqa: BLE001
            # Logging must never break the invalidation path.
            pass
