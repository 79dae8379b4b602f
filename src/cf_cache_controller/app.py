"""Application context assembly."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from cf_cache_controller.aws_credentials.container_provider import (
    ContainerCredentialProvider,
    build_container_provider,
)
from cf_cache_controller.cloudfront import CloudFrontService
from cf_cache_controller.config import Settings, load_settings
from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.invalidation.cron import CronService
from cf_cache_controller.invalidation.queue import InvalidationQueue
from cf_cache_controller.invalidation.scheduler import LocalScheduler
from cf_cache_controller.invalidation.service import InvalidationService
from cf_cache_controller.invalidation.store import KeyValueStore, SqliteStore
from cf_cache_controller.invalidation.switches import StoreDisableSwitch


@dataclass
class AppContext:
    """Application-wide dependency container.

    Built once per process; the flush handler is registered with the
    scheduler as part of assembly.
    """

    settings: Settings
    store: KeyValueStore
    scheduler: LocalScheduler
    switch: StoreDisableSwitch
    debug_logger: DebugLogger
    credential_provider: ContainerCredentialProvider
    cloudfront: CloudFrontService
    queue: InvalidationQueue
    invalidation_service: InvalidationService
    cron_service: CronService


def build_app_context(settings: Settings, store: KeyValueStore) -> AppContext:
    debug_logger = DebugLogger.from_settings(settings.debug)
    credential_provider = build_container_provider(
        os.environ,
        refresh_skew_seconds=settings.credentials.refresh_skew_seconds,
        default_ttl_seconds=settings.credentials.default_ttl_seconds,
        timeout_seconds=settings.credentials.fetch_timeout_seconds,
        debug_logger=debug_logger,
    )
    cloudfront = CloudFrontService(
        credential_provider,
        aws_settings=settings.aws,
        invalidation_settings=settings.invalidation,
        debug_logger=debug_logger,
    )
    scheduler = LocalScheduler(store)
    switch = StoreDisableSwitch(store, default=settings.invalidation.cron_retry_disabled)
    queue = InvalidationQueue(store)

    invalidation_service = InvalidationService(
        queue,
        scheduler,
        switch,
        cloudfront,
        debug_logger=debug_logger,
        settings=settings.invalidation,
    )
    cron_service = CronService(
        queue,
        switch,
        cloudfront,
        debug_logger=debug_logger,
        scheduler=scheduler,
    )

    return AppContext(
        settings=settings,
        store=store,
        scheduler=scheduler,
        switch=switch,
        debug_logger=debug_logger,
        credential_provider=credential_provider,
        cloudfront=cloudfront,
        queue=queue,
        invalidation_service=invalidation_service,
        cron_service=cron_service,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the process-wide application context."""
    settings = load_settings()
    store = SqliteStore(settings.storage.sqlite_path, wal=settings.storage.sqlite_wal)
    return build_app_context(settings, store)
