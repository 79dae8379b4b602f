from __future__ import annotations

from unittest.mock import patch

from botocore.exceptions import ProfileNotFound

from cf_cache_controller.app import build_app_context
from cf_cache_controller.config import AWSSettings, InvalidationSettings, Settings
from cf_cache_controller.invalidation.scheduler import CRON_HOOK
from cf_cache_controller.invalidation.store import MemoryStore


def test_build_app_context_wires_flush_into_scheduler() -> None:
    settings = Settings(invalidation=InvalidationSettings(distribution_id="E123"))
    ctx = build_app_context(settings, MemoryStore())

    assert ctx.cloudfront.get_distribution_id() == "E123"
    assert ctx.credential_provider.should_use_credentials() is False
    assert ctx.switch.is_cron_retry_disabled() is False

    ctx.invalidation_service.invalidate_paths(["/a"])
    assert ctx.scheduler.next_scheduled(CRON_HOOK) is not None
    assert ctx.queue.load_batch().items == ["/a"]


def test_disable_default_comes_from_settings() -> None:
    settings = Settings(invalidation=InvalidationSettings(cron_retry_disabled=True))
    ctx = build_app_context(settings, MemoryStore())

    assert ctx.switch.is_cron_retry_disabled() is True
    ctx.switch.set_disabled(False)
    assert ctx.switch.is_cron_retry_disabled() is False


def test_container_provider_follows_environment(monkeypatch) -> None:
    monkeypatch.setenv("AWS_CONTAINER_CREDENTIALS_RELATIVE_URI", "/v2/credentials/abc")
    ctx = build_app_context(Settings(), MemoryStore())

    assert ctx.credential_provider.should_use_credentials() is True


def test_immediate_purge_with_unknown_profile_reports_failure() -> None:
    settings = Settings(
        invalidation=InvalidationSettings(distribution_id="E123"),
        aws=AWSSettings(profile="does-not-exist"),
    )
    ctx = build_app_context(settings, MemoryStore())

    with patch(
        "cf_cache_controller.cloudfront.boto3.Session",
        side_effect=ProfileNotFound(profile="does-not-exist"),
    ):
        outcome = ctx.invalidation_service.invalidate_paths(["/*"])

    assert outcome.action == "dispatched"
    assert outcome.result is not None
    assert outcome.result.success is False
