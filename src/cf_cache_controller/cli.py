"""CLI entrypoints for invalidation queue operations."""

from __future__ import annotations

import argparse
import json
import logging
import time
from collections.abc import Sequence

from cf_cache_controller import __version__
from cf_cache_controller.app import AppContext, get_app_context
from cf_cache_controller.invalidation.scheduler import CRON_HOOK
from cf_cache_controller.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _print(payload: dict[str, object]) -> None:
    print(json.dumps(payload, default=str))


def _run_invalidate(ctx: AppContext, paths: list[str]) -> int:
    outcome = ctx.invalidation_service.invalidate_paths(paths)
    payload: dict[str, object] = {
        "action": outcome.action,
        "paths": outcome.paths,
        "scheduled": outcome.scheduled,
    }
    if outcome.scheduled:
        payload["scheduled_at"] = ctx.scheduler.next_scheduled(CRON_HOOK)
    if outcome.result is not None:
        payload["success"] = outcome.result.success
        payload["invalidation_id"] = outcome.result.invalidation_id
        payload["error"] = outcome.result.error
    _print(payload)
    if outcome.result is not None and not outcome.result.success:
        return 1
    return 0


def _run_flush(ctx: AppContext) -> int:
    ctx.scheduler.cancel(CRON_HOOK)
    flushed = ctx.cron_service.run_schedule_invalidate()
    _print({"flushed": flushed})
    return 0


def _run_scheduler(ctx: AppContext, poll_seconds: float) -> int:
    logger.info("Polling scheduled invalidations every %.1fs", poll_seconds)
    try:
        while True:
            fired = ctx.scheduler.run_pending()
            if fired:
                logger.info("Fired scheduled hooks: %s", ", ".join(fired))
            time.sleep(poll_seconds)
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
    return 0


def _run_status(ctx: AppContext) -> int:
    batch = ctx.queue.load_batch()
    _print(
        {
            "version": __version__,
            "distribution_id": ctx.cloudfront.get_distribution_id(),
            "queued_paths": batch.items,
            "next_flush": ctx.scheduler.next_scheduled(CRON_HOOK),
            "cron_retry_disabled": ctx.switch.is_cron_retry_disabled(),
            "container_credentials": ctx.credential_provider.should_use_credentials(),
        }
    )
    return 0


def _run_set_disabled(ctx: AppContext, disabled: bool) -> int:
    ctx.switch.set_disabled(disabled)
    _print({"cron_retry_disabled": disabled})
    return 0


def _run_cancel(ctx: AppContext) -> int:
    ctx.invalidation_service.cancel()
    _print({"cancelled": True})
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build command-line parser for supported operational commands."""
    parser = argparse.ArgumentParser(prog="cf-cache-controller")
    parser.add_argument("--version", action="version", version=__version__)
    subcommands = parser.add_subparsers(dest="command", required=True)

    invalidate_parser = subcommands.add_parser(
        "invalidate", help="Queue paths for the next flush (or purge /* immediately)."
    )
    invalidate_parser.add_argument("paths", nargs="+")

    subcommands.add_parser("flush", help="Run the queued flush now.")

    scheduler_parser = subcommands.add_parser(
        "run-scheduler", help="Fire armed flushes until interrupted."
    )
    scheduler_parser.add_argument("--poll-seconds", type=float, default=5.0)

    subcommands.add_parser("status", help="Show the queued batch and next flush.")
    subcommands.add_parser("disable", help="Turn the deferred flush off.")
    subcommands.add_parser("enable", help="Turn the deferred flush back on.")
    subcommands.add_parser("cancel", help="Drop the queued batch and pending flush.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run CLI command."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging()
    ctx = get_app_context()

    if args.command == "invalidate":
        return _run_invalidate(ctx, args.paths)
    if args.command == "flush":
        return _run_flush(ctx)
    if args.command == "run-scheduler":
        return _run_scheduler(ctx, args.poll_seconds)
    if args.command == "status":
        return _run_status(ctx)
    if args.command == "disable":
        return _run_set_disabled(ctx, True)
    if args.command == "enable":
        return _run_set_disabled(ctx, False)
    if args.command == "cancel":
        return _run_cancel(ctx)
    parser.error("Unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
