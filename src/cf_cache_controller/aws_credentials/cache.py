"""Single-slot credential cache with an expiry safety skew."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from cf_cache_controller.aws_credentials.models import TemporaryCredentials
from cf_cache_controller.utils.time import utc_now


@dataclass(frozen=True)
class CacheEntry:
    credentials: TemporaryCredentials
    expires_at: datetime

    def is_valid(self, now: datetime, skew_seconds: int) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now < expires_at - timedelta(seconds=skew_seconds)


class CredentialCache:
    """Holds at most one credential record.

    Only ``store`` mutates the slot, and it replaces record and expiry
    together. Access is not locked; concurrent refreshes simply overwrite
    each other with equivalent credentials.
    """

    def __init__(
        self,
        skew_seconds: int = 300,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._skew_seconds = skew_seconds
        self._clock = clock
        self._entry: CacheEntry | None = None

    @property
    def entry(self) -> CacheEntry | None:
        return self._entry

    def get(self) -> TemporaryCredentials | None:
        """Return the cached record if it is still outside the skew window."""
        entry = self._entry
        if entry is None:
            return None
        if not entry.is_valid(self._clock(), self._skew_seconds):
            return None
        return entry.credentials

    def store(self, credentials: TemporaryCredentials) -> None:
        self._entry = CacheEntry(credentials=credentials, expires_at=credentials.expiration)
