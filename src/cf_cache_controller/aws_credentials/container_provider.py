"""Container metadata credential provider (ECS task roles, EKS pod identity).

Credentials are fetched from the endpoint named by the standard
``AWS_CONTAINER_CREDENTIALS_*`` variables. Plain-text endpoints are only
accepted for the well-known metadata addresses or loopback hosts, so a
misconfigured environment cannot send the authorization token to an arbitrary
host over HTTP.

All failures are reported as ``None``; callers must treat missing credentials
as "cannot proceed" rather than falling back to unauthenticated calls.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import httpx

from cf_cache_controller.aws_credentials.cache import CredentialCache
from cf_cache_controller.aws_credentials.models import TemporaryCredentials
from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.errors import EndpointValidationError
from cf_cache_controller.utils.http import validate_metadata_endpoint
from cf_cache_controller.utils.time import parse_iso_timestamp, utc_now

logger = logging.getLogger(__name__)

ENV_AUTH_TOKEN = "AWS_CONTAINER_AUTHORIZATION_TOKEN"
ENV_AUTH_TOKEN_FILE = "AWS_CONTAINER_AUTHORIZATION_TOKEN_FILE"
ENV_FULL_URI = "AWS_CONTAINER_CREDENTIALS_FULL_URI"
ENV_RELATIVE_URI = "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI"
SERVER_URI = "http://169.254.170.2"

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_TTL_SECONDS = 3600

_REQUIRED_FIELDS = ("AccessKeyId", "SecretAccessKey", "Token")


def resolve_endpoint(environ: Mapping[str, str]) -> str | None:
    """Build the credential URI from the environment.

    The relative form wins and is prefixed with the ECS metadata host; the
    full form is used verbatim. Returns ``None`` when neither is set.
    """
    relative = environ.get(ENV_RELATIVE_URI, "")
    if relative:
        return SERVER_URI + relative
    full = environ.get(ENV_FULL_URI, "")
    if full:
        return full
    return None


def should_use_credentials(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(env.get(ENV_RELATIVE_URI) or env.get(ENV_FULL_URI))


def read_authorization_token(environ: Mapping[str, str]) -> str | None:
    """Token from the token file if readable and non-empty, else the env var."""
    path = environ.get(ENV_AUTH_TOKEN_FILE, "")
    if path:
        try:
            token = Path(path).read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Container authorization token file unreadable: %s", exc)
        else:
            if token:
                return token
    return environ.get(ENV_AUTH_TOKEN) or None


class ContainerCredentialFetcher:
    """Performs the HTTP exchange with a validated credential endpoint."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        client: httpx.Client | None = None,
        clock: Callable[[], datetime] = utc_now,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._timeout = timeout_seconds
        self._default_ttl = timedelta(seconds=default_ttl_seconds)
        self._client = client
        self._clock = clock
        self._debug = debug_logger or DebugLogger()

    def fetch(self) -> TemporaryCredentials | None:
        uri = resolve_endpoint(self._environ)
        if uri is None:
            return None

        try:
            validate_metadata_endpoint(uri)
        except EndpointValidationError as exc:
            logger.warning("Container credential endpoint rejected: %s", exc)
            self._debug.log_invalidation_params(
                "C3 rejected container credential endpoint", {"uri": uri}
            )
            return None

        headers: dict[str, str] = {}
        token = read_authorization_token(self._environ)
        if token:
            headers["Authorization"] = token

        try:
            response = self._get(uri, headers)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as exc:
            logger.warning("Container credential request failed: %s", type(exc).__name__)
            return None

        if response.status_code != 200:
            logger.warning(
                "Container credential endpoint returned HTTP %d", response.status_code
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Container credential response is not valid JSON")
            return None

        return self._parse(payload)

    def _get(self, uri: str, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return self._client.get(uri, headers=headers, timeout=self._timeout)
        return httpx.get(uri, headers=headers, timeout=self._timeout)

    def _parse(self, payload: Any) -> TemporaryCredentials | None:
        if not isinstance(payload, dict):
            logger.warning("Container credential response is not a JSON object")
            return None

        missing = [field for field in _REQUIRED_FIELDS if not payload.get(field)]
        if missing:
            logger.warning(
                "Container credential response missing fields: %s", ", ".join(missing)
            )
            return None

        expiration = None
        raw_expiration = payload.get("Expiration")
        if isinstance(raw_expiration, str):
            expiration = parse_iso_timestamp(raw_expiration)
        if expiration is None:
            expiration = self._clock() + self._default_ttl

        return TemporaryCredentials(
            access_key_id=str(payload["AccessKeyId"]),
            secret_access_key=str(payload["SecretAccessKey"]),
            session_token=str(payload["Token"]),
            expiration=expiration,
        )


class ContainerCredentialProvider:
    """Cached entry point for container credentials."""

    def __init__(
        self,
        fetcher: ContainerCredentialFetcher,
        cache: CredentialCache | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache or CredentialCache()
        self._environ = os.environ if environ is None else environ

    @property
    def cache(self) -> CredentialCache:
        return self._cache

    def should_use_credentials(self) -> bool:
        return should_use_credentials(self._environ)

    def get_credentials(self) -> TemporaryCredentials | None:
        cached = self._cache.get()
        if cached is not None:
            return cached

        credentials = self._fetcher.fetch()
        if credentials is None:
            return None

        self._cache.store(credentials)
        logger.info(
            "Container credentials refreshed, expire at %s",
            credentials.expiration.isoformat(),
        )
        return credentials


def build_container_provider(
    environ: Mapping[str, str] | None = None,
    *,
    refresh_skew_seconds: int = 300,
    default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    debug_logger: DebugLogger | None = None,
) -> ContainerCredentialProvider:
    env = os.environ if environ is None else environ
    fetcher = ContainerCredentialFetcher(
        environ=env,
        timeout_seconds=timeout_seconds,
        default_ttl_seconds=default_ttl_seconds,
        debug_logger=debug_logger,
    )
    return ContainerCredentialProvider(
        fetcher=fetcher,
        cache=CredentialCache(skew_seconds=refresh_skew_seconds),
        environ=env,
    )
