"""CloudFront invalidation dispatcher."""

from __future__ import annotations

import hashlib
import logging
import threading
from collections.abc import Callable
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from cf_cache_controller.aws_credentials.container_provider import ContainerCredentialProvider
from cf_cache_controller.aws_credentials.models import TemporaryCredentials
from cf_cache_controller.config import AWSSettings, InvalidationSettings
from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.errors import CredentialError
from cf_cache_controller.invalidation.models import DispatchResult, InvalidationRequest

logger = logging.getLogger(__name__)


def _credential_fingerprint(creds: TemporaryCredentials) -> str:
    material = "\x1f".join((creds.access_key_id, creds.secret_access_key, creds.session_token))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class CloudFrontService:
    """Issues ``CreateInvalidation`` calls.

    Credentials come from the container provider when its endpoint is
    configured; otherwise the boto3 default chain (profile, environment,
    instance role) is used. When the container provider is configured but
    cannot produce credentials the call is refused.
    """

    def __init__(
        self,
        credential_provider: ContainerCredentialProvider,
        aws_settings: AWSSettings | None = None,
        invalidation_settings: InvalidationSettings | None = None,
        debug_logger: DebugLogger | None = None,
    ) -> None:
        self._provider = credential_provider
        self._aws = aws_settings or AWSSettings()
        self._invalidation = invalidation_settings or InvalidationSettings()
        self._debug = debug_logger or DebugLogger()
        self._client: Any = None
        self._client_key: str | None = None
        self._lock = threading.Lock()

    def get_distribution_id(self) -> str | None:
        return self._invalidation.distribution_id

    def create_invalidation(self, request: InvalidationRequest) -> DispatchResult:
        batch = request.invalidation_batch
        self._debug.log_invalidation_request(
            {
                "distribution_id": request.distribution_id,
                "paths": batch.items,
                "full_params": request.to_wire(),
            }
        )

        try:
            client = self._get_client()
        except (CredentialError, BotoCoreError) as exc:
            logger.warning("CloudFront invalidation refused: %s", exc)
            return DispatchResult(success=False, error=str(exc))

        wire = request.to_wire()
        try:
            response = client.create_invalidation(
                DistributionId=wire["DistributionId"],
                InvalidationBatch=wire["InvalidationBatch"],
            )
        except ClientError as exc:
            error = exc.response.get("Error", {})
            message = f"{error.get('Code', 'Unknown')}: {error.get('Message', str(exc))}"
            logger.warning(
                "CloudFront invalidation failed: distribution=%s, error=%s",
                request.distribution_id,
                message,
            )
            return DispatchResult(success=False, error=message)
        except BotoCoreError as exc:
            logger.warning(
                "CloudFront invalidation failed: distribution=%s, error=%s",
                request.distribution_id,
                exc,
            )
            return DispatchResult(success=False, error=str(exc))

        result = DispatchResult(success=True, payload=dict(response))
        logger.info(
            "CloudFront invalidation created: distribution=%s, id=%s, paths=%d",
            request.distribution_id,
            result.invalidation_id,
            batch.paths.quantity,
        )
        return result

    def _get_client(self) -> Any:
        if not self._provider.should_use_credentials():
            return self._cached_client("profile", self._create_client_with_profile)

        creds = self._provider.get_credentials()
        if creds is None:
            raise CredentialError("container credentials unavailable")
        return self._cached_client(
            _credential_fingerprint(creds),
            lambda: self._create_client_with_credentials(creds),
        )

    def _cached_client(self, key: str, build_client: Callable[[], Any]) -> Any:
        with self._lock:
            if self._client is not None and self._client_key == key:
                return self._client
            self._client = build_client()
            self._client_key = key
            return self._client

    def _create_client_with_profile(self) -> Any:
        session = boto3.Session(profile_name=self._aws.profile, region_name=self._aws.region)
        return session.client("cloudfront", config=self._client_config())

    def _create_client_with_credentials(self, creds: TemporaryCredentials) -> Any:
        session = boto3.Session(
            aws_access_key_id=creds.access_key_id,
            aws_secret_access_key=creds.secret_access_key,
            aws_session_token=creds.session_token,
            region_name=self._aws.region,
        )
        return session.client("cloudfront", config=self._client_config())

    def _client_config(self) -> Config:
        return Config(
            read_timeout=self._aws.sdk_timeout_seconds,
            connect_timeout=self._aws.sdk_timeout_seconds,
            retries={"max_attempts": 2},
        )
