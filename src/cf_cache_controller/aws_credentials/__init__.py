"""AWS credential utilities."""

from cf_cache_controller.aws_credentials.cache import CacheEntry, CredentialCache
from cf_cache_controller.aws_credentials.container_provider import (
    ContainerCredentialFetcher,
    ContainerCredentialProvider,
    build_container_provider,
    resolve_endpoint,
    should_use_credentials,
)
from cf_cache_controller.aws_credentials.models import TemporaryCredentials

__all__ = [
    "CacheEntry",
    "ContainerCredentialFetcher",
    "ContainerCredentialProvider",
    "CredentialCache",
    "TemporaryCredentials",
    "build_container_provider",
    "resolve_endpoint",
    "should_use_credentials",
]
