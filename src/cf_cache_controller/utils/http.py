"""Address checks for the container credential endpoint."""

from __future__ import annotations

import ipaddress
import socket
from urllib.parse import urlparse

from cf_cache_controller.errors import EndpointValidationError

ECS_SERVER_HOST_IPV4 = "169.254.170.2"
EKS_SERVER_HOST_IPV4 = "169.254.170.23"
EKS_SERVER_HOST_IPV6 = "fd00:ec2::23"

METADATA_HOSTS = frozenset(
    {
        ipaddress.ip_address(ECS_SERVER_HOST_IPV4),
        ipaddress.ip_address(EKS_SERVER_HOST_IPV4),
        ipaddress.ip_address(EKS_SERVER_HOST_IPV6),
    }
)


def _strip_brackets(host: str) -> str:
    return host.strip().strip("[]")


def is_metadata_host(host: str) -> bool:
    """Return True for the well-known ECS/EKS credential addresses."""
    try:
        ip = ipaddress.ip_address(_strip_brackets(host))
    except ValueError:
        return False
    return ip in METADATA_HOSTS


def resolves_to_loopback(host: str) -> bool:
    """Return True when every address *host* resolves to is loopback.

    IPv4 loopback is 127.0.0.0/8, IPv6 loopback is ``::1``. A host that does
    not resolve is not loopback.
    """
    host = _strip_brackets(host)
    if not host:
        return False
    try:
        addr_infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError):
        return False
    if not addr_infos:
        return False

    for _family, _, _, _, sockaddr in addr_infos:
        ip_str = str(sockaddr[0]).split("%", 1)[0]
        try:
            ip = ipaddress.ip_address(ip_str)
        except ValueError:
            return False
        if not ip.is_loopback:
            return False
    return True


def validate_metadata_endpoint(uri: str) -> str:
    """Validate that a container credential URI is safe to fetch.

    HTTPS endpoints are trusted. Plain-text endpoints must point at one of the
    ECS/EKS metadata addresses or at a host that resolves to loopback.

    Returns the URI unchanged. Raises ``EndpointValidationError`` otherwise;
    the message never includes the URI.
    """
    try:
        parsed = urlparse(uri)
        host = parsed.hostname
    except ValueError as exc:
        raise EndpointValidationError("credential endpoint is not a valid URI") from exc
    scheme = parsed.scheme.lower()
    if scheme == "https":
        return uri
    if scheme != "http":
        raise EndpointValidationError("credential endpoint must use http or https")

    if not host:
        raise EndpointValidationError("credential endpoint has no host")

    if is_metadata_host(host) or resolves_to_loopback(host):
        return uri

    raise EndpointValidationError(
        "credential endpoint is neither a metadata address nor loopback"
    )
