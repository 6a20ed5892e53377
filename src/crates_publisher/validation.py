"""Security checks for publish configuration.

Two checks guard the values that reach ``cargo``:

- :func:`validate_path` keeps the manifest path inside the working tree.
- :func:`validate_registry_url` accepts bare registry names and secure
  registry URLs, and rejects URLs whose host resolves to a private or
  cloud-metadata address (SSRF guard).

DNS resolution failures are treated as non-fatal: the URL is accepted
and a warning is logged.

Example
-------
>>> validate_path("crates/lib/Cargo.toml")
>>> validate_registry_url("my-registry")
>>> validate_registry_url("http://example.com")
Traceback (most recent call last):
    ...
crates_publisher.errors.RegistryValidationError: only HTTPS URLs are allowed (got http)
"""
from __future__ import annotations

import ipaddress
import logging
import os
import re
import socket
from typing import Callable
from urllib.parse import urlsplit

from crates_publisher.errors import PathValidationError, RegistryValidationError

logger = logging.getLogger(__name__)

Resolver = Callable[[str], list[str]]

_REGISTRY_NAME = re.compile(r"^[a-zA-Z][a-zA-Z0-9.-]*$")

SECURE_SCHEMES: frozenset[str] = frozenset({"https", "sparse+https"})
LOOPBACK_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1"})

_BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "0.0.0.0/8",
        # Cloud metadata endpoints (AWS/GCP/Azure, AWS IMDS over IPv6).
        "169.254.169.254/32",
        "fd00:ec2::254/128",
    )
)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def validate_path(path: str) -> None:
    """Reject paths that are absolute or traverse above the working tree.

    Parameters
    ----------
    path:
        Relative path from configuration.  An empty string means "use the
        default" and is accepted.

    Raises
    ------
    PathValidationError:
        When the path is absolute or contains a ``..`` segment after
        normalisation.
    """
    if not path:
        return

    cleaned = os.path.normpath(path)

    if os.path.isabs(cleaned) or cleaned.startswith(("/", "\\")):
        raise PathValidationError("absolute paths are not allowed")

    segments = re.split(r"[\\/]", cleaned)
    if ".." in segments:
        raise PathValidationError(
            "path traversal detected: cannot use '..' to escape working directory"
        )


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


def resolve_host(host: str) -> list[str]:
    """Resolve *host* to the list of IP address strings it maps to.

    Raises
    ------
    OSError:
        When the name cannot be resolved (``socket.gaierror``).
    UnicodeError:
        When a label of *host* is empty or longer than 63 characters.
    """
    infos = socket.getaddrinfo(host, None)
    addresses: list[str] = []
    for _family, _type, _proto, _canon, sockaddr in infos:
        address = str(sockaddr[0])
        if address not in addresses:
            addresses.append(address)
    return addresses


def is_private_ip(address: str) -> bool:
    """Return True when *address* is private, reserved or a metadata endpoint.

    Unparseable addresses are treated as blocked.
    """
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return True

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    for network in _BLOCKED_NETWORKS:
        if ip.version == network.version and ip in network:
            return True

    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_unspecified
        or (ip.is_multicast and _is_link_local_multicast(ip))
    )


def _is_link_local_multicast(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    if isinstance(ip, ipaddress.IPv4Address):
        return ip in ipaddress.IPv4Network("224.0.0.0/24")
    return ip in ipaddress.IPv6Network("ff02::/16")


def validate_registry_url(registry: str, resolver: Resolver | None = None) -> None:
    """Validate a registry name or URL.

    Parameters
    ----------
    registry:
        Either a bare registry name (``my-registry``) or a URL
        (``https://host/index``, ``sparse+https://host/index``).
    resolver:
        Callable mapping a hostname to IP address strings.  Defaults to
        :func:`resolve_host`.

    Raises
    ------
    RegistryValidationError:
        When the name has an invalid format, the scheme is insecure for a
        non-loopback host, the URL has no host or a malformed host name,
        or the host resolves to a private network or metadata address.
    """
    if "://" not in registry:
        if not _REGISTRY_NAME.match(registry):
            raise RegistryValidationError("invalid registry name format")
        return

    try:
        parsed = urlsplit(registry)
        host = parsed.hostname or ""
    except ValueError as exc:
        raise RegistryValidationError(f"invalid URL: {exc}") from exc

    scheme = parsed.scheme.lower()
    is_loopback = host in LOOPBACK_HOSTS

    if scheme not in SECURE_SCHEMES and not is_loopback:
        raise RegistryValidationError(f"only HTTPS URLs are allowed (got {scheme})")

    if is_loopback:
        return

    if not host:
        raise RegistryValidationError("invalid URL: missing host")

    resolve = resolver or resolve_host
    try:
        addresses = resolve(host)
    except UnicodeError as exc:
        raise RegistryValidationError(f"invalid URL: invalid host {host!r}") from exc
    except OSError as exc:
        logger.warning("Could not resolve registry host %s, allowing it: %s", host, exc)
        return

    for address in addresses:
        if is_private_ip(address):
            raise RegistryValidationError(
                "URLs pointing to private networks are not allowed"
            )
