"""Domain and scheme resolution for registry servers.

Turns whatever the user typed as a server (``https://Registry.example.com/v2/``,
``localhost:5000``, ``docker.io``) into the canonical ``host[:port]`` domain
used as the credential-store key, and decides whether that host is reached
over HTTPS or plain HTTP.

Everything here is pure: no network, no filesystem, no globals.
"""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit

from reglogin.errors import InvalidArgumentError
from reglogin.registry.models import Endpoint, Scheme

# Aliases that registries publish under a different API host.
DOMAIN_ALIASES: dict[str, str] = {
    "docker.io": "registry-1.docker.io",
}

AUTO = "auto"
SCHEME_CHOICES = (AUTO, Scheme.HTTP.value, Scheme.HTTPS.value)

# Hostnames (and suffixes) that never leave the local machine or network.
INTERNAL_HOSTNAMES = {"localhost"}
INTERNAL_SUFFIXES = (".localhost", ".local")

_LABEL = r"[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?"
_HOSTNAME_RE = re.compile(rf"^{_LABEL}(?:\.{_LABEL})*$")


def _split(domain: str) -> tuple[str, int | None]:
    try:
        parts = urlsplit(f"//{domain}")
        port = parts.port
    except ValueError as e:
        raise InvalidArgumentError(f"cannot parse registry server '{domain}'") from e
    hostname = parts.hostname or ""
    if not hostname:
        raise InvalidArgumentError(f"invalid host '{domain}'")
    return hostname, port


def _is_valid_hostname(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
        return True
    except ValueError:
        pass
    return len(hostname) <= 253 and bool(_HOSTNAME_RE.match(hostname))


def resolve_domain(server: str) -> str:
    """Normalize a raw server argument into a ``host[:port]`` domain.

    Strips any scheme, user info, path, query and trailing slash, lowercases
    the host, and applies :data:`DOMAIN_ALIASES`. Idempotent.

    Raises :class:`InvalidArgumentError` when no valid host remains.
    """
    raw = (server or "").strip()
    if not raw:
        raise InvalidArgumentError("registry server name must not be empty")

    if "://" in raw:
        raw = raw.split("://", 1)[1]
    raw = re.split(r"[/?#]", raw, maxsplit=1)[0]
    raw = raw.rsplit("@", 1)[-1].lower().rstrip(":")

    hostname, port = _split(raw)
    if not _is_valid_hostname(hostname):
        raise InvalidArgumentError(f"invalid host '{server}'")

    if port is None and raw in DOMAIN_ALIASES:
        return DOMAIN_ALIASES[raw]
    return raw


def is_internal_host(host: str) -> bool:
    """Return True for hosts that default to plain HTTP.

    Covers ``localhost`` and its subdomains, mDNS ``.local`` names, and IP
    literals that are loopback, private or link-local.
    """
    hostname = host.strip("[]").lower()
    if hostname in INTERNAL_HOSTNAMES or hostname.endswith(INTERNAL_SUFFIXES):
        return True
    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return addr.is_loopback or addr.is_private or addr.is_link_local


def scheme_for(host: str, requested: str | Scheme = AUTO) -> Scheme:
    """Pick the transport scheme for *host*.

    An explicit ``http`` or ``https`` request is always honored. ``auto``
    selects HTTP for internal hosts (see :func:`is_internal_host`) and HTTPS
    for everything else.
    """
    value = requested.value if isinstance(requested, Scheme) else (requested or AUTO).lower()
    if value not in SCHEME_CHOICES:
        raise InvalidArgumentError(
            f"unsupported registry scheme '{requested}'. Must be one of: {', '.join(SCHEME_CHOICES)}"
        )
    if value != AUTO:
        return Scheme(value)
    if not host:
        raise InvalidArgumentError("cannot choose a scheme for an empty host")
    return Scheme.HTTP if is_internal_host(host) else Scheme.HTTPS


def endpoint_for(domain: str, requested: str | Scheme = AUTO) -> Endpoint:
    """Build the :class:`Endpoint` for an already-resolved *domain*."""
    hostname, port = _split(domain)
    return Endpoint(scheme=scheme_for(hostname, requested), host=hostname, port=port)
