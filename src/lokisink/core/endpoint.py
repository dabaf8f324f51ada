"""
Derivation of the Loki base endpoint from a configuration URL.

Only scheme, host and port survive in the endpoint; userinfo, if present,
is returned separately as Basic auth credentials. The scheme is always ``https`` unless the
configuration opts out explicitly with ``UNSAFE_secure=false``.
"""

from __future__ import annotations

from urllib.parse import SplitResult, parse_qs, unquote, urlsplit

import httpx

from .errors import ConfigurationError

INSECURE_FLAG = "UNSAFE_secure"
PUSH_PATH = "/loki/api/v1/push"


def _split(url: str | httpx.URL) -> SplitResult:
    raw = str(url).strip()
    if "://" not in raw:
        raw = "//" + raw
    return urlsplit(raw)


def resolve_base_endpoint(url: str | httpx.URL) -> httpx.URL:
    """Return ``<scheme>://<host>[:<port>]`` for a configuration URL.

    Examples:
        ``loki://logs:3100/x?UNSAFE_secure=false`` -> ``http://logs:3100``
        ``http://logs:3100`` -> ``https://logs:3100``
    """
    raw = str(url).strip()
    if "://" not in raw:
        raw = "//" + raw
    parts = urlsplit(raw)
    try:
        # .port validates the port component
        parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid Loki URL {raw!r}: {exc}", cause=exc) from exc
    if not parts.hostname:
        raise ConfigurationError(f"Loki URL {str(url)!r} has no host")

    flag = parse_qs(parts.query).get(INSECURE_FLAG, [None])[0]
    scheme = "http" if flag == "false" else "https"
    # Explicit ports are kept verbatim, userinfo goes to resolve_credentials
    hostport = parts.netloc.rpartition("@")[2]
    try:
        return httpx.URL(f"{scheme}://{hostport}")
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"Invalid Loki URL {raw!r}: {exc}", cause=exc) from exc


def push_url(base: httpx.URL) -> str:
    """Full push URL for a base endpoint, built from its raw text."""
    return str(base).rstrip("/") + PUSH_PATH


def resolve_credentials(url: str | httpx.URL) -> httpx.BasicAuth | None:
    """Basic auth from the ``user:password@`` part of a configuration URL."""
    parts = _split(url)
    if parts.username is None:
        return None
    return httpx.BasicAuth(unquote(parts.username), unquote(parts.password or ""))
