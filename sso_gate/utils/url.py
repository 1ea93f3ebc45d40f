"""
URL, host and path helpers for redirect and cookie handling.
"""

from __future__ import annotations

from urllib import parse

from sso_gate.models.session import Endpoint

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def is_redirect(status: int) -> bool:
    """Return ``True`` for statuses that carry a ``Location`` to follow."""
    return status in REDIRECT_STATUSES


def resolve_location(hostname: str, location: str, port: int | None = None) -> Endpoint:
    """Turn a ``Location`` header into the next endpoint.

    Absolute URLs supply their own host and path (query included).
    Anything else is a path on the current host and is used verbatim.

    Args:
        hostname: Host of the hop that produced the header.
        location: Raw ``Location`` header value.
        port: Port of the current hop, inherited by relative locations.

    Returns:
        The endpoint to request next.
    """
    parsed = parse.urlsplit(location)
    if parsed.hostname:
        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return Endpoint(hostname=parsed.hostname, path=path, port=parsed.port)
    return Endpoint(hostname=hostname, path=location, port=port)


def strip_query(path: str) -> str:
    """Return *path* without its query string or fragment."""
    return path.split("?", 1)[0].split("#", 1)[0]


def default_cookie_path(request_path: str) -> str:
    """Default cookie path for a request: the request path without its query."""
    path = strip_query(request_path)
    return path if path.startswith("/") else "/"


def domain_matches(request_host: str, cookie_domain: str) -> bool:
    """Check whether a cookie domain covers *request_host* (suffix match)."""
    host = request_host.lower()
    domain = cookie_domain.lower().lstrip(".")
    return host == domain or host.endswith("." + domain)


def path_matches(request_path: str, cookie_path: str) -> bool:
    """Check whether *cookie_path* is a prefix of the request path."""
    return strip_query(request_path).startswith(cookie_path)
