"""
In-memory cookie store scoped by domain and path.

The store is the only place cookie state changes. Everything else
sees cookies as an opaque, already rendered ``Cookie`` header.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from http import cookiejar

from sso_gate.models.session import Cookie
from sso_gate.utils import logger, url

log = logger.create_logger("CookieStore")

DELETED_MARKER = "deleted"

_CookieKey = tuple[str, str, str]

_ATTRIBUTES = frozenset({"domain", "path", "max-age", "expires"})


def _is_deletion(value: str, attributes: dict[str, str]) -> bool:
    """Return ``True`` when a ``Set-Cookie`` line removes its cookie."""
    if value == DELETED_MARKER:
        return True

    max_age = attributes.get("max-age")
    if max_age:
        try:
            return int(max_age) <= 0
        except ValueError:
            return False

    expires = attributes.get("expires")
    if expires:
        expires_at = cookiejar.http2time(expires)
        return expires_at is not None and expires_at <= time.time()
    return False


def parse_set_cookie(line: str, host: str, path: str) -> Cookie | None:
    """Parse one ``Set-Cookie`` line into a cookie.

    The first ``name=value`` pair is the cookie; of the attributes only
    ``Domain``, ``Path``, ``Max-Age`` and ``Expires`` are read (in any
    case) and every other flag is skipped. Missing ``Domain`` defaults
    to *host*, missing ``Path`` to the request *path*.

    Returns:
        The parsed cookie, or ``None`` when the line has no cookie name.
    """
    pair, *parts = line.split(";")
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        log.warn("Ignoring malformed Set-Cookie line", {"host": host, "path": path})
        return None

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]

    attributes: dict[str, str] = {}
    for part in parts:
        key, _, attr_value = part.partition("=")
        key = key.strip().lower()
        if key in _ATTRIBUTES:
            attributes[key] = attr_value.strip()

    attr_path = attributes.get("path", "")
    return Cookie(
        name=name,
        value=value,
        domain=(attributes.get("domain") or host).lstrip(".").lower(),
        path=attr_path if attr_path.startswith("/") else url.default_cookie_path(path),
        deleted=_is_deletion(value, attributes),
    )


class CookieStore:
    """Cookies for one session, rendered per request host and path.

    At most one cookie exists per (name, domain, path). Rendering keeps
    insertion order; replacing a cookie keeps its original position.
    """

    def __init__(self) -> None:
        """Initialise an empty store."""
        self._cookies: dict[_CookieKey, Cookie] = {}

    def __len__(self) -> int:
        return len(self._cookies)

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def get(self, name: str, domain: str | None = None) -> Cookie | None:
        """Return the first stored cookie called *name*, optionally on *domain*."""
        for cookie in self._cookies.values():
            if cookie.name == name and (domain is None or cookie.domain == domain.lower()):
                return cookie
        return None

    def cookies_for(self, host: str, path: str) -> str:
        """Build the ``Cookie`` header value for a request.

        Args:
            host: Request hostname.
            path: Request path, query string allowed.

        Returns:
            ``name=value`` pairs joined by ``"; "``, or ``""`` when
            nothing matches.
        """
        return "; ".join(
            f"{cookie.name}={cookie.value}"
            for cookie in self._cookies.values()
            if not cookie.deleted
            and url.domain_matches(host, cookie.domain)
            and url.path_matches(path, cookie.path)
        )

    def absorb(self, set_cookie_headers: list[str], host: str, path: str) -> None:
        """Apply every ``Set-Cookie`` line of one response.

        Deletions remove the matching cookie; everything else is
        stored or replaces the existing value.
        """
        for line in set_cookie_headers:
            cookie = parse_set_cookie(line, host, path)
            if cookie is None:
                continue
            key = (cookie.name, cookie.domain, cookie.path)
            if cookie.deleted:
                if self._cookies.pop(key, None) is not None:
                    log.debug("Cookie removed", {"name": cookie.name, "domain": cookie.domain})
                continue
            self._cookies[key] = cookie
            log.debug("Cookie stored", {"name": cookie.name, "domain": cookie.domain, "path": cookie.path})

    def clear(self) -> None:
        """Drop every cookie."""
        self._cookies.clear()
