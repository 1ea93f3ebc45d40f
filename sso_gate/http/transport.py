"""
HTTPS transport for gateway hops.

Issues single GET/POST requests without following redirects and
without any cookie jar of its own: the caller passes the rendered
``Cookie`` header in and reads ``Set-Cookie`` lines back out of the
returned ``TransportResponse``. Bodies are decompressed here
(gzip, deflate, br) so the rest of the session only sees text.
"""

from __future__ import annotations

import asyncio
import zlib
from typing import Protocol
from urllib import parse

import aiohttp
import brotli
import yarl

from sso_gate.models.session import Endpoint, TransportResponse
from sso_gate.utils import logger
from sso_gate.utils.errors import NetworkError, get_error_message

log = logger.create_logger("Transport")

ACCEPT_ENCODING = "gzip, deflate, br"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Transport(Protocol):
    """Minimal HTTP interface the redirect resolver drives."""

    async def get(self, endpoint: Endpoint, cookie_header: str) -> TransportResponse: ...

    async def post(
        self, endpoint: Endpoint, cookie_header: str, form_fields: dict[str, str]
    ) -> TransportResponse: ...

    async def close(self) -> None: ...


def encode_form(form_fields: dict[str, str]) -> bytes:
    """URL-encode *form_fields* in insertion order."""
    return parse.urlencode(list(form_fields.items())).encode("ascii")


def decode_body(raw: bytes, content_encoding: str | None, charset: str | None = None) -> str:
    """Decompress and decode a response body.

    Args:
        raw: Body bytes as received on the wire.
        content_encoding: ``Content-Encoding`` header value, if any.
        charset: Charset from ``Content-Type``; UTF-8 when missing or unknown.

    Returns:
        The body as text. Undecodable bytes are replaced, not raised.
    """
    encoding = (content_encoding or "identity").strip().lower()
    if raw and encoding == "gzip":
        raw = zlib.decompress(raw, 16 + zlib.MAX_WBITS)
    elif raw and encoding == "deflate":
        # Servers send both zlib-wrapped and raw deflate streams.
        try:
            raw = zlib.decompress(raw)
        except zlib.error:
            raw = zlib.decompress(raw, -zlib.MAX_WBITS)
    elif raw and encoding == "br":
        raw = brotli.decompress(raw)

    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


class AiohttpTransport:
    """``Transport`` backed by a shared ``aiohttp.ClientSession``.

    The client session is created lazily on the first request so the
    transport can be constructed outside a running event loop.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        user_agent: str = "sso-gate",
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Configure the per-request timeout and default headers."""
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._user_agent = user_agent
        self._session = session

    def _client(self) -> aiohttp.ClientSession:
        """Return the client session, creating it on first use."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                cookie_jar=aiohttp.DummyCookieJar(),
                auto_decompress=False,
            )
        return self._session

    async def get(self, endpoint: Endpoint, cookie_header: str) -> TransportResponse:
        """Issue a GET and return the decoded response."""
        return await self._request("GET", endpoint, cookie_header)

    async def post(
        self, endpoint: Endpoint, cookie_header: str, form_fields: dict[str, str]
    ) -> TransportResponse:
        """POST *form_fields* as ``application/x-www-form-urlencoded``."""
        body = encode_form(form_fields)
        log.debug("Posting form", {"host": endpoint.hostname, "path": endpoint.path, "fields": list(form_fields)})
        return await self._request(
            "POST",
            endpoint,
            cookie_header,
            data=body,
            extra_headers={"Content-Type": FORM_CONTENT_TYPE, "Content-Length": str(len(body))},
        )

    async def _request(
        self,
        method: str,
        endpoint: Endpoint,
        cookie_header: str,
        data: bytes | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> TransportResponse:
        """Send one request and read the whole response."""
        headers = {
            "User-Agent": self._user_agent,
            "Accept-Encoding": ACCEPT_ENCODING,
        }
        if cookie_header:
            headers["Cookie"] = cookie_header
        if extra_headers:
            headers.update(extra_headers)

        try:
            async with self._client().request(
                method,
                yarl.URL(endpoint.url(), encoded=True),
                headers=headers,
                data=data,
                allow_redirects=False,
            ) as response:
                raw = await response.read()
                body = decode_body(
                    raw,
                    response.headers.get("Content-Encoding"),
                    response.charset,
                )
                return TransportResponse(
                    status=response.status,
                    headers={k.lower(): v for k, v in reversed(list(response.headers.items()))},
                    set_cookies=list(response.headers.getall("Set-Cookie", [])),
                    body=body,
                )
        except asyncio.TimeoutError as exc:
            raise NetworkError(
                f"Timed out: {method} {endpoint.hostname}{endpoint.path}",
                host=endpoint.hostname,
                path=endpoint.path,
            ) from exc
        except aiohttp.ClientError as exc:
            raise NetworkError(
                f"{method} {endpoint.hostname}{endpoint.path} failed: {get_error_message(exc)}",
                host=endpoint.hostname,
                path=endpoint.path,
            ) from exc
        except (zlib.error, brotli.error) as exc:
            raise NetworkError(
                f"Could not decode response body from {endpoint.hostname}{endpoint.path}",
                host=endpoint.hostname,
                path=endpoint.path,
            ) from exc

    async def close(self) -> None:
        """Close the underlying client session, if one was opened."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
