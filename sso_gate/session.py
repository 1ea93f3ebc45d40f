"""
Authenticated session against an SSO-gateway protected host.

A session owns one credential, one cookie store and one concurrency
slot. ``get`` hides the whole login / relay / redirect dance and hands
back only the final resource.
"""

from __future__ import annotations

import types

import pydantic

from sso_gate.auth.gate import SessionGate
from sso_gate.auth.resolver import RedirectResolver
from sso_gate.config import SessionConfig
from sso_gate.http.cookies import CookieStore
from sso_gate.http.transport import AiohttpTransport, Transport
from sso_gate.models.session import Credentials, Endpoint, FetchResult
from sso_gate.utils import logger, url
from sso_gate.utils.errors import SessionError, UnexpectedStatusError, get_error_message

log = logger.create_logger("IntranetSession")


class IntranetSession:
    """
    Fetches paths from one gateway-protected host, logging in as needed.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        *,
        config: SessionConfig | None = None,
        transport: Transport | None = None,
        event_sink: logger.EventSink | None = None,
    ) -> None:
        """Create a session; no request is made until the first ``get``.

        Args:
            host: Hostname of the protected resource.
            username: Login name for the gateway's login prompt.
            password: Password for the gateway's login prompt.
            config: Paths, limits and timeouts. Defaults come from the
                environment.
            transport: HTTP transport; an ``AiohttpTransport`` is built
                from *config* when omitted.
            event_sink: Receives one dict per structured event
                (requests, hop transitions, completed operations).
        """
        self._config = config or SessionConfig()
        self._host = host
        self._credentials = Credentials(username=username, password=pydantic.SecretStr(password))
        self._cookies = CookieStore()
        self._transport: Transport = transport or AiohttpTransport(
            timeout_seconds=self._config.timeout_seconds,
            user_agent=self._config.user_agent,
        )
        self._resolver = RedirectResolver(self._transport, self._cookies, self._credentials, self._config)
        self._gate = SessionGate(self._config.max_pending)
        self._event_sink = event_sink

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        *,
        transport: Transport | None = None,
        event_sink: logger.EventSink | None = None,
    ) -> IntranetSession:
        """Build a session whose host and credentials come from *config*."""
        return cls(
            config.host,
            config.username,
            config.password.get_secret_value(),
            config=config,
            transport=transport,
            event_sink=event_sink,
        )

    # ==========================================================================
    # Public operations
    # ==========================================================================

    @property
    def host(self) -> str:
        """Hostname every ``get`` path is requested from."""
        return self._host

    @property
    def cookies(self) -> CookieStore:
        """The session's cookie store."""
        return self._cookies

    @property
    def gate(self) -> SessionGate:
        """The session's request serializer."""
        return self._gate

    def set_max_pending_requests(self, max_pending: int | None) -> None:
        """Bound the number of callers allowed to wait for the session."""
        self._gate.max_pending = max_pending

    async def get(self, path: str) -> FetchResult:
        """Fetch *path*, authenticating through the gateway when redirected.

        Raises:
            SessionError: One of its subclasses describing why the
                operation failed.
        """
        return await self._gate.submit(lambda: self._fetch(path))

    async def logout(self) -> FetchResult:
        """Request the logout path and acknowledge the IdP confirmation."""
        return await self.get(self._config.logout_path)

    async def close(self) -> None:
        """Release the HTTP transport."""
        await self._transport.close()

    async def __aenter__(self) -> IntranetSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        await self.close()

    # ==========================================================================
    # Operation body (runs while holding the slot)
    # ==========================================================================

    async def _fetch(self, path: str) -> FetchResult:
        """GET *path* and resolve any redirect chain it starts."""
        with logger.event_sink(self._event_sink):
            label = f"GET {path}"
            log.start_timer(label)
            origin = Endpoint(hostname=self._host, path=path)
            try:
                response = await self._resolver.get(origin)
                if response.status == 200:
                    result = FetchResult(path=path, status_code=200, body=response.body)
                elif url.is_redirect(response.status):
                    result = await self._resolver.resolve(origin, response)
                else:
                    raise UnexpectedStatusError(response.status, path)
            except SessionError as exc:
                duration = log.end_timer(label, f"Failed {label}")
                log.error(
                    "Request failed",
                    {"path": path, "error": get_error_message(exc), "kind": type(exc).__name__},
                )
                log.event("operation", {"path": path, "error": type(exc).__name__, "durationMs": round(duration)})
                raise

            duration = log.end_timer(label)
            log.event(
                "operation",
                {"path": path, "status": result.status_code, "durationMs": round(duration)},
            )
            return result
