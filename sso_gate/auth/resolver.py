"""
Redirect resolution for a gateway-protected resource.

Drives one operation from its first redirect to the final resource as
an explicit state machine. Each hop is classified as a plain redirect,
a login prompt, a relay (token refresh) page or a logout confirmation:

    FOLLOWING ──> LOGIN_PROMPT ──> FOLLOWING (login leg)
        │    └──> RELAY ─────────> FOLLOWING (final leg)
        │    └──> LOGOUT_CONFIRM ─> FINAL
        └──────> FINAL

After a login, a 200 page carrying a form is still a relay page; one
without a form is the resource itself. After a relay, the next 200 is
always the resource.

Failures raise one of the ``SessionError`` kinds; there is no FAILED
value at runtime other than the exception itself.
"""

from __future__ import annotations

import dataclasses
from typing import Literal

from sso_gate.auth import relay
from sso_gate.config import SessionConfig
from sso_gate.http.cookies import CookieStore
from sso_gate.http.transport import Transport
from sso_gate.models.session import Credentials, Endpoint, FetchResult, TransportResponse
from sso_gate.utils import logger, url
from sso_gate.utils.errors import (
    LoginFailedError,
    MissingRedirectError,
    RelaySubmissionError,
    TooManyRedirectsError,
    UnexpectedStatusError,
)

log = logger.create_logger("Resolver")

HopState = Literal["FOLLOWING", "LOGIN_PROMPT", "RELAY", "LOGOUT_CONFIRM", "FINAL", "FAILED"]


@dataclasses.dataclass
class _Hop:
    """Mutable state of one resolution, local to a single operation."""

    origin: Endpoint
    current: Endpoint
    target: Endpoint
    response: TransportResponse
    final_leg: bool = False
    login_leg: bool = False
    hops: int = 0
    logged_in: bool = False
    result: FetchResult | None = None


class RedirectResolver:
    """Follows a redirect chain through login and relay hops.

    Only ever used by the operation holding the session slot; it reads
    and writes the shared ``CookieStore`` on every request.
    """

    def __init__(
        self,
        transport: Transport,
        cookies: CookieStore,
        credentials: Credentials,
        config: SessionConfig,
    ) -> None:
        self._transport = transport
        self._cookies = cookies
        self._credentials = credentials
        self._config = config

    # ==========================================================================
    # Requests (cookie rendering and absorption)
    # ==========================================================================

    async def get(self, endpoint: Endpoint, hop: HopState = "FOLLOWING") -> TransportResponse:
        """GET *endpoint* with the session cookies and absorb the reply's cookies."""
        cookie_header = self._cookies.cookies_for(endpoint.hostname, endpoint.path)
        response = await self._transport.get(endpoint, cookie_header)
        self._cookies.absorb(response.set_cookies, endpoint.hostname, endpoint.path)
        self._emit("GET", endpoint, response, hop)
        return response

    async def post(
        self,
        endpoint: Endpoint,
        fields: dict[str, str],
        hop: HopState,
        *,
        with_cookies: bool = True,
    ) -> TransportResponse:
        """POST *fields* to *endpoint* and absorb the reply's cookies."""
        cookie_header = self._cookies.cookies_for(endpoint.hostname, endpoint.path) if with_cookies else ""
        response = await self._transport.post(endpoint, cookie_header, fields)
        self._cookies.absorb(response.set_cookies, endpoint.hostname, endpoint.path)
        self._emit("POST", endpoint, response, hop)
        return response

    def _emit(self, method: str, endpoint: Endpoint, response: TransportResponse, hop: HopState) -> None:
        """Publish a ``request`` event for one exchange."""
        log.event(
            "request",
            {
                "method": method,
                "host": endpoint.hostname,
                "path": endpoint.path,
                "status": response.status,
                "hop": hop,
            },
        )

    # ==========================================================================
    # State machine
    # ==========================================================================

    async def resolve(self, origin: Endpoint, response: TransportResponse) -> FetchResult:
        """Follow redirects from *response* until the final resource.

        Args:
            origin: Endpoint the operation first requested.
            response: The redirect answered for *origin*.

        Returns:
            The final resource, or the forwarded logout acknowledgment.
        """
        ctx = _Hop(origin=origin, current=origin, target=origin, response=response)
        handlers = {
            "FOLLOWING": self._follow,
            "LOGIN_PROMPT": self._login,
            "RELAY": self._relay,
            "LOGOUT_CONFIRM": self._confirm_logout,
        }
        state: HopState = "FOLLOWING"

        # Handlers that return FINAL set ``ctx.result``.
        while ctx.result is None:
            next_state = await handlers[state](ctx)

            if next_state != state:
                log.event(
                    "hop",
                    {
                        "from": state,
                        "to": next_state,
                        "host": ctx.current.hostname,
                        "path": ctx.current.path,
                        "hops": ctx.hops,
                    },
                )
            state = next_state

        return ctx.result

    def _next_endpoint(self, ctx: _Hop) -> Endpoint:
        """Resolve the ``Location`` of the current response, counting the hop."""
        location = ctx.response.location
        if not location:
            raise MissingRedirectError(ctx.current.path)

        target = url.resolve_location(ctx.current.hostname, location, ctx.current.port)
        ctx.hops += 1
        if ctx.hops > self._config.max_hops:
            raise TooManyRedirectsError(self._config.max_hops, target.path)

        log.debug("Redirecting", {"host": target.hostname, "path": target.path, "hop": ctx.hops})
        return target

    async def _follow(self, ctx: _Hop) -> HopState:
        """Classify the next redirect target and fetch it when it is a plain hop."""
        target = self._next_endpoint(ctx)
        ctx.target = target

        if url.strip_query(target.path) == self._config.login_path:
            return "LOGIN_PROMPT"
        if target.path.startswith(self._config.logout_confirm_prefix):
            return "LOGOUT_CONFIRM"

        response = await self.get(target)
        ctx.current = target
        ctx.response = response

        if response.status == 200:
            if ctx.final_leg or (ctx.login_leg and not relay.has_form(response.body)):
                ctx.result = FetchResult(path=target.path, status_code=200, body=response.body)
                return "FINAL"
            return "RELAY"
        if url.is_redirect(response.status):
            return "FOLLOWING"
        raise UnexpectedStatusError(response.status, target.path)

    async def _login(self, ctx: _Hop) -> HopState:
        """Post the credentials to the login prompt.

        Accepts both gateway variants: a redirect on the first POST, or
        a 200 carrying fresh session cookies followed by a second,
        identical POST that redirects.
        """
        target = ctx.target
        if ctx.logged_in:
            raise LoginFailedError("Error: credentials rejected, login prompt shown again", path=target.path)

        fields = {
            "username": self._credentials.username,
            "password": self._credentials.password.get_secret_value(),
            "vhost": self._config.vhost,
        }
        log.info("Logging in", {"host": target.hostname, "username": self._credentials.username})

        response = await self.post(target, fields, "LOGIN_PROMPT")
        if response.status == 200:
            log.debug("Login answered 200, posting again with the new session cookies")
            response = await self.post(target, fields, "LOGIN_PROMPT")

        if not url.is_redirect(response.status):
            raise LoginFailedError("Error: failed login attempt", status=response.status, path=target.path)

        ctx.logged_in = True
        ctx.current = target
        ctx.response = response
        ctx.login_leg = True
        return "FOLLOWING"

    async def _relay(self, ctx: _Hop) -> HopState:
        """Submit the relay page's form and continue with its redirect."""
        form = relay.extract_relay_form(ctx.response.body, ctx.current.hostname, ctx.current.path)
        endpoint = form.action_endpoint

        response = await self.post(endpoint, form.fields, "RELAY")
        if not url.is_redirect(response.status):
            raise RelaySubmissionError(response.status, endpoint.path)

        ctx.current = endpoint
        ctx.response = response
        ctx.final_leg = True
        return "FOLLOWING"

    async def _confirm_logout(self, ctx: _Hop) -> HopState:
        """Acknowledge an IdP logout and forward the acknowledgment's reply.

        The confirmation form is posted back to the endpoint the
        operation started from, without session cookies.
        """
        target = ctx.target

        page = await self.get(target, "LOGOUT_CONFIRM")
        ctx.current = target
        if page.status != 200:
            raise UnexpectedStatusError(page.status, target.path)

        form = relay.extract_relay_form(page.body, target.hostname, target.path)
        if len(form.fields) != 1:
            log.warn("Logout confirmation form has unexpected fields", {"fields": list(form.fields)})

        response = await self.post(ctx.origin, form.fields, "LOGOUT_CONFIRM", with_cookies=False)
        ctx.result = FetchResult(path=ctx.origin.path, status_code=response.status, body=response.body)
        return "FINAL"
