"""Tests for sso_gate.auth.resolver — hop state transitions."""

from __future__ import annotations

import pytest

from sso_gate.auth.resolver import RedirectResolver
from sso_gate.config import SessionConfig
from sso_gate.http.cookies import CookieStore
from sso_gate.models.session import Credentials, Endpoint
from sso_gate.utils import logger
from tests.conftest import HOST, IDP, FakeTransport, relay_page, response


def _resolver(transport: FakeTransport, config: SessionConfig) -> RedirectResolver:
    credentials = Credentials(username="alice", password="s3cret")
    return RedirectResolver(transport, CookieStore(), credentials, config)


def _hops(events: list[dict[str, object]]) -> list[tuple[object, object]]:
    return [(e["from"], e["to"]) for e in events if e["event"] == "hop"]


class TestResolve:
    """Each chain ends in FINAL with the result its last handler produced."""

    @pytest.mark.asyncio
    async def test_login_relay_chain(self, transport: FakeTransport, config: SessionConfig) -> None:
        transport.on("POST", HOST, "/my.policy", response(302, "/vdesk/relay"))
        transport.on("GET", HOST, "/vdesk/relay", response(200, body=relay_page("/vdesk/post", {"t": "1"})))
        transport.on("POST", HOST, "/vdesk/post", response(302, "/doc"))
        transport.on("GET", HOST, "/doc", response(200, body="resource"))
        events: list[dict[str, object]] = []

        with logger.event_sink(events.append):
            result = await _resolver(transport, config).resolve(
                Endpoint(hostname=HOST, path="/doc"), response(302, "/my.policy")
            )

        assert result.body == "resource"
        assert _hops(events) == [
            ("FOLLOWING", "LOGIN_PROMPT"),
            ("LOGIN_PROMPT", "FOLLOWING"),
            ("FOLLOWING", "RELAY"),
            ("RELAY", "FOLLOWING"),
            ("FOLLOWING", "FINAL"),
        ]

    @pytest.mark.asyncio
    async def test_logout_confirmation_posts_to_origin(
        self, transport: FakeTransport, config: SessionConfig
    ) -> None:
        confirm = "/idp/profile/Logout?execution=e1s1"
        transport.on("GET", IDP, confirm, response(200, body=relay_page("/ignored", {"SAMLResponse": "x"})))
        transport.on("POST", HOST, "/Shibboleth.sso/Logout", response(200, body="bye"))
        events: list[dict[str, object]] = []

        with logger.event_sink(events.append):
            result = await _resolver(transport, config).resolve(
                Endpoint(hostname=HOST, path="/Shibboleth.sso/Logout"),
                response(302, f"https://{IDP}{confirm}"),
            )

        assert (result.path, result.status_code, result.body) == ("/Shibboleth.sso/Logout", 200, "bye")
        assert _hops(events) == [("FOLLOWING", "LOGOUT_CONFIRM"), ("LOGOUT_CONFIRM", "FINAL")]

    @pytest.mark.asyncio
    async def test_partitioned_cookie_reaches_next_hop(
        self, transport: FakeTransport, config: SessionConfig
    ) -> None:
        transport.on(
            "POST", HOST, "/my.policy",
            response(302, "/doc", cookies=("MRHSession=sess42; Path=/; Secure; HttpOnly; Partitioned",)),
        )
        transport.on("GET", HOST, "/doc", response(200, body="resource"))

        await _resolver(transport, config).resolve(Endpoint(hostname=HOST, path="/doc"), response(302, "/my.policy"))

        assert transport.calls[-1].cookie_header == "MRHSession=sess42"
