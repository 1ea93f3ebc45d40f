"""Shared fixtures for the test suite: a scripted in-memory gateway."""

from __future__ import annotations

import asyncio
import dataclasses
import os
from unittest import mock

import pytest

from sso_gate.config import SessionConfig
from sso_gate.models.session import Endpoint, TransportResponse
from sso_gate.session import IntranetSession

HOST = "intranet.example"
IDP = "idp.example"


def response(
    status: int,
    location: str | None = None,
    body: str = "",
    cookies: tuple[str, ...] = (),
) -> TransportResponse:
    """Build a transport response with an optional ``Location``."""
    headers = {"location": location} if location else {}
    return TransportResponse(status=status, headers=headers, set_cookies=list(cookies), body=body)


def relay_page(action: str, fields: dict[str, str]) -> str:
    """Render an auto-submit relay page like the gateway serves."""
    inputs = "".join(f'<input type="hidden" name="{k}" value="{v}"/>' for k, v in fields.items())
    return (
        "<html><apm_do_not_touch><body onload=\"document.forms[0].submit()\">"
        f'<form method="post" action="{action}">{inputs}</form>'
        "</body></apm_do_not_touch></html>"
    )


@dataclasses.dataclass
class Call:
    """One request seen by the fake transport."""

    method: str
    host: str
    path: str
    cookie_header: str
    fields: dict[str, str] | None = None


class FakeTransport:
    """Transport that answers from a script of canned responses.

    Each (method, host, path) route holds a list of responses consumed
    in order; the last one repeats. Unknown routes answer 404.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.routes: dict[tuple[str, str, str], list[TransportResponse | BaseException]] = {}
        self.calls: list[Call] = []
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.closed = False

    def on(self, method: str, host: str, path: str, *responses: TransportResponse | BaseException) -> None:
        self.routes[(method, host, path)] = list(responses)

    async def get(self, endpoint: Endpoint, cookie_header: str) -> TransportResponse:
        return await self._respond("GET", endpoint, cookie_header, None)

    async def post(
        self, endpoint: Endpoint, cookie_header: str, form_fields: dict[str, str]
    ) -> TransportResponse:
        return await self._respond("POST", endpoint, cookie_header, dict(form_fields))

    async def close(self) -> None:
        self.closed = True

    async def _respond(
        self, method: str, endpoint: Endpoint, cookie_header: str, fields: dict[str, str] | None
    ) -> TransportResponse:
        self.calls.append(Call(method, endpoint.hostname, endpoint.path, cookie_header, fields))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            queue = self.routes.get((method, endpoint.hostname, endpoint.path))
            if not queue:
                return response(404, body="not found")
            answer = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(answer, BaseException):
                raise answer
            return answer
        finally:
            self.active -= 1

    def paths(self) -> list[tuple[str, str]]:
        return [(c.method, c.path) for c in self.calls]


@pytest.fixture(autouse=True)
def _clean_env():
    """Keep real ``SSO_*`` variables out of every test."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("SSO_")}
    env["LOG_LEVEL"] = "error"
    with mock.patch.dict("os.environ", env, clear=True):
        yield


@pytest.fixture()
def config() -> SessionConfig:
    """Session config with the default gateway paths."""
    return SessionConfig(host=HOST, username="alice", password="s3cret")


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def events() -> list[dict[str, object]]:
    return []


@pytest.fixture()
def session(config: SessionConfig, transport: FakeTransport, events: list[dict[str, object]]) -> IntranetSession:
    return IntranetSession.from_config(config, transport=transport, event_sink=events.append)
