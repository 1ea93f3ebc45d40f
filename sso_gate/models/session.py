"""Pydantic models for endpoints, relay forms, cookies and results."""

from __future__ import annotations

import pydantic
from pydantic import alias_generators


class Endpoint(pydantic.BaseModel):
    """A host and path (query included) addressed by one hop."""

    model_config = pydantic.ConfigDict(frozen=True)

    hostname: str
    path: str
    port: int | None = None

    def url(self) -> str:
        """Return the absolute ``https`` URL for this endpoint."""
        netloc = self.hostname if self.port is None else f"{self.hostname}:{self.port}"
        return f"https://{netloc}{self.path}"


class RelayForm(pydantic.BaseModel):
    """Auto-submit form extracted from a gateway relay page."""

    action_endpoint: Endpoint
    fields: dict[str, str]


class Cookie(pydantic.BaseModel):
    """A single cookie as parsed from a ``Set-Cookie`` line."""

    name: str
    value: str
    domain: str
    path: str = "/"
    deleted: bool = False


class Credentials(pydantic.BaseModel):
    """Username and password posted to the login prompt."""

    username: str
    password: pydantic.SecretStr


class TransportResponse(pydantic.BaseModel):
    """Status, headers and decoded body of one HTTP exchange.

    Header names are lower-cased; repeated headers keep their first
    value except ``Set-Cookie``, which is kept in full in *set_cookies*.
    """

    status: int
    headers: dict[str, str] = pydantic.Field(default_factory=dict)
    set_cookies: list[str] = pydantic.Field(default_factory=list)
    body: str = ""

    @property
    def location(self) -> str | None:
        """The ``Location`` header, or ``None`` when absent or empty."""
        return self.headers.get("location") or None


class FetchResult(pydantic.BaseModel):
    """Final outcome of a ``get`` or ``logout`` call."""

    model_config = pydantic.ConfigDict(alias_generator=alias_generators.to_camel, populate_by_name=True)

    path: str
    status_code: int
    body: str
