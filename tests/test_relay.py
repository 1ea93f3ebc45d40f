"""Tests for sso_gate.auth.relay — relay page form extraction."""

from __future__ import annotations

import pytest

from sso_gate.auth.relay import extract_relay_form, has_form
from sso_gate.models.session import Endpoint
from sso_gate.utils.errors import MalformedRelayPageError
from tests.conftest import relay_page


class TestExtractRelayForm:
    """Tests for extract_relay_form()."""

    def test_absolute_action_and_ordered_fields(self) -> None:
        form = extract_relay_form(relay_page("https://idp.example/submit", {"a": "1", "b": "2"}), "intranet.example")

        assert form.action_endpoint == Endpoint(hostname="idp.example", path="/submit")
        assert list(form.fields.items()) == [("a", "1"), ("b", "2")]

    def test_relative_action_uses_page_host(self) -> None:
        form = extract_relay_form(relay_page("/saml/acs?x=1", {"SAMLResponse": "abc"}), "intranet.example")

        assert form.action_endpoint == Endpoint(hostname="intranet.example", path="/saml/acs?x=1")

    def test_empty_action_posts_back_to_page(self) -> None:
        body = '<form method="post"><input name="t" value="v"></form>'

        form = extract_relay_form(body, "intranet.example", "/vdesk/refresh")

        assert form.action_endpoint == Endpoint(hostname="intranet.example", path="/vdesk/refresh")

    def test_inputs_without_name_skipped_and_missing_value_empty(self) -> None:
        body = (
            '<form action="/go">'
            '<input type="submit" value="Continue">'
            '<input type="hidden" name="state">'
            "</form>"
        )

        form = extract_relay_form(body, "h.example")

        assert form.fields == {"state": ""}

    def test_uses_first_form(self) -> None:
        body = '<form action="/one"><input name="a" value="1"></form><form action="/two"></form>'

        form = extract_relay_form(body, "h.example")

        assert form.action_endpoint.path == "/one"

    def test_xml_wrapped_payload(self) -> None:
        body = (
            '<?xml version="1.0"?>'
            "<html><apm_do_not_touch><body>"
            '<form action="https://gw.example/my.policy" method="post">'
            '<input type="hidden" name="token" value="xyz"/>'
            "</form></body></apm_do_not_touch></html>"
        )

        form = extract_relay_form(body, "h.example")

        assert form.action_endpoint.hostname == "gw.example"
        assert form.fields == {"token": "xyz"}

    def test_no_form_raises(self) -> None:
        with pytest.raises(MalformedRelayPageError):
            extract_relay_form("<html><body>Welcome</body></html>", "h.example")

    def test_empty_body_raises(self) -> None:
        with pytest.raises(MalformedRelayPageError):
            extract_relay_form("   ", "h.example")


class TestHasForm:
    """Tests for has_form()."""

    def test_detects_form(self) -> None:
        assert has_form(relay_page("/x", {"a": "1"}))

    def test_plain_page(self) -> None:
        assert not has_form("<p>formidable content</p>")

    def test_empty(self) -> None:
        assert not has_form("")
