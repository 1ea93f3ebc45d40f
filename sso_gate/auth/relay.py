"""
Relay page form extraction.

Gateways hand session state between hops with a page holding a hidden
auto-submit form, sometimes wrapped in a proprietary container element
(``<apm_do_not_touch>``). The first ``<form>`` in the document is the
one to submit.
"""

from __future__ import annotations

import bs4

from sso_gate.models.session import RelayForm
from sso_gate.utils import logger, url
from sso_gate.utils.errors import MalformedRelayPageError

log = logger.create_logger("Relay-Form")


def extract_relay_form(body: str, base_host: str, base_path: str = "/") -> RelayForm:
    """Extract the submission endpoint and fields of a relay page.

    Args:
        body: HTML or XML payload of the relay page.
        base_host: Host that served the page; relative actions resolve
            against it.
        base_path: Path that served the page; used when ``action`` is
            empty.

    Returns:
        The form's action endpoint and its ``input`` name/value pairs
        in document order.

    Raises:
        MalformedRelayPageError: When the payload is empty or holds no
            form.
    """
    if not body or not body.strip():
        raise MalformedRelayPageError("Error parsing relay payload: empty body")

    soup = bs4.BeautifulSoup(body, "html.parser")
    form = soup.find("form")
    if not isinstance(form, bs4.Tag):
        raise MalformedRelayPageError("Error parsing relay payload: no form found")

    action = str(form.get("action") or "").strip()
    endpoint = url.resolve_location(base_host, action or base_path)

    fields: dict[str, str] = {}
    for field in form.find_all("input"):
        name = field.get("name")
        if not name:
            continue
        fields[str(name)] = str(field.get("value") or "")

    log.debug("Relay form extracted", {"host": endpoint.hostname, "path": endpoint.path, "fields": list(fields)})
    return RelayForm(action_endpoint=endpoint, fields=fields)


def has_form(body: str) -> bool:
    """Return ``True`` when *body* parses and contains a ``<form>``."""
    if not body or "<form" not in body.lower():
        return False
    return bs4.BeautifulSoup(body, "html.parser").find("form") is not None
