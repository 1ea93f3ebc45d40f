"""
Authenticated client for web resources behind a reverse-proxy SSO gateway.
"""

from __future__ import annotations

__version__ = "0.1.0"

from sso_gate.config import SessionConfig
from sso_gate.models.session import Endpoint, FetchResult, RelayForm
from sso_gate.session import IntranetSession
from sso_gate.utils.errors import (
    LoginFailedError,
    MalformedRelayPageError,
    MissingRedirectError,
    NetworkError,
    QueueOverflowError,
    RelaySubmissionError,
    SessionError,
    TooManyRedirectsError,
    UnexpectedStatusError,
)

__all__ = [
    "Endpoint",
    "FetchResult",
    "IntranetSession",
    "LoginFailedError",
    "MalformedRelayPageError",
    "MissingRedirectError",
    "NetworkError",
    "QueueOverflowError",
    "RelayForm",
    "RelaySubmissionError",
    "SessionConfig",
    "SessionError",
    "TooManyRedirectsError",
    "UnexpectedStatusError",
]
