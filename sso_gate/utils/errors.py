"""
Error kinds raised by a session, plus message extraction for logging.

Every failure of ``get``/``logout`` surfaces as one of the
``SessionError`` subclasses below so callers can branch on the
category (network down, bad credentials, gateway contract changed).
"""

from __future__ import annotations


class SessionError(Exception):
    """Base class for every error raised by a session operation."""


class NetworkError(SessionError):
    """Connection, TLS or timeout failure talking to a host."""

    def __init__(self, message: str, *, host: str = "", path: str = "") -> None:
        super().__init__(message)
        self.host = host
        self.path = path


class MissingRedirectError(SessionError):
    """A redirect response arrived without a ``Location`` header."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Missing redirect location (from {path})")
        self.path = path


class UnexpectedStatusError(SessionError):
    """A hop answered with a status the redirect chain does not allow."""

    def __init__(self, status: int, path: str) -> None:
        super().__init__(f"Unexpected HTTP status: {status} ({path})")
        self.status = status
        self.path = path


class TooManyRedirectsError(SessionError):
    """The redirect chain exceeded the configured hop cap."""

    def __init__(self, max_hops: int, path: str) -> None:
        super().__init__(f"Exceeded {max_hops} redirects (last location {path})")
        self.max_hops = max_hops
        self.path = path


class LoginFailedError(SessionError):
    """The credentials were rejected or the login endpoint misbehaved."""

    def __init__(self, message: str, *, status: int | None = None, path: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.path = path


class MalformedRelayPageError(SessionError):
    """A relay page did not contain a usable form."""


class RelaySubmissionError(SessionError):
    """Posting a relay form did not produce the expected redirect."""

    def __init__(self, status: int, path: str) -> None:
        super().__init__(f"Relay submission answered {status} instead of a redirect ({path})")
        self.status = status
        self.path = path


class QueueOverflowError(SessionError):
    """The session's wait queue was full when the call was submitted."""

    def __init__(self, max_pending: int) -> None:
        super().__init__(f"Too many pending requests (max {max_pending})")
        self.max_pending = max_pending


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
