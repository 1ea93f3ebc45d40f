"""
Session configuration.

Centralises all environment variable names, default values and
validation for a gateway session. Uses ``pydantic_settings.BaseSettings``
for automatic environment variable binding, type coercion and
validation.
"""

from __future__ import annotations

import pydantic
import pydantic_settings

from sso_gate import __version__
from sso_gate.utils import logger

log = logger.create_logger("Session-Config")

DEFAULT_LOGIN_PATH = "/my.policy"
DEFAULT_LOGOUT_PATH = "/Shibboleth.sso/Logout"
DEFAULT_LOGOUT_CONFIRM_PREFIX = "/idp/profile/Logout"


class SessionConfig(pydantic_settings.BaseSettings):
    """Configuration for one authenticated gateway session.

    Attributes:
        host: Hostname of the protected resource.
        username: Login name posted to the login prompt.
        password: Password posted to the login prompt.
        login_path: Path the gateway redirects to when asking for credentials.
        logout_path: Path requested by ``logout()``.
        logout_confirm_prefix: Path prefix of the IdP logout confirmation page.
        vhost: Value of the ``vhost`` login field.
        max_hops: Maximum number of redirects followed per operation.
        timeout_seconds: Timeout applied to every HTTP request.
        max_pending: Wait-queue bound; ``None`` queues every caller.
        user_agent: ``User-Agent`` header sent with every request.
    """

    model_config = pydantic_settings.SettingsConfigDict(populate_by_name=True)

    host: str = pydantic.Field(default="", validation_alias="SSO_HOST")
    username: str = pydantic.Field(default="", validation_alias="SSO_USERNAME")
    password: pydantic.SecretStr = pydantic.Field(
        default=pydantic.SecretStr(""), validation_alias="SSO_PASSWORD"
    )
    login_path: str = pydantic.Field(
        default=DEFAULT_LOGIN_PATH, validation_alias="SSO_LOGIN_PATH"
    )
    logout_path: str = pydantic.Field(
        default=DEFAULT_LOGOUT_PATH, validation_alias="SSO_LOGOUT_PATH"
    )
    logout_confirm_prefix: str = pydantic.Field(
        default=DEFAULT_LOGOUT_CONFIRM_PREFIX,
        validation_alias="SSO_LOGOUT_CONFIRM_PREFIX",
    )
    vhost: str = pydantic.Field(default="standard", validation_alias="SSO_VHOST")
    max_hops: int = pydantic.Field(default=10, ge=1, validation_alias="SSO_MAX_HOPS")
    timeout_seconds: float = pydantic.Field(
        default=30.0, gt=0, validation_alias="SSO_TIMEOUT_SECONDS"
    )
    max_pending: int | None = pydantic.Field(
        default=None, ge=0, validation_alias="SSO_MAX_PENDING"
    )
    user_agent: str = pydantic.Field(
        default=f"sso-gate/{__version__}", validation_alias="SSO_USER_AGENT"
    )

    def validate_config(self) -> bool:
        """Check if all required configuration is present.

        Returns:
            True when host, username and password are set.
        """
        return bool(self.host and self.username and self.password.get_secret_value())


def validate_session_config(config: SessionConfig | None = None) -> str | None:
    """Check that a session can be built from the environment.

    Returns:
        An error message string when misconfigured, or ``None`` if valid.
    """
    config = config or SessionConfig()
    if config.validate_config():
        return None

    missing = [
        name
        for name, value in (
            ("SSO_HOST", config.host),
            ("SSO_USERNAME", config.username),
            ("SSO_PASSWORD", config.password.get_secret_value()),
        )
        if not value
    ]
    log.warn("Session is not configured", {"missing": missing})
    return "Session is not configured. Please set: " + ", ".join(missing)
