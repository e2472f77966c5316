"""Canonical Pydantic models shared across all loginflow modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Login-mode models** -- what the server says it supports and what the
client decided:
    :class:`LoginMode`, :class:`FallbackPolicy`, :class:`LoginModeResponse`,
    :class:`ModeCapabilities`, and :class:`ResolvedMode`.

**Session models** -- credentials, users, sessions, and navigation:
    :class:`Credentials`, :class:`User`, :class:`Session`,
    :class:`NavigationTarget`, :class:`Notification`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`RequestConfig`, :class:`ModeCacheConfig`, and
:class:`Settings`.
"""

from __future__ import annotations

import base64
import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Login modes ---


class LoginMode(str, enum.Enum):
    """The authentication strategy currently in effect.

    Exactly one mode is active at a time. ``ERROR`` is terminal for the
    current resolution attempt: no login action is offered until a forced
    re-resolution succeeds.
    """

    PASSWORD = "password"
    SIMPLE = "simple"
    SSO_ONLY = "ssoOnly"
    TENANT_INPUT = "tenant"
    ERROR = "error"

    @property
    def allows_login(self) -> bool:
        """Whether a login action may be offered in this mode."""
        return self in (LoginMode.PASSWORD, LoginMode.SIMPLE, LoginMode.SSO_ONLY)


class FallbackPolicy(str, enum.Enum):
    """What to do when the login mode cannot be resolved from the server."""

    ERROR = "error"
    SIMPLE = "simple"


class BasicModeInfo(BaseModel):
    """The ``basic`` section of a supported-modes response."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = False


class LoginModeResponse(BaseModel):
    """Wire shape of the remote supported-modes query.

    Unknown keys are preserved; missing keys take permissive defaults so a
    partial answer still yields capabilities.
    """

    model_config = ConfigDict(extra="allow")

    basic: BasicModeInfo = Field(default_factory=BasicModeInfo)
    sso: dict[str, Any] = Field(default_factory=dict)
    sso_providers: list[Any] = Field(default_factory=list)
    authenticated: bool = False


def _provider_id(provider: Any) -> str:
    if isinstance(provider, dict):
        for key in ("id", "name", "provider"):
            if provider.get(key):
                return str(provider[key])
    return str(provider)


class ModeCapabilities(BaseModel):
    """Capability flags derived from one supported-modes response. Immutable."""

    model_config = ConfigDict(frozen=True)

    basic_enabled: bool = False
    sso_providers: frozenset[str] = frozenset()
    authenticated: bool = False

    @classmethod
    def from_response(cls, response: LoginModeResponse) -> ModeCapabilities:
        """Collapse ``sso`` keys and ``sso_providers`` entries into one provider set."""
        providers = set(response.sso)
        providers.update(_provider_id(p) for p in response.sso_providers)
        return cls(
            basic_enabled=response.basic.enabled,
            sso_providers=frozenset(providers),
            authenticated=response.authenticated,
        )


class ResolvedMode(BaseModel):
    """A login mode together with the time window in which it is trusted.

    Attributes:
        mode: The resolved mode.
        resolved_at: Epoch seconds at which the mode was resolved.
        ttl: Seconds the resolution stays valid.
    """

    mode: LoginMode
    resolved_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.resolved_at + self.ttl

    def is_valid(self, now: float) -> bool:
        """Return ``True`` while *now* is strictly before :attr:`expires_at`."""
        return now < self.expires_at


# --- Session ---


class Credentials(BaseModel):
    """A key/secret/tenant triple used for Basic auth on internal calls.

    Supplied by the local credentials artifact or by environment defaults.
    Held in memory only.
    """

    key: str = ""
    secret: str = ""
    tenant_id: str = ""

    @classmethod
    def from_artifact(cls, data: dict[str, Any]) -> Credentials:
        """Build credentials from a ``{userKey, userSecret, companyID}`` document."""
        return cls(
            key=str(data.get("userKey") or ""),
            secret=str(data.get("userSecret") or ""),
            tenant_id=str(data.get("companyID") or ""),
        )

    def basic_header(self) -> str:
        """Return the ``Authorization`` header value for these credentials."""
        return basic_auth_value(self.key, self.secret)


def basic_auth_value(user: str, secret: str) -> str:
    """Encode *user* and *secret* as an HTTP Basic ``Authorization`` value."""
    token = base64.b64encode(f"{user}:{secret}".encode()).decode()
    return f"Basic {token}"


class User(BaseModel):
    """A user record as returned by the user listing call."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""


class Session(BaseModel):
    """Outcome of a successful login exchange.

    The session itself lives in the HTTP client's cookie jar; this model
    records what the exchange returned.
    """

    user_id: Optional[str] = None
    token: Optional[str] = None
    cookies: dict[str, str] = Field(default_factory=dict)


class NavigationTarget(BaseModel):
    """Where the client should navigate after login."""

    url: str = "/"


class NotificationKind(str, enum.Enum):
    SERVER_UNAVAILABLE = "server_unavailable"
    LOGIN_NOTICE = "login_notice"


class Notification(BaseModel):
    """A structured message handed to the presentation layer."""

    kind: NotificationKind
    title: str = ""
    body: str = ""
    action: Optional[str] = None


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP request settings applied to every remote call."""

    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class ModeCacheConfig(BaseModel):
    """Login-mode cache settings."""

    ttl_seconds: int = Field(default=600, description="How long a resolved mode is trusted")
    persist: bool = Field(
        default=False,
        description="Share resolved modes between processes through the disk cache",
    )


class Settings(BaseModel):
    """Static configuration for the login flow.

    Persisted at ``~/.config/loginflow/config.json`` and layered with
    project config and environment variables by
    :func:`~loginflow.config.resolve_settings`.
    """

    model_config = ConfigDict(extra="allow")

    api_base_url: str = Field(default="http://localhost:8008", description="API root URL")
    base_path: str = Field(default="/", description="Application base href")
    user_key: str = Field(default="", description="Default credential key")
    user_secret: str = Field(default="", description="Default credential secret")
    company_id: str = Field(default="", description="Default tenant/company id")
    login_fallback: FallbackPolicy = Field(
        default=FallbackPolicy.SIMPLE,
        description="Mode to fall back to when the server cannot be reached",
    )
    header_prefix: str = Field(default="X-Loginflow", description="Prefix for custom headers")
    credentials_url: str = Field(
        default="credentials.json",
        description="Local credentials artifact (URL or file path), read in simple mode",
    )
    login_notice: Optional[str] = Field(
        default=None, description="One-time notice shown after each login"
    )
    server_down_message: str = Field(
        default="The server is currently unavailable. Please try again later.",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    mode_cache: ModeCacheConfig = Field(default_factory=ModeCacheConfig)

    def default_credentials(self) -> Credentials:
        """Return the statically configured credentials."""
        return Credentials(key=self.user_key, secret=self.user_secret, tenant_id=self.company_id)
