"""Shared test fixtures for loginflow.

Provides an isolated config environment, a fake capabilities source for the
login-mode resolver, a recording notifier, and a scripted HTTP backend
served through :class:`httpx.MockTransport`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from loginflow.exceptions import ConnectionError_
from loginflow.models import ModeCapabilities, Notification, Settings
from loginflow.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and package logger after every test.

    The CLI callback installs its own handler on the ``loginflow`` logger
    and stops propagation, which would hide records from ``caplog``.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("loginflow")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at *tmp_path*, clears every
    ``LOGINFLOW_*`` variable, and changes into *tmp_path* so no project
    config leaks in.
    """
    monkeypatch.setattr("loginflow.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for field in (
        "API_BASE_URL",
        "BASE_PATH",
        "USER_KEY",
        "USER_SECRET",
        "COMPANY_ID",
        "LOGIN_FALLBACK",
        "HEADER_PREFIX",
        "CREDENTIALS_URL",
        "LOGIN_NOTICE",
    ):
        monkeypatch.delenv(f"LOGINFLOW_{field}", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Resolver doubles
# ---------------------------------------------------------------------------


class FakeRemote:
    """Capabilities source returning scripted answers.

    Each entry of *script* is either a :class:`ModeCapabilities` or an
    exception instance to raise. The last entry repeats once the script
    is exhausted.
    """

    def __init__(self, *script: Any, gate: Optional[Any] = None) -> None:
        self.script = list(script) or [ModeCapabilities(basic_enabled=True)]
        self.calls = 0
        self.gate = gate

    async def get_capabilities(self) -> ModeCapabilities:
        index = min(self.calls, len(self.script) - 1)
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.script[index]
        if isinstance(result, BaseException):
            raise result
        return result


def unreachable() -> ConnectionError_:
    return ConnectionError_("connection refused")


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Backoff sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingNotifier:
    """Notifier that keeps every notification it receives."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ---------------------------------------------------------------------------
# Scripted HTTP backend
# ---------------------------------------------------------------------------


Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """A minimal RPC backend for :class:`httpx.MockTransport`.

    Endpoints are registered with :meth:`on`; every request is recorded in
    :attr:`requests`. Unregistered endpoints answer 404.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def on(self, endpoint: str, handler: Handler) -> None:
        self.handlers[endpoint] = handler

    def on_data(self, endpoint: str, data: Any, status_code: int = 200) -> None:
        self.on(endpoint, lambda request: json_response({"data": data}, status_code))

    def calls(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/{endpoint}"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(request.url.path.lstrip("/"))
        if handler is None:
            return json_response({"meta": {"result_msg": "no such endpoint"}}, 404)
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, json=data)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at the fake backend with default credentials set."""
    return Settings(
        api_base_url="http://api.test",
        user_key="env-key",
        user_secret="env-secret",
        company_id="acme",
        credentials_url=str(tmp_path / "credentials.json"),
    )
