"""Tests for loginflow.auth.login -- password and simple-mode login exchanges."""

from __future__ import annotations

import base64

import httpx
import pytest

from conftest import FakeBackend, FakeRemote, json_response, request_json, unreachable
from loginflow.auth.login import (
    LoginService,
    filter_users,
    find_user,
    split_display_name,
)
from loginflow.auth.resolver import LoginModeResolver
from loginflow.client.async_client import ApiClient
from loginflow.exceptions import InvalidUsageError, LoginExchangeError
from loginflow.models import Credentials, FallbackPolicy, ModeCapabilities, User
from loginflow.session.state import SessionState


USERS = [{"id": "u1", "name": "Ada Lovelace"}, {"id": "u2", "name": "Alan Turing"}]


def _simple_resolver(session: SessionState) -> LoginModeResolver:
    async def _no_sleep(delay: float) -> None:
        return None

    return LoginModeResolver(FakeRemote(unreachable()), session, sleep=_no_sleep)


def _password_resolver(session: SessionState) -> LoginModeResolver:
    return LoginModeResolver(FakeRemote(ModeCapabilities(basic_enabled=True)), session)


@pytest.fixture
def simple_backend(backend: FakeBackend) -> FakeBackend:
    backend.on_data("users.get_all", {"users": USERS})
    backend.on_data("auth.create_user", {"id": "new-user"})
    backend.on(
        "auth.login",
        lambda request: httpx.Response(
            200, json={"data": {"token": "tok"}}, headers={"set-cookie": "sid=abc; Path=/"}
        ),
    )
    return backend


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


class TestNameHelpers:
    def test_split_two_words(self) -> None:
        assert split_display_name("Ada Lovelace") == ("Ada", "Lovelace")

    def test_split_single_word(self) -> None:
        assert split_display_name("Plato") == ("Plato", "Plato")

    def test_split_keeps_only_second_word(self) -> None:
        assert split_display_name("Johann Sebastian Bach") == ("Johann", "Sebastian")

    def test_find_user_ignores_case(self) -> None:
        users = [User.model_validate(u) for u in USERS]
        assert find_user(users, "ada lovelace").id == "u1"
        assert find_user(users, "Ada") is None

    def test_filter_users_substring(self) -> None:
        users = [User.model_validate(u) for u in USERS]
        assert [u.id for u in filter_users(users, "TUR")] == ["u2"]
        assert len(filter_users(users, "a")) == 2


# ------------------------------------------------------------------ #
# Simple login
# ------------------------------------------------------------------ #


class TestSimpleLogin:
    @pytest.mark.asyncio
    async def test_unknown_name_creates_user_then_logs_in(self, simple_backend) -> None:
        session = SessionState()
        creds = Credentials(key="k", secret="s", tenant_id="acme")
        async with ApiClient("http://api.test", credentials=creds, transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session)
            result = await service.simple_login("Grace Hopper")

        creates = simple_backend.calls("auth.create_user")
        assert len(creates) == 1
        payload = request_json(creates[0])
        assert payload["name"] == "Grace Hopper"
        assert payload["given_name"] == "Grace"
        assert payload["family_name"] == "Hopper"
        assert payload["company"] == "acme"
        assert payload["email"].endswith("@test.ai")

        logins = simple_backend.calls("auth.login")
        assert len(logins) == 1
        assert logins[0].headers["X-Loginflow-Impersonate-As"] == "new-user"
        assert result.user_id == "new-user"
        assert result.token == "tok"
        assert session.authenticated is True

    @pytest.mark.asyncio
    async def test_known_name_logs_in_without_creating(self, simple_backend) -> None:
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session)
            result = await service.simple_login("  alan turing ")

        assert simple_backend.calls("auth.create_user") == []
        assert result.user_id == "u2"

    @pytest.mark.asyncio
    async def test_supplied_user_list_skips_fetch(self, simple_backend) -> None:
        session = SessionState()
        users = [User(id="u9", name="Known")]
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session)
            await service.simple_login("Known", users)

        assert simple_backend.calls("users.get_all") == []
        assert simple_backend.calls("auth.login")[0].headers["X-Loginflow-Impersonate-As"] == "u9"

    @pytest.mark.asyncio
    async def test_custom_header_prefix(self, simple_backend) -> None:
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session, header_prefix="X-Acme")
            assert service.impersonation_header == "X-Acme-Impersonate-As"
            await service.simple_login("Ada Lovelace")

        assert simple_backend.calls("auth.login")[0].headers["X-Acme-Impersonate-As"] == "u1"

    @pytest.mark.asyncio
    async def test_rejected_outside_simple_mode(self, simple_backend) -> None:
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _password_resolver(session), session)
            with pytest.raises(InvalidUsageError, match="password"):
                await service.simple_login("Ada")

        assert simple_backend.calls("auth.login") == []

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, simple_backend) -> None:
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session)
            with pytest.raises(InvalidUsageError):
                await service.simple_login("   ")

    @pytest.mark.asyncio
    async def test_create_failure_is_login_error(self, simple_backend) -> None:
        simple_backend.on("auth.create_user", lambda r: json_response({"message": "nope"}, 500))
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _simple_resolver(session), session)
            with pytest.raises(LoginExchangeError, match="Cannot create user"):
                await service.simple_login("Nobody Known")

        assert simple_backend.calls("auth.login") == []
        assert session.authenticated is False


# ------------------------------------------------------------------ #
# Password login
# ------------------------------------------------------------------ #


class TestPasswordLogin:
    @pytest.mark.asyncio
    async def test_sends_basic_header_and_keeps_cookie(self, simple_backend) -> None:
        session = SessionState()
        creds = Credentials(key="internal", secret="x")
        async with ApiClient("http://api.test", credentials=creds, transport=simple_backend.transport) as client:
            service = LoginService(client, _password_resolver(session), session)
            result = await service.password_login("ada", "secret")

        request = simple_backend.calls("auth.login")[0]
        expected = base64.b64encode(b"ada:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert result.cookies == {"sid": "abc"}
        assert session.authenticated is True

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, backend) -> None:
        backend.on("auth.login", lambda r: json_response({"meta": {"result_msg": "bad password"}}, 401))
        session = SessionState()
        async with ApiClient("http://api.test", transport=backend.transport) as client:
            service = LoginService(client, _password_resolver(session), session)
            with pytest.raises(LoginExchangeError, match="bad password"):
                await service.password_login("ada", "wrong")

        assert len(backend.calls("auth.login")) == 1
        assert session.authenticated is False

    @pytest.mark.asyncio
    async def test_user_name_is_trimmed(self, simple_backend) -> None:
        session = SessionState()
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, _password_resolver(session), session)
            await service.password_login("  ada ", "secret")

        request = simple_backend.calls("auth.login")[0]
        expected = base64.b64encode(b"ada:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    async def test_refused_when_server_is_down(self, simple_backend) -> None:
        async def _no_sleep(delay: float) -> None:
            return None

        session = SessionState()
        resolver = LoginModeResolver(
            FakeRemote(unreachable()), session, policy=FallbackPolicy.ERROR, sleep=_no_sleep
        )
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, resolver, session)
            with pytest.raises(InvalidUsageError, match="error"):
                await service.password_login("ada", "secret")

        assert simple_backend.calls("auth.login") == []
        assert session.authenticated is False

    @pytest.mark.asyncio
    async def test_refused_in_sso_only_mode(self, simple_backend) -> None:
        session = SessionState()
        resolver = LoginModeResolver(
            FakeRemote(ModeCapabilities(sso_providers=frozenset({"okta"}))), session
        )
        async with ApiClient("http://api.test", transport=simple_backend.transport) as client:
            service = LoginService(client, resolver, session)
            with pytest.raises(InvalidUsageError, match="ssoOnly"):
                await service.password_login("ada", "secret")

        assert simple_backend.calls("auth.login") == []
