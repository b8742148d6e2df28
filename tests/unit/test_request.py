"""Unit tests for the request channel."""

import asyncio

import jwt
import pytest

from cloudbase_sdk.adapters.platform import Runtime
from cloudbase_sdk.config import AppSecret
from cloudbase_sdk.errors import InvalidParamsError, InvalidResponseError, OperationFailError
from cloudbase_sdk.events import Events
from cloudbase_sdk.request import get_request_by_env_id, init_request

from tests.fakes import ENV, NOW_MS, FakeTransport, ProviderHarness

APP_KEY = "app-access-key-0123456789abcdefghij"


def signed_in(responses: dict | None = None, **kwargs) -> ProviderHarness:
    harness = ProviderHarness(responses=responses, **kwargs)
    harness.cache.set_store(harness.cache.keys.refresh_token_key, "refresh-1")
    return harness


def with_valid_token(harness: ProviderHarness, token: str = "cached-access") -> ProviderHarness:
    keys = harness.cache.keys
    harness.cache.set_store(keys.access_token_key, token)
    harness.cache.set_store(keys.access_token_expire_key, NOW_MS + 60_000)
    return harness


class TestSend:
    """Tests for payload and header shaping."""

    def test_payload_carries_protocol_fields_and_token(self) -> None:
        harness = with_valid_token(signed_in({"database.query": {"data": [1]}}))

        body = asyncio.run(harness.request.send("database.query", {"collection": "todos"}))

        assert body == {"data": [1]}
        call = harness.transport.calls[0]
        assert call["url"].endswith(f"?env={ENV}")
        assert call["json"] == {
            "action": "database.query",
            "dataVersion": "2020-01-10",
            "env": ENV,
            "collection": "todos",
            "access_token": "cached-access",
        }
        assert call["headers"]["X-SDK-Version"].startswith("@cloudbase/python-sdk/")
        assert "X-TCB-App-Source" not in call["headers"]

    def test_sign_in_actions_carry_no_token(self) -> None:
        harness = ProviderHarness(responses={"auth.getJwt": {}})

        asyncio.run(harness.request.send("auth.getJwt", {"appid": "wx"}))

        assert "access_token" not in harness.transport.payload("auth.getJwt")

    def test_rejected_access_token_is_minted_again_once(self) -> None:
        answers = iter([{"code": "ACCESS_TOKEN_EXPIRED"}, {"data": "ok"}])
        harness = with_valid_token(signed_in({"functions.invoke": lambda payload: next(answers)}), "stale")

        body = asyncio.run(harness.request.send("functions.invoke"))

        assert body == {"data": "ok"}
        assert harness.transport.actions == [
            "functions.invoke",
            "auth.fetchAccessTokenWithRefreshToken",
            "functions.invoke",
        ]
        assert harness.transport.calls[-1]["json"]["access_token"] == "minted-access"

    def test_second_rejection_is_returned_to_caller(self) -> None:
        harness = with_valid_token(signed_in({"functions.invoke": {"code": "CHECK_LOGIN_FAILED"}}))

        body = asyncio.run(harness.request.send("functions.invoke"))

        assert body == {"code": "CHECK_LOGIN_FAILED"}
        assert harness.transport.actions.count("functions.invoke") == 2


class TestNativeHeaders:
    """Tests for the signed app identity header."""

    def test_app_source_header_is_signed(self) -> None:
        harness = ProviderHarness(
            runtime=Runtime.NATIVE,
            responses={"auth.getJwt": {}},
            app_secret=AppSecret(app_access_key_id="key-id", app_access_key=APP_KEY),
            app_sign="com.example.app",
        )

        asyncio.run(harness.request.send("auth.getJwt"))

        header = harness.transport.calls[0]["headers"]["X-TCB-App-Source"]
        fields = dict(part.split("=", 1) for part in header.split(";"))
        assert fields["timestamp"] == str(NOW_MS)
        assert fields["appAccessKeyId"] == "key-id"
        assert fields["appSign"] == "com.example.app"
        claims = jwt.decode(fields["sign"], APP_KEY, algorithms=["HS256"])
        assert claims["appSign"] == "com.example.app"
        assert claims["timestamp"] == NOW_MS

    def test_missing_app_identity_fails(self) -> None:
        harness = ProviderHarness(runtime=Runtime.NATIVE, responses={"auth.getJwt": {}})

        with pytest.raises(InvalidParamsError):
            asyncio.run(harness.request.send("auth.getJwt"))

        assert harness.transport.calls == []


class TestAccessTokenRefresh:
    """Tests for minting access tokens from the refresh token."""

    def test_minted_token_is_cached_with_absolute_expiry(self) -> None:
        harness = signed_in()
        refreshed: list[str] = []
        harness.bus.on(Events.ACCESS_TOKEN_REFRESHED, lambda e: refreshed.append(e.name))

        token = asyncio.run(harness.request.get_access_token())

        keys = harness.cache.keys
        assert token == "minted-access"
        assert harness.cache.get_store(keys.access_token_expire_key) == NOW_MS + 7_200_000
        assert harness.transport.payload("auth.fetchAccessTokenWithRefreshToken")["refresh_token"] == "refresh-1"
        assert refreshed == ["accessTokenRefreshed"]

    def test_valid_cached_token_needs_no_call(self) -> None:
        harness = with_valid_token(signed_in())

        assert asyncio.run(harness.request.get_access_token()) == "cached-access"
        assert harness.transport.calls == []

    def test_expired_token_is_replaced(self) -> None:
        harness = signed_in()
        keys = harness.cache.keys
        harness.cache.set_store(keys.access_token_key, "old")
        harness.cache.set_store(keys.access_token_expire_key, NOW_MS)

        assert asyncio.run(harness.request.get_access_token()) == "minted-access"

    def test_concurrent_callers_share_one_refresh(self) -> None:
        harness = signed_in()

        async def both() -> list[str]:
            return await asyncio.gather(
                harness.request.get_access_token(),
                harness.request.get_access_token(),
            )

        assert asyncio.run(both()) == ["minted-access", "minted-access"]
        assert harness.transport.actions == ["auth.fetchAccessTokenWithRefreshToken"]

    def test_not_logged_in(self) -> None:
        harness = ProviderHarness()

        with pytest.raises(OperationFailError, match="not login"):
            asyncio.run(harness.request.refresh_access_token())

        assert harness.transport.calls == []

    def test_rejected_refresh_token_drops_session(self) -> None:
        harness = with_valid_token(
            signed_in({"auth.fetchAccessTokenWithRefreshToken": {"code": "REFRESH_TOKEN_EXPIRED"}})
        )
        expired: list[str] = []
        harness.bus.on(Events.LOGIN_STATE_EXPIRED, lambda e: expired.append(e.name))

        with pytest.raises(OperationFailError) as exc_info:
            asyncio.run(harness.request.refresh_access_token())

        keys = harness.cache.keys
        assert exc_info.value.backend_code == "REFRESH_TOKEN_EXPIRED"
        assert harness.cache.get_store(keys.refresh_token_key) is None
        assert harness.cache.get_store(keys.access_token_key) is None
        assert expired == ["loginStateExpire"]

    def test_other_refresh_failure_keeps_session(self) -> None:
        harness = signed_in({"auth.fetchAccessTokenWithRefreshToken": {"code": "SERVER_BUSY"}})

        with pytest.raises(OperationFailError):
            asyncio.run(harness.request.refresh_access_token())

        assert harness.cache.get_store(harness.cache.keys.refresh_token_key) == "refresh-1"

    def test_missing_access_token(self) -> None:
        harness = signed_in({"auth.fetchAccessTokenWithRefreshToken": {"access_token_expire": 10}})

        with pytest.raises(InvalidResponseError):
            asyncio.run(harness.request.refresh_access_token())

    def test_malformed_body_is_invalid_response(self) -> None:
        harness = signed_in(
            {"auth.fetchAccessTokenWithRefreshToken": {"access_token": "a", "access_token_expire": "soon"}}
        )

        with pytest.raises(InvalidResponseError) as exc_info:
            asyncio.run(harness.request.refresh_access_token())

        assert exc_info.value.code == "INVALID_RESPONSE"
        assert "access_token_expire" in exc_info.value.message
        assert harness.cache.get_store(harness.cache.keys.access_token_key) is None


class TestRegistry:
    """Tests for the per-env request registry."""

    def test_init_request_replaces_previous_channel(self) -> None:
        harness = ProviderHarness()
        first = init_request("registry-env", FakeTransport(), lambda: harness.cache)
        second = init_request("registry-env", FakeTransport(), lambda: harness.cache)

        assert first is not second
        assert get_request_by_env_id("registry-env") is second
        assert get_request_by_env_id("unknown-env") is None
