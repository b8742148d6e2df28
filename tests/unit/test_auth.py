"""Unit tests for the Auth facade."""

import asyncio

import pytest

from cloudbase_sdk.adapters.platform import PlatformInfo
from cloudbase_sdk.adapters.web import CallbackLocation
from cloudbase_sdk.app import Cloudbase
from cloudbase_sdk.auth import Auth, LoginState, get_auth_by_env_id
from cloudbase_sdk.auth.constants import LoginType, ProviderState
from cloudbase_sdk.errors import OperationFailError
from cloudbase_sdk.events import EventBus, Events

from tests.fakes import ENV, USER_INFO_RESPONSE, FakeTransport, jwt_response


def sign_in(app: Cloudbase, transport: FakeTransport, location: CallbackLocation) -> LoginState:
    transport.responses.update(
        {
            "auth.getJwt": jwt_response(access_token="access-1", access_token_expire=7_200_000),
            "auth.getUserInfo": USER_INFO_RESPONSE,
        }
    )
    location.set_href("https://app.example.com/login?code=wx-code&state=weixin")
    provider = app.auth().weixin_auth_provider("wx-app", "snsapi_login")
    login_state = asyncio.run(provider.get_redirect_result())
    assert provider.state == ProviderState.SESSION_ESTABLISHED
    return login_state


class TestLoginStateQueries:
    def test_signed_out(self, app: Cloudbase) -> None:
        auth = app.auth()

        assert auth.has_login_state() is None
        assert asyncio.run(auth.get_login_state()) is None
        assert auth.current_user is None

    def test_signed_in_through_weixin(
        self, app: Cloudbase, transport: FakeTransport, location: CallbackLocation
    ) -> None:
        sign_in(app, transport, location)
        auth = app.auth()

        state = auth.has_login_state()
        assert state is not None
        assert state.login_type == LoginType.WECHAT
        assert state.is_weixin_auth
        assert auth.current_user.uid == "user-1"
        assert asyncio.run(auth.get_login_state()) is not None

    def test_get_user_info_refreshes_cache(
        self, app: Cloudbase, transport: FakeTransport, location: CallbackLocation
    ) -> None:
        sign_in(app, transport, location)
        transport.responses["auth.getUserInfo"] = {"data": {"uid": "user-1", "nickName": "renamed"}}

        user = asyncio.run(app.auth().get_user_info())

        assert user.nick_name == "renamed"
        assert app.auth().current_user.nick_name == "renamed"


class TestProviderWiring:
    def test_provider_navigates_adapter_location(self, app: Cloudbase, location: CallbackLocation) -> None:
        provider = app.auth().weixin_auth_provider("wx-app", "snsapi_base", "custom-state")

        asyncio.run(provider.sign_in_with_redirect())

        assert location.last_navigation.startswith("https://open.weixin.qq.com/connect/oauth2/authorize?")
        assert "state=custom-state" in location.last_navigation


class TestLoginTypeTracking:
    def test_other_env_is_ignored(self, app: Cloudbase, bus: EventBus) -> None:
        auth = app.auth()

        bus.fire(Events.LOGIN_TYPE_CHANGED, {"env": "other-env", "login_type": LoginType.WECHAT})

        assert app.cache.get_store(app.cache.keys.login_type_key) is None
        bus.fire(Events.LOGIN_TYPE_CHANGED, {"env": ENV, "login_type": LoginType.CUSTOM})
        assert app.cache.get_store(app.cache.keys.login_type_key) == "CUSTOM"
        auth.close()

    def test_close_unsubscribes(self, app: Cloudbase, bus: EventBus) -> None:
        auth = Auth(app, bus=bus)
        before = bus.listener_count(Events.LOGIN_TYPE_CHANGED)

        auth.close()

        assert bus.listener_count(Events.LOGIN_TYPE_CHANGED) == before - 1

    def test_reprovisioned_env_keeps_one_follower(self, platform: PlatformInfo, bus: EventBus) -> None:
        first = Cloudbase(platform=platform, bus=bus).init(env=ENV).auth()
        followers = bus.listener_count(Events.LOGIN_TYPE_CHANGED)

        second = Cloudbase(platform=platform, bus=bus).init(env=ENV).auth()

        assert second is not first
        assert bus.listener_count(Events.LOGIN_TYPE_CHANGED) == followers
        assert get_auth_by_env_id(ENV) is second
        first.close()
        assert get_auth_by_env_id(ENV) is second
        second.close()
        assert get_auth_by_env_id(ENV) is None

    def test_login_state_callback(
        self, app: Cloudbase, transport: FakeTransport, location: CallbackLocation
    ) -> None:
        seen: list[LoginState | None] = []
        app.auth().on_login_state_changed(seen.append)

        sign_in(app, transport, location)

        assert len(seen) == 1
        assert seen[0] is not None
        assert seen[0].credential.refresh_token == "refresh-1"


class TestSignOut:
    def test_sign_out_clears_session(
        self, app: Cloudbase, transport: FakeTransport, location: CallbackLocation
    ) -> None:
        sign_in(app, transport, location)
        transport.responses["auth.logout"] = {"data": {}}
        types: list[object] = []
        app.auth().on_login_type_changed(lambda e: types.append(e.data["login_type"]))

        body = asyncio.run(app.auth().sign_out())

        keys = app.cache.keys
        assert body == {"data": {}}
        assert transport.payload("auth.logout")["refresh_token"] == "refresh-1"
        assert app.cache.get_store(keys.refresh_token_key) is None
        assert app.cache.get_store(keys.user_info_key) is None
        assert app.cache.get_store(keys.login_type_key) == "NULL"
        assert types == [LoginType.NULL]
        assert app.auth().has_login_state() is None

    def test_sign_out_when_signed_out(self, app: Cloudbase, transport: FakeTransport) -> None:
        assert asyncio.run(app.auth().sign_out()) is None
        assert transport.calls == []

    def test_backend_rejection_still_clears_session(
        self, app: Cloudbase, transport: FakeTransport, location: CallbackLocation
    ) -> None:
        sign_in(app, transport, location)
        transport.responses["auth.logout"] = {"code": "INVALID_REFRESH_TOKEN"}

        with pytest.raises(OperationFailError):
            asyncio.run(app.auth().sign_out())

        assert app.auth().has_login_state() is None
