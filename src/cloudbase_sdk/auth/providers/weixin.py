"""WeChat OAuth redirect provider.

The flow spans two process lifetimes: ``sign_in_with_redirect`` navigates
away, and ``get_redirect_result`` runs on whatever page the user lands on
afterwards. Nothing is carried in memory between the two; the authorization
code is read back from the location and the session from the cache.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ...adapters.platform import Runtime
from ...core.errors import ErrorFactory
from ...errors import CloudbaseError, ErrorCode, InvalidParamsError, UnknownError
from ...events import EventBus, Events, event_bus
from ...models import JwtResponse, SDKWarning, TokenExchangeResult
from ...request import now_ms
from ...telemetry import get_logger, print_warn, trace_operation
from ...urls import build_url, get_hash, get_query, remove_param
from ..base import AuthProviderConfig, classify_login_type, refresh_user_info
from ..constants import (
    BASE_SCOPE,
    OPEN_PLATFORM_SCOPE,
    WEIXIN_OPEN_AUTHORIZE_URL,
    WEIXIN_PUBLIC_AUTHORIZE_URL,
    WEIXIN_REDIRECT_FRAGMENT,
    LoginType,
    ProviderState,
)
from ..login_state import LoginState

DEFAULT_STATE = "weixin"


def get_weixin_code(url: str) -> str | None:
    """Authorization code from the query string or the fragment of ``url``."""
    return get_query("code", url) or get_hash("code", url)


class WeixinAuthProvider:
    """Sign in through WeChat public-account or open-platform OAuth."""

    def __init__(
        self,
        config: AuthProviderConfig,
        appid: str,
        scope: str,
        state: str | None = None,
        *,
        bus: EventBus = event_bus,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config
        self._cache = config.cache
        self._request = config.request
        self._location = config.location
        self._runtime = config.runtime
        self._appid = appid
        self._scope = scope
        self._oauth_state = state or DEFAULT_STATE
        self._bus = bus
        self._clock = clock
        self._logger = get_logger()
        self.state = ProviderState.IDLE

    @property
    def login_type(self) -> LoginType:
        return classify_login_type(self._scope)

    @property
    def hybrid_miniapp(self) -> str:
        return "1" if self._runtime == Runtime.WX_MP else "0"

    async def sign_in(self) -> SDKWarning:
        """Deprecated; use ``sign_in_with_redirect``. Performs no I/O."""
        message = "API signIn has been deprecated, please use signInWithRedirect instead"
        warnings.warn(message, DeprecationWarning, stacklevel=2)
        return print_warn(ErrorCode.OPERATION_FAIL, message, deprecated=True)

    async def sign_in_with_redirect(self) -> None:
        """Navigate to the WeChat authorization page.

        Raises:
            InvalidParamsError: The location has no address to return to.
            UnknownError: The navigation itself failed.
        """
        current_url = self._location.href
        if not current_url:
            raise InvalidParamsError("current location is empty, cannot build redirect_uri", field="href")
        url = self.build_authorize_url(current_url)
        self.state = ProviderState.REDIRECTING
        self._logger.debug("Redirecting to WeChat authorization", env=self._config.env, scope=self._scope)
        try:
            self._location.assign(url)
        except Exception as e:
            self.state = ProviderState.FAILED
            raise UnknownError(str(e), cause=e) from e

    def build_authorize_url(self, current_url: str) -> str:
        """Authorization URL returning to ``current_url`` minus stale ``code``/``state``."""
        return_url = remove_param("state", remove_param("code", current_url))
        host = WEIXIN_OPEN_AUTHORIZE_URL if self._scope == OPEN_PLATFORM_SCOPE else WEIXIN_PUBLIC_AUTHORIZE_URL
        return build_url(
            host,
            {
                "appid": self._appid,
                "redirect_uri": return_url,
                "response_type": "code",
                "scope": self._scope,
                "state": self._oauth_state,
            },
            fragment=WEIXIN_REDIRECT_FRAGMENT,
        )

    async def get_redirect_result(
        self,
        *,
        with_union_id: bool = False,
        sync_user_info: bool = False,
        create_user: bool = True,
    ) -> LoginState | None:
        """Finish a redirect sign-in on the page WeChat returned to.

        Returns:
            The reconciled login state, or ``None`` when the current location
            carries no authorization code (no redirect is being completed).
            Failures after the session is stored, such as a rejected profile
            fetch or access-token mint, are kept on ``login_state.error``.

        Raises:
            OperationFailError: The backend rejected the code.
            InvalidResponseError: The backend returned no refresh token or a malformed body.
            NetworkError: Transport failure (``RequestTimeoutError`` on timeout).
        """
        code = get_weixin_code(self._location.href)
        if not code:
            self.state = ProviderState.IDLE
            return None
        self.state = ProviderState.CODE_RECEIVED
        return await self._sign_in_with_code(
            code,
            with_union_id=with_union_id,
            sync_user_info=sync_user_info,
            create_user=create_user,
        )

    async def get_link_redirect_result(self, *, with_union_id: bool = False) -> dict[str, Any] | None:
        """Link the returned WeChat identity to the current user.

        Does not touch the cache or fire events.
        """
        code = get_weixin_code(self._location.href)
        if not code:
            return None
        action = "auth.linkWithWeixinCode"
        body = await self._request.send(
            action,
            {
                "payload": {
                    "appid": self._appid,
                    "loginType": self.login_type.value,
                    "code": code,
                    "hybridMiniapp": self.hybrid_miniapp,
                    "withUnionId": with_union_id,
                }
            },
        )
        if body.get("code"):
            raise ErrorFactory.backend_rejection(
                action,
                body["code"],
                message=body.get("message"),
                summary="failed link via wechat",
            )
        return body

    async def _sign_in_with_code(
        self,
        code: str,
        *,
        with_union_id: bool,
        sync_user_info: bool,
        create_user: bool,
    ) -> LoginState:
        self.state = ProviderState.EXCHANGING
        try:
            login_state = await self._establish_session(
                code,
                with_union_id=with_union_id,
                sync_user_info=sync_user_info,
                create_user=create_user,
            )
        except CloudbaseError:
            self.state = ProviderState.FAILED
            raise
        established = login_state.is_logged_in and login_state.error is None
        self.state = ProviderState.SESSION_ESTABLISHED if established else ProviderState.FAILED
        return login_state

    async def _establish_session(
        self,
        code: str,
        *,
        with_union_id: bool,
        sync_user_info: bool,
        create_user: bool,
    ) -> LoginState:
        tokens = await self._get_refresh_token_by_code(
            code,
            with_union_id=with_union_id,
            sync_user_info=sync_user_info,
            create_user=create_user,
        )
        keys = self._cache.keys
        await self._cache.set_store_async(keys.refresh_token_key, tokens.refresh_token)
        if tokens.access_token:
            await self._cache.set_store_async(keys.access_token_key, tokens.access_token)
        if tokens.access_token_expire:
            await self._cache.set_store_async(
                keys.access_token_expire_key,
                tokens.access_token_expire + tokens.received_at,
            )
        self._bus.fire(Events.LOGIN_STATE_CHANGED)
        self._bus.fire(
            Events.LOGIN_TYPE_CHANGED,
            {
                "env": self._config.env,
                "login_type": LoginType.WECHAT,
                "persistence": self._config.persistence,
            },
        )

        # The session is announced; from here on failures land on the login state
        profile_error: CloudbaseError | None = None
        try:
            await refresh_user_info(self._cache, self._request)
        except CloudbaseError as e:
            profile_error = e
            self._logger.warning(
                "User info refresh failed after sign-in",
                env=self._config.env,
                code=e.code,
                backend_code=e.backend_code,
            )
        login_state = LoginState(
            env_id=self._config.env,
            cache=self._cache,
            request=self._request,
            clock=self._clock,
        )
        await login_state.check_local_state_async()
        if login_state.error is None and profile_error is not None:
            login_state.error = profile_error
        return login_state

    async def _get_refresh_token_by_code(
        self,
        code: str,
        *,
        with_union_id: bool,
        sync_user_info: bool,
        create_user: bool,
    ) -> TokenExchangeResult:
        action = "auth.getJwt"
        # Only snsapi_userinfo and snsapi_login grant access to the WeChat profile
        sync = False if self._scope == BASE_SCOPE else sync_user_info
        with trace_operation(
            "weixin.exchange_code",
            attributes={"cloudbase.env": self._config.env, "weixin.scope": self._scope},
        ):
            body = await self._request.send(
                action,
                {
                    "appid": self._appid,
                    "loginType": self.login_type.value,
                    "hybridMiniapp": self.hybrid_miniapp,
                    "syncUserInfo": sync,
                    "loginCredential": code,
                    "withUnionId": with_union_id,
                    "createUser": create_user,
                },
            )
        received_at = self._clock()
        try:
            response = JwtResponse.model_validate(body)
        except ValidationError as e:
            raise ErrorFactory.malformed_response(action, e) from e
        if response.code:
            raise ErrorFactory.backend_rejection(
                action,
                response.code,
                message=response.message,
                summary="failed login via wechat",
            )
        if not response.refresh_token:
            raise ErrorFactory.missing_field(action, "refreshToken")
        return TokenExchangeResult(
            refresh_token=response.refresh_token,
            access_token=response.access_token,
            access_token_expire=response.access_token_expire,
            received_at=received_at,
        )
