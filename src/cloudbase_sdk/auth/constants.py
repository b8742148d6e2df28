from __future__ import annotations

from enum import StrEnum


class LoginType(StrEnum):
    """Credential mechanism reported to the backend and cached per env."""

    ANONYMOUS = "ANONYMOUS"
    WECHAT = "WECHAT"
    WECHAT_PUBLIC = "WECHAT-PUBLIC"
    WECHAT_OPEN = "WECHAT-OPEN"
    CUSTOM = "CUSTOM"
    EMAIL = "EMAIL"
    USERNAME = "USERNAME"
    NULL = "NULL"


class ProviderState(StrEnum):
    """Progress of a redirect sign-in."""

    IDLE = "idle"
    REDIRECTING = "redirecting"
    CODE_RECEIVED = "code_received"
    EXCHANGING = "exchanging"
    SESSION_ESTABLISHED = "session_established"
    FAILED = "failed"


# OAuth scope that selects the open-platform (QR code) login
OPEN_PLATFORM_SCOPE = "snsapi_login"
# Silent scope: the backend cannot read the WeChat profile with it
BASE_SCOPE = "snsapi_base"

WEIXIN_OPEN_AUTHORIZE_URL = "https://open.weixin.qq.com/connect/qrconnect"
WEIXIN_PUBLIC_AUTHORIZE_URL = "https://open.weixin.qq.com/connect/oauth2/authorize"
WEIXIN_REDIRECT_FRAGMENT = "wechat_redirect"
