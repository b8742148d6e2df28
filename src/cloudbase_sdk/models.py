"""Pydantic models for the CloudBase SDK.

Frozen models for everything that crosses the backend boundary or is handed
back to callers.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .constants import SDK_NAME


class SDKWarning(BaseModel):
    """Non-fatal outcome returned by operations that complete with a warning."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    deprecated: bool = False

    def __str__(self) -> str:
        return f"[{SDK_NAME}][{self.code}]:{self.message}"


class JwtResponse(BaseModel):
    """Body of the ``auth.getJwt`` action."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    code: str | None = None
    message: str | None = None
    refresh_token: str | None = None
    access_token: str | None = None
    # Relative lifetime in milliseconds
    access_token_expire: int | None = None


class AccessTokenResponse(BaseModel):
    """Body of the ``auth.fetchAccessTokenWithRefreshToken`` action."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    code: str | None = None
    message: str | None = None
    access_token: str | None = None
    access_token_expire: int | None = None


class TokenExchangeResult(BaseModel):
    """Tokens obtained from an authorization-code exchange."""

    model_config = ConfigDict(frozen=True)

    refresh_token: str = Field(..., min_length=1)
    access_token: str | None = None
    access_token_expire: int | None = None
    # Epoch ms at which the backend answer was received
    received_at: int


class Credential(BaseModel):
    """Refresh/access token pair of a login state."""

    model_config = ConfigDict(frozen=True)

    refresh_token: str
    access_token: str | None = None


class UserInfo(BaseModel):
    """Cached end-user profile."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    uid: str | None = None
    login_type: str | None = Field(default=None, alias="loginType")
    openid: str | None = None
    wx_openid: str | None = Field(default=None, alias="wxOpenId")
    wx_public_id: str | None = Field(default=None, alias="wxPublicId")
    union_id: str | None = Field(default=None, alias="unionId")
    nick_name: str | None = Field(default=None, alias="nickName")
    gender: str | None = None
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    email: str | None = None
    has_password: bool | None = Field(default=None, alias="hasPassword")

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> UserInfo:
        return cls.model_validate(payload or {})
