"""
Auth methods listing types.
"""

from __future__ import annotations

from pydantic import Field

from pocketbase_client.types.base import ApiModel


class AuthMethodPassword(ApiModel):
    enabled: bool = False
    identity_fields: list[str] = Field(default_factory=list)


class AuthMethodProvider(ApiModel):
    """OAuth2 provider as advertised by the auth-methods endpoint."""

    name: str = ""
    display_name: str = ""
    state: str = ""
    code_verifier: str = ""
    code_challenge: str = ""
    code_challenge_method: str = ""
    auth_url: str = Field(default="", alias="authURL")
    pkce: bool | None = None


class AuthMethodOAuth2(ApiModel):
    enabled: bool = False
    providers: list[AuthMethodProvider] = Field(default_factory=list)


class AuthMethodOTP(ApiModel):
    enabled: bool = False
    duration: int = 0


class AuthMethodMFA(ApiModel):
    enabled: bool = False
    duration: int = 0


class AuthMethodsList(ApiModel):
    """Auth methods enabled for an auth collection."""

    mfa: AuthMethodMFA = Field(default_factory=AuthMethodMFA)
    otp: AuthMethodOTP = Field(default_factory=AuthMethodOTP)
    password: AuthMethodPassword = Field(default_factory=AuthMethodPassword)
    oauth2: AuthMethodOAuth2 = Field(default_factory=AuthMethodOAuth2)


class OTPResponse(ApiModel):
    otp_id: str
