"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema
generation. Standard-protocol models use the camelCase field names web
clients send; lightweight (OTT) models use snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Request model for standard (web) signup."""

    model_config = ConfigDict(populate_by_name=True)

    application: str
    organization: str
    username: str = ""
    password: str = ""
    name: str = ""
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    email: str = ""
    phone: str = ""
    phone_prefix: str = Field("", alias="phonePrefix")
    affiliation: str = ""
    id_card: str = Field("", alias="idCard")
    region: str = ""
    email_code: str = Field("", alias="emailCode")
    phone_code: str = Field("", alias="phoneCode")


class Response(BaseModel):
    """Standard response envelope."""

    status: str
    msg: str = ""
    sub: str = ""
    name: str = ""
    data: Any = None
    data2: Any = None


class HumanCheckResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    app_key: str = Field("", alias="appKey")
    scene: str = ""
    captcha_id: str = Field("", alias="captchaId")
    captcha_image: str = Field("", alias="captchaImage")


class OTTSignupRequest(BaseModel):
    """Request model for lightweight signup."""

    app_id: str = Field(..., min_length=1)
    type: int = Field(..., description="Register type, 0: phone, 1: email")
    prefix: str | None = Field(None, description="Phone prefix when type is 0")
    identity: str = Field(..., description="Phone number or email address")
    verification_code: str = ""
    pwd: str = ""
    invitation_code: str | None = None


class OTTSendVerificationCodeRequest(BaseModel):
    """Request model for lightweight send-verification-code."""

    app_id: str = Field(..., min_length=1)
    purpose: int = Field(0, description="0: register, 1: login, 2: reset password")
    type: int = Field(..., description="0: phone, 1: email")
    prefix: str | None = None
    dest: str


class OTTResponse(BaseModel):
    """Lightweight response envelope with a fixed numeric code."""

    code: int
    msg: str = ""
    body: Any = None
