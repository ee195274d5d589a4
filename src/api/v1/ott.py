"""
Lightweight (OTT) API routes for machine clients.

Responses always use the {code, msg, body} envelope with the fixed
numeric codes below; internal field names never reach the client.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi import Response as HttpResponse

from src.api.dependencies import Services, get_services, get_session, save_session
from src.api.models import OTTResponse, OTTSendVerificationCodeRequest, OTTSignupRequest
from src.domain.destination import CHANNEL_EMAIL, CHANNEL_PHONE
from src.domain.exceptions import (
    DispatchFailed,
    InvalidDestination,
    ProviderUnavailable,
    RegistrationError,
)
from src.domain.models import SignupForm
from src.domain.session import SessionContext
from src.domain.signup import (
    DIRECTORY_OWNER,
    OTT_CODE_INVALID_EMAIL,
    OTT_CODE_INVALID_PARAM,
    OTT_CODE_INVALID_PHONE,
    OTT_CODE_OK,
    OTT_CODE_SEND_VERIFICATION_CODE_FAILED,
    OTT_CODE_SERVICE_EXCEPTION,
    OTT_CODE_SERVICE_UNAVAILABLE,
    lightweight_variant,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ott"])

OTT_TYPE_PHONE = 0
OTT_TYPE_EMAIL = 1

_CHANNELS = {OTT_TYPE_PHONE: CHANNEL_PHONE, OTT_TYPE_EMAIL: CHANNEL_EMAIL}


@router.post("/signup", response_model=OTTResponse, summary="Sign up a machine client account")
def ott_signup(
    request_data: OTTSignupRequest,
    request: Request,
    response: HttpResponse,
    services: Services = Depends(get_services),
    session: SessionContext = Depends(get_session),
) -> OTTResponse:
    variant = lightweight_variant(services.settings.ott_organization)
    channel = _CHANNELS.get(request_data.type, "")

    form = SignupForm(
        application=request_data.app_id,
        password=request_data.pwd,
        invitation_code=request_data.invitation_code or "",
        client_ip=request.client.host if request.client else "",
        request_uri=str(request.url.path),
    )
    if channel == CHANNEL_EMAIL:
        form.email = request_data.identity
        form.email_code = request_data.verification_code
    elif channel == CHANNEL_PHONE:
        form.phone = request_data.identity
        form.phone_prefix = request_data.prefix or ""
        form.phone_code = request_data.verification_code
        form.region = request_data.prefix or ""

    try:
        user_id = services.signup.signup(form, session, variant, channel)
    except RegistrationError as e:
        return OTTResponse(code=variant.code_for(e), msg=e.message)

    save_session(request, response, session)
    return OTTResponse(code=OTT_CODE_OK, body={"user_id": user_id})


@router.post(
    "/send-verification-code",
    response_model=OTTResponse,
    summary="Send a verification code to a machine client",
)
def ott_send_verification_code(
    request_data: OTTSendVerificationCodeRequest,
    services: Services = Depends(get_services),
) -> OTTResponse:
    channel = _CHANNELS.get(request_data.type)
    if channel is None:
        return OTTResponse(code=OTT_CODE_INVALID_PARAM, msg="Invalid dest type")

    application = services.directory.get_application(f"{DIRECTORY_OWNER}/{request_data.app_id}")
    if application is None:
        return OTTResponse(code=OTT_CODE_INVALID_PARAM, msg="Invalid app_id")

    try:
        services.accounts.send_lightweight_code(channel, request_data.dest, request_data.prefix)
    except InvalidDestination as e:
        code = OTT_CODE_INVALID_EMAIL if e.channel == CHANNEL_EMAIL else OTT_CODE_INVALID_PHONE
        return OTTResponse(code=code, msg=e.message)
    except ProviderUnavailable as e:
        return OTTResponse(code=OTT_CODE_SERVICE_UNAVAILABLE, msg=e.message)
    except DispatchFailed as e:
        return OTTResponse(code=OTT_CODE_SEND_VERIFICATION_CODE_FAILED, msg=e.message)
    except RegistrationError as e:
        return OTTResponse(code=OTT_CODE_SERVICE_EXCEPTION, msg=e.message)

    return OTTResponse(code=OTT_CODE_OK, body={"timer": services.settings.send_code_cooldown_seconds})
