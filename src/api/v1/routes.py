"""
Standard (web) API routes.

Every endpoint answers HTTP 200 with the {status, msg, sub, name, data,
data2} envelope; failures carry status "error" and a human-readable msg.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, Request
from fastapi import Response as HttpResponse

from src.api.dependencies import (
    get_account_service,
    get_human_check_gate,
    get_session,
    get_signup_service,
    save_session,
)
from src.api.models import HumanCheckResponse, Response, SignupRequest
from src.domain.account import AccountService, SendCodeRequest
from src.domain.exceptions import AlreadySignedIn, RegistrationError
from src.domain.human_check import HumanCheckGate
from src.domain.models import SignupForm
from src.domain.session import SessionContext
from src.domain.signup import STANDARD, SignupService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["standard"])


def ok(data=None, data2=None) -> Response:
    return Response(status="ok", data=data, data2=data2)


def error(exc: RegistrationError, data=None) -> Response:
    return Response(status="error", msg=exc.message, data=data)


@router.post(
    "/signup",
    response_model=Response,
    summary="Sign up a new account",
    description="Create an account in the given organization through the given application. "
    "Returns \"owner/name\" of the new account in data.",
)
def signup(
    request_data: SignupRequest,
    request: Request,
    response: HttpResponse,
    service: SignupService = Depends(get_signup_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    form = SignupForm(
        application=request_data.application,
        organization=request_data.organization,
        username=request_data.username,
        password=request_data.password,
        name=request_data.name,
        first_name=request_data.first_name,
        last_name=request_data.last_name,
        email=request_data.email,
        phone=request_data.phone,
        phone_prefix=request_data.phone_prefix,
        affiliation=request_data.affiliation,
        id_card=request_data.id_card,
        region=request_data.region,
        email_code=request_data.email_code,
        phone_code=request_data.phone_code,
        client_ip=request.client.host if request.client else "",
        request_uri=str(request.url.path),
    )
    try:
        user_id = service.signup(form, session, STANDARD)
    except AlreadySignedIn as e:
        return error(e, data=session.get_current_user())
    except RegistrationError as e:
        return error(e)

    save_session(request, response, session)
    return ok(user_id)


@router.post("/logout", response_model=Response, summary="Log out the current user")
async def logout(
    request: Request,
    response: HttpResponse,
    service: AccountService = Depends(get_account_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    user, homepage_url = service.logout(session)
    save_session(request, response, session)
    if homepage_url:
        return ok(user, homepage_url)
    return ok(user)


@router.get("/get-account", response_model=Response, summary="Get the current account")
async def get_account(
    service: AccountService = Depends(get_account_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    try:
        account, organization = service.get_account(session)
    except RegistrationError as e:
        return error(e)
    return Response(
        status="ok",
        sub=account.id,
        name=account.name,
        data=account.to_dict(),
        data2=asdict(organization) if organization is not None else None,
    )


@router.get("/userinfo", summary="Identity claims of the current account")
async def userinfo(
    request: Request,
    service: AccountService = Depends(get_account_service),
    session: SessionContext = Depends(get_session),
):
    try:
        return service.userinfo(session, issuer=f"{request.url.scheme}://{request.url.netloc}")
    except RegistrationError as e:
        return error(e)


@router.get(
    "/get-human-check",
    response_model=HumanCheckResponse,
    summary="Get a human-check challenge",
)
def get_human_check(gate: HumanCheckGate = Depends(get_human_check_gate)) -> HumanCheckResponse:
    check = gate.challenge()
    return HumanCheckResponse(type=check.type, captcha_id=check.captcha_id, captcha_image=check.captcha_image)


@router.post(
    "/send-verification-code",
    response_model=Response,
    summary="Send a verification code",
    description="Requires a passed human check. With checkUser=true the caller must be signed in "
    "or dest must belong to an existing account.",
)
def send_verification_code(
    type: str = Form(""),
    dest: str = Form(""),
    organization_id: str = Form("", alias="organizationId"),
    check_type: str = Form("", alias="checkType"),
    check_id: str = Form("", alias="checkId"),
    check_key: str = Form("", alias="checkKey"),
    check_user: str = Form("", alias="checkUser"),
    service: AccountService = Depends(get_account_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    send_request = SendCodeRequest(
        type=type,
        dest=dest,
        organization_id=organization_id,
        check_type=check_type,
        check_id=check_id,
        check_key=check_key,
        check_user=check_user,
    )
    try:
        service.send_verification_code(session, send_request)
    except RegistrationError as e:
        return error(e)
    return ok()


@router.post(
    "/reset-email-or-phone",
    response_model=Response,
    summary="Replace the email or phone of the current account",
)
def reset_email_or_phone(
    type: str = Form(""),
    dest: str = Form(""),
    code: str = Form(""),
    service: AccountService = Depends(get_account_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    try:
        service.reset_email_or_phone(session, type, dest, code)
    except RegistrationError as e:
        return error(e)
    return ok()
