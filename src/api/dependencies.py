"""
FastAPI dependencies - Dependency injection factories.

This module wires domain services to infrastructure adapters and
provides Depends() factories for injecting them into routes.
"""

import logging
from dataclasses import dataclass

from fastapi import Request
from fastapi import Response as HttpResponse
from psycopg_pool import ConnectionPool

from src.adapters.captcha.console import ConsoleCaptchaRenderer
from src.adapters.memory import (
    MemoryAccountMirror,
    MemoryAccountRepository,
    MemoryAuditWriter,
    MemoryCaptchaStore,
    MemoryDirectory,
    MemorySessionStore,
    MemoryVerificationCodeStore,
)
from src.adapters.repository.postgres import (
    PostgresAccountMirror,
    PostgresAccountRepository,
    PostgresAuditWriter,
    PostgresDirectory,
    PostgresVerificationCodeStore,
)
from src.adapters.smtp.console import ConsoleEmailSender, ConsoleSmsSender
from src.config.settings import Settings
from src.domain.account import AccountService
from src.domain.audit import AuditRecorder
from src.domain.dispatch import ProviderDispatcher
from src.domain.human_check import HumanCheckGate
from src.domain.identifiers import IdentifierAllocator
from src.domain.models import BUILT_IN_APPLICATION, Application, Organization, SignupItem
from src.domain.ports import DirectoryRepository, HumanCheckProvider
from src.domain.session import SessionContext
from src.domain.signup import DIRECTORY_OWNER, SignupService
from src.domain.validation import AccountValidator
from src.domain.verification import VerificationCodeService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    directory: DirectoryRepository
    signup: SignupService
    accounts: AccountService
    human_check: HumanCheckGate
    verification: VerificationCodeService
    sessions: MemorySessionStore
    audit: AuditRecorder
    dispatcher: ProviderDispatcher

    def close(self) -> None:
        self.audit.close()
        self.dispatcher.shutdown()


def default_directory(settings: Settings) -> MemoryDirectory:
    """Built-in organization/application plus the fixed lightweight organization."""
    return MemoryDirectory(
        organizations=[
            Organization(owner=DIRECTORY_OWNER, name="built-in", display_name="Built-in Organization", phone_prefix="86"),
            Organization(owner=DIRECTORY_OWNER, name=settings.ott_organization, phone_prefix="86"),
        ],
        applications=[
            Application(
                owner=DIRECTORY_OWNER,
                name=BUILT_IN_APPLICATION,
                organization="built-in",
                signup_items=[
                    SignupItem(name="Username", required=True),
                    SignupItem(name="ID", visible=False, required=True, rule="Random"),
                    SignupItem(name="Display name", required=True),
                    SignupItem(name="Password", required=True),
                    SignupItem(name="Email", required=True, rule="Normal"),
                    SignupItem(name="Phone"),
                ],
            ),
        ],
    )


def build_services(
    settings: Settings,
    pool: ConnectionPool | None = None,
    mirror_pool: ConnectionPool | None = None,
    directory=None,
    human_check_provider: HumanCheckProvider | None = None,
    email_sender=None,
    sms_sender=None,
) -> Services:
    """
    Build domain services over PostgreSQL (when a pool is given) or memory adapters.

    Explicit directory and senders override the defaults; tests use this
    to inject fixtures and mocks.
    """
    if pool is not None:
        account_repo = PostgresAccountRepository(pool)
        mirror = PostgresAccountMirror(mirror_pool or pool)
        directory = directory or PostgresDirectory(pool)
        code_store = PostgresVerificationCodeStore(pool)
        audit_writer = PostgresAuditWriter(pool)
    else:
        account_repo = MemoryAccountRepository()
        mirror = MemoryAccountMirror()
        directory = directory or default_directory(settings)
        code_store = MemoryVerificationCodeStore()
        audit_writer = MemoryAuditWriter()

    dispatcher = ProviderDispatcher(settings.provider_timeout_seconds, settings.provider_max_workers)
    verification = VerificationCodeService(
        store=code_store,
        email_sender=email_sender or ConsoleEmailSender(),
        sms_sender=sms_sender or ConsoleSmsSender(),
        dispatcher=dispatcher,
        ttl_minutes=settings.verification_code_ttl_minutes,
        code_length=settings.verification_code_length,
    )
    human_check = HumanCheckGate(
        captcha_store=MemoryCaptchaStore(),
        renderer=ConsoleCaptchaRenderer(),
        dispatcher=dispatcher,
        provider=human_check_provider,
        captcha_ttl_seconds=settings.captcha_ttl_seconds,
        captcha_length=settings.captcha_length,
    )
    audit = AuditRecorder(audit_writer, max_queue_size=settings.audit_queue_size)

    signup = SignupService(
        accounts=account_repo,
        directory=directory,
        mirror=mirror,
        validator=AccountValidator(account_repo),
        verification=verification,
        allocator=IdentifierAllocator(account_repo),
        audit=audit,
        bcrypt_cost=settings.bcrypt_cost,
        init_score=settings.init_score,
    )
    accounts = AccountService(
        accounts=account_repo,
        directory=directory,
        verification=verification,
        human_check=human_check,
    )
    logger.info("Services built with %s storage", "postgres" if pool is not None else "memory")
    return Services(
        settings=settings,
        directory=directory,
        signup=signup,
        accounts=accounts,
        human_check=human_check,
        verification=verification,
        sessions=MemorySessionStore(),
        audit=audit,
        dispatcher=dispatcher,
    )


def get_services(request: Request) -> Services:
    """
    Get services from app state.

    Services are created during app lifespan startup and stored in app.state.
    """
    return request.app.state.services


def get_signup_service(request: Request) -> SignupService:
    return get_services(request).signup


def get_account_service(request: Request) -> AccountService:
    return get_services(request).accounts


def get_human_check_gate(request: Request) -> HumanCheckGate:
    return get_services(request).human_check


def get_session(request: Request) -> SessionContext:
    """Load the caller's session from the session cookie."""
    services = get_services(request)
    return services.sessions.load(request.cookies.get(services.settings.session_cookie_name))


def save_session(request: Request, response: HttpResponse, session: SessionContext) -> None:
    """Persist the session and keep the cookie in sync with it."""
    services = get_services(request)
    services.sessions.save(session)
    cookie_name = services.settings.session_cookie_name
    if session.get_current_user():
        response.set_cookie(cookie_name, session.session_id, httponly=True, samesite="lax")
    else:
        response.delete_cookie(cookie_name)
