"""
Account service - session-scoped account operations and code delivery.

Covers everything around signup that touches verification codes or the
caller's session: sending codes for either protocol, replacing the email
or phone of the signed-in account, logout, and account/userinfo lookup.
"""

import logging
from dataclasses import dataclass

from .destination import CHANNEL_EMAIL, CHANNEL_PHONE, resolve
from .exceptions import (
    AccountNotFound,
    HumanCheckFailed,
    InvalidDestination,
    MissingParameter,
    NotSignedIn,
)
from .human_check import HumanCheckGate
from .models import BUILT_IN_APPLICATION, Account, Organization, split_key
from .ports import AccountRepository, DirectoryRepository
from .session import SessionContext
from .signup import DIRECTORY_OWNER
from .verification import VerificationCodeService

logger = logging.getLogger(__name__)

FALLBACK_PHONE_PREFIX = "86"
CHECK_USER_REQUIRED = "true"


@dataclass(frozen=True)
class SendCodeRequest:
    """Standard-protocol send-verification-code form."""

    type: str
    dest: str
    organization_id: str
    check_type: str
    check_id: str
    check_key: str
    check_user: str = ""


class AccountService:
    def __init__(
        self,
        accounts: AccountRepository,
        directory: DirectoryRepository,
        verification: VerificationCodeService,
        human_check: HumanCheckGate,
    ) -> None:
        self._accounts = accounts
        self._directory = directory
        self._verification = verification
        self._human_check = human_check

    def current_account(self, session: SessionContext) -> Account:
        """
        Raises:
            NotSignedIn: no user in session
            AccountNotFound: session user no longer exists
        """
        user_id = session.get_current_user()
        if not user_id:
            raise NotSignedIn("Please sign in first")
        owner, name = split_key(user_id)
        account = self._accounts.get(owner, name)
        if account is None:
            raise AccountNotFound(f"The user: {user_id} doesn't exist")
        return account

    def organization_of(self, account: Account) -> Organization | None:
        return self._directory.get_organization(f"{DIRECTORY_OWNER}/{account.owner}")

    def logout(self, session: SessionContext) -> tuple[str, str]:
        """Clear the session; return the prior user and an optional homepage URL."""
        user = session.get_current_user()
        application_key = session.application
        session.clear()
        logger.info("[%s] logged out", user)

        if not application_key:
            return user, ""
        application = self._directory.get_application(application_key)
        if application is None or application.name == BUILT_IN_APPLICATION or not application.homepage_url:
            return user, ""
        return user, application.homepage_url

    def get_account(self, session: SessionContext) -> tuple[Account, Organization | None]:
        account = self.current_account(session)
        organization = self.organization_of(account)
        return account, organization.masked() if organization is not None else None

    def userinfo(self, session: SessionContext, issuer: str) -> dict:
        """Identity claims for the session's scope and audience."""
        account = self.current_account(session)
        scopes = set(session.scope.split())
        claims = {
            "sub": account.id,
            "iss": issuer,
            "aud": session.audience,
        }
        if "profile" in scopes:
            claims["name"] = account.display_name
            claims["preferred_username"] = account.name
            claims["picture"] = account.avatar
        if "email" in scopes:
            claims["email"] = account.email
            claims["email_verified"] = bool(account.email)
        if "phone" in scopes:
            claims["phone_number"] = account.phone
        if "address" in scopes:
            claims["address"] = account.address
        return claims

    def send_verification_code(self, session: SessionContext, request: SendCodeRequest) -> str:
        """
        Issue a code after the caller passes the human check.

        Returns:
            The destination the code was sent to

        Raises:
            MissingParameter, HumanCheckFailed, NotSignedIn,
            InvalidDestination, ProviderUnavailable, DispatchFailed
        """
        if (
            not request.type
            or not request.dest
            or "/" not in request.organization_id
            or not request.check_type
            or not request.check_id
            or not request.check_key
        ):
            raise MissingParameter()

        if not self._human_check.verify_human(request.check_id, request.check_key):
            raise HumanCheckFailed()

        organization = self._directory.get_organization(request.organization_id)
        if organization is None:
            raise MissingParameter()

        user = self._session_account(session)
        if (
            request.check_user == CHECK_USER_REQUIRED
            and user is None
            and self._accounts.get_by_field(organization.name, request.dest) is None
        ):
            raise NotSignedIn("Please login first")

        if user is None and request.check_user and request.check_user != CHECK_USER_REQUIRED:
            user = self._accounts.get(organization.name, request.check_user)

        if request.type not in (CHANNEL_EMAIL, CHANNEL_PHONE):
            raise InvalidDestination(request.type, "Invalid dest type")
        destination = resolve(request.type, request.dest, user, organization.phone_prefix)
        self._verification.issue(destination)
        return destination

    def send_lightweight_code(self, channel: str, dest: str, prefix: str | None) -> str:
        """
        Issue a code for a machine client; no human check and no session.

        Raises:
            InvalidDestination: malformed email, or phone without prefix/digits
        """
        if channel == CHANNEL_EMAIL:
            destination = resolve(CHANNEL_EMAIL, dest)
        elif channel == CHANNEL_PHONE:
            if not prefix or not dest.strip().lstrip("+").isdigit():
                raise InvalidDestination(CHANNEL_PHONE, "Invalid phone number")
            destination = resolve(CHANNEL_PHONE, dest, prefix=prefix)
        else:
            raise InvalidDestination(channel, "Invalid dest type")
        self._verification.issue(destination)
        return destination

    def reset_email_or_phone(self, session: SessionContext, dest_type: str, dest: str, code: str) -> Account:
        """
        Replace the email or phone of the signed-in account after a code check.

        The code is consumed only once the field has been written.
        """
        account = self.current_account(session)
        if not dest or not code or not dest_type:
            raise MissingParameter()
        if dest_type not in (CHANNEL_EMAIL, CHANNEL_PHONE):
            raise InvalidDestination(dest_type, "Unknown type.")

        check_dest = dest
        if dest_type == CHANNEL_PHONE:
            organization = self.organization_of(account)
            prefix = FALLBACK_PHONE_PREFIX
            if organization is not None and organization.phone_prefix:
                prefix = organization.phone_prefix
            check_dest = resolve(CHANNEL_PHONE, dest, prefix=prefix)

        self._verification.check(check_dest, code)

        if dest_type == CHANNEL_EMAIL:
            account.email = dest
        else:
            account.phone = dest
        self._accounts.update_field(account, dest_type, dest)

        self._verification.invalidate(check_dest)
        logger.info("[%s] %s updated", account.key, dest_type)
        return account

    def _session_account(self, session: SessionContext) -> Account | None:
        user_id = session.get_current_user()
        if not user_id:
            return None
        owner, name = split_key(user_id)
        return self._accounts.get(owner, name)
