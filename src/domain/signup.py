"""
Signup orchestrator - one state machine shared by both signup protocols.

States (forward-only):

    START -> PRECONDITION_CHECK -> FIELD_VALIDATION -> CONTACT_VERIFICATION
          -> IDENTIFIER_ALLOCATION -> ENTITY_CONSTRUCTION -> PERSIST
          -> POST_CREATE_SIDE_EFFECTS -> DONE

Any failure aborts the run: the raised RegistrationError carries the
state it was raised in. Verification codes are checked before the
account is built and invalidated only after it has been persisted, so a
failed insert leaves the codes usable for a retry.

The standard (web) and lightweight (machine) protocols are two
SignupVariant configurations of the same flow. They differ in where the
organization comes from, whether the incremental identifier rule is
honoured, how the username is chosen, how phones are stored, and which
numeric codes errors map to.
"""

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import bcrypt

from .audit import AuditRecorder
from .destination import CHANNEL_EMAIL, CHANNEL_PHONE, resolve
from .exceptions import (
    AllocationConflict,
    AlreadySignedIn,
    DispatchFailed,
    InvalidProfile,
    PersistenceRejected,
    ProviderUnavailable,
    RegistrationError,
    SignupDisabled,
    ValidationFailure,
    VerificationFailed,
)
from .identifiers import IdentifierAllocator
from .models import (
    ITEM_DISPLAY_NAME,
    ITEM_EMAIL,
    ITEM_ID,
    ITEM_PHONE,
    ITEM_USERNAME,
    RULE_FIRST_LAST,
    RULE_NO_VERIFICATION,
    Account,
    Application,
    Organization,
    Record,
    SignupForm,
)
from .ports import AccountMirror, AccountRepository, AddAccountResult, DirectoryRepository
from .session import SessionContext
from .validation import AccountValidator
from .verification import VerificationCodeService

logger = logging.getLogger(__name__)

DIRECTORY_OWNER = "admin"
INVITE_CODE_PROPERTY = "invite_code"

# Lightweight protocol status codes
OTT_CODE_OK = 200
OTT_CODE_SERVICE_UNAVAILABLE = 201
OTT_CODE_INVALID_PARAM = 203
OTT_CODE_SERVICE_EXCEPTION = 206
OTT_CODE_APPLICATION_NO_SIGNUP = 207
OTT_CODE_VERIFICATION_CODE_NOT_MATCH = 208
OTT_CODE_ADD_USER_FAILED = 209
OTT_CODE_NEED_SIGN_OUT = 210
OTT_CODE_SEND_VERIFICATION_CODE_FAILED = 300
OTT_CODE_INVALID_PHONE = 301
OTT_CODE_INVALID_EMAIL = 302


class SignupState(str, Enum):
    START = "START"
    PRECONDITION_CHECK = "PRECONDITION_CHECK"
    FIELD_VALIDATION = "FIELD_VALIDATION"
    CONTACT_VERIFICATION = "CONTACT_VERIFICATION"
    IDENTIFIER_ALLOCATION = "IDENTIFIER_ALLOCATION"
    ENTITY_CONSTRUCTION = "ENTITY_CONSTRUCTION"
    PERSIST = "PERSIST"
    POST_CREATE_SIDE_EFFECTS = "POST_CREATE_SIDE_EFFECTS"
    DONE = "DONE"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class SignupVariant:
    """
    Protocol configuration for the signup flow.

    fixed_organization: organization name used instead of the submitted one
    allow_incremental_id: honour the application's "Incremental" ID rule
    username_from_id: always use the allocated identifier as username
    international_phone: store the phone in "+<prefix><number>" form
    error_codes: numeric code per exception class (empty = free-text only)
    """

    name: str
    fixed_organization: str | None = None
    allow_incremental_id: bool = True
    username_from_id: bool = False
    international_phone: bool = False
    error_codes: Mapping[type, int] = field(default_factory=dict)

    def code_for(self, error: RegistrationError) -> int:
        for cls in type(error).__mro__:
            if cls in self.error_codes:
                return self.error_codes[cls]
        return OTT_CODE_SERVICE_EXCEPTION


STANDARD = SignupVariant(name="standard")

LIGHTWEIGHT_ERROR_CODES = {
    AlreadySignedIn: OTT_CODE_NEED_SIGN_OUT,
    SignupDisabled: OTT_CODE_APPLICATION_NO_SIGNUP,
    ValidationFailure: OTT_CODE_INVALID_PARAM,
    VerificationFailed: OTT_CODE_VERIFICATION_CODE_NOT_MATCH,
    AllocationConflict: OTT_CODE_ADD_USER_FAILED,
    PersistenceRejected: OTT_CODE_ADD_USER_FAILED,
    ProviderUnavailable: OTT_CODE_SERVICE_UNAVAILABLE,
    DispatchFailed: OTT_CODE_SEND_VERIFICATION_CODE_FAILED,
    RegistrationError: OTT_CODE_SERVICE_EXCEPTION,
}


def lightweight_variant(organization: str) -> SignupVariant:
    # Incremental ids stay disabled here: allocation is not serialized
    # across concurrent machine signups.
    return SignupVariant(
        name="lightweight",
        fixed_organization=organization,
        allow_incremental_id=False,
        username_from_id=True,
        international_phone=True,
        error_codes=LIGHTWEIGHT_ERROR_CODES,
    )


class _Run:
    """Tracks the current state of one signup attempt."""

    def __init__(self, variant: SignupVariant) -> None:
        self.variant = variant
        self.state = SignupState.START

    def advance(self, state: SignupState) -> None:
        logger.debug("[%s] signup %s -> %s", self.variant.name, self.state.value, state.value)
        self.state = state


class SignupService:
    """
    Composes validation, contact verification, identifier allocation,
    persistence and audit into a single registration operation.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        directory: DirectoryRepository,
        mirror: AccountMirror,
        validator: AccountValidator,
        verification: VerificationCodeService,
        allocator: IdentifierAllocator,
        audit: AuditRecorder,
        bcrypt_cost: int = 10,
        init_score: int = 2000,
    ) -> None:
        self._accounts = accounts
        self._directory = directory
        self._mirror = mirror
        self._validator = validator
        self._verification = verification
        self._allocator = allocator
        self._audit = audit
        self._bcrypt_cost = bcrypt_cost
        self._init_score = init_score

    def signup(
        self,
        form: SignupForm,
        session: SessionContext,
        variant: SignupVariant = STANDARD,
        channel: str = "",
    ) -> str:
        """
        Register a new account.

        Args:
            form: submitted profile fields
            session: caller's session; may be bound to the new account
            variant: protocol configuration
            channel: contact channel chosen by lightweight clients

        Returns:
            "owner/name" of the created account

        Raises:
            RegistrationError: with `state` set to where the flow stopped
        """
        run = _Run(variant)
        try:
            return self._run(run, form, session, channel)
        except RegistrationError as e:
            e.state = run.state
            logger.info("[%s] signup aborted in %s: %s", variant.name, run.state.value, e.message)
            raise

    def _run(self, run: _Run, form: SignupForm, session: SessionContext, channel: str) -> str:
        variant = run.variant

        run.advance(SignupState.PRECONDITION_CHECK)
        if session.get_current_user():
            raise AlreadySignedIn("Please sign out first before signing up")
        application = self._directory.get_application(f"{DIRECTORY_OWNER}/{form.application}")
        if application is None or not application.enable_signup:
            raise SignupDisabled("The application does not allow to sign up new account")

        organization_name = variant.fixed_organization or form.organization
        organization = self._directory.get_organization(f"{DIRECTORY_OWNER}/{organization_name}")
        if organization is None:
            raise InvalidProfile(f"The organization: {organization_name} does not exist")

        run.advance(SignupState.FIELD_VALIDATION)
        if variant.fixed_organization is not None:
            msg = self._validator.check_lightweight_signup(organization, channel, form)
        else:
            msg = self._validator.check_signup(application, organization, form)
        if msg:
            raise InvalidProfile(msg)

        run.advance(SignupState.CONTACT_VERIFICATION)
        email_dest, phone_dest = self._verify_contacts(variant, application, organization, form, channel)

        run.advance(SignupState.IDENTIFIER_ALLOCATION)
        rule = application.get_signup_item_rule(ITEM_ID) if variant.allow_incremental_id else ""
        account_id = self._allocator.allocate(organization.name, rule)
        username = form.username
        if variant.username_from_id or not application.is_signup_item_visible(ITEM_USERNAME):
            username = account_id

        run.advance(SignupState.ENTITY_CONSTRUCTION)
        account = self._build_account(variant, application, organization, form, account_id, username)
        if variant.fixed_organization is not None:
            # Machine clients only keep the contact they proved
            account.email = email_dest
            account.phone = phone_dest
        elif variant.international_phone and phone_dest:
            account.phone = phone_dest

        run.advance(SignupState.PERSIST)
        self._persist(account)

        run.advance(SignupState.POST_CREATE_SIDE_EFFECTS)
        if application.has_prompt_page():
            # The prompt page needs the user to be signed in
            session.set_current_user(account.key)
        self._verification.invalidate(email_dest)
        self._verification.invalidate(phone_dest)
        self._audit.record(
            Record(
                owner=organization.name,
                name=uuid.uuid4().hex,
                created_time=datetime.now(UTC).isoformat(),
                organization=application.organization,
                user=account.name,
                client_ip=form.client_ip,
                method="POST",
                request_uri=form.request_uri,
                action="signup",
            )
        )

        run.advance(SignupState.DONE)
        logger.info("[%s] is signed up as new user", account.key)
        return account.key

    def _verify_contacts(
        self,
        variant: SignupVariant,
        application: Application,
        organization: Organization,
        form: SignupForm,
        channel: str,
    ) -> tuple[str, str]:
        email_dest = ""
        phone_dest = ""

        # The lightweight channel is always verified, whatever the application shows
        if variant.fixed_organization is not None:
            verify_email = channel == CHANNEL_EMAIL
            verify_phone = channel == CHANNEL_PHONE
        else:
            verify_email = (
                application.is_signup_item_visible(ITEM_EMAIL)
                and application.get_signup_item_rule(ITEM_EMAIL) != RULE_NO_VERIFICATION
            )
            verify_phone = application.is_signup_item_visible(ITEM_PHONE)

        if verify_email and form.email:
            email_dest = resolve(CHANNEL_EMAIL, form.email)
            self._check(CHANNEL_EMAIL, email_dest, form.email_code)

        if verify_phone and form.phone:
            prefix = form.phone_prefix or organization.phone_prefix
            phone_dest = resolve(CHANNEL_PHONE, form.phone, prefix=prefix)
            self._check(CHANNEL_PHONE, phone_dest, form.phone_code)

        return email_dest, phone_dest

    def _check(self, channel: str, destination: str, code: str) -> None:
        try:
            self._verification.check(destination, code)
        except VerificationFailed as e:
            raise VerificationFailed(f"{channel.capitalize()}: {e.message}", channel=channel) from None

    def _build_account(
        self,
        variant: SignupVariant,
        application: Application,
        organization: Organization,
        form: SignupForm,
        account_id: str,
        username: str,
    ) -> Account:
        password_hash = bcrypt.hashpw(form.password.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)).decode()

        account = Account(
            owner=organization.name,
            name=username,
            id=account_id,
            created_time=datetime.now(UTC).isoformat(),
            password=password_hash,
            display_name=form.name,
            avatar=organization.default_avatar,
            email=form.email,
            phone=form.phone,
            affiliation=form.affiliation,
            id_card=form.id_card,
            region=form.region,
            tag=organization.default_tag(),
            score=self._init_score,
            signup_application=application.name,
        )

        if variant.username_from_id and not form.name:
            account.display_name = account_id

        if form.invitation_code:
            account.properties[INVITE_CODE_PROPERTY] = form.invitation_code

        if application.get_signup_item_rule(ITEM_DISPLAY_NAME) == RULE_FIRST_LAST:
            if form.first_name or form.last_name:
                account.display_name = f"{form.first_name} {form.last_name}"
                account.first_name = form.first_name
                account.last_name = form.last_name

        return account

    def _persist(self, account: Account) -> None:
        result = self._accounts.add(account)
        # A username derived from the identifier collides on name first
        if result == AddAccountResult.DUPLICATE_ID or (
            result == AddAccountResult.DUPLICATE_NAME and account.name == account.id
        ):
            raise AllocationConflict(
                f"Identifier {account.id} was taken by a concurrent signup in {account.owner}, please retry"
            )
        if result != AddAccountResult.ADDED:
            raise PersistenceRejected(
                "Failed to create user, user information is invalid: "
                + json.dumps(account.to_dict(), ensure_ascii=False)
            )

        # Secondary store is best-effort: the primary insert stands either way
        try:
            mirrored = self._mirror.mirror(account)
        except Exception:
            logger.exception("Failed to mirror account %s to original database", account.key)
            return
        if not mirrored:
            logger.warning("Original database did not accept account %s", account.key)
