"""
Account validation - profile field checks run before contact verification.

Returns a human-readable message rather than raising, so each signup
protocol can wrap the message in its own error vocabulary.
"""

import re

from .destination import CHANNEL_EMAIL, CHANNEL_PHONE, normalize_phone, validate_email
from .exceptions import InvalidDestination
from .models import (
    ITEM_AFFILIATION,
    ITEM_DISPLAY_NAME,
    ITEM_EMAIL,
    ITEM_PHONE,
    ITEM_USERNAME,
    RULE_FIRST_LAST,
    Application,
    Organization,
    SignupForm,
)
from .ports import AccountRepository

_USERNAME = re.compile(r"^[a-zA-Z0-9]+([-._][a-zA-Z0-9]+)*$")
_PHONE = re.compile(r"^\+?\d{4,20}$")

MAX_USERNAME_LENGTH = 39
MIN_PASSWORD_LENGTH = 6


def _is_email(value: str) -> bool:
    try:
        validate_email(value)
    except InvalidDestination:
        return False
    return True


class AccountValidator:
    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    def check_signup(self, application: Application, organization: Organization, form: SignupForm) -> str:
        owner = organization.name

        if application.is_signup_item_visible(ITEM_USERNAME):
            if not form.username:
                return "Username cannot be empty"
            if len(form.username) > MAX_USERNAME_LENGTH:
                return f"Username is too long (maximum is {MAX_USERNAME_LENGTH} characters)."
            if not _USERNAME.match(form.username):
                return (
                    "The username may only contain alphanumeric characters, underlines or hyphens, "
                    "cannot have consecutive hyphens or underlines, and cannot begin or end with a "
                    "hyphen or underline."
                )
            if self._accounts.get(owner, form.username) is not None:
                return "Username already exists"

        if len(form.password) < MIN_PASSWORD_LENGTH:
            return f"Password must have at least {MIN_PASSWORD_LENGTH} characters"

        if application.is_signup_item_visible(ITEM_EMAIL):
            if not form.email:
                if application.is_signup_item_required(ITEM_EMAIL):
                    return "Email cannot be empty"
            elif not _is_email(form.email):
                return "Email is invalid"
            elif self._accounts.get_by_field(owner, form.email) is not None:
                return "Email already exists"

        if application.is_signup_item_visible(ITEM_PHONE):
            if not form.phone:
                if application.is_signup_item_required(ITEM_PHONE):
                    return "Phone cannot be empty"
            elif not _PHONE.match(form.phone):
                return "Phone number is invalid"
            elif self._accounts.get_by_field(owner, form.phone) is not None:
                return "Phone already exists"

        if application.is_signup_item_visible(ITEM_DISPLAY_NAME):
            if application.get_signup_item_rule(ITEM_DISPLAY_NAME) == RULE_FIRST_LAST:
                if not form.first_name:
                    return "First name cannot be blank"
                if not form.last_name:
                    return "Last name cannot be blank"
            elif not form.name and application.is_signup_item_required(ITEM_DISPLAY_NAME):
                return "Display name cannot be empty"

        if application.is_signup_item_required(ITEM_AFFILIATION) and not form.affiliation:
            return "Affiliation cannot be blank"

        return ""

    def check_lightweight_signup(self, organization: Organization, channel: str, form: SignupForm) -> str:
        """Reduced checks for machine clients: one contact channel plus password."""
        owner = organization.name

        if channel == CHANNEL_EMAIL:
            if not form.email:
                return "Identity cannot be empty"
            if not _is_email(form.email):
                return "Email is invalid"
            if self._accounts.get_by_field(owner, form.email) is not None:
                return "Email already exists"
        elif channel == CHANNEL_PHONE:
            if not form.phone:
                return "Identity cannot be empty"
            if not form.phone_prefix:
                return "Phone prefix cannot be empty"
            if not _PHONE.match(form.phone):
                return "Phone number is invalid"
            if self._accounts.get_by_field(owner, normalize_phone(form.phone, form.phone_prefix)) is not None:
                return "Phone already exists"
        else:
            return "Invalid register type"

        if len(form.password) < MIN_PASSWORD_LENGTH:
            return f"Password must have at least {MIN_PASSWORD_LENGTH} characters"

        return ""
