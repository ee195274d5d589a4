"""
Destination resolution - Normalizes claimed email/phone destinations.

A client that is shown a masked contact (e.g. "j***n@e*****e.com") may send
the masked value back to mean "the address you already have on file".
Only an exact match against the mask of the stored value is resolved;
any other input is passed through unchanged and must be proven afresh.
"""

import re

from email_validator import EmailNotValidError, validate_email as _validate_email

from .exceptions import InvalidDestination
from .models import Account

CHANNEL_EMAIL = "email"
CHANNEL_PHONE = "phone"

_PHONE_MASK = re.compile(r"(\d{3})\d*(\d{4})")


def _mask_string(value: str) -> str:
    if len(value) <= 2:
        return value
    return f"{value[0]}{'*' * (len(value) - 2)}{value[-1]}"


def mask_email(email: str) -> str:
    if not email or "@" not in email:
        return email
    local, _, domain = email.rpartition("@")
    labels = domain.split(".")
    if len(labels) >= 2:
        labels[-2] = _mask_string(labels[-2])
    return f"{_mask_string(local)}@{'.'.join(labels)}"


def mask_phone(phone: str) -> str:
    return _PHONE_MASK.sub(r"\1****\2", phone)


def unmask(claimed: str, known: str, mask) -> str:
    """Return `known` when `claimed` is exactly its masked form, else `claimed`."""
    if known and claimed == mask(known):
        return known
    return claimed


def normalize_phone(phone: str, prefix: str) -> str:
    """
    Rewrite a local number into international form.

    Numbers already starting with "+" are returned unchanged, which makes
    the function idempotent.
    """
    phone = phone.strip()
    if phone.startswith("+"):
        return phone
    return f"+{prefix.strip().lstrip('+')}{phone}"


def validate_email(email: str) -> str:
    try:
        _validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidDestination(CHANNEL_EMAIL, "Invalid Email address") from None
    return email


def resolve(channel: str, claimed: str, account: Account | None = None, prefix: str = "") -> str:
    """
    Resolve a claimed destination into the one a code is bound to.

    Raises:
        InvalidDestination: malformed email or unknown channel
    """
    if channel == CHANNEL_EMAIL:
        if account is not None:
            claimed = unmask(claimed, account.email, mask_email)
        return validate_email(claimed)

    if channel == CHANNEL_PHONE:
        if account is not None:
            claimed = unmask(claimed, account.phone, mask_phone)
        if not claimed.strip():
            raise InvalidDestination(CHANNEL_PHONE, "Invalid phone number")
        return normalize_phone(claimed, prefix)

    raise InvalidDestination(channel, "Invalid dest type")
