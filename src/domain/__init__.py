"""
Domain layer - Registration and contact verification logic.

This package contains the signup state machine, the verification-code
lifecycle, identifier allocation and the human-check gate. It defines its
own port interfaces for infrastructure abstraction; adapters live in
src.adapters and the HTTP surface in src.api.
"""

from .account import AccountService, SendCodeRequest
from .audit import AuditRecorder
from .exceptions import (
    AccountNotFound,
    AllocationConflict,
    AlreadySignedIn,
    DispatchFailed,
    HumanCheckFailed,
    InvalidDestination,
    InvalidProfile,
    MissingParameter,
    NotSignedIn,
    PersistenceRejected,
    PreconditionViolation,
    ProviderUnavailable,
    RegistrationError,
    SignupDisabled,
    ValidationFailure,
    VerificationFailed,
)
from .human_check import HumanCheck, HumanCheckGate
from .identifiers import IdentifierAllocator
from .session import SessionContext
from .signup import STANDARD, SignupService, SignupState, SignupVariant, lightweight_variant
from .verification import VerificationCodeService

__all__ = [
    "AccountNotFound",
    "AccountService",
    "AllocationConflict",
    "AlreadySignedIn",
    "AuditRecorder",
    "DispatchFailed",
    "HumanCheck",
    "HumanCheckFailed",
    "HumanCheckGate",
    "IdentifierAllocator",
    "InvalidDestination",
    "InvalidProfile",
    "MissingParameter",
    "NotSignedIn",
    "PersistenceRejected",
    "PreconditionViolation",
    "ProviderUnavailable",
    "RegistrationError",
    "STANDARD",
    "SendCodeRequest",
    "SessionContext",
    "SignupDisabled",
    "SignupService",
    "SignupState",
    "SignupVariant",
    "ValidationFailure",
    "VerificationCodeService",
    "VerificationFailed",
    "lightweight_variant",
]
