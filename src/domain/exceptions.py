"""
Domain exceptions - Semantic error types for registration and verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every exception is terminal for the current request; nothing here is
retried internally.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
        # Set by the signup orchestrator to the state the flow aborted in
        self.state = None


class PreconditionViolation(RegistrationError):
    """The request is not allowed in the current context."""

    pass


class AlreadySignedIn(PreconditionViolation):
    """The caller already has an active session."""

    pass


class SignupDisabled(PreconditionViolation):
    """The target application does not exist or does not allow signup."""

    pass


class NotSignedIn(PreconditionViolation):
    """The operation requires an active session."""

    pass


class ValidationFailure(RegistrationError):
    """A submitted field is malformed or forbidden."""

    pass


class InvalidProfile(ValidationFailure):
    """Profile fields rejected by the account validator."""

    pass


class InvalidDestination(ValidationFailure):
    """Claimed email/phone destination is malformed."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(message)
        self.channel = channel


class MissingParameter(ValidationFailure):
    """A required request parameter is empty."""

    def __init__(self, message: str = "Missing parameter.") -> None:
        super().__init__(message)


class VerificationFailed(RegistrationError):
    """Verification code mismatch, expired, or never sent."""

    def __init__(self, message: str, channel: str = "") -> None:
        super().__init__(message)
        self.channel = channel


class HumanCheckFailed(RegistrationError):
    """Caller did not pass the human-verification challenge."""

    def __init__(self, message: str = "Turing test failed.") -> None:
        super().__init__(message)


class AllocationConflict(RegistrationError):
    """Allocated identifier collided with an existing account; retryable."""

    pass


class PersistenceRejected(RegistrationError):
    """Storage refused the new account."""

    pass


class ProviderUnavailable(RegistrationError):
    """External provider timed out or could not be reached."""

    pass


class DispatchFailed(RegistrationError):
    """Provider accepted the call but reported a delivery failure."""

    pass


class AccountNotFound(RegistrationError):
    """Session refers to an account that no longer exists."""

    pass
