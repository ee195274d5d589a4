"""
Console code senders - Implement EmailSender and SmsSender protocols.

This module provides console-based implementations of the domain's
delivery ports, logging verification codes instead of sending them.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Log verification code to console (simulates email delivery).

        Args:
            email: Recipient email address (resolved by the domain layer)
            code: verification code
        """
        logger.info("[VERIFICATION] Email: %s Code: %s", email, code)


class ConsoleSmsSender:
    """Implements SmsSender protocol via console logging."""

    def send_verification_code(self, phone: str, code: str) -> None:
        logger.info("[VERIFICATION] Phone: %s Code: %s", phone, code)
