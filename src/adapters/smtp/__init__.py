"""Code delivery adapters."""

from .console import ConsoleEmailSender, ConsoleSmsSender

__all__ = ["ConsoleEmailSender", "ConsoleSmsSender"]
