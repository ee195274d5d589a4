"""Captcha adapters."""

from .console import ConsoleCaptchaRenderer

__all__ = ["ConsoleCaptchaRenderer"]
