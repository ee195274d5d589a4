"""
Console captcha renderer - Implements CaptchaRenderer protocol.

Image generation is not part of this service. The renderer logs the
expected answer for development and returns an empty image payload.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleCaptchaRenderer:
    def render(self, captcha_id: str, answer: str) -> str:
        logger.info("[CAPTCHA] Id: %s Answer: %s", captcha_id, answer)
        return ""
