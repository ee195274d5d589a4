"""
Human verification gate.

Delegates to an external provider when one is configured; otherwise
issues and checks built-in captcha challenges.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .dispatch import ProviderDispatcher
from .models import CaptchaChallenge
from .ports import CaptchaRenderer, CaptchaStore, HumanCheckProvider

logger = logging.getLogger(__name__)

_CAPTCHA_ALPHABET = "0123456789"


@dataclass(frozen=True)
class HumanCheck:
    """Challenge description handed to the client."""

    type: str
    captcha_id: str = ""
    captcha_image: str = ""


class HumanCheckGate:
    def __init__(
        self,
        captcha_store: CaptchaStore,
        renderer: CaptchaRenderer,
        dispatcher: ProviderDispatcher,
        provider: HumanCheckProvider | None = None,
        captcha_ttl_seconds: int = 300,
        captcha_length: int = 5,
    ) -> None:
        self._store = captcha_store
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._provider = provider
        self._ttl = timedelta(seconds=captcha_ttl_seconds)
        self._length = captcha_length

    def challenge(self) -> HumanCheck:
        if self._provider is not None:
            return HumanCheck(type="none")

        captcha_id = uuid.uuid4().hex
        answer = "".join(secrets.choice(_CAPTCHA_ALPHABET) for _ in range(self._length))
        self._store.save(
            CaptchaChallenge(
                captcha_id=captcha_id,
                answer=answer,
                expires_at=datetime.now(UTC) + self._ttl,
            )
        )
        image = self._renderer.render(captcha_id, answer)
        return HumanCheck(type="captcha", captcha_id=captcha_id, captcha_image=image)

    def verify_human(self, challenge_id: str, answer: str) -> bool:
        """
        Raises:
            ProviderUnavailable: external provider did not answer in time
        """
        if self._provider is not None:
            return bool(self._dispatcher.call("human-check", self._provider.verify, challenge_id, answer))

        challenge = self._store.pop(challenge_id)
        if challenge is None:
            logger.info("Unknown captcha id %s", challenge_id)
            return False
        if datetime.now(UTC) > challenge.expires_at:
            return False
        return secrets.compare_digest(challenge.answer.encode(), (answer or "").strip().encode())
