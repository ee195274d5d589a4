"""
Provider dispatch - Runs external provider calls under a timeout.

Code delivery and human-check delegation are the only steps with real
external latency. Expiry of the timeout is reported as
ProviderUnavailable and is never retried here.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

from .exceptions import DispatchFailed, ProviderUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderDispatcher:
    """Executes provider calls on a small worker pool with a deadline."""

    def __init__(self, timeout_seconds: float, max_workers: int = 8) -> None:
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="provider")

    def call(self, name: str, fn: Callable[..., T], *args) -> T:
        """
        Run `fn(*args)` and wait at most the configured timeout.

        Raises:
            ProviderUnavailable: the call did not finish in time
            DispatchFailed: the provider raised an error
        """
        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning("Provider %s timed out after %ss", name, self._timeout)
            raise ProviderUnavailable(f"{name} provider did not respond in time") from None
        except (ProviderUnavailable, DispatchFailed):
            raise
        except Exception as e:
            logger.warning("Provider %s failed: %s", name, e)
            raise DispatchFailed(str(e)) from e

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
