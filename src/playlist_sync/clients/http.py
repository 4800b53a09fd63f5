"""HTTP utilities and retry policy for remote catalog calls."""

import time
from collections.abc import Callable
from typing import TypeVar

import httpx
from tenacity import (
    Retrying,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from playlist_sync.config import Settings
from playlist_sync.errors import NotAuthenticated, RateLimitError, RemoteCatalogError

T = TypeVar("T")

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.ConnectTimeout,
)


def retry_on_transient_error(func):
    """Decorator that retries on transient transport errors.

    Retries up to 3 times with exponential backoff (2-30 seconds). Only
    connection errors and timeouts are retried here; HTTP status handling
    is left to the caller.

    Args:
        func: The function to wrap.

    Returns:
        Wrapped function with retry logic.
    """
    return retry(
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        reraise=True,
    )(func)


def handle_rate_limit(response: httpx.Response) -> None:
    """Check response for rate limiting.

    Args:
        response: The HTTP response to check.

    Raises:
        RateLimitError: If response indicates rate limiting (429).
    """
    if response.status_code == 429:
        retry_after = int(response.headers.get("Retry-After", "60"))
        raise RateLimitError(retry_after)


def raise_for_platform_status(response: httpx.Response, platform: str) -> None:
    """Translate an error response into the sync error taxonomy.

    The response body is never copied into the exception message.

    Args:
        response: The HTTP response to check.
        platform: Platform name used in the error message.

    Raises:
        RateLimitError: On 429.
        NotAuthenticated: On 401.
        RemoteCatalogError: On any other 4xx/5xx; 5xx is marked transient.
    """
    handle_rate_limit(response)
    if response.status_code == 401:
        raise NotAuthenticated(f"{platform} rejected the access token")
    if response.is_error:
        raise RemoteCatalogError(
            f"{platform} request failed with status {response.status_code}",
            transient=response.status_code >= 500,
            status_code=response.status_code,
        )


def is_transient(exc: BaseException) -> bool:
    """Whether a failed remote call is worth retrying."""
    if isinstance(exc, RemoteCatalogError):
        return exc.transient
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


class RetryPolicy:
    """Bounded retry-with-backoff wrapper for remote catalog calls.

    With ``attempts=1`` every call is tried exactly once, so failures are
    terminal for the current step.

    Args:
        attempts: Total attempts per call.
        wait_min: Minimum backoff in seconds.
        wait_max: Maximum backoff in seconds.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        attempts: int = 1,
        wait_min: float = 2.0,
        wait_max: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.attempts = attempts
        self.wait_min = wait_min
        self.wait_max = wait_max
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        """Build a policy from application settings."""
        return cls(
            attempts=settings.retry_attempts,
            wait_min=settings.retry_wait_min,
            wait_max=settings.retry_wait_max,
        )

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Invoke ``func`` and retry transient failures.

        Args:
            func: Remote call to make.
            *args: Positional arguments for ``func``.
            **kwargs: Keyword arguments for ``func``.

        Returns:
            Whatever ``func`` returns.

        Raises:
            Exception: The last error once attempts are exhausted, or the
                first non-transient error.
        """
        retrying = Retrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.wait_min, min=self.wait_min, max=self.wait_max),
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(func, *args, **kwargs)
