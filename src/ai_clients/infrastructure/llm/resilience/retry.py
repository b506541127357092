"""Retry classification and exponential backoff for chat client calls."""

from __future__ import annotations

import errno
import logging
import random
import socket

import anthropic
import httpx
import openai

from ....core.exceptions import CircuitOpenError, ConfigurationError, TransientError, UnsupportedOperationError

logger = logging.getLogger(__name__)

RETRYABLE_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT, errno.ECONNREFUSED})

# Transport-level failures that never reached a vendor status code
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)

NEVER_RETRYABLE: tuple[type[Exception], ...] = (CircuitOpenError, ConfigurationError, UnsupportedOperationError)


def get_error_status(error: BaseException) -> int | None:
    """HTTP status carried by an error as ``status`` or ``status_code``, if any."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_retryable_error(error: BaseException) -> bool:
    """Decide whether a failed attempt is worth repeating.

    Retryable: HTTP 429, any 5xx, transport faults, ``TransientError`` and
    messages mentioning a rate limit or timeout, whatever the status.
    Local errors such as an open circuit or bad configuration are final.
    """
    if isinstance(error, NEVER_RETRYABLE):
        return False
    if isinstance(error, TransientError):
        return True

    status = get_error_status(error)
    if status is not None and (status == 429 or 500 <= status < 600):
        return True

    if isinstance(error, TRANSPORT_ERRORS):
        return True
    if isinstance(error, OSError) and error.errno in RETRYABLE_ERRNOS:
        return True

    message = str(error).lower()
    return "rate limit" in message or "timeout" in message


class RetryConfig:
    """Configuration for retry mechanism. Delays are in milliseconds."""

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30000,
        jitter_factor: float = 0.3,
        rng: random.Random | None = None,
    ):
        """Initialize retry configuration.

        Args:
            max_retries: Retries after the first attempt
            base_delay_ms: Delay before the first retry
            max_delay_ms: Cap on the exponential delay, before jitter
            jitter_factor: Upper bound of the added jitter, as a fraction of the delay
            rng: Random source for jitter
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if not 0.0 <= jitter_factor <= 1.0:
            raise ValueError("jitter_factor must be between 0 and 1")

        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.jitter_factor = jitter_factor
        self.rng = rng or random.Random()

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> int:
        """Backoff before retry number ``attempt`` (1-based), in whole milliseconds.

        ``min(base * 2**(attempt-1), max)`` plus uniform jitter in
        ``[0, delay * jitter_factor]``.
        """
        capped = min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)
        jitter = self.rng.uniform(0, capped * self.jitter_factor) if self.jitter_factor else 0.0
        delay = round(capped + jitter)
        logger.debug(f"Backoff for attempt {attempt}: {delay}ms (capped {capped}ms)")
        return delay
