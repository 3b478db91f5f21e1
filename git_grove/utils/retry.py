"""Exponential backoff retry for transient, network-class failures.

Purely local operations (directory creation, worktree registration, conflict
resolution) must not go through this module.
"""

import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

import backoff

from git_grove.config import Config
from git_grove.exceptions import GroveError, RetryCancelledError
from git_grove.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry settings for one operation."""

    max_attempts: int = 3  # Including the initial attempt
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: bool = True

    @classmethod
    def from_config(cls, config: Config) -> "RetryConfig":
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )


def quarter_jitter(value: float) -> float:
    """Randomize a delay by +/-25%."""
    return max(0.0, value * (1 + 0.25 * (random.random() * 2 - 1)))


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, GroveError) and error.is_retryable()


def execute_with_retry(
    operation: Callable[[], T],
    retry_config: Optional[RetryConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
) -> T:
    """Run operation, retrying retryable GroveErrors with exponential backoff.

    Args:
        operation: Zero-argument callable to run
        retry_config: Attempts and delays (defaults to RetryConfig())
        cancel_event: When set, no further attempts are made
        deadline: time.monotonic() value after which no further attempts are made

    Returns:
        Whatever operation returns

    Raises:
        RetryCancelledError: If cancelled or past the deadline
        GroveError: The last error when it is not retryable or attempts run out
    """
    retry_config = retry_config or RetryConfig()
    attempts = 0
    last_error: Optional[BaseException] = None

    def cancelled() -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def remaining_time() -> Optional[float]:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def log_backoff(details):
        logger.debug(
            f"Operation failed, retrying (attempt {details['tries']}/{retry_config.max_attempts}, "
            f"delay {details['wait']:.2f}s): {details['exception']}"
        )

    @backoff.on_exception(
        backoff.expo,
        GroveError,
        max_tries=retry_config.max_attempts,
        max_time=remaining_time,
        jitter=quarter_jitter if retry_config.jitter else None,
        giveup=lambda e: not is_retryable(e) or cancelled(),
        on_backoff=log_backoff,
        logger=None,
        factor=retry_config.base_delay,
        max_value=retry_config.max_delay,
    )
    def attempt() -> T:
        nonlocal attempts, last_error
        if cancelled():
            raise RetryCancelledError(attempts, last_error)
        attempts += 1
        try:
            return operation()
        except GroveError as e:
            last_error = e
            raise

    try:
        result = attempt()
    except RetryCancelledError:
        raise
    except GroveError as e:
        if is_retryable(e) and cancelled():
            raise RetryCancelledError(attempts, e) from e
        raise

    if attempts > 1:
        logger.debug(f"Operation succeeded after {attempts} attempts")
    return result
