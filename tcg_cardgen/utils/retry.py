"""Retry decorators for remote artwork fetches."""

import logging

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

logger = logging.getLogger(__name__)


def http_retry(max_attempts: int = 3):
    """
    Build a retry decorator for transient HTTP transport failures.

    Only connection errors and timeouts are retried. HTTP status errors and
    decode failures are deterministic for a given URL and surface immediately.

    Args:
        max_attempts: Total number of attempts, including the first

    Returns:
        A tenacity retry decorator
    """
    return retry(
        retry=retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout)
        ),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        stop=stop_after_attempt(max(1, max_attempts)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
