# zos_connector/transport/retry.py
"""Retry logic for FTP connection establishment with exponential backoff."""

import ftplib
import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def is_retryable(exception: BaseException) -> bool:
    """
    Returns True if the exception should be retried.

    Retryable conditions:
    - OSError (refused, reset, timed out) that is not an ftplib protocol error
    - error_temp (4xx reply, e.g. 421 service not available)

    Permanent replies (5xx) and malformed replies are never retried.
    """
    if isinstance(exception, ftplib.error_temp):
        return True

    if isinstance(exception, ftplib.Error):
        return False

    return isinstance(exception, (OSError, EOFError))


connect_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
