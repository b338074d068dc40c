"""Fixed-count, fixed-delay retries for flaky SDK calls"""

import logging
from typing import Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..config import RETRY_ATTEMPTS, RETRY_DELAY_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retries(
    fn: Callable[..., T],
    *args,
    attempts: int = RETRY_ATTEMPTS,
    delay: float = RETRY_DELAY_SECONDS,
    no_retry_on: tuple = (),
    **kwargs,
) -> T:
    """
    Call fn(*args, **kwargs) up to `attempts` times, waiting `delay` seconds between tries.

    Exceptions listed in `no_retry_on` are raised immediately. After the last
    attempt the original exception is re-raised.
    """
    retryer = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_not_exception_type(no_retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retryer(fn, *args, **kwargs)
