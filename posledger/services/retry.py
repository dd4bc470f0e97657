"""
Bounded retry for callers of the recorder
"""
from typing import Callable, Optional, TypeVar
import logging
import time

from posledger.core.config import settings
from posledger.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[..., T],
    *args,
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
    **kwargs
) -> T:
    """
    Run fn, retrying retryable PersistenceErrors (lock-wait timeout, deadlock,
    unique conflict) up to `attempts` times with linear backoff. Any other
    error, or the last failure, propagates unchanged.
    """
    attempts = attempts or settings.LOCK_RETRY_ATTEMPTS
    backoff = settings.LOCK_RETRY_BACKOFF_SECONDS if backoff is None else backoff
    
    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except PersistenceError as e:
            if not e.retryable or attempt >= attempts:
                raise
            logger.warning(f"{getattr(fn, '__name__', fn)} failed (attempt {attempt}/{attempts}): {e}; retrying")
            time.sleep(backoff * attempt)
