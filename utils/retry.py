import functools
import logging
import time

from errors import STORAGE_ERRORS, Transient

logger = logging.getLogger(__name__)


def retry_read(func):
    """
    Retry an idempotent read on storage errors with exponential backoff

    The wrapped method's instance must expose ``session`` (rolled back
    between attempts), ``read_attempts`` and ``retry_delay``. Once the
    attempts run out the failure becomes Transient.
    """
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        attempts = max(1, self.read_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return func(self, *args, **kwargs)
            except STORAGE_ERRORS as exc:
                self.session.rollback()
                if attempt == attempts:
                    logger.warning("%s failed after %d attempts: %s", func.__name__, attempts, exc)
                    raise Transient() from exc
                time.sleep(self.retry_delay * (2 ** (attempt - 1)))
    return wrapper
