# retry.py
import logging
import time

import requests

log = logging.getLogger(__name__)

DEFAULT_RETRIES = 3
DEFAULT_WAIT = 5.0  # seconds

TRANSIENT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
    ConnectionError,
    TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    """True for timeouts, resets and lookup failures; False for anything the server said."""
    return isinstance(exc, TRANSIENT_ERRORS)


class RetryPolicy:
    def __init__(self, retries: int = DEFAULT_RETRIES, wait: float = DEFAULT_WAIT, sleep=time.sleep):
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.retries = retries
        self.wait = wait
        self._sleep = sleep

    def attempt(self, operation, rewind=None):
        """Run ``operation()`` up to ``retries + 1`` times and return its result.

        Only transient errors are retried; before each retry the policy sleeps
        ``wait`` seconds and calls ``rewind()`` so a streamed body starts over.
        Anything else, and the last transient error once retries run out, is
        raised unchanged.
        """
        for i in range(self.retries + 1):
            try:
                return operation()
            except Exception as ex:
                if not is_transient(ex) or i == self.retries:
                    raise
                log.warning("Network error (attempt %d/%d), retrying in %.1fs: %s",
                            i + 1, self.retries + 1, self.wait, ex)
                self._sleep(self.wait)
                if rewind is not None:
                    rewind()
