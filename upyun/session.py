import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Thread-local shared HTTP session for connection reuse
_tls = threading.local()


def get_session():
    """Return this thread's shared requests.Session.

    The adapter never retries on its own: network retries belong to
    RetryPolicy, and metadata calls are not retried at all.
    """
    s = getattr(_tls, "session", None)
    if s is not None:
        return s
    s = requests.Session()
    retry = Retry(total=0, connect=0, read=0, redirect=0, status=0, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry, pool_connections=8, pool_maxsize=8)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers.update({"Connection": "keep-alive"})
    _tls.session = s
    return s


def reset_session():
    """Close and clear the current thread's session so a fresh one is created next time."""
    s = getattr(_tls, "session", None)
    if s is not None:
        s.close()
        _tls.session = None
