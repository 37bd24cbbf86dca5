# errors.py
from __future__ import annotations


class UpYunError(Exception):
    """Base class for errors raised by this library."""


class ResponseError(UpYunError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", headers=None):
        self.status_code = status_code
        self.body = body
        self.headers = headers
        # an empty body leaves the bare status code as the message
        super().__init__(body or str(status_code))


class UploadSessionError(UpYunError):
    """The multipart session token was missing from the first part's response."""


class AmbiguousCursorError(UpYunError):
    """A listing page came back without the X-Upyun-List-Iter header."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"listing response for {key} has no cursor header")
