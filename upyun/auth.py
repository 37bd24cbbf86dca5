# auth.py
import hashlib
from dataclasses import dataclass
from email.utils import formatdate

AUTH_SCHEME = "UpYun"
_SIGN_SEP = "&"


def md5_hex(data) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.md5(data).hexdigest()


def rfc1123_date(timestamp=None) -> str:
    """Date header value, e.g. ``Sun, 06 Nov 1994 08:49:37 GMT``."""
    return formatdate(timestamp, usegmt=True)


@dataclass(frozen=True)
class Credentials:
    bucket: str
    username: str
    password: str


class Signer:
    """Builds UpYun ``Authorization`` headers from a set of credentials.

    Both signatures are plain functions of their inputs: a wrong input just
    gives a wrong signature, which the server rejects with 401.
    """

    def __init__(self, credentials: Credentials):
        self.credentials = credentials
        self._password_md5 = md5_hex(credentials.password)

    def sign_request(self, method: str, uri: str, date: str, content_length) -> str:
        # uri is the escaped "/<bucket>/<key>" path the request goes to
        sign = [method, uri, date, str(content_length), self._password_md5]
        digest = md5_hex(_SIGN_SEP.join(sign))
        return f"{AUTH_SCHEME} {self.credentials.username}:{digest}"

    def sign_purge(self, url_list: str, date: str) -> str:
        bucket = self.credentials.bucket
        sign = [url_list, bucket, date, self._password_md5]
        digest = md5_hex(_SIGN_SEP.join(sign))
        return f"{AUTH_SCHEME} {bucket}:{self.credentials.username}:{digest}"
