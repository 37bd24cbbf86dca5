# client.py
from __future__ import annotations

import hashlib
import io
import json
import logging
from typing import Optional
from urllib.parse import quote, urlencode

import requests

from .auth import Credentials, Signer, rfc1123_date
from .errors import ResponseError
from .fileinfo import FileInfo, parse_listing
from .fragment import stream_size
from .listing import ListingStream, ListTraverser
from .retry import DEFAULT_RETRIES, DEFAULT_WAIT, RetryPolicy
from .session import get_session, reset_session
from .uploader import (
    RESUME_PART_SIZE,
    RESUME_SIZE_THRESHOLD,
    RequestSpec,
    ResumableUploader,
    check_part_sizes,
)

log = logging.getLogger(__name__)

ED_AUTO = 0
ED_TELECOM = 1
ED_CNC = 2
ED_CTT = 3

DEFAULT_TIMEOUT = 60  # seconds
PURGE_URL = "http://purge.upyun.com/purge/"
_CHUNK = 64 * 1024


def escape_uri(uri: str) -> str:
    return quote(uri, safe="/~")


def _is_success(status_code: int) -> bool:
    return status_code // 100 == 2


class UpYun:
    """Client for one UpYun bucket.

    Requests go through the calling thread's shared ``requests.Session``
    unless a session is passed in.
    """

    def __init__(self, bucket: str, username: str, password: str, endpoint=ED_AUTO,
                 timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None,
                 part_size: int = RESUME_PART_SIZE, resume_threshold: int = RESUME_SIZE_THRESHOLD,
                 retries: int = DEFAULT_RETRIES, retry_wait: float = DEFAULT_WAIT):
        check_part_sizes(part_size, resume_threshold)
        self.credentials = Credentials(bucket=bucket, username=username, password=password)
        self.signer = Signer(self.credentials)
        self.timeout = timeout
        self.part_size = part_size
        self.resume_threshold = resume_threshold
        self.retry = RetryPolicy(retries=retries, wait=retry_wait)
        self._session = session
        if isinstance(endpoint, str):
            self.set_endpoint_str(endpoint)
        else:
            self.set_endpoint(endpoint)

    @property
    def bucket(self) -> str:
        return self.credentials.bucket

    @property
    def session(self) -> requests.Session:
        return self._session if self._session is not None else get_session()

    def set_endpoint(self, ed: int):
        if ED_AUTO <= ed <= ED_CTT:
            self.endpoint = f"v{ed}.api.upyun.com"
            return
        raise ValueError("Invalid endpoint, pick from ED_AUTO, ED_TELECOM, ED_CNC, ED_CTT")

    def set_endpoint_str(self, endpoint: str):
        self.endpoint = endpoint

    # --- plumbing ---

    def _request_url(self, key: str, query: str = "") -> "tuple[str, str]":
        if not key.startswith("/"):
            key = "/" + key
        uri = escape_uri(f"/{self.bucket}{key}")
        url = f"http://{self.endpoint}{uri}"
        if query:
            url += "?" + escape_uri(query)
        return uri, url

    def send(self, spec: RequestSpec, writer=None):
        """Sign and send ``spec``; returns ``(body, response headers)``.

        For a GET with a ``writer`` the body is streamed into it and the
        returned body is the number of bytes written, as a string.
        """
        uri, url = self._request_url(spec.path, spec.query)
        headers = dict(spec.headers)
        date = rfc1123_date()
        headers["Date"] = date
        headers["Authorization"] = self.signer.sign_request(
            spec.method, uri, date, headers.get("Content-Length", "0"))
        if "api.upyun.com" not in self.endpoint:
            headers["Host"] = "v0.api.upyun.com"

        body = spec.body
        if spec.method in ("GET", "HEAD"):
            body = None

        log.debug("%s %s", spec.method, url)
        stream = spec.method == "GET" and writer is not None
        resp = self.session.request(spec.method, url, headers=headers, data=body,
                                    timeout=self.timeout, stream=stream)
        try:
            if _is_success(resp.status_code):
                if stream:
                    written = 0
                    for chunk in resp.iter_content(_CHUNK):
                        writer.write(chunk)
                        written += len(chunk)
                    return str(written), resp.headers
                return resp.text, resp.headers
            raise ResponseError(resp.status_code, resp.text, resp.headers)
        finally:
            resp.close()

    def _rest(self, method: str, key: str, query: str = "", headers=None, body=None, writer=None):
        return self.send(RequestSpec(method, key, query, headers or {}, body), writer=writer)

    def _reset_transport(self):
        if self._session is None:
            reset_session()

    # --- metadata ---

    def usage(self) -> int:
        """Bytes used by the bucket."""
        result, _ = self._rest("GET", "/", "usage")
        return int(result)

    def mkdir(self, key: str):
        self._rest("POST", key, headers={"mkdir": "true", "folder": "true"})

    def delete(self, key: str):
        """Delete a single file."""
        self._rest("DELETE", key)

    def async_delete(self, key: str):
        self._rest("DELETE", key, headers={"X-Upyun-Async": "true"})

    def get_info(self, key: str) -> FileInfo:
        _, headers = self._rest("HEAD", key)
        return FileInfo.from_headers(key.rstrip("/").rsplit("/", 1)[-1], headers)

    # --- objects ---

    def put(self, key: str, value, use_md5=False, headers=None):
        """Upload ``value`` (bytes or a file-like object) in one request.

        Returns the response headers.
        """
        headers = dict(headers or {})
        if isinstance(value, str):
            value = value.encode("utf-8")
        if "Content-Length" not in headers:
            if isinstance(value, (bytes, bytearray)):
                headers["Content-Length"] = str(len(value))
            elif _seekable(value):
                headers["Content-Length"] = str(stream_size(value) - value.tell())
            else:
                value = value.read()
                headers["Content-Length"] = str(len(value))
        if use_md5 and "Content-MD5" not in headers:
            if isinstance(value, (bytes, bytearray)):
                headers["Content-MD5"] = hashlib.md5(value).hexdigest()
            elif _seekable(value):
                pos = value.tell()
                h = hashlib.md5()
                for block in iter(lambda: value.read(_CHUNK), b""):
                    h.update(block)
                value.seek(pos)
                headers["Content-MD5"] = h.hexdigest()
        _, rt_headers = self._rest("PUT", key, headers=headers, body=value)
        return rt_headers

    def resume_put(self, key: str, value, use_md5=False, headers=None, reporter=None, log_fn=None):
        """Upload a file part by part, retrying parts that hit network errors.

        Files smaller than ``resume_threshold`` go through :meth:`put`.
        ``reporter(part, max_part)`` is called after every part.
        """
        uploader = ResumableUploader(
            send=lambda spec: self.send(spec)[1],
            put=self.put,
            part_size=self.part_size,
            threshold=self.resume_threshold,
            retry=self.retry,
            on_network_error=self._reset_transport,
        )
        return uploader.upload(key, value, use_md5=use_md5, headers=headers,
                               reporter=reporter, log_fn=log_fn)

    def get(self, key: str, writer) -> int:
        """Download ``key`` into ``writer``; returns the number of bytes written."""
        written, _ = self._rest("GET", key, writer=writer)
        return int(written)

    # --- listing ---

    def get_list(self, key: str) -> list[FileInfo]:
        """Single-page listing; the server caps it at 100 entries."""
        body, _ = self._rest("GET", key)
        return parse_listing(body)

    def loop_list(self, key: str, cursor: str, order: str, limit: int):
        """Fetch one listing page; the cursor is None if the server sent none."""
        headers = {"X-List-Limit": str(limit), "X-List-Order": order}
        if cursor:
            headers["X-List-Iter"] = cursor
        body, rt_headers = self._rest("GET", key, headers=headers)
        return parse_listing(body), rt_headers.get("X-Upyun-List-Iter")

    def get_large_list(self, key: str, asc=False, recursive=False, strict_cursor=False) -> ListingStream:
        """Stream every entry under directory ``key`` from a background thread."""
        traverser = ListTraverser(self.loop_list, strict_cursor=strict_cursor,
                                   on_exit=self._reset_transport)
        return traverser.traverse(key, ascending=asc, recursive=recursive)

    # --- purge ---

    def purge(self, urls) -> list[str]:
        """Ask the CDN to purge ``urls``; returns the URLs it rejected."""
        date = rfc1123_date()
        purge_list = "\n".join(urls)
        headers = {
            "Date": date,
            "Authorization": self.signer.sign_purge(purge_list, date),
            "Content-Type": "application/x-www-form-urlencoded;charset=utf-8",
        }
        resp = self.session.post(PURGE_URL, headers=headers, data=urlencode({"purge": purge_list}),
                                 timeout=self.timeout)
        if not _is_success(resp.status_code):
            raise ResponseError(resp.status_code, resp.text, resp.headers)
        try:
            result = json.loads(resp.text)
            invalid = result["invalid_domain_of_url"]
        except (ValueError, KeyError, TypeError):
            # the server sometimes answers {"invalid_domain_of_url":{}}
            return []
        if not isinstance(invalid, list):
            return []
        return [str(u) for u in invalid]


def _seekable(value) -> bool:
    try:
        return value.seekable()
    except (AttributeError, io.UnsupportedOperation, ValueError):
        return False
