import hashlib
import logging
import mimetypes
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import UploadSessionError
from .fragment import FragmentFile, stream_size
from .retry import RetryPolicy

log = logging.getLogger(__name__)

# --- Part sizing (the server expects fixed 1 MiB parts) ---
RESUME_PART_SIZE = 1024 * 1024  # 1 MiB
RESUME_SIZE_THRESHOLD = 10 * 1024 * 1024  # below this a plain PUT is used

STAGE_INITIATE = "initiate,upload"
STAGE_UPLOAD = "upload"
STAGE_COMPLETE = "upload,complete"

H_PART_ID = "X-Upyun-Part-Id"
H_STAGE = "X-Upyun-Multi-Stage"
H_MULTI_LENGTH = "X-Upyun-Multi-Length"
H_MULTI_TYPE = "X-Upyun-Multi-Type"
H_MULTI_MD5 = "X-Upyun-Multi-MD5"
H_MULTI_UUID = "X-Upyun-Multi-UUID"


@dataclass(frozen=True)
class RequestSpec:
    """One request as it goes on the wire; copies, never mutates."""

    method: str
    path: str
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: object = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def with_headers(self, **updates) -> "RequestSpec":
        merged = dict(self.headers)
        merged.update(updates)
        return replace(self, headers=merged)

    def with_body(self, body) -> "RequestSpec":
        return replace(self, body=body)


@dataclass
class UploadSession:
    size: int
    part_size: int
    part: int = 0
    token: Optional[str] = None

    @property
    def max_part(self) -> int:
        return max_part_index(self.size, self.part_size)

    def stage(self, part: int) -> str:
        if part == 0:
            return STAGE_INITIATE
        if part == self.max_part:
            return STAGE_COMPLETE
        return STAGE_UPLOAD

    def part_length(self, part: int) -> int:
        if part == self.max_part:
            return self.size - self.part_size * part
        return self.part_size


def max_part_index(size: int, part_size: int) -> int:
    n = size // part_size
    if size % part_size == 0:
        n -= 1
    return n


def part_count(size: int, part_size: int) -> int:
    return max_part_index(size, part_size) + 1


def check_part_sizes(part_size: int, threshold: int):
    if part_size <= 0:
        raise ValueError("part_size must be positive")
    if threshold <= part_size:
        raise ValueError("threshold must be larger than part_size")


def file_md5(f) -> str:
    """MD5 of the whole file; leaves the file positioned at 0."""
    h = hashlib.md5()
    f.seek(0)
    for block in iter(lambda: f.read(64 * 1024), b""):
        h.update(block)
    f.seek(0)
    return h.hexdigest()


class ResumableUploader:
    """Uploads a file part by part through the multipart PUT protocol.

    ``send(spec)`` performs one PUT and returns the response headers;
    ``put(key, f, use_md5, headers)`` is the single-shot upload used for
    files below ``threshold``. Parts go out one at a time, in order, and each
    one is retried only on network errors.
    """

    def __init__(self, send, put, part_size=RESUME_PART_SIZE, threshold=RESUME_SIZE_THRESHOLD,
                 retry: Optional[RetryPolicy] = None, on_network_error=None):
        check_part_sizes(part_size, threshold)
        self.send = send
        self.put = put
        self.part_size = part_size
        self.threshold = threshold
        self.retry = retry or RetryPolicy()
        self.on_network_error = on_network_error

    def upload(self, key: str, f, use_md5=False, headers=None, reporter=None, log_fn=None):
        headers = dict(headers or {})
        file_size = stream_size(f)

        if file_size < self.threshold:
            if log_fn:
                log_fn(f"Uploading {key} ({file_size} B) in one request")
            return self.put(key, f, use_md5, headers)

        sess = UploadSession(size=file_size, part_size=self.part_size)
        content_type = headers.get("Content-Type") or mimetypes.guess_type(key)[0] or "application/octet-stream"
        base = RequestSpec("PUT", key, headers=headers)
        if log_fn:
            log_fn(f"Uploading {key} ({file_size} B) in {sess.max_part + 1} parts")

        resp = None
        for part in range(sess.max_part + 1):
            sess.part = part
            spec = base.with_headers(**{
                H_PART_ID: str(part),
                H_STAGE: sess.stage(part),
                "Content-Length": str(sess.part_length(part)),
            })
            if part == 0:
                spec = spec.with_headers(**{
                    H_MULTI_TYPE: content_type,
                    H_MULTI_LENGTH: str(file_size),
                })
            else:
                spec = spec.with_headers(**{H_MULTI_UUID: sess.token})
            if part == sess.max_part and use_md5:
                spec = spec.with_headers(**{H_MULTI_MD5: file_md5(f)})

            fragment = FragmentFile(f, part * self.part_size, self.part_size)
            if use_md5:
                spec = spec.with_headers(**{"Content-MD5": fragment.md5()})
            spec = spec.with_body(fragment)

            resp = self.retry.attempt(lambda: self.send(spec), rewind=lambda: self._rewind(fragment))

            if part == 0:
                sess.token = resp.get(H_MULTI_UUID)
                if not sess.token:
                    raise UploadSessionError(f"no {H_MULTI_UUID} in response to first part of {key}")
                log.debug("Multipart session %s opened for %s", sess.token, key)
            if reporter is not None:
                reporter(part, sess.max_part)
            if log_fn:
                log_fn(f"Part {part + 1}/{sess.max_part + 1} of {key} uploaded")

        if log_fn:
            log_fn(f"Uploaded {key} ({file_size} B)")
        return resp

    def _rewind(self, fragment: FragmentFile):
        if self.on_network_error is not None:
            self.on_network_error()
        fragment.seek(0)
