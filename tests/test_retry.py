"""Tests for ``RetryPolicy``."""

import pytest
import requests

from upyun.errors import ResponseError
from upyun.retry import RetryPolicy, is_transient


class Recorder:
    def __init__(self, failures, exc):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


@pytest.fixture
def sleeps():
    return []


def test_transient_error_exhausts_retries(sleeps):
    op = Recorder(100, requests.exceptions.ConnectionError("reset"))
    rewinds = []
    policy = RetryPolicy(retries=3, wait=2.5, sleep=sleeps.append)
    with pytest.raises(requests.exceptions.ConnectionError):
        policy.attempt(op, rewind=lambda: rewinds.append(1))
    assert op.calls == 4
    assert sleeps == [2.5, 2.5, 2.5]
    assert len(rewinds) == 3


def test_last_error_is_raised(sleeps):
    errors = [requests.exceptions.Timeout("first"), requests.exceptions.Timeout("last")]

    def op():
        raise errors.pop(0)

    with pytest.raises(requests.exceptions.Timeout, match="last"):
        RetryPolicy(retries=1, wait=0, sleep=sleeps.append).attempt(op)


def test_protocol_error_not_retried(sleeps):
    op = Recorder(100, ResponseError(500, "boom"))
    with pytest.raises(ResponseError):
        RetryPolicy(retries=3, wait=1, sleep=sleeps.append).attempt(op)
    assert op.calls == 1
    assert sleeps == []


def test_recovers_after_transient_errors(sleeps):
    op = Recorder(2, ConnectionResetError())
    assert RetryPolicy(retries=3, wait=0, sleep=sleeps.append).attempt(op) == "ok"
    assert op.calls == 3


def test_zero_retries(sleeps):
    op = Recorder(1, requests.exceptions.ConnectionError())
    with pytest.raises(requests.exceptions.ConnectionError):
        RetryPolicy(retries=0, sleep=sleeps.append).attempt(op)
    assert op.calls == 1


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(retries=-1)


def test_is_transient():
    assert is_transient(requests.exceptions.ConnectTimeout())
    assert is_transient(requests.exceptions.ChunkedEncodingError())
    assert is_transient(TimeoutError())
    assert not is_transient(ResponseError(403, "forbidden"))
    assert not is_transient(ValueError())
