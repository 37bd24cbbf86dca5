"""Tests for the per-thread ``requests.Session`` and how the client swaps it."""

import io
import threading
from unittest.mock import patch

import pytest
import requests
from mock_http import make_response

from upyun.client import UpYun
from upyun.session import get_session, reset_session


@pytest.fixture(autouse=True)
def fresh_session():
    reset_session()
    yield
    reset_session()


def test_same_thread_shares_session():
    assert get_session() is get_session()


def test_other_thread_gets_own_session():
    mine = get_session()
    theirs = []

    def worker():
        theirs.append(get_session())
        reset_session()

    t = threading.Thread(target=worker)
    t.start()
    t.join(2)
    assert len(theirs) == 1
    assert theirs[0] is not mine


def test_adapter_never_retries():
    s = get_session()
    for url in ("http://v0.api.upyun.com/", "https://purge.upyun.com/"):
        assert s.get_adapter(url).max_retries.total == 0
    assert s.headers["Connection"] == "keep-alive"


def test_reset_closes_and_replaces():
    old = get_session()
    with patch.object(requests.Session, "close", autospec=True) as close:
        reset_session()
    close.assert_called_once_with(old)
    assert get_session() is not old


def test_reset_without_session_is_noop():
    reset_session()
    reset_session()


def test_resume_put_swaps_session_after_network_error():
    used = []

    def request(s, method, url, headers=None, data=None, **kwargs):
        used.append((s, data.read()))
        if len(used) == 2:
            raise requests.exceptions.ConnectionError("connection reset")
        return make_response(headers={"X-Upyun-Multi-Uuid": "u-1"})

    up = UpYun("bucket", "operator", "secret", part_size=4, resume_threshold=8, retry_wait=0)
    with patch.object(requests.Session, "request", autospec=True, side_effect=request), \
            patch.object(requests.Session, "close", autospec=True) as close:
        up.resume_put("/big.bin", io.BytesIO(b"0123456789"))

    sessions = [s for s, _ in used]
    assert [body for _, body in used] == [b"0123", b"4567", b"4567", b"89"]
    assert sessions[0] is sessions[1]
    assert sessions[2] is not sessions[1]
    assert sessions[3] is sessions[2]
    close.assert_called_once_with(sessions[1])


def test_injected_session_survives_network_error(session):
    calls = []

    def responder(method, url, headers, body):
        calls.append(body)
        if len(calls) == 1:
            raise requests.exceptions.Timeout("slow")
        return make_response(headers={"X-Upyun-Multi-Uuid": "u-1"})

    session.responder = responder
    up = UpYun("bucket", "operator", "secret", session=session,
               part_size=4, resume_threshold=8, retry_wait=0)
    with patch("upyun.client.reset_session") as reset:
        up.resume_put("/big.bin", io.BytesIO(b"0123456789"))
    reset.assert_not_called()
    assert calls == [b"0123", b"0123", b"4567", b"89"]
