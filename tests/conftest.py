import pytest

from mock_http import RecordingSession

from upyun.client import UpYun

FIXED_DATE = "Sun, 18 Oct 2026 09:14:00 GMT"


@pytest.fixture
def fixed_date(monkeypatch):
    monkeypatch.setattr("upyun.client.rfc1123_date", lambda: FIXED_DATE)
    return FIXED_DATE


@pytest.fixture
def session():
    return RecordingSession()


@pytest.fixture
def client(session, fixed_date):
    return UpYun("bucket", "operator", "secret", session=session, retry_wait=0)


@pytest.fixture
def no_upyun_env(monkeypatch):
    for name in ("UPYUN_BUCKET", "UPYUN_USERNAME", "UPYUN_PASSWORD", "UPYUN_ENDPOINT", "UPYUN_CONFIG"):
        monkeypatch.delenv(name, raising=False)
