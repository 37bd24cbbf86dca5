"""Tests for ``upyun.config``."""

import json

import pytest

from upyun.config import Config, load_config


@pytest.fixture
def cfg_file(tmp_path):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"bucket": "b", "username": "u", "password": "p", "endpoint": 1}))
    return p


def test_load_from_file(cfg_file, no_upyun_env):
    cfg = load_config(cfg_file)
    assert cfg == Config(bucket="b", username="u", password="p", endpoint=1)
    assert cfg.client().endpoint == "v1.api.upyun.com"


def test_env_overrides_file(cfg_file, no_upyun_env, monkeypatch):
    monkeypatch.setenv("UPYUN_BUCKET", "other")
    monkeypatch.setenv("UPYUN_ENDPOINT", "3")
    cfg = load_config(cfg_file)
    assert cfg.bucket == "other"
    assert cfg.endpoint == 3


def test_env_only(tmp_path, no_upyun_env, monkeypatch):
    monkeypatch.setenv("UPYUN_CONFIG", str(tmp_path / "absent.json"))
    monkeypatch.setenv("UPYUN_BUCKET", "b")
    monkeypatch.setenv("UPYUN_USERNAME", "u")
    monkeypatch.setenv("UPYUN_PASSWORD", "p")
    monkeypatch.setenv("UPYUN_ENDPOINT", "files.example.com")
    cfg = load_config()
    assert cfg.client().endpoint == "files.example.com"


def test_missing_credentials(tmp_path, no_upyun_env, monkeypatch):
    monkeypatch.setenv("UPYUN_CONFIG", str(tmp_path / "absent.json"))
    with pytest.raises(RuntimeError, match="bucket, username, password"):
        load_config()


def test_explicit_missing_file(tmp_path, no_upyun_env):
    with pytest.raises(RuntimeError, match="Missing config file"):
        load_config(tmp_path / "nope.json")


def test_unknown_keys(tmp_path, no_upyun_env):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"bucket": "b", "username": "u", "password": "p", "colour": "red"}))
    with pytest.raises(RuntimeError, match="colour"):
        load_config(p)


def test_client_settings(tmp_path, no_upyun_env):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({
        "bucket": "b", "username": "u", "password": "p",
        "part_size": 2048, "resume_threshold": 4096, "retries": 5, "retry_wait": 0.5,
    }))
    up = load_config(p).client()
    assert up.part_size == 2048
    assert up.resume_threshold == 4096
    assert up.retry.retries == 5
    assert up.retry.wait == 0.5


@pytest.mark.parametrize("endpoint", ["7", "-1"])
def test_out_of_range_endpoint_env(cfg_file, no_upyun_env, monkeypatch, endpoint):
    monkeypatch.setenv("UPYUN_ENDPOINT", endpoint)
    with pytest.raises(RuntimeError, match="Invalid endpoint"):
        load_config(cfg_file)


def test_out_of_range_endpoint_file(tmp_path, no_upyun_env):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({"bucket": "b", "username": "u", "password": "p", "endpoint": 9}))
    with pytest.raises(RuntimeError, match="Invalid endpoint 9"):
        load_config(p)


@pytest.mark.parametrize("threshold", [4096, 1024])
def test_threshold_not_above_part_size(tmp_path, no_upyun_env, threshold):
    p = tmp_path / "config.json"
    p.write_text(json.dumps({
        "bucket": "b", "username": "u", "password": "p",
        "part_size": 4096, "resume_threshold": threshold,
    }))
    with pytest.raises(RuntimeError, match="Invalid part sizes"):
        load_config(p)
