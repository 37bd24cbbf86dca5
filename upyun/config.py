# config.py
import json
import os
from dataclasses import dataclass, fields
from pathlib import Path

from .client import DEFAULT_TIMEOUT, ED_AUTO, ED_CTT, UpYun
from .retry import DEFAULT_RETRIES, DEFAULT_WAIT
from .uploader import RESUME_PART_SIZE, RESUME_SIZE_THRESHOLD, check_part_sizes

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "upyun" / "config.json"

# environment variables that override the file
ENV_KEYS = {
    "bucket": "UPYUN_BUCKET",
    "username": "UPYUN_USERNAME",
    "password": "UPYUN_PASSWORD",
    "endpoint": "UPYUN_ENDPOINT",
}


@dataclass
class Config:
    bucket: str
    username: str
    password: str
    endpoint: object = ED_AUTO
    timeout: float = DEFAULT_TIMEOUT
    part_size: int = RESUME_PART_SIZE
    resume_threshold: int = RESUME_SIZE_THRESHOLD
    retries: int = DEFAULT_RETRIES
    retry_wait: float = DEFAULT_WAIT

    def client(self, **kwargs) -> UpYun:
        params = {f.name: getattr(self, f.name) for f in fields(self)}
        params.update(kwargs)
        return UpYun(**params)


def config_path(path=None) -> Path:
    if path:
        return Path(path)
    env_path = os.getenv("UPYUN_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def _parse_endpoint(value):
    # "0".."3" pick a line, anything else is a host name
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def load_config(path=None) -> Config:
    """Read the JSON config file, then apply ``UPYUN_*`` environment overrides."""
    cfg_path = config_path(path)
    data = {}
    if cfg_path.exists():
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    elif path:
        raise RuntimeError(f"Missing config file at {cfg_path}")

    for name, env in ENV_KEYS.items():
        value = os.getenv(env)
        if value:
            data[name] = value

    missing = [k for k in ("bucket", "username", "password") if not data.get(k)]
    if missing:
        raise RuntimeError(
            f"Missing {', '.join(missing)}: set them in {cfg_path} or via "
            + ", ".join(ENV_KEYS[k] for k in missing)
        )
    known = {f.name for f in fields(Config)}
    unknown = set(data) - known
    if unknown:
        raise RuntimeError(f"Unknown config keys in {cfg_path}: {', '.join(sorted(unknown))}")
    if "endpoint" in data:
        data["endpoint"] = _parse_endpoint(data["endpoint"])
    cfg = Config(**data)
    if isinstance(cfg.endpoint, int) and not ED_AUTO <= cfg.endpoint <= ED_CTT:
        raise RuntimeError(
            f"Invalid endpoint {cfg.endpoint} in {cfg_path}: pick 0 (auto), 1 (telecom), 2 (cnc) or 3 (ctt)"
        )
    try:
        check_part_sizes(cfg.part_size, cfg.resume_threshold)
    except ValueError as e:
        raise RuntimeError(f"Invalid part sizes in {cfg_path}: {e}") from e
    return cfg
