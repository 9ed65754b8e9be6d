from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_TIMEOUT_SECONDS = 30.0
QUIT_GRACE_SECONDS = 1.0

MOCK_ENDPOINT_URL = "http://localhost:9000"
MOCK_REGION = "ap-northeast-1"
MOCK_ACCESS_KEY = "access_key"
MOCK_SECRET_KEY = "secret_key"


def config_base_dir() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        base = Path(config_home).expanduser()
    else:
        base = Path.home() / ".config"
    return base / "s3nav"


def default_log_path() -> Path:
    override = os.environ.get("S3NAV_LOG_FILE")
    if override:
        return Path(override).expanduser()
    return config_base_dir() / "s3nav.log"


def timeout_from_env(default: float = DEFAULT_TIMEOUT_SECONDS) -> float:
    raw = os.environ.get("S3NAV_TIMEOUT_SECONDS", "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


@dataclass(frozen=True)
class EndpointConfig:
    """Where and how the S3 client connects."""

    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    path_style: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def aws(cls) -> EndpointConfig:
        # Credentials and region come from the default boto3 chain.
        return cls(timeout_seconds=timeout_from_env())

    @classmethod
    def mock(cls) -> EndpointConfig:
        return cls(
            endpoint_url=MOCK_ENDPOINT_URL,
            region=MOCK_REGION,
            access_key=MOCK_ACCESS_KEY,
            secret_key=MOCK_SECRET_KEY,
            path_style=True,
            timeout_seconds=timeout_from_env(),
        )

    @property
    def is_mock(self) -> bool:
        return self.endpoint_url is not None
