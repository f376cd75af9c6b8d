"""Configuration loading utilities for Remote Gateway."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .ssh.credentials import as_flag

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")


@dataclass
class ConnectionConfig:
    """Where to connect and how long to wait."""

    host: Optional[str] = None
    port: int = 22
    username: Optional[str] = None
    timeout: float = 10  # seconds, 0 disables


@dataclass
class CredentialConfig:
    """Credential descriptor fields; agent wins over key, key over password."""

    agent: bool = False
    key_path: Optional[str] = None
    key_text: Optional[str] = None
    passphrase: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        self.agent = as_flag(self.agent)


@dataclass
class AppConfig:
    """Top-level configuration."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    credentials: CredentialConfig = field(default_factory=CredentialConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        connection_payload = payload.get("connection", {}) or {}
        credentials_payload = payload.get("credentials", {}) or {}

        # 过滤掉以下划线开头的注释字段
        connection_payload = {k: v for k, v in connection_payload.items() if not k.startswith("_")}
        credentials_payload = {k: v for k, v in credentials_payload.items() if not k.startswith("_")}

        return cls(
            connection=ConnectionConfig(
                **{**ConnectionConfig().__dict__, **connection_payload}
            ),
            credentials=CredentialConfig(
                **{**CredentialConfig().__dict__, **credentials_payload}
            ),
        )


def _apply_env_overrides(config: AppConfig) -> None:
    env_host = os.getenv("REMOTE_GATEWAY_HOST")
    if env_host:
        config.connection.host = env_host

    env_port = os.getenv("REMOTE_GATEWAY_PORT")
    if env_port:
        config.connection.port = int(env_port)

    env_username = os.getenv("REMOTE_GATEWAY_USERNAME")
    if env_username:
        config.connection.username = env_username

    env_timeout = os.getenv("REMOTE_GATEWAY_TIMEOUT")
    if env_timeout:
        config.connection.timeout = float(env_timeout)

    env_password = os.getenv("REMOTE_GATEWAY_PASSWORD")
    if env_password:
        config.credentials.password = env_password

    env_key_path = os.getenv("REMOTE_GATEWAY_KEY_PATH")
    if env_key_path:
        config.credentials.key_path = env_key_path

    env_passphrase = os.getenv("REMOTE_GATEWAY_PASSPHRASE")
    if env_passphrase:
        config.credentials.passphrase = env_passphrase

    env_agent = os.getenv("REMOTE_GATEWAY_USE_AGENT")
    if env_agent:
        config.credentials.agent = as_flag(env_agent)


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - REMOTE_GATEWAY_HOST / REMOTE_GATEWAY_PORT: target host and default port
    - REMOTE_GATEWAY_USERNAME: login name
    - REMOTE_GATEWAY_TIMEOUT: session timeout in seconds
    - REMOTE_GATEWAY_PASSWORD: SSH password
    - REMOTE_GATEWAY_KEY_PATH / REMOTE_GATEWAY_PASSPHRASE: private key
    - REMOTE_GATEWAY_USE_AGENT: "1"/"true" to authenticate via ssh-agent
    """

    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    for candidate in candidate_paths:
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            config = AppConfig.from_dict(data)
            _apply_env_overrides(config)
            return config

    raise FileNotFoundError(
        f"Could not find configuration file. Looked in: {', '.join(str(p) for p in candidate_paths)}"
    )
