"""SSH credential helpers."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import paramiko

from .errors import AuthConfigurationError, KeyMaterialError

# Tried in order when parsing private key text. DSA keys are not supported.
_KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)

_TRUTHY = {"1", "true", "yes", "on"}


def as_flag(value: Any) -> bool:
    """Interpret config-style booleans; strings such as "false" or "0" are False."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


@dataclass
class SSHCredentials:
    """Credential descriptor as supplied by the caller, not yet resolved."""

    agent: bool = False
    key_path: Optional[str] = None
    key_text: Optional[str] = None
    passphrase: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        self.agent = as_flag(self.agent)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SSHCredentials":
        """Accept both the short (``key``, ``keytext``, ``keyphrase``) and long field names."""
        return cls(
            agent=payload.get("agent", False),
            key_path=payload.get("key_path") or payload.get("key"),
            key_text=payload.get("key_text") or payload.get("keytext"),
            passphrase=payload.get("passphrase") or payload.get("keyphrase"),
            password=payload.get("password"),
        )

    def has_key(self) -> bool:
        return bool((self.key_path or "").strip() or (self.key_text or "").strip())

    def __repr__(self) -> str:
        # Never leak secrets into logs or tracebacks.
        return (
            f"SSHCredentials(agent={self.agent!r}, key_path={self.key_path!r}, "
            f"key_text={'***' if self.key_text else None}, "
            f"passphrase={'***' if self.passphrase else None}, "
            f"password={'***' if self.password else None})"
        )


@dataclass(frozen=True)
class AgentAuth:
    """Delegate signing to the running SSH agent."""

    kind = "agent"


@dataclass(frozen=True)
class KeyAuth:
    kind = "key"

    key: paramiko.PKey


@dataclass(frozen=True)
class PasswordAuth:
    kind = "password"

    password: str = ""

    def __repr__(self) -> str:
        return "PasswordAuth(password='***')"


Authenticator = Union[AgentAuth, KeyAuth, PasswordAuth]


class KeyMaterialSource(ABC):
    """Reads private key bytes from a named location."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        raise NotImplementedError


class FileKeySource(KeyMaterialSource):
    """Reads key files from the local filesystem."""

    def read_bytes(self, path: str) -> bytes:
        key_path = Path(path).expanduser()
        try:
            return key_path.read_bytes()
        except OSError as exc:
            raise KeyMaterialError(
                f"Cannot read private key {key_path}: {exc}", source=str(key_path)
            ) from exc


def load_private_key(
    key_text: str, passphrase: Optional[str] = None, *, source: str = "<inline>"
) -> paramiko.PKey:
    """Parse private key text, trying each supported key type in turn."""
    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key_text), password=passphrase)
        except paramiko.PasswordRequiredException as exc:
            raise KeyMaterialError(
                f"Private key {source} is encrypted and no passphrase was given",
                source=source,
            ) from exc
        except (paramiko.SSHException, ValueError) as exc:
            last_error = exc
    raise KeyMaterialError(
        f"Unsupported or malformed private key {source}: {last_error}", source=source
    ) from last_error


def select_authenticator(
    credentials: SSHCredentials, key_source: KeyMaterialSource
) -> Authenticator:
    """Pick exactly one authenticator: agent, then key material, then password."""
    if credentials.agent:
        return AgentAuth()

    if credentials.has_key():
        if (credentials.key_path or "").strip():
            path = credentials.key_path.strip()
            raw = key_source.read_bytes(path)
            source = path
        else:
            raw = credentials.key_text.strip().encode("utf-8")
            source = "<inline>"
        text = raw.decode("utf-8", errors="replace")
        return KeyAuth(key=load_private_key(text, credentials.passphrase or None, source=source))

    if credentials.password:
        return PasswordAuth(password=credentials.password)

    raise AuthConfigurationError(
        "No usable credential: expected agent, a private key or a password"
    )
