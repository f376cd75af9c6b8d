"""Error types raised by the SSH gateway."""

from __future__ import annotations

from typing import Optional


class GatewayError(RuntimeError):
    """Base class for every error surfaced by the gateway."""

    pass


class ConfigurationError(GatewayError, ValueError):
    """Raised before any network attempt when the input cannot be used."""

    pass


class HostSpecError(ConfigurationError):
    """Raised when a host string (or its port) cannot be parsed."""

    pass


class AuthConfigurationError(ConfigurationError):
    """Raised when no usable credential can be resolved."""

    pass


class KeyMaterialError(AuthConfigurationError):
    """Raised when private key material is unreadable or malformed."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class LoginError(GatewayError):
    """Raised when the remote host rejects the login."""

    def __init__(self, username: str, host: str) -> None:
        super().__init__(f"SSH login failed for {username}@{host}")
        self.username = username
        self.host = host


class TransportError(GatewayError):
    """Raised when the underlying session is unreachable or reset."""

    pass


class TransportTimeoutError(TransportError):
    """Raised when the transport exceeds the configured timeout."""

    pass


class CommandStateError(GatewayError):
    """Raised when a command operation is invoked in the wrong state."""

    pass


class CommandInProgressError(CommandStateError):
    """Raised when ``run`` is called before the previous output was drained."""

    def __init__(self, command: str) -> None:
        super().__init__(
            f"Command still in flight, drain its output before running another: {command}"
        )
        self.command = command


class UnsupportedOperationError(GatewayError, NotImplementedError):
    """Raised by file-transfer operations the SSH gateway does not offer."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"File transfer ({operation}) is not supported in SSH mode."
        )
        self.operation = operation


class RemoteCommandError(GatewayError):
    """Raised when a checked command exits with a non-zero status."""

    def __init__(self, command: str, exit_status: Optional[int], output: str) -> None:
        super().__init__(f"remote command failed rc={exit_status}: {command}\n{output}")
        self.command = command
        self.exit_status = exit_status
        self.output = output
