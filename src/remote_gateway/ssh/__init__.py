"""SSH gateway for running commands on remote hosts."""

from .commands import CommandResult, execute
from .credentials import (
    AgentAuth,
    Authenticator,
    FileKeySource,
    KeyAuth,
    KeyMaterialSource,
    PasswordAuth,
    SSHCredentials,
    load_private_key,
    select_authenticator,
)
from .errors import (
    AuthConfigurationError,
    CommandInProgressError,
    CommandStateError,
    ConfigurationError,
    GatewayError,
    HostSpecError,
    KeyMaterialError,
    LoginError,
    RemoteCommandError,
    TransportError,
    TransportTimeoutError,
    UnsupportedOperationError,
)
from .gateway import CommandExecution, GatewayInterface, SSHGateway
from .hosts import DEFAULT_PORT, HostSpec
from .transport import ParamikoHandle, ParamikoTransport, Transport

__all__ = [
    "AgentAuth",
    "Authenticator",
    "AuthConfigurationError",
    "CommandExecution",
    "CommandInProgressError",
    "CommandResult",
    "CommandStateError",
    "ConfigurationError",
    "DEFAULT_PORT",
    "FileKeySource",
    "GatewayError",
    "GatewayInterface",
    "HostSpec",
    "HostSpecError",
    "KeyAuth",
    "KeyMaterialError",
    "KeyMaterialSource",
    "LoginError",
    "ParamikoHandle",
    "ParamikoTransport",
    "PasswordAuth",
    "RemoteCommandError",
    "SSHCredentials",
    "SSHGateway",
    "Transport",
    "TransportError",
    "TransportTimeoutError",
    "UnsupportedOperationError",
    "execute",
    "load_private_key",
    "select_authenticator",
]
