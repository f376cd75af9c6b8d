"""Remote Gateway: run shell commands on remote hosts over SSH."""

from .config import AppConfig, load_config
from .ssh import SSHCredentials, SSHGateway

__all__ = ["AppConfig", "SSHCredentials", "SSHGateway", "load_config"]
