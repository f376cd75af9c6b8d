"""SSH gateway: connection negotiation and streaming command execution."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator, Optional

from ..utils.logging import get_logger
from .credentials import FileKeySource, KeyMaterialSource, SSHCredentials, select_authenticator
from .errors import (
    CommandInProgressError,
    CommandStateError,
    HostSpecError,
    LoginError,
    UnsupportedOperationError,
)
from .hosts import DEFAULT_PORT, HostSpec
from .transport import ParamikoTransport, Transport

if TYPE_CHECKING:  # pragma: no cover
    from ..config import AppConfig

logger = get_logger(__name__)


class GatewayInterface(ABC):
    """Everything a remote connection offers to the code that drives it."""

    @abstractmethod
    def connect(self, username: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def connected(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def set_timeout(self, seconds: Optional[float]) -> None:
        raise NotImplementedError

    @abstractmethod
    def disconnect(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def run(self, command: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def next_line(self) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def status(self) -> Optional[int]:
        raise NotImplementedError

    @abstractmethod
    def get(self, remote: str, local: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_string(self, remote: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def put(self, local: str, remote: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def put_string(self, remote: str, contents: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def exists(self, remote: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def rename(self, remote: str, new_remote: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, remote: str) -> None:
        raise NotImplementedError


class CommandExecution:
    """One in-flight remote command and a cursor over its output.

    Iterating yields output chunks until end of stream. Once exhausted the
    execution stays exhausted; it cannot be rewound.
    """

    def __init__(self, command: str, transport: Transport, handle: Any) -> None:
        self.command = command
        self.chunks_read = 0
        self.exhausted = False
        self.exit_status: Optional[int] = None
        self._transport = transport
        self._handle = handle
        self._invalidated = False

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        chunk = self.next_chunk()
        if chunk is None:
            raise StopIteration
        return chunk

    @property
    def in_flight(self) -> bool:
        return not self.exhausted and not self._invalidated

    def invalidate(self) -> None:
        self._invalidated = True

    def next_chunk(self) -> Optional[str]:
        if self.exhausted:
            return None
        if self._invalidated:
            raise CommandStateError(
                f"Command was invalidated by disconnect: {self.command}"
            )
        chunk = self._transport.read_next_chunk(self._handle)
        if chunk is None:
            self.exhausted = True
            logger.debug("Output of %r drained after %d chunk(s)", self.command, self.chunks_read)
        else:
            self.chunks_read += 1
        return chunk

    def status(self) -> Optional[int]:
        """Exit status, or ``None`` while output is still pending."""
        if not self.exhausted or self._invalidated:
            return None
        if self.exit_status is None:
            self.exit_status = self._transport.exit_status(self._handle)
        return self.exit_status


class SSHGateway(GatewayInterface):
    """Runs commands on one remote host over a lazily opened SSH session.

    Usage::

        gateway = SSHGateway("example.com:2222", SSHCredentials(password="..."))
        gateway.connect("deploy")
        gateway.run("uname -a")
        while (chunk := gateway.next_line()) is not None:
            print(chunk, end="")
        rc = gateway.status()

    ``run`` needs a successful ``connect`` on the current session;
    ``disconnect`` forgets the login along with the session.

    Only one command may be in flight at a time. A command is finished once
    ``next_line`` has returned ``None``; ``run`` before that raises
    ``CommandInProgressError``. ``status`` never waits for pending output:
    it returns ``None`` until the output is drained, then waits at most the
    configured timeout for the exit code.

    File-transfer methods exist for interface completeness and always raise
    ``UnsupportedOperationError`` without touching the network.

    Not thread-safe; drive each gateway from a single thread.
    """

    def __init__(
        self,
        host: str,
        credentials: SSHCredentials,
        key_source: Optional[KeyMaterialSource] = None,
        timeout: Optional[float] = 10,
        *,
        transport: Optional[Transport] = None,
        default_port: int = DEFAULT_PORT,
    ) -> None:
        self.host = HostSpec.parse(host, default_port=default_port)
        self.credentials = credentials
        self.username: Optional[str] = None
        self._key_source = key_source or FileKeySource()
        self._transport = transport or ParamikoTransport()
        self._timeout = timeout
        self._connection: Any = None
        self._logged_in = False
        self._execution: Optional[CommandExecution] = None

    @classmethod
    def from_config(cls, config: "AppConfig", **kwargs: Any) -> "SSHGateway":
        connection = config.connection
        if not connection.host:
            raise HostSpecError("No host configured")
        credentials = SSHCredentials(
            agent=config.credentials.agent,
            key_path=config.credentials.key_path,
            key_text=config.credentials.key_text,
            passphrase=config.credentials.passphrase,
            password=config.credentials.password,
        )
        return cls(
            connection.host,
            credentials,
            timeout=connection.timeout,
            default_port=connection.port,
            **kwargs,
        )

    def __enter__(self) -> "SSHGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.disconnect()

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def execution(self) -> Optional[CommandExecution]:
        return self._execution

    # -------------------------
    # session
    # -------------------------
    def get_connection(self) -> Any:
        """Return the session handle, opening it on first use."""
        if self._connection is None:
            logger.info("Opening SSH session to %s (timeout=%s)", self.host, self._timeout)
            self._connection = self._transport.open(
                self.host.hostname, self.host.port, self._timeout
            )
        return self._connection

    def connect(self, username: str) -> bool:
        authenticator = select_authenticator(self.credentials, self._key_source)
        connection = self.get_connection()
        if not self._transport.login(connection, username, authenticator):
            logger.warning("SSH login rejected for %s@%s", username, self.host.address)
            raise LoginError(username, self.host.address)
        self._logged_in = True
        self.username = username
        logger.info(
            "Logged in to %s as %s using %s authentication",
            self.host, username, authenticator.kind,
        )
        return True

    def connected(self) -> bool:
        if self._connection is None:
            return False
        return self._transport.is_connected(self._connection)

    def set_timeout(self, seconds: Optional[float]) -> None:
        self._timeout = seconds
        if self._connection is not None:
            self._transport.set_timeout(self._connection, seconds)

    def disconnect(self) -> None:
        if self._connection is None:
            return
        if self._execution is not None:
            self._execution.invalidate()
        connection, self._connection = self._connection, None
        self._logged_in = False
        self.username = None
        self._transport.close(connection)
        logger.info("Disconnected from %s", self.host)

    # -------------------------
    # commands
    # -------------------------
    def run(self, command: str) -> None:
        if self._execution is not None and self._execution.in_flight:
            raise CommandInProgressError(self._execution.command)
        if not self._logged_in:
            raise CommandStateError(f"Not logged in to {self.host}; call connect() first")
        connection = self.get_connection()
        logger.debug("Running on %s: %s", self.host, command)
        self._transport.exec_streaming(connection, command)
        self._execution = CommandExecution(command, self._transport, connection)

    def next_line(self) -> Optional[str]:
        if self._execution is None:
            raise CommandStateError("No command has been run")
        return self._execution.next_chunk()

    def status(self) -> Optional[int]:
        if self._execution is None:
            return None
        return self._execution.status()

    # -------------------------
    # file transfer (not available)
    # -------------------------
    def get(self, remote: str, local: str) -> None:
        raise UnsupportedOperationError("get")

    def get_string(self, remote: str) -> str:
        raise UnsupportedOperationError("get_string")

    def put(self, local: str, remote: str) -> None:
        raise UnsupportedOperationError("put")

    def put_string(self, remote: str, contents: str) -> None:
        raise UnsupportedOperationError("put_string")

    def exists(self, remote: str) -> bool:
        raise UnsupportedOperationError("exists")

    def rename(self, remote: str, new_remote: str) -> None:
        raise UnsupportedOperationError("rename")

    def delete(self, remote: str) -> None:
        raise UnsupportedOperationError("delete")
