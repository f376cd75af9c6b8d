"""Transport contract and its Paramiko implementation."""

from __future__ import annotations

import codecs
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import paramiko

from ..utils.logging import get_logger
from .credentials import AgentAuth, Authenticator, KeyAuth, PasswordAuth
from .errors import TransportError, TransportTimeoutError

logger = get_logger(__name__)

_CHUNK_SIZE = 4096


def _effective_timeout(seconds: Optional[float]) -> Optional[float]:
    """Zero or negative means no timeout."""
    if seconds is None or seconds <= 0:
        return None
    return float(seconds)


class Transport(ABC):
    """Black-box secure session used by the gateway.

    Handles returned by ``open`` are opaque to the caller and are only ever
    passed back into the same transport.
    """

    @abstractmethod
    def open(self, address: str, port: int, timeout: Optional[float]) -> Any:
        raise NotImplementedError

    @abstractmethod
    def login(self, handle: Any, username: str, authenticator: Authenticator) -> bool:
        raise NotImplementedError

    @abstractmethod
    def is_connected(self, handle: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def set_timeout(self, handle: Any, seconds: Optional[float]) -> None:
        raise NotImplementedError

    @abstractmethod
    def exec_streaming(self, handle: Any, command: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def read_next_chunk(self, handle: Any) -> Optional[str]:
        """Return the next piece of output, or ``None`` at end of stream."""
        raise NotImplementedError

    @abstractmethod
    def exit_status(self, handle: Any) -> Optional[int]:
        raise NotImplementedError

    def close(self, handle: Any) -> None:
        """Release the handle. Transports without resources may ignore it."""
        return None


@dataclass
class ParamikoHandle:
    transport: paramiko.Transport
    timeout: Optional[float] = None
    channel: Optional[paramiko.Channel] = None
    decoder: Any = field(default=None, repr=False)


class ParamikoTransport(Transport):
    """Transport backed by ``paramiko.Transport``.

    Host keys are accepted as presented, the same trade-off as
    ``paramiko.AutoAddPolicy``.
    """

    def __init__(self, *, keepalive: int = 0) -> None:
        self.keepalive = keepalive

    def open(self, address: str, port: int, timeout: Optional[float]) -> ParamikoHandle:
        timeout = _effective_timeout(timeout)
        try:
            sock = socket.create_connection((address, port), timeout=timeout)
        except socket.timeout as exc:
            raise TransportTimeoutError(f"Timed out connecting to {address}:{port}") from exc
        except OSError as exc:
            raise TransportError(f"Cannot reach {address}:{port}: {exc}") from exc

        transport = paramiko.Transport(sock)
        try:
            transport.start_client(timeout=timeout)
        except (paramiko.SSHException, OSError) as exc:
            transport.close()
            raise TransportError(f"SSH negotiation with {address}:{port} failed: {exc}") from exc
        if self.keepalive:
            transport.set_keepalive(self.keepalive)
        logger.debug("SSH transport opened to %s:%s", address, port)
        return ParamikoHandle(transport=transport, timeout=timeout)

    def login(self, handle: ParamikoHandle, username: str, authenticator: Authenticator) -> bool:
        transport = handle.transport
        try:
            if isinstance(authenticator, AgentAuth):
                return self._login_with_agent(transport, username)
            if isinstance(authenticator, KeyAuth):
                transport.auth_publickey(username, authenticator.key)
            elif isinstance(authenticator, PasswordAuth):
                transport.auth_password(username, authenticator.password)
            else:
                raise TypeError(f"Unknown authenticator: {authenticator!r}")
        except paramiko.AuthenticationException:
            return False
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"SSH authentication for {username} failed: {exc}") from exc
        return transport.is_authenticated()

    def _login_with_agent(self, transport: paramiko.Transport, username: str) -> bool:
        agent = paramiko.Agent()
        try:
            keys = agent.get_keys()
            if not keys:
                logger.warning("SSH agent offered no keys")
            for key in keys:
                try:
                    transport.auth_publickey(username, key)
                except paramiko.AuthenticationException:
                    continue
                if transport.is_authenticated():
                    return True
            return False
        finally:
            agent.close()

    def is_connected(self, handle: ParamikoHandle) -> bool:
        return handle.transport.is_active()

    def set_timeout(self, handle: ParamikoHandle, seconds: Optional[float]) -> None:
        handle.timeout = _effective_timeout(seconds)
        if handle.channel is not None:
            handle.channel.settimeout(handle.timeout)

    def exec_streaming(self, handle: ParamikoHandle, command: str) -> None:
        if handle.channel is not None:
            handle.channel.close()
            handle.channel = None
        try:
            channel = handle.transport.open_session(timeout=handle.timeout)
            channel.set_combined_stderr(True)
            channel.settimeout(handle.timeout)
            channel.exec_command(command)
        except socket.timeout as exc:
            raise TransportTimeoutError(f"Timed out starting command: {command}") from exc
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"Cannot start command {command!r}: {exc}") from exc
        handle.channel = channel
        handle.decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def read_next_chunk(self, handle: ParamikoHandle) -> Optional[str]:
        if handle.channel is None:
            return None
        while True:
            try:
                data = handle.channel.recv(_CHUNK_SIZE)
            except socket.timeout as exc:
                raise TransportTimeoutError(
                    f"No output within {handle.timeout} seconds"
                ) from exc
            except (paramiko.SSHException, OSError) as exc:
                raise TransportError(f"Reading command output failed: {exc}") from exc
            if not data:
                tail = handle.decoder.decode(b"", final=True)
                return tail or None
            text = handle.decoder.decode(data)
            # a lone partial multibyte sequence decodes to nothing yet
            if text:
                return text

    def exit_status(self, handle: ParamikoHandle) -> Optional[int]:
        channel = handle.channel
        if channel is None:
            return None
        if not channel.status_event.wait(handle.timeout):
            return None
        return channel.recv_exit_status()

    def close(self, handle: ParamikoHandle) -> None:
        if handle.channel is not None:
            handle.channel.close()
            handle.channel = None
        handle.transport.close()
