"""Host string parsing."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from .errors import HostSpecError

DEFAULT_PORT = 22


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _is_ipv6(value: str) -> bool:
    try:
        return isinstance(ipaddress.ip_address(value), ipaddress.IPv6Address)
    except ValueError:
        return False


@dataclass(frozen=True)
class HostSpec:
    """Resolved address/port pair.

    IPv6 literals that came with a port keep their brackets in ``address``;
    use ``hostname`` when a bare address is needed (sockets, DNS).
    """

    address: str
    port: int = DEFAULT_PORT

    @property
    def hostname(self) -> str:
        if self.address.startswith("[") and self.address.endswith("]"):
            return self.address[1:-1]
        return self.address

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"

    @classmethod
    def parse(cls, raw: str, default_port: int = DEFAULT_PORT) -> "HostSpec":
        """Resolve ``raw`` into a ``HostSpec``.

        Accepted forms: ``host``, ``host:port``, bare IPv4/IPv6 literals,
        ``[ipv6]`` and ``[ipv6]:port``. An unbracketed string that is a valid
        IPv6 literal is never split, so ``2001:db8::1:2222`` is an address.
        """
        if not raw or not raw.strip():
            raise HostSpecError("Host string is empty")
        raw = raw.strip()
        port = _check_port(default_port, raw)
        _check_brackets(raw)

        stripped = raw
        if stripped.startswith("["):
            stripped = stripped[1:]
        if stripped.endswith("]"):
            stripped = stripped[:-1]

        if _is_ip(stripped):
            return cls(address=raw, port=port)

        address = stripped
        if ":" in stripped:
            address, _, port_text = stripped.rpartition(":")
            # "[v6]:port" leaves the closing bracket on the address side
            if address.endswith("]"):
                address = address[:-1]
            if not (port_text.isascii() and port_text.isdigit()):
                raise HostSpecError(f"Invalid port {port_text!r} in host {raw!r}")
            port = _check_port(int(port_text), raw)

        if not address:
            raise HostSpecError(f"Missing address in host {raw!r}")
        if _is_ipv6(address):
            address = f"[{address}]"
        return cls(address=address, port=port)


def _check_brackets(raw: str) -> None:
    if raw.startswith("["):
        close = raw.find("]")
        rest = raw[close + 1:]
        if close == -1 or (rest and not rest.startswith(":")):
            raise HostSpecError(f"Unbalanced brackets in host {raw!r}")
    elif "[" in raw or "]" in raw:
        raise HostSpecError(f"Unbalanced brackets in host {raw!r}")


def _check_port(port: int, raw: str) -> int:
    if not 0 < port <= 0xFFFF:
        raise HostSpecError(f"Port {port} out of range in host {raw!r}")
    return port
