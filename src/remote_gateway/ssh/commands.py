"""Helpers that run a whole command through a gateway."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .errors import RemoteCommandError
from .gateway import GatewayInterface


@dataclass
class CommandResult:
    command: str
    output: str
    exit_status: Optional[int]

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


def execute(
    gateway: GatewayInterface,
    command: str,
    *,
    on_output: Optional[Callable[[str], None]] = None,
    check: bool = False,
) -> CommandResult:
    """Run ``command``, drain its output and return the collected result.

    ``on_output`` receives every chunk as it arrives. With ``check=True`` a
    non-zero (or unknown) exit status raises ``RemoteCommandError``.
    """
    gateway.run(command)
    chunks = []
    while True:
        chunk = gateway.next_line()
        if chunk is None:
            break
        chunks.append(chunk)
        if on_output is not None:
            on_output(chunk)
    result = CommandResult(command=command, output="".join(chunks), exit_status=gateway.status())
    if check and not result.ok:
        raise RemoteCommandError(command, result.exit_status, result.output)
    return result
