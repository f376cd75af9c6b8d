"""Command-line interface for Remote Gateway."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from .config import AppConfig, load_config
from .ssh import GatewayError, SSHGateway, execute
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

# Exit code used when the gateway fails before a remote status exists,
# matching what the ssh client itself returns.
GATEWAY_FAILURE = 255


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remote-gateway",
        description="Run a shell command on a remote host via SSH.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument("--host", help="Target host, e.g. example.com:2222 or [::1]:22")
    parser.add_argument("--port", type=int, default=None, help="Port used when the host has none")
    parser.add_argument("--user", help="SSH username")
    parser.add_argument("--password", default=None, help="SSH password")
    parser.add_argument("--key-path", default=None, help="Path to SSH private key")
    parser.add_argument("--passphrase", default=None, help="Passphrase for the private key")
    parser.add_argument(
        "--agent", action="store_true", help="Authenticate with the running ssh-agent"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Timeout in seconds (0 disables)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log connection progress"
    )
    parser.add_argument("remote_command", nargs=argparse.REMAINDER, help="Command to run")
    return parser


def _merge_args(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.host:
        config.connection.host = args.host
    if args.port is not None:
        config.connection.port = args.port
    if args.user:
        config.connection.username = args.user
    if args.timeout is not None:
        config.connection.timeout = args.timeout
    if args.password:
        config.credentials.password = args.password
    if args.key_path:
        config.credentials.key_path = args.key_path
    if args.passphrase:
        config.credentials.passphrase = args.passphrase
    if args.agent:
        config.credentials.agent = True
    return config


def _load(args: argparse.Namespace) -> AppConfig:
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        if args.config:
            raise
        config = AppConfig()
    return _merge_args(config, args)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("INFO" if args.verbose else None)

    words = list(args.remote_command)
    if words and words[0] == "--":
        words = words[1:]
    command = " ".join(words).strip()
    if not command:
        parser.error("no command given")

    try:
        config = _load(args)
    except FileNotFoundError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 2
    if not config.connection.username:
        parser.error("no username given (--user or REMOTE_GATEWAY_USERNAME)")

    try:
        with SSHGateway.from_config(config) as gateway:
            gateway.connect(config.connection.username)
            result = execute(gateway, command, on_output=_echo)
    except GatewayError as exc:
        logger.debug("Gateway failure", exc_info=True)
        print(f"❌ {exc}", file=sys.stderr)
        return GATEWAY_FAILURE

    if result.exit_status is None:
        print("❌ Remote exit status unavailable", file=sys.stderr)
        return GATEWAY_FAILURE
    return result.exit_status


def _echo(chunk: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


if __name__ == "__main__":
    sys.exit(main())
