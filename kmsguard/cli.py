"""Command-line interface of the key management service."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from . import chain
from .application import APPLICATION
from .client import Client
from .config import KmsConfig, ValidatorConfig, load_config_file, resolve_config_path
from .errors import KmsError

logger = logging.getLogger(__name__)

PROGRAM_NAME = "kmsguard"
VERSION = "0.1.0"

SessionRunner = Callable[[ValidatorConfig], None]


def _status_err(message: str) -> None:
    print(f"error: {message}", file=sys.stderr)


def version_string() -> str:
    """Program name and version, as printed by the `version` command."""
    return f"{PROGRAM_NAME} {VERSION}"


@dataclass
class StartCommand:
    """Start the service: register chains, then serve every configured validator."""

    config: Path | None = None
    verbose: bool = False
    session_runner: SessionRunner | None = None
    registry: chain.GlobalRegistry | None = None

    def spawn_clients(self, config: KmsConfig) -> list[Client]:
        """Register the configured chains and start one client per validator."""
        if self.session_runner is None:
            raise KmsError(
                chain.ErrorKind.CONFIG_ERROR, "no session handler available for validators"
            )
        chain.load_config(config, self.registry)
        return [Client.spawn(validator, self.session_runner) for validator in config.validator]

    def run(self, config: KmsConfig) -> int:
        """Run until every client has exited; return the process exit status."""
        logger.info("%s %s starting up...", PROGRAM_NAME, VERSION)

        try:
            clients = self.spawn_clients(config)
        except KmsError as e:
            _status_err(f"error loading configuration: {e}")
            return 1

        logger.debug("Main thread waiting on clients...")

        success = True
        for client in clients:
            try:
                client.join()
            except KmsError as e:
                _status_err(f"client '{client.name}' exited with error: {e}")
                success = False

        if success:
            logger.info("Shutdown completed successfully")
            return 0
        logger.warning("Shutdown completed with errors")
        return 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the `start`, `version` and `help` commands."""
    parser = argparse.ArgumentParser(prog=PROGRAM_NAME, description="Key management service")
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    start = commands.add_parser("start", help="start the KMS application")
    start.add_argument("-c", "--config", type=Path, help="path to tmkms.toml")
    start.add_argument(
        "-v", "--verbose", action="store_true", help="enable verbose debug logging"
    )

    commands.add_parser("version", help="display version information")

    help_cmd = commands.add_parser("help", help="show help for a command")
    help_cmd.add_argument("topic", nargs="?", help="command to show help for")

    parser.set_defaults(_subparsers=commands)
    return parser


def _show_help(parser: argparse.ArgumentParser, topic: str | None) -> int:
    if topic is None:
        parser.print_help()
        return 0
    subparsers = parser.get_default("_subparsers")
    sub = subparsers.choices.get(topic)
    if sub is None:
        _status_err(f"unknown command: {topic}")
        return 1
    sub.print_help()
    return 0


def _start(args: argparse.Namespace, session_runner: SessionRunner | None) -> int:
    command = StartCommand(
        config=args.config, verbose=args.verbose, session_runner=session_runner
    )
    logging.basicConfig(level=APPLICATION.logging_level(command.verbose))

    path = resolve_config_path(command.config)
    try:
        config = load_config_file(path)
    except KmsError as e:
        _status_err(f"error loading configuration: {e}")
        return 1

    APPLICATION.configure(config)
    return command.run(config)


def main(
    argv: Sequence[str] | None = None, session_runner: SessionRunner | None = None
) -> int:
    """Entry point of the command-line program; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "start":
        return _start(args, session_runner)
    if args.command == "version":
        print(version_string())
        return 0
    if args.command == "help":
        return _show_help(parser, args.topic)

    parser.print_help(sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())