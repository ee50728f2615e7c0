"""State hooks: obtain the latest block height from an external command."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field

from .errors import ErrorKind, KmsError

DEFAULT_TIMEOUT_SECS = 1
"""Timeout used when the configuration does not give one."""

BLOCK_HEIGHT_SANITY_LIMIT = 9000
"""How far the hook's block height may move ahead of the last known state."""


@dataclass
class HookConfig:
    """Command to run to obtain the last signing state."""

    cmd: list[str] = field(default_factory=list)
    timeout_secs: int | None = None
    fail_closed: bool = False


@dataclass(frozen=True)
class HookOutput:
    """JSON output from a hook command."""

    latest_block_height: int


def _parse_height(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid block height: {value!r}")
    if isinstance(value, int):
        height = value
    elif isinstance(value, str) and value.isdigit():
        height = int(value)
    else:
        raise ValueError(f"invalid block height: {value!r}")
    if height < 0:
        raise ValueError(f"invalid block height: {value!r}")
    return height


def parse_output(text: str) -> HookOutput:
    """Parse the JSON a hook command printed."""
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        if "latest_block_height" not in data:
            raise ValueError("missing field `latest_block_height`")
        return HookOutput(latest_block_height=_parse_height(data["latest_block_height"]))
    except ValueError as e:
        raise KmsError(ErrorKind.PARSE_ERROR, f"invalid hook output: {e}") from e


def run(config: HookConfig) -> HookOutput:
    """Run the hook command and return its parsed output."""
    if not config.cmd:
        raise KmsError(ErrorKind.HOOK_ERROR, "hook command is empty")

    timeout = config.timeout_secs if config.timeout_secs is not None else DEFAULT_TIMEOUT_SECS

    try:
        proc = subprocess.Popen(list(config.cmd), stdout=subprocess.PIPE)
    except OSError as e:
        raise KmsError(ErrorKind.IO_ERROR, f"couldn't run {config.cmd[0]}: {e}") from e

    try:
        stdout, _ = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        raise KmsError(ErrorKind.HOOK_ERROR, f"subcommand timed out after {timeout}s") from None

    if proc.returncode != 0:
        raise KmsError(ErrorKind.HOOK_ERROR, f"subcommand returned status {proc.returncode}")

    try:
        text = stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise KmsError(ErrorKind.PARSE_ERROR, f"invalid hook output: {e}") from e
    return parse_output(text)