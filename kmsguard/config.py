"""Configuration file structures for the key management service."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ErrorKind, KmsError
from .hook import HookConfig

CONFIG_ENV_VAR = "TMKMS_CONFIG_FILE"
"""Environment variable holding the path to the configuration file."""

CONFIG_FILE_NAME = "tmkms.toml"
"""Name of the configuration file used when no other path is given."""


def _config_error(message: str) -> KmsError:
    return KmsError(ErrorKind.CONFIG_ERROR, message)


def _expect_mapping(data: object, where: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise _config_error(f"expected a table for {where}")
    return data


def _reject_unknown(data: Mapping[str, Any], allowed: set[str], where: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise _config_error(f"unknown field `{unknown[0]}` in {where}")


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise _config_error(f"missing field `{key}` in {where}")
    return data[key]


def _expect_str(value: object, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise _config_error(f"invalid {name}: {value!r}")
    return value


def _expect_bool(value: object, name: str) -> bool:
    if not isinstance(value, bool):
        raise _config_error(f"invalid {name}: {value!r}")
    return value


def _parse_hook(data: object) -> HookConfig:
    table = _expect_mapping(data, "state_hook")
    _reject_unknown(table, {"cmd", "timeout_secs", "fail_closed"}, "state_hook")
    cmd = _require(table, "cmd", "state_hook")
    if not isinstance(cmd, list) or not cmd or not all(isinstance(arg, str) for arg in cmd):
        raise _config_error(f"invalid state_hook cmd: {cmd!r}")
    timeout = table.get("timeout_secs")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, int) or timeout < 0
    ):
        raise _config_error(f"invalid state_hook timeout_secs: {timeout!r}")
    fail_closed = _expect_bool(table.get("fail_closed", False), "state_hook fail_closed")
    return HookConfig(cmd=list(cmd), timeout_secs=timeout, fail_closed=fail_closed)


@dataclass
class ChainConfig:
    """Configuration of one chain the service manages keys for."""

    id: str
    key_format: Any = None
    state_file: Path | None = None
    state_hook: HookConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChainConfig:
        table = _expect_mapping(data, "chain")
        _reject_unknown(table, {"id", "key_format", "state_file", "state_hook"}, "chain")
        chain_id = _expect_str(_require(table, "id", "chain"), "chain id")
        state_file = table.get("state_file")
        if state_file is not None:
            state_file = Path(_expect_str(state_file, "state_file"))
        hook = table.get("state_hook")
        return cls(
            id=chain_id,
            key_format=table.get("key_format"),
            state_file=state_file,
            state_hook=_parse_hook(hook) if hook is not None else None,
        )


@dataclass
class ValidatorConfig:
    """Address of a validator node and how to connect to it."""

    addr: str
    chain_id: str
    reconnect: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ValidatorConfig:
        table = _expect_mapping(data, "validator")
        addr = _expect_str(_require(table, "addr", "validator"), "validator addr")
        chain_id = _expect_str(_require(table, "chain_id", "validator"), "validator chain_id")
        reconnect = _expect_bool(table.get("reconnect", True), "validator reconnect")
        extra = {k: v for k, v in table.items() if k not in {"addr", "chain_id", "reconnect"}}
        return cls(addr=addr, chain_id=chain_id, reconnect=reconnect, extra=extra)


@dataclass
class KmsConfig:
    """Parsed contents of the configuration file."""

    chain: list[ChainConfig] = field(default_factory=list)
    validator: list[ValidatorConfig] = field(default_factory=list)
    providers: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KmsConfig:
        table = _expect_mapping(data, "configuration")
        _reject_unknown(table, {"chain", "validator", "providers"}, "configuration")
        providers = _expect_mapping(_require(table, "providers", "configuration"), "providers")

        chains = table.get("chain", [])
        validators = table.get("validator", [])
        if not isinstance(chains, list):
            raise _config_error("`chain` must be an array of tables")
        if not isinstance(validators, list):
            raise _config_error("`validator` must be an array of tables")

        return cls(
            chain=[ChainConfig.from_dict(c) for c in chains],
            validator=[ValidatorConfig.from_dict(v) for v in validators],
            providers=dict(providers),
        )


def load_config_file(path: str | os.PathLike) -> KmsConfig:
    """Read and parse a TOML configuration file."""
    config_path = Path(path)
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise _config_error(f"error parsing {config_path}: {e}") from e
    except OSError as e:
        raise KmsError(ErrorKind.IO_ERROR, f"error reading {config_path}: {e}") from e
    return KmsConfig.from_dict(data)


def resolve_config_path(explicit_path: str | os.PathLike | None = None) -> Path:
    """Choose the configuration path: the given one, then the environment, then the default."""
    if explicit_path is not None:
        return Path(explicit_path)
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    return Path(CONFIG_FILE_NAME)