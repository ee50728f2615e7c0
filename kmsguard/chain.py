"""Registry of the blockchain networks the service manages keys for."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import hook
from .config import ChainConfig, KmsConfig
from .errors import ErrorKind, KmsError
from .state import State, load_state

logger = logging.getLogger(__name__)


@dataclass
class Chain:
    """A chain: its id, key format and last signed state."""

    id: str
    state: State
    key_format: Any = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @classmethod
    def from_config(cls, config: ChainConfig) -> Chain:
        """Load the chain's state file and apply its state hook, if any."""
        state_file = config.state_file or Path(f"{config.id}_priv_validator_state.json")
        state = load_state(state_file)

        if config.state_hook is not None:
            try:
                output = hook.run(config.state_hook)
            except KmsError as e:
                if config.state_hook.fail_closed:
                    raise
                logger.error("error invoking state hook for chain %s: %s", config.id, e)
            else:
                state.update_from_hook_output(output)

        return cls(id=config.id, state=state, key_format=config.key_format)


class Registry:
    """Chains known to the service, by id."""

    def __init__(self) -> None:
        self._chains: dict[str, Chain] = {}

    def register_chain(self, chain: Chain) -> None:
        if chain.id in self._chains:
            raise KmsError(ErrorKind.CONFIG_ERROR, f"chain ID already registered: {chain.id}")
        self._chains[chain.id] = chain

    def get_chain(self, chain_id: str) -> Chain | None:
        return self._chains.get(chain_id)

    def __len__(self) -> int:
        return len(self._chains)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._chains))


class Guard:
    """Read access to a registry, taken under the registry's lock."""

    def __init__(self, registry: Registry, lock: threading.Lock | None = None) -> None:
        self._registry = registry
        self._lock = lock or threading.Lock()

    def get_chain(self, chain_id: str) -> Chain | None:
        with self._lock:
            return self._registry.get_chain(chain_id)


class GlobalRegistry:
    """A registry shared between threads."""

    def __init__(self) -> None:
        self._registry = Registry()
        self._lock = threading.Lock()

    def get(self) -> Guard:
        return Guard(self._registry, self._lock)

    def register(self, chain: Chain) -> None:
        with self._lock:
            self._registry.register_chain(chain)


REGISTRY = GlobalRegistry()
"""Registry used by the running service."""


def load_config(config: KmsConfig, registry: GlobalRegistry | None = None) -> None:
    """Register every chain in the configuration."""
    target = REGISTRY if registry is None else registry
    for chain_config in config.chain:
        target.register(Chain.from_config(chain_config))