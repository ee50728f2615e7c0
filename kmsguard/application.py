"""Application state shared by the command-line commands."""

from __future__ import annotations

import logging
import threading

from .config import KmsConfig
from .errors import ErrorKind, KmsError


class KmsApplication:
    """Holds the loaded configuration of the running service."""

    def __init__(self) -> None:
        self._config: KmsConfig | None = None
        self._lock = threading.RLock()

    @property
    def config(self) -> KmsConfig:
        """The loaded configuration; raises if none has been loaded yet."""
        with self._lock:
            if self._config is None:
                raise KmsError(ErrorKind.CONFIG_ERROR, "not configured yet")
            return self._config

    @property
    def is_configured(self) -> bool:
        with self._lock:
            return self._config is not None

    def configure(self, config: KmsConfig) -> None:
        """Install the configuration once it has been loaded."""
        with self._lock:
            self._config = config

    def logging_level(self, verbose: bool) -> int:
        """Log level to use for the given verbosity flag."""
        return logging.DEBUG if verbose else logging.INFO


APPLICATION = KmsApplication()
"""State of the running application."""


def app_config() -> KmsConfig:
    """Configuration of the running application; raises if it is not loaded."""
    return APPLICATION.config