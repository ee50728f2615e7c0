"""Client threads that connect to validators and restart sessions after errors."""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Callable

from .config import ValidatorConfig
from .errors import ErrorKind, KmsError

logger = logging.getLogger(__name__)

RESPAWN_DELAY = 1
"""Seconds to wait after a failed session before opening a new one."""

SessionRunner = Callable[[ValidatorConfig], None]


def run_client(config: ValidatorConfig, session_runner: SessionRunner) -> None:
    """Open one session and serve requests until it ends."""
    try:
        session_runner(copy.deepcopy(config))
    except KmsError:
        raise
    except Exception as e:
        raise KmsError(ErrorKind.PANIC, f"session crashed: {e}") from e


def main_loop(config: ValidatorConfig, session_runner: SessionRunner) -> None:
    """Run sessions, reconnecting after errors when the configuration allows it."""
    label = f"{config.chain_id}@{config.addr}"
    while True:
        try:
            run_client(config, session_runner)
        except KmsError as e:
            if e.kind is ErrorKind.POISON_ERROR:
                logger.error("[%s] FATAL -- %s", label, e)
                raise
            logger.error("[%s] %s", label, e)
            if not config.reconnect:
                raise
            time.sleep(RESPAWN_DELAY)
        else:
            return


class Client:
    """A thread serving one validator connection."""

    def __init__(self, name: str, thread: threading.Thread, errors: list[KmsError]) -> None:
        self.name = name
        self._thread = thread
        self._errors = errors

    @classmethod
    def spawn(cls, config: ValidatorConfig, session_runner: SessionRunner) -> Client:
        """Start a client thread for the given validator."""
        name = f"{config.chain_id}@{config.addr}"
        errors: list[KmsError] = []

        def target() -> None:
            try:
                main_loop(config, session_runner)
            except KmsError as e:
                errors.append(e)

        thread = threading.Thread(target=target, name=name)
        thread.start()
        return cls(name, thread, errors)

    def join(self) -> None:
        """Wait for the client to finish; raise the error it stopped with, if any."""
        self._thread.join()
        if self._errors:
            raise self._errors[0]