"""Error types raised by the key management service."""

from __future__ import annotations

from enum import Enum


class StateErrorKind(Enum):
    """Kinds of errors raised while tracking consensus state."""

    HEIGHT_REGRESSION = "height regression"
    STEP_REGRESSION = "step regression"
    ROUND_REGRESSION = "round regression"
    DOUBLE_SIGN = "double sign detected"
    SYNC_ERROR = "error syncing state to disk"

    def __str__(self) -> str:
        return self.value


class StateError(Exception):
    """A consensus state update was refused or could not be persisted."""

    def __init__(self, kind: StateErrorKind, message: str = "") -> None:
        super().__init__(kind, message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return str(self.kind)


class ErrorKind(Enum):
    """Kinds of general service errors."""

    CONFIG_ERROR = "config error"
    HOOK_ERROR = "hook error"
    INVALID_KEY = "invalid key"
    IO_ERROR = "I/O error"
    PARSE_ERROR = "parse error"
    POISON_ERROR = "internal state poisoned"
    PANIC = "internal crash"

    def __str__(self) -> str:
        return self.value


class KmsError(Exception):
    """General error raised by the key management service."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(kind, message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return str(self.kind)