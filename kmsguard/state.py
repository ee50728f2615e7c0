"""Consensus state tracking for double-signing protection."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .errors import ErrorKind, KmsError, StateError, StateErrorKind
from .hook import BLOCK_HEIGHT_SANITY_LIMIT, HookOutput

logger = logging.getLogger(__name__)

_BLOCK_ID_HEX_LEN = 64
_BLOCK_ID_PREFIX_LEN = 10
_HEX_DIGITS = frozenset("0123456789ABCDEF")


def _normalize_block_id(block_id: str | None) -> str | None:
    if block_id is None:
        return None
    if not isinstance(block_id, str):
        raise ValueError(f"invalid block id: {block_id!r}")
    upper = block_id.upper()
    if len(upper) != _BLOCK_ID_HEX_LEN or not set(upper) <= _HEX_DIGITS:
        raise ValueError(f"invalid block id: {block_id!r}")
    return upper


def _parse_int(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid {name}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 10)
        except ValueError:
            pass
    raise ValueError(f"invalid {name}: {value!r}")


@dataclass(frozen=True)
class ConsensusState:
    """Height, round and step of the last signed message, with its block id."""

    height: int = 0
    round: int = 0
    step: int = 0
    block_id: str | None = None

    def __post_init__(self) -> None:
        if self.height < 0:
            raise ValueError(f"invalid height: {self.height}")
        if not -128 <= self.step <= 127:
            raise ValueError(f"invalid step: {self.step}")
        object.__setattr__(self, "block_id", _normalize_block_id(self.block_id))

    def block_id_prefix(self) -> str:
        """Short form of the block id for log messages."""
        if self.block_id is None:
            return "<nil>"
        return self.block_id[:_BLOCK_ID_PREFIX_LEN]

    def to_json(self) -> str:
        """Serialize to the on-disk JSON form."""
        return json.dumps(
            {
                "height": str(self.height),
                "round": str(self.round),
                "step": self.step,
                "block_id": self.block_id,
            }
        )


def parse_consensus_state(text: str) -> ConsensusState:
    """Parse the on-disk JSON form; raises ValueError when it is malformed."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    for key in ("height", "round", "step"):
        if key not in data:
            raise ValueError(f"missing field `{key}`")
    return ConsensusState(
        height=_parse_int(data["height"], "height"),
        round=_parse_int(data["round"], "round"),
        step=_parse_int(data["step"], "step"),
        block_id=data.get("block_id"),
    )


def _atomic_write(path: Path, text: str) -> None:
    directory = path.parent if str(path.parent) else Path(".")
    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class State:
    """Last signed consensus state of a chain, persisted to a file."""

    def __init__(self, consensus_state: ConsensusState, state_file_path: str | os.PathLike) -> None:
        self.consensus_state = consensus_state
        self.state_file_path = Path(state_file_path)

    def update_consensus_state(self, new_state: ConsensusState) -> None:
        """Check the new height, round and step against the last ones and record them."""
        old = self.consensus_state

        if new_state.height < old.height:
            raise StateError(
                StateErrorKind.HEIGHT_REGRESSION,
                f"last height:{old.height} new height:{new_state.height}",
            )
        if new_state.height == old.height:
            if new_state.round < old.round:
                raise StateError(
                    StateErrorKind.ROUND_REGRESSION,
                    f"round regression at height:{new_state.height} "
                    f"last round:{old.round} new round:{new_state.round}",
                )
            if new_state.round == old.round:
                if new_state.step < old.step:
                    raise StateError(
                        StateErrorKind.STEP_REGRESSION,
                        f"round regression at height:{new_state.height} round:{new_state.round} "
                        f"last step:{old.step} new step:{new_state.step}",
                    )
                both_set = new_state.block_id is not None and old.block_id is not None
                if new_state.block_id != old.block_id and (both_set or new_state.step == old.step):
                    raise StateError(
                        StateErrorKind.DOUBLE_SIGN,
                        f"Attempting to sign a second proposal at height:{new_state.height} "
                        f"round:{new_state.round} step:{new_state.step} "
                        f"old block id:{old.block_id_prefix()} "
                        f"new block {new_state.block_id_prefix()}",
                    )

        self.consensus_state = new_state

        try:
            self._sync_to_disk()
        except OSError as e:
            raise StateError(
                StateErrorKind.SYNC_ERROR,
                f"error writing state to {self.state_file_path}: {e}",
            ) from e

    def update_from_hook_output(self, output: HookOutput) -> None:
        """Move the height forward to what a state hook reported, within the sanity limit."""
        hook_height = output.latest_block_height
        last_height = self.consensus_state.height

        if hook_height > last_height:
            delta = hook_height - last_height
            if delta < BLOCK_HEIGHT_SANITY_LIMIT:
                self.consensus_state = ConsensusState(height=hook_height)
                logger.info("updated block height from hook: %s", hook_height)
            else:
                logger.warning(
                    "hook block height more than sanity limit: %s (delta: %s, max: %s)",
                    hook_height,
                    delta,
                    BLOCK_HEIGHT_SANITY_LIMIT,
                )
        else:
            logger.warning(
                "hook block height less than current? current: %s, hook: %s",
                last_height,
                hook_height,
            )

    def _sync_to_disk(self) -> None:
        _atomic_write(self.state_file_path, self.consensus_state.to_json())


def load_state(path: str | os.PathLike) -> State:
    """Load the state file, creating it with a default state if it does not exist."""
    state_path = Path(path)
    state = State(ConsensusState(), state_path)

    try:
        contents = state_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        try:
            state._sync_to_disk()
        except OSError as e:
            raise KmsError(ErrorKind.IO_ERROR, f"error writing {state_path}: {e}") from e
        return state
    except (OSError, UnicodeDecodeError) as e:
        raise KmsError(ErrorKind.IO_ERROR, f"error reading {state_path}: {e}") from e

    try:
        state.consensus_state = parse_consensus_state(contents)
    except ValueError as e:
        raise KmsError(ErrorKind.PARSE_ERROR, f"error parsing {state_path}: {e}") from e
    return state