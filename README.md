# kmsguard

The core of a key management service for validator nodes: configuration
loading, a registry of chains, per-chain consensus state tracking that
prevents double signing, state hooks, and client threads that keep a
validator session running and restart it after errors.

## Installing

```
pip install .
```

Python 3.11 or later is required. There are no third-party dependencies.

## Configuration

The configuration is a TOML file. `kmsguard.config.resolve_config_path`
picks its path from, in order:

1. the `-c` / `--config` option of `kmsguard start`;
2. the `TMKMS_CONFIG_FILE` environment variable;
3. `tmkms.toml` in the current directory.

`kmsguard.config.load_config_file` parses it into a `KmsConfig`:

```toml
[[chain]]
id = "testchain-1"
state_file = "testchain-1_state.json"   # optional
key_format = { type = "hex" }           # optional, kept as given

[chain.state_hook]                      # optional
cmd = ["/usr/local/bin/latest-height"]
timeout_secs = 1                        # optional, default 1
fail_closed = false                     # optional, default false

[[validator]]
addr = "tcp://localhost:26658"
chain_id = "testchain-1"
reconnect = true                        # optional, default true

[providers]                             # required table
```

Unknown keys at the top level, in a `[[chain]]` table or in a `state_hook`
table are rejected with a `KmsError` of kind `ErrorKind.CONFIG_ERROR`.
Extra keys in a `[[validator]]` table are kept in `ValidatorConfig.extra`.
The `[providers]` table must be present; its contents are stored as a
plain dictionary and not otherwise used.

## Chains and their state

`kmsguard.chain.Chain.from_config` loads a chain's state file (by default
`<chain id>_priv_validator_state.json`), creating it with a zero state if it
does not exist. `kmsguard.chain.load_config` registers every configured
chain in a `GlobalRegistry` (the module-level `REGISTRY` unless another is
passed); registering the same chain id twice raises a `CONFIG_ERROR`.

The state file holds JSON such as:

```json
{"height": "5", "round": "0", "step": 1, "block_id": null}
```

A block id is 64 hexadecimal digits and is stored in upper case.

### Double-signing protection

`State.update_consensus_state` raises `kmsguard.errors.StateError` when the
new state's height, round or step goes backwards (`HEIGHT_REGRESSION`,
`ROUND_REGRESSION`, `STEP_REGRESSION`), or when at the same height and round
it names a different block id while both ids are set or the step is the same
(`DOUBLE_SIGN`). An accepted state is written to the state file atomically;
a failed write raises a `StateError` of kind `SYNC_ERROR`.

```python
from kmsguard.state import ConsensusState, load_state

state = load_state("testchain-1_priv_validator_state.json")
state.update_consensus_state(ConsensusState(height=2, round=0, step=0))
```

### State hooks

A chain's `state_hook` command is run at start-up by `kmsguard.hook.run`. It
must exit with status 0 within the timeout and print JSON such as
`{"latest_block_height": "1200"}`. The recorded height is moved forward to
that value, with round, step and block id reset, only when it is higher than
the current one by less than 9000. If the hook fails, the chain fails to load
when `fail_closed` is true; otherwise the error is logged and loading goes on.

## Running

```
kmsguard start -c tmkms.toml
kmsguard start -v
kmsguard version
kmsguard help start
```

`start` loads the configuration, registers the chains and starts one
`kmsguard.client.Client` thread per validator. A client whose session fails
is restarted after one second when its validator has `reconnect` enabled,
unless the error is of kind `POISON_ERROR`. The command returns status 1 if
the configuration cannot be loaded or any client stopped with an error.

## What this package does not do

The package has no network session, no signature providers and no key
handling: it does not open connections to validators, read signing requests
or produce signatures. The work of a session is supplied by the caller as a
function that takes a `ValidatorConfig`, passed to `kmsguard.cli.main`,
`StartCommand` or `Client.spawn`:

```python
from kmsguard.cli import main

def serve(validator_config):
    ...  # connect to validator_config.addr and answer requests

raise SystemExit(main(["start", "-c", "tmkms.toml"], session_runner=serve))
```

Run from the command line, `kmsguard start` has no such function and exits
with status 1 after reporting `no session handler available for validators`.

## Tests

```
pip install .[test]
pytest
```