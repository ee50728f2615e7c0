import pytest

import kmsguard.client as client_module
from kmsguard.client import Client, run_client
from kmsguard.config import ValidatorConfig
from kmsguard.errors import ErrorKind, KmsError

ADDR = "tcp://127.0.0.1:26658"


def _config(reconnect):
    return ValidatorConfig(addr=ADDR, chain_id="test-chain", reconnect=reconnect)


class _Runner:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0
        self.seen = []

    def __call__(self, config):
        self.calls += 1
        self.seen.append(config)
        if self.failures:
            raise self.failures.pop(0)


def test_run_client_success():
    runner = _Runner([])
    run_client(_config(False), runner)
    assert runner.calls == 1
    assert runner.seen[0].addr == ADDR


def test_run_client_propagates_kms_error():
    runner = _Runner([KmsError(ErrorKind.IO_ERROR, "connection refused")])
    with pytest.raises(KmsError) as excinfo:
        run_client(_config(False), runner)
    assert excinfo.value.kind is ErrorKind.IO_ERROR


def test_run_client_wraps_crash():
    runner = _Runner([RuntimeError("boom")])
    with pytest.raises(KmsError) as excinfo:
        run_client(_config(False), runner)
    assert excinfo.value.kind is ErrorKind.PANIC
    assert "boom" in str(excinfo.value)


def test_spawn_name_and_join_success():
    runner = _Runner([])
    client = Client.spawn(_config(False), runner)
    assert client.name == "test-chain@tcp://127.0.0.1:26658"
    client.join()
    assert runner.calls == 1


def test_join_raises_without_reconnect():
    runner = _Runner([KmsError(ErrorKind.IO_ERROR, "down")])
    client = Client.spawn(_config(False), runner)
    with pytest.raises(KmsError) as excinfo:
        client.join()
    assert excinfo.value.kind is ErrorKind.IO_ERROR
    assert runner.calls == 1


def test_reconnects_until_success(monkeypatch):
    monkeypatch.setattr(client_module, "RESPAWN_DELAY", 0)
    runner = _Runner(
        [KmsError(ErrorKind.IO_ERROR, "down"), RuntimeError("crash")]
    )
    client = Client.spawn(_config(True), runner)
    client.join()
    assert runner.calls == 3


def test_poison_error_is_fatal(monkeypatch):
    monkeypatch.setattr(client_module, "RESPAWN_DELAY", 0)
    runner = _Runner([KmsError(ErrorKind.POISON_ERROR, "poisoned")])
    client = Client.spawn(_config(True), runner)
    with pytest.raises(KmsError) as excinfo:
        client.join()
    assert excinfo.value.kind is ErrorKind.POISON_ERROR
    assert runner.calls == 1