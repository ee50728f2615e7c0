import pytest

from kmsguard.errors import ErrorKind, KmsError, StateError, StateErrorKind


@pytest.mark.parametrize(
    "kind, text",
    [
        (StateErrorKind.HEIGHT_REGRESSION, "height regression"),
        (StateErrorKind.STEP_REGRESSION, "step regression"),
        (StateErrorKind.ROUND_REGRESSION, "round regression"),
        (StateErrorKind.DOUBLE_SIGN, "double sign detected"),
        (StateErrorKind.SYNC_ERROR, "error syncing state to disk"),
    ],
)
def test_state_error_kind_display(kind, text):
    assert str(kind) == text


def test_state_error_carries_kind_and_message():
    err = StateError(StateErrorKind.DOUBLE_SIGN, "at height:1")
    assert err.kind is StateErrorKind.DOUBLE_SIGN
    assert err.message == "at height:1"
    assert str(err).startswith(str(StateErrorKind.DOUBLE_SIGN))
    assert str(err).endswith("at height:1")


def test_state_error_without_message_shows_kind_only():
    err = StateError(StateErrorKind.SYNC_ERROR)
    assert str(err) == str(StateErrorKind.SYNC_ERROR)


def test_state_error_is_raisable():
    err = StateError(StateErrorKind.HEIGHT_REGRESSION, "last height:2 new height:1")
    with pytest.raises(StateError) as info:
        raise err
    caught = info.value
    assert caught is err
    assert caught.kind is StateErrorKind.HEIGHT_REGRESSION
    assert caught.message == "last height:2 new height:1"
    assert str(caught) == str(err)
    assert str(caught).endswith("last height:2 new height:1")


def test_kms_error_carries_kind_and_message():
    err = KmsError(ErrorKind.HOOK_ERROR, "subcommand returned status 2")
    assert err.kind is ErrorKind.HOOK_ERROR
    assert "subcommand returned status 2" in str(err)
    assert str(err).startswith(str(ErrorKind.HOOK_ERROR))


def test_kms_error_without_message():
    err = KmsError(ErrorKind.PARSE_ERROR)
    assert str(err) == str(ErrorKind.PARSE_ERROR)


def test_error_kinds_are_distinct():
    kms_texts = {str(KmsError(kind)) for kind in ErrorKind}
    assert len(kms_texts) == len(ErrorKind)
    state_texts = {str(StateError(kind)) for kind in StateErrorKind}
    assert len(state_texts) == len(StateErrorKind)