import logging

import pytest

from kmsguard import application
from kmsguard.application import KmsApplication, app_config
from kmsguard.config import KmsConfig
from kmsguard.errors import ErrorKind, KmsError


def test_unconfigured_application_raises():
    app = KmsApplication()
    assert app.is_configured is False
    with pytest.raises(KmsError) as info:
        _ = app.config
    assert info.value.kind is ErrorKind.CONFIG_ERROR


def test_configure_then_read_back():
    app = KmsApplication()
    config = KmsConfig.from_dict({"providers": {}})
    app.configure(config)
    assert app.is_configured is True
    assert app.config is config


def test_configure_replaces_previous_config():
    app = KmsApplication()
    first = KmsConfig()
    second = KmsConfig(providers={"softsign": []})
    app.configure(first)
    app.configure(second)
    assert app.config is second


@pytest.mark.parametrize("verbose, expected", [(True, logging.DEBUG), (False, logging.INFO)])
def test_logging_level(verbose, expected):
    assert KmsApplication().logging_level(verbose) == expected


def test_app_config_reads_global_application():
    config = KmsConfig()
    application.APPLICATION.configure(config)
    assert app_config() is config