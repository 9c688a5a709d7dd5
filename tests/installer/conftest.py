# tests/installer/conftest.py
from unittest.mock import MagicMock

import pytest

from common.debian.apt_manager import AptManager
from installer.config_models import DaloradiusSettings, FreeradiusSettings
from installer.context import ProvisionContext
from installer.facts import (
    DALORADIUS_CONFIG_DIR,
    FREERADIUS_CONFIG_DIR,
    PHP_VERSION,
)
from sequencer.facts import Fact, FactProber


def _lower_keys(values):
    return {key.lower(): value for key, value in values.items()}


@pytest.fixture
def freeradius_dir(tmp_path):
    config_dir = tmp_path / "freeradius" / "3.0"
    (config_dir / "mods-available").mkdir(parents=True)
    (config_dir / "mods-enabled").mkdir()
    return config_dir


@pytest.fixture
def packages():
    manager = MagicMock(spec=AptManager)
    manager.missing_packages.return_value = []
    return manager


@pytest.fixture
def make_context(run_options, mock_logger, packages):
    """Build a ProvisionContext whose facts resolve to the given values."""

    def _make(settings, **facts):
        prober = FactProber(logger=mock_logger)
        for name, value in facts.items():
            prober.register(Fact(name, lambda value=value: value))
        return ProvisionContext(
            settings=settings,
            options=run_options,
            prober=prober,
            logger=mock_logger,
            package_manager=packages,
        )

    return _make


@pytest.fixture
def freeradius_settings(freeradius_values, tmp_path):
    values = _lower_keys(freeradius_values)
    values["cert_dir"] = tmp_path / "certs"
    return FreeradiusSettings(**values)


@pytest.fixture
def daloradius_settings(daloradius_values, tmp_path):
    values = _lower_keys(daloradius_values)
    values["web_root"] = tmp_path / "www"
    values["daloradius_checkout"] = tmp_path / "checkout"
    values["cert_dir"] = tmp_path / "certs"
    return DaloradiusSettings(**values)


@pytest.fixture
def freeradius_context(make_context, freeradius_settings, freeradius_dir):
    return make_context(
        freeradius_settings, **{FREERADIUS_CONFIG_DIR: str(freeradius_dir)}
    )


@pytest.fixture
def daloradius_context(make_context, daloradius_settings, freeradius_dir):
    config_dir = daloradius_settings.daloradius_path / "app" / "common" / "includes"
    return make_context(
        daloradius_settings,
        **{
            FREERADIUS_CONFIG_DIR: str(freeradius_dir),
            PHP_VERSION: "8.2",
            DALORADIUS_CONFIG_DIR: str(config_dir),
        },
    )
