# tests/conftest.py
import logging
from unittest.mock import MagicMock

import pytest

from sequencer.config_models import RunOptions

FREERADIUS_VALUES = {
    "DB_ROOT_PASSWORD": "rootpw",
    "DB_RADIUS_PASSWORD": "radpw",
    "RADIUS_DB_NAME": "radius",
    "RADIUS_DB_USER": "radius",
    "TEST_NAS_SECRET": "testing123",
    "TEST_USER_NAME": "alice",
    "TEST_USER_PASSWORD": "wonderland",
}

DALORADIUS_VALUES = {
    "DB_ROOT_PASSWORD": "rootpw",
    "DB_RADIUS_PASSWORD": "radpw",
    "RADIUS_DB_NAME": "radius",
    "RADIUS_DB_USER": "radius",
    "SERVER_NAME": "radius.example.com",
}


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def run_options():
    """Run options with a short timeout and the default symbols."""
    return RunOptions(command_timeout=30)


@pytest.fixture
def freeradius_values():
    return dict(FREERADIUS_VALUES)


@pytest.fixture
def daloradius_values():
    return dict(DALORADIUS_VALUES)


@pytest.fixture(autouse=True)
def _no_ambient_settings(monkeypatch):
    """Keep settings in the test process environment out of the tests."""
    for key in set(FREERADIUS_VALUES) | set(DALORADIUS_VALUES):
        monkeypatch.delenv(key, raising=False)
