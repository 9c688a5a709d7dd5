from unittest.mock import MagicMock

import pytest

from common.system_utils import (
    is_root,
    service_is_active,
    service_is_enabled,
    systemctl,
)


@pytest.fixture
def mock_run_elevated_command(mocker):
    return mocker.patch("common.system_utils.run_elevated_command")


def test_is_root(mocker):
    mocker.patch("common.system_utils.os.geteuid", return_value=0)
    assert is_root() is True


def test_systemctl_raises_on_failure(mock_run_elevated_command, mock_logger):
    systemctl("restart", "freeradius", None, mock_logger)

    mock_run_elevated_command.assert_called_once_with(
        ["systemctl", "restart", "freeradius"],
        None,
        capture_output=True,
        current_logger=mock_logger,
    )


@pytest.mark.parametrize(
    "stdout, expected",
    [("active\n", True), ("inactive\n", False), ("failed", False)],
)
def test_service_is_active(mock_run_elevated_command, stdout, expected):
    mock_run_elevated_command.return_value = MagicMock(stdout=stdout)

    assert service_is_active("nginx") is expected
    assert mock_run_elevated_command.call_args.kwargs["check"] is False


@pytest.mark.parametrize(
    "stdout, expected",
    [
        ("enabled\n", True),
        ("alias\n", True),
        ("disabled\n", False),
        ("masked\n", False),
        ("", False),
    ],
)
def test_service_is_enabled(mock_run_elevated_command, stdout, expected):
    mock_run_elevated_command.return_value = MagicMock(stdout=stdout)

    assert service_is_enabled("mariadb") is expected

