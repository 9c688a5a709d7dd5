import logging
import subprocess
from unittest.mock import MagicMock

import pytest

from common.command_utils import (
    command_error_text,
    command_exists,
    get_symbols,
    log_setup,
    run_command,
    run_elevated_command,
)
from sequencer.config_models import SYMBOLS_DEFAULT, RunOptions


def test_run_command_passes_timeout_from_options(mocker, mock_logger):
    mock_run = mocker.patch(
        "common.command_utils.subprocess.run",
        return_value=subprocess.CompletedProcess(["true"], 0, "", ""),
    )

    run_command(
        ["true"],
        RunOptions(command_timeout=12),
        capture_output=True,
        current_logger=mock_logger,
    )

    assert mock_run.call_args.kwargs["timeout"] == 12
    mock_logger.info.assert_any_call("⚙️ Executing: true", exc_info=False)


def test_run_command_explicit_timeout_wins(mocker):
    mock_run = mocker.patch(
        "common.command_utils.subprocess.run",
        return_value=subprocess.CompletedProcess(["true"], 0),
    )

    run_command(["true"], RunOptions(command_timeout=12), timeout=3)

    assert mock_run.call_args.kwargs["timeout"] == 3


def test_run_command_logs_and_reraises_failure(mocker, mock_logger):
    error = subprocess.CalledProcessError(
        2, ["mysql"], output="", stderr="ERROR 1045 (28000): Access denied"
    )
    mocker.patch("common.command_utils.subprocess.run", side_effect=error)

    with pytest.raises(subprocess.CalledProcessError):
        run_command(["mysql"], current_logger=mock_logger)

    mock_logger.error.assert_any_call(
        "❌ Command `mysql` failed (rc 2).", exc_info=False
    )
    mock_logger.error.assert_any_call(
        "   stderr: ERROR 1045 (28000): Access denied", exc_info=False
    )


def test_run_command_reraises_timeout(mocker, mock_logger):
    mocker.patch(
        "common.command_utils.subprocess.run",
        side_effect=subprocess.TimeoutExpired(["apt-get", "update"], 5),
    )

    with pytest.raises(subprocess.TimeoutExpired):
        run_command(
            ["apt-get", "update"], timeout=5, current_logger=mock_logger
        )


def test_run_command_missing_executable(mocker, mock_logger):
    mocker.patch(
        "common.command_utils.subprocess.run",
        side_effect=FileNotFoundError(2, "No such file", "openssl"),
    )

    with pytest.raises(FileNotFoundError):
        run_command(["openssl", "version"], current_logger=mock_logger)


def test_run_elevated_command_adds_sudo_when_not_root(mocker):
    mocker.patch("common.command_utils.os.geteuid", return_value=1000)
    mock_run_command = mocker.patch("common.command_utils.run_command")

    run_elevated_command(["systemctl", "restart", "nginx"])

    assert mock_run_command.call_args.args[0] == [
        "sudo",
        "systemctl",
        "restart",
        "nginx",
    ]


def test_run_elevated_command_as_root(mocker):
    mocker.patch("common.command_utils.os.geteuid", return_value=0)
    mock_run_command = mocker.patch("common.command_utils.run_command")

    run_elevated_command(["systemctl", "restart", "nginx"])

    assert mock_run_command.call_args.args[0] == [
        "systemctl",
        "restart",
        "nginx",
    ]


def test_command_error_text_keeps_stderr_verbatim():
    error = subprocess.CalledProcessError(
        1,
        ["mysql", "-u", "root"],
        output="",
        stderr="ERROR 1050 (42S01) at line 1: Table 'radcheck' already exists\n",
    )

    assert command_error_text(error) == (
        "`mysql -u root` exited with status 1: "
        "ERROR 1050 (42S01) at line 1: Table 'radcheck' already exists"
    )


def test_command_error_text_timeout_and_missing_command():
    timeout = subprocess.TimeoutExpired(["nginx", "-t"], 10)
    missing = FileNotFoundError(2, "No such file or directory", "git")

    assert command_error_text(timeout) == "`nginx -t` timed out after 10 seconds"
    assert command_error_text(missing) == "command not found: git"
    assert command_error_text(ValueError("bad")) == "bad"


def test_command_exists(mocker):
    mocker.patch("common.command_utils.shutil.which", return_value=None)
    assert command_exists("apt-get") is False


def test_get_symbols_falls_back_to_defaults():
    assert get_symbols(None) == SYMBOLS_DEFAULT
    assert get_symbols(RunOptions(symbols={"info": "i"})) == {"info": "i"}


@pytest.mark.parametrize(
    "level, method",
    [
        ("warning", "warning"),
        ("error", "error"),
        ("critical", "critical"),
        ("debug", "debug"),
        ("success", "info"),
        ("info", "info"),
    ],
)
def test_log_setup_routes_levels(level, method):
    logger = MagicMock(spec=logging.Logger)

    log_setup("message", level, logger)

    getattr(logger, method).assert_called_once_with("message", exc_info=False)
