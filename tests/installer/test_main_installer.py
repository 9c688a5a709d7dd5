from unittest.mock import MagicMock

import pytest

from installer.config_models import FreeradiusSettings
from installer.plans import get_profile
from installer.main_installer import (
    ProvisionResult,
    build_parser,
    main_installer_entry,
    provision,
    view_configuration,
)
from sequencer.config_models import RunOptions
from sequencer.errors import MissingConfig, StepActionFailed
from sequencer.facts import FactProber
from sequencer.service_controller import ServiceController, ServiceReport
from sequencer.step_executor import Report, StepExecutor, StepOutcome


@pytest.fixture
def env_file(tmp_path, freeradius_values):
    path = tmp_path / ".env"
    path.write_text(
        "".join(f"{key}={value}\n" for key, value in freeradius_values.items()),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def no_logging_setup(mocker):
    return mocker.patch("installer.main_installer.setup_logging")


@pytest.fixture
def logged(mocker):
    """Messages passed to log_setup by the entry point."""
    mock_log_setup = mocker.patch("installer.main_installer.log_setup")

    def messages():
        return "\n".join(str(c.args[0]) for c in mock_log_setup.call_args_list)

    return messages


def entry_args(env_file, *extra):
    return [
        "--env-file",
        str(env_file),
        "--config",
        str(env_file.with_name("absent.yaml")),
        *extra,
    ]


def test_missing_setting_leaves_executor_untouched(freeradius_values, mock_logger):
    freeradius_values["DB_RADIUS_PASSWORD"] = ""
    executor = MagicMock(spec=StepExecutor)
    controller = MagicMock(spec=ServiceController)

    with pytest.raises(MissingConfig) as excinfo:
        provision(
            "freeradius",
            freeradius_values,
            executor=executor,
            controller=controller,
            current_logger=mock_logger,
        )

    assert excinfo.value.missing == ["DB_RADIUS_PASSWORD"]
    assert executor.mock_calls == []
    assert controller.mock_calls == []


def test_remote_db_host_is_rejected(freeradius_values, mock_logger):
    freeradius_values["DB_HOST"] = "db.example.com"
    executor = MagicMock(spec=StepExecutor)

    with pytest.raises(MissingConfig) as excinfo:
        provision(
            "freeradius",
            freeradius_values,
            executor=executor,
            controller=MagicMock(spec=ServiceController),
            current_logger=mock_logger,
        )

    assert excinfo.value.missing == ["DB_HOST"]
    assert "local server" in excinfo.value.problems["DB_HOST"]
    assert executor.mock_calls == []


def test_provision_runs_steps_then_services(freeradius_values, mock_logger):
    executor = MagicMock(spec=StepExecutor)
    executor.prober = FactProber(mock_logger)
    report = Report()
    report.record("install-mariadb", StepOutcome.APPLIED)
    executor.run.return_value = report
    controller = MagicMock(spec=ServiceController)
    controller.apply.return_value = ServiceReport()

    result = provision(
        "freeradius",
        freeradius_values,
        RunOptions(),
        executor=executor,
        controller=controller,
        current_logger=mock_logger,
    )

    steps = executor.run.call_args.args[0]
    assert steps[0].name == "update-package-index"
    assert steps[-1].name == "add-test-user"
    assert list(controller.apply.call_args.args[0]) == ["mariadb", "freeradius"]
    assert "freeradius_config_dir" in executor.prober
    assert result.report is report
    assert any("radtest alice" in line for line in result.summary)


def test_view_configuration_masks_secrets(freeradius_values, mocker):
    mock_log_setup = mocker.patch("installer.main_installer.log_setup")
    settings = FreeradiusSettings(
        **{key.lower(): value for key, value in freeradius_values.items()}
    )

    view_configuration(settings, RunOptions())

    text = mock_log_setup.call_args.args[0]
    assert "RADIUS_DB_USER:" in text
    assert "DB_ROOT_PASSWORD:" in text
    assert "********" in text
    for secret in ("rootpw", "radpw", "testing123", "wonderland"):
        assert secret not in text
    assert "command_timeout:" in text
    assert "Components of" not in text


def test_view_configuration_lists_profile_components(freeradius_values, mocker):
    mock_log_setup = mocker.patch("installer.main_installer.log_setup")
    settings = FreeradiusSettings(
        **{key.lower(): value for key, value in freeradius_values.items()}
    )

    view_configuration(settings, RunOptions(), profile=get_profile("freeradius"))

    text = mock_log_setup.call_args.args[0]
    assert "Components of the 'freeradius' profile:" in text
    assert "MariaDB server, root password, hardening and the RADIUS database." in text
    assert text.index("system:") < text.index("radius_samples:")


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.profile == "freeradius"
    assert args.env_file == ".env"
    assert args.log_level == "INFO"
    assert args.skip_root_check is False


def test_parser_rejects_unknown_profile():
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(["--profile", "openldap"])

    assert excinfo.value.code == 2


def test_entry_view_config(env_file, no_logging_setup, logged):
    assert main_installer_entry(entry_args(env_file, "--view-config")) == 0

    assert "TEST_USER_NAME:" in logged()
    assert "wonderland" not in logged()


def test_entry_view_config_with_missing_settings(
    tmp_path, no_logging_setup, logged
):
    env_file = tmp_path / ".env"
    env_file.write_text("RADIUS_DB_NAME=radius\n", encoding="utf-8")

    assert main_installer_entry(entry_args(env_file, "--view-config")) == 1
    assert "MissingConfig" in logged()
    assert "DB_ROOT_PASSWORD" in logged()


def test_entry_requires_root(mocker, env_file, no_logging_setup, logged):
    mocker.patch("installer.main_installer.is_root", return_value=False)
    mock_provision = mocker.patch("installer.main_installer.provision")

    assert main_installer_entry(entry_args(env_file)) == 1
    mock_provision.assert_not_called()


def test_entry_fatal_step_failure(mocker, env_file, no_logging_setup, logged):
    mocker.patch("installer.main_installer.is_root", return_value=True)
    report = Report()
    report.record(
        "install-mariadb", StepOutcome.FAILED, "apt-get exited with status 100"
    )
    error = StepActionFailed("install-mariadb", "apt-get exited with status 100")
    error.report = report
    mocker.patch("installer.main_installer.provision", side_effect=error)

    assert main_installer_entry(entry_args(env_file)) == 1
    assert "StepActionFailed" in logged()
    assert "install-mariadb" in logged()


def test_entry_success(mocker, env_file, no_logging_setup, logged):
    mocker.patch("installer.main_installer.is_root", return_value=False)
    mock_provision = mocker.patch(
        "installer.main_installer.provision",
        return_value=ProvisionResult(Report(), ServiceReport(), ["All done."]),
    )

    exit_code = main_installer_entry(
        entry_args(
            env_file, "--skip-root-check", "--skip-upgrade", "--timeout", "30"
        )
    )

    assert exit_code == 0
    options = mock_provision.call_args.args[2]
    assert options.upgrade_system is False
    assert options.command_timeout == 30
    assert "Installation completed successfully!" in logged()
    assert "All done." in logged()
    no_logging_setup.assert_called_once()
