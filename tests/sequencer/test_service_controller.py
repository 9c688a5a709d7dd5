import subprocess
from unittest.mock import MagicMock, call

import pytest

from common.debian.apt_manager import AptManager
from sequencer.errors import ServiceStateUnreachable
from sequencer.service_controller import ServiceController, ServiceState


class FakeSystemd:
    """In-memory unit states driven by the patched systemctl helpers."""

    def __init__(self, enabled=None, active=None, broken=()):
        self.enabled = dict(enabled or {})
        self.active = dict(active or {})
        self.broken = set(broken)
        self.calls = []

    def is_enabled(self, unit, *args, **kwargs):
        return self.enabled.get(unit, False)

    def is_active(self, unit, *args, **kwargs):
        return self.active.get(unit, False)

    def systemctl(self, action, unit, *args, **kwargs):
        self.calls.append((action, unit))
        if unit in self.broken and action in ("start", "restart"):
            raise subprocess.CalledProcessError(
                1,
                ["systemctl", action, unit],
                stderr=f"Job for {unit}.service failed.",
            )
        if action == "enable":
            self.enabled[unit] = True
        elif action == "disable":
            self.enabled[unit] = False
        elif action in ("start", "restart"):
            self.active[unit] = True
        elif action == "stop":
            self.active[unit] = False


@pytest.fixture
def packages():
    manager = MagicMock(spec=AptManager)
    manager.is_installed.return_value = True
    return manager


def patch_systemd(mocker, systemd):
    mocker.patch(
        "sequencer.service_controller.service_is_enabled",
        side_effect=systemd.is_enabled,
    )
    mocker.patch(
        "sequencer.service_controller.service_is_active",
        side_effect=systemd.is_active,
    )
    mocker.patch(
        "sequencer.service_controller.systemctl", side_effect=systemd.systemctl
    )


def test_installs_enables_and_starts(mocker, packages, mock_logger):
    systemd = FakeSystemd()
    patch_systemd(mocker, systemd)
    packages.is_installed.side_effect = [False, True]

    report = ServiceController(packages, logger=mock_logger).apply(
        {"freeradius": ServiceState(package="freeradius")}
    )

    packages.install.assert_called_once_with(["freeradius"])
    assert systemd.calls == [("enable", "freeradius"), ("start", "freeradius")]
    status = report.status_of("freeradius")
    assert status.ok
    assert (status.installed, status.enabled, status.active) == (True, True, True)


def test_restart_requested(mocker, packages):
    systemd = FakeSystemd(enabled={"nginx": True}, active={"nginx": True})
    patch_systemd(mocker, systemd)

    ServiceController(packages).apply({"nginx": ServiceState(restart=True)})

    assert systemd.calls == [("restart", "nginx")]


def test_already_in_state_makes_no_changes(mocker, packages):
    systemd = FakeSystemd(enabled={"mariadb": True}, active={"mariadb": True})
    patch_systemd(mocker, systemd)

    report = ServiceController(packages).apply({"mariadb": ServiceState()})

    assert systemd.calls == []
    assert report.ok


def test_stop_and_disable(mocker, packages):
    systemd = FakeSystemd(enabled={"apache2": True}, active={"apache2": True})
    patch_systemd(mocker, systemd)

    report = ServiceController(packages).apply(
        {"apache2": ServiceState(enabled=False, running=False)}
    )

    assert systemd.calls == [("disable", "apache2"), ("stop", "apache2")]
    assert report.ok


def test_unit_name_overrides_service_name(mocker, packages):
    systemd = FakeSystemd()
    patch_systemd(mocker, systemd)

    ServiceController(packages).apply(
        {"php-fpm": ServiceState(unit="php8.2-fpm")}
    )

    assert ("start", "php8.2-fpm") in systemd.calls


def test_non_critical_failure_is_reported(mocker, packages, mock_logger):
    systemd = FakeSystemd(broken={"nginx"})
    patch_systemd(mocker, systemd)

    report = ServiceController(packages, logger=mock_logger).apply(
        {"nginx": ServiceState(restart=True)}
    )

    status = report.status_of("nginx")
    assert not report.ok
    assert "restart failed" in status.detail
    assert "active=False, requested True" in status.detail
    assert status.describe().endswith(status.detail)
    mock_logger.warning.assert_called()


def test_critical_failure_raises_after_all_services(mocker, packages):
    systemd = FakeSystemd(broken={"mariadb"})
    patch_systemd(mocker, systemd)

    with pytest.raises(ServiceStateUnreachable) as excinfo:
        ServiceController(packages).apply(
            {
                "mariadb": ServiceState(critical=True),
                "nginx": ServiceState(),
            }
        )

    error = excinfo.value
    assert list(error.services) == ["mariadb"]
    assert [status.name for status in error.report.statuses] == [
        "mariadb",
        "nginx",
    ]
    assert error.report.status_of("nginx").ok
    assert ("start", "nginx") in systemd.calls


def test_install_failure_is_recorded(mocker, packages):
    systemd = FakeSystemd(enabled={"freeradius": True}, active={"freeradius": True})
    patch_systemd(mocker, systemd)
    packages.is_installed.return_value = False
    packages.install.side_effect = subprocess.CalledProcessError(
        100, ["apt-get", "install"], stderr="E: Unable to locate package"
    )

    report = ServiceController(packages).apply(
        {"freeradius": ServiceState(package="freeradius")}
    )

    status = report.status_of("freeradius")
    assert status.errors[0].startswith("install of freeradius failed")
    assert "package freeradius is not installed" in status.errors
    assert packages.is_installed.call_args_list[-1] == call("freeradius")


def test_status_query_failure(mocker, packages):
    mocker.patch(
        "sequencer.service_controller.service_is_enabled",
        side_effect=FileNotFoundError(2, "No such file", "systemctl"),
    )
    mocker.patch("sequencer.service_controller.service_is_active")
    mock_systemctl = mocker.patch("sequencer.service_controller.systemctl")

    report = ServiceController(packages).apply({"nginx": ServiceState()})

    assert report.status_of("nginx").errors == [
        "status query failed: command not found: systemctl"
    ]
    mock_systemctl.assert_not_called()
