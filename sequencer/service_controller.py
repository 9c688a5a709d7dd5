# sequencer/service_controller.py
# -*- coding: utf-8 -*-
"""
Applies the desired end state to long-running services.

For every service the controller installs its package when needed, sets the
boot-time enablement, starts, restarts or stops the unit, and then asks
systemd what state the unit is really in. A service that does not reach the
requested state is reported, not raised, unless it is marked critical. All
services are processed before a critical failure is raised so that the
report is always complete.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from common.command_utils import command_error_text, get_symbols, log_setup
from common.debian.apt_manager import AptManager
from common.system_utils import (
    service_is_active,
    service_is_enabled,
    systemctl,
)
from sequencer.config_models import RunOptions
from sequencer.errors import ServiceStateUnreachable

module_logger = logging.getLogger(__name__)

# Failures of external calls that are reported per service.
COMMAND_ERRORS = (
    subprocess.CalledProcessError,
    subprocess.TimeoutExpired,
    OSError,
)


@dataclass(frozen=True)
class ServiceState:
    """
    Desired end state for a managed service.

    Attributes:
        installed: Install ``package`` if it is missing.
        enabled: Whether the unit starts at boot.
        running: Whether the unit should be active at the end of the run.
        restart: Restart a running unit even if it is already active, e.g.
            to pick up new configuration.
        critical: Fail the run if this service misses its requested state.
        package: Debian package providing the service.
        unit: systemd unit name; defaults to the service name.
    """

    installed: bool = True
    enabled: bool = True
    running: bool = True
    restart: bool = False
    critical: bool = False
    package: Optional[str] = None
    unit: Optional[str] = None


@dataclass
class ServiceStatus:
    """Requested and observed state of one service."""

    name: str
    requested: ServiceState
    installed: Optional[bool] = None
    enabled: Optional[bool] = None
    active: Optional[bool] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def detail(self) -> str:
        return "; ".join(self.errors)

    def describe(self) -> str:
        def flag(value: Optional[bool]) -> str:
            return "unknown" if value is None else ("yes" if value else "no")

        text = (
            f"{self.name}: installed={flag(self.installed)} "
            f"enabled={flag(self.enabled)} active={flag(self.active)}"
        )
        return text if self.ok else f"{text} FAILED: {self.detail}"


@dataclass
class ServiceReport:
    statuses: List[ServiceStatus] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(status.ok for status in self.statuses)

    @property
    def failed(self) -> List[ServiceStatus]:
        return [status for status in self.statuses if not status.ok]

    def status_of(self, name: str) -> Optional[ServiceStatus]:
        for status in self.statuses:
            if status.name == name:
                return status
        return None

    def summary_lines(self) -> List[str]:
        return [status.describe() for status in self.statuses]


class ServiceController:
    """Applies ``ServiceState`` mappings through apt and systemctl."""

    def __init__(
        self,
        packages: Optional[AptManager] = None,
        options: Optional[RunOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._packages = packages
        self.options = options
        self.logger = logger or module_logger

    @property
    def packages(self) -> AptManager:
        if self._packages is None:
            self._packages = AptManager(self.options, logger=self.logger)
        return self._packages

    def apply(self, services: Mapping[str, ServiceState]) -> ServiceReport:
        """
        Bring every service to its requested state and report the outcome.

        Raises:
            ServiceStateUnreachable: At least one critical service failed.
                The exception carries the full report.
        """
        symbols = get_symbols(self.options)
        report = ServiceReport()
        for name, state in services.items():
            status = self._apply_one(name, state)
            report.statuses.append(status)
            if status.ok:
                log_setup(
                    f"{symbols.get('success', '✅')} {status.describe()}",
                    "success",
                    self.logger,
                )
            else:
                log_setup(
                    f"{symbols.get('warning', '⚠️')} {status.describe()}",
                    "error" if state.critical else "warning",
                    self.logger,
                )

        critical_failures: Dict[str, str] = {
            status.name: status.detail
            for status in report.failed
            if status.requested.critical
        }
        if critical_failures:
            raise ServiceStateUnreachable(critical_failures, report)
        return report

    def _run(self, status: ServiceStatus, action: str, unit: str) -> None:
        try:
            systemctl(action, unit, self.options, self.logger)
        except COMMAND_ERRORS as e:
            status.errors.append(f"{action} failed: {command_error_text(e)}")

    def _apply_one(self, name: str, state: ServiceState) -> ServiceStatus:
        unit = state.unit or name
        status = ServiceStatus(name=name, requested=state)

        if state.installed and state.package:
            try:
                if not self.packages.is_installed(state.package):
                    self.packages.install([state.package])
            except COMMAND_ERRORS as e:
                status.errors.append(
                    f"install of {state.package} failed: {command_error_text(e)}"
                )

        try:
            enabled_now = service_is_enabled(unit, self.options, self.logger)
            active_now = service_is_active(unit, self.options, self.logger)
        except COMMAND_ERRORS as e:
            status.errors.append(f"status query failed: {command_error_text(e)}")
            return status

        if state.enabled and not enabled_now:
            self._run(status, "enable", unit)
        elif not state.enabled and enabled_now:
            self._run(status, "disable", unit)

        if state.running:
            if state.restart:
                self._run(status, "restart", unit)
            elif not active_now:
                self._run(status, "start", unit)
        elif active_now:
            self._run(status, "stop", unit)

        try:
            if state.package:
                status.installed = self.packages.is_installed(state.package)
            status.enabled = service_is_enabled(unit, self.options, self.logger)
            status.active = service_is_active(unit, self.options, self.logger)
        except COMMAND_ERRORS as e:
            status.errors.append(f"status query failed: {command_error_text(e)}")
            return status

        if state.installed and status.installed is False:
            status.errors.append(f"package {state.package} is not installed")
        if status.enabled != state.enabled:
            status.errors.append(
                f"enabled={status.enabled}, requested {state.enabled}"
            )
        if status.active != state.running:
            status.errors.append(
                f"active={status.active}, requested {state.running}"
            )
        return status
