# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
from typing import Dict, List, Optional, Union

from common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from sequencer.config_models import RunOptions

# Keep apt from prompting about changed conffiles or service restarts.
NONINTERACTIVE_ENV: Dict[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}


class AptManager:
    """
    A centralized manager for Debian apt packages using command-line tools.

    Failures propagate as ``subprocess.CalledProcessError`` so that callers
    can report apt's own error output.
    """

    def __init__(
        self,
        options: Optional[RunOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the AptManager.
        Args:
            options: Run options (timeouts, log symbols).
            logger: An optional logging object.
        """
        self.options = options
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def _env(self) -> Dict[str, str]:
        return {**os.environ, **NONINTERACTIVE_ENV}

    def update(self) -> None:
        """Refresh the package index using 'apt-get update'."""
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        run_elevated_command(
            ["apt-get", "update", "-yq"],
            self.options,
            capture_output=True,
            current_logger=self.logger,
            env=self._env(),
        )
        self.logger.info("Apt package lists updated successfully.")

    def upgrade(self) -> None:
        """Upgrade installed packages using 'apt-get upgrade'."""
        self.logger.info("Upgrading installed packages via 'apt-get upgrade'...")
        run_elevated_command(
            ["apt-get", "upgrade", "-yq"],
            self.options,
            capture_output=True,
            current_logger=self.logger,
            env=self._env(),
        )
        self.logger.info("Installed packages upgraded successfully.")

    def is_installed(self, pkg_name: str) -> bool:
        """True when dpkg reports ``pkg_name`` as installed."""
        status_cmd = [
            "dpkg-query",
            "-W",
            "-f=${db:Status-Status}",
            pkg_name,
        ]
        try:
            result = run_command(
                status_cmd,
                self.options,
                capture_output=True,
                check=True,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            return False
        return (
            "installed" in result.stdout
            and "not-installed" not in result.stdout
        )

    def missing_packages(self, packages: Union[List[str], str]) -> List[str]:
        """Return the subset of ``packages`` that is not installed."""
        if not isinstance(packages, list):
            packages = [packages]
        return [pkg for pkg in packages if not self.is_installed(pkg)]

    def install(
        self,
        packages: Union[List[str], str],
        update_first: bool = False,
    ) -> List[str]:
        """
        Installs one or more packages using 'apt-get install'.

        Args:
            packages: A single package name or a list of package names.
            update_first: Whether to update the package lists before installing.

        Returns:
            The packages that were actually installed. Already installed
            packages are skipped.
        """
        if update_first:
            self.update()

        packages_to_install = self.missing_packages(packages)
        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return []

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        run_elevated_command(
            ["apt-get", "install", "-yq"] + packages_to_install,
            self.options,
            capture_output=True,
            current_logger=self.logger,
            env=self._env(),
        )
        self.logger.info("Packages installed successfully.")
        return packages_to_install
