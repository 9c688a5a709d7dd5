# installer/facts.py
# -*- coding: utf-8 -*-
"""
Facts discovered on the host during a RADIUS provisioning run.
"""

import logging
from pathlib import Path
from typing import Optional

from installer import config
from installer.config_models import DaloradiusSettings, RadiusSettings
from sequencer.config_models import RunOptions
from sequencer.facts import (
    Discovery,
    Fact,
    FactProber,
    command_output,
    first_existing_dir,
    first_matching_dir,
    first_of,
)

PHP_VERSION = "php_version"
FREERADIUS_CONFIG_DIR = "freeradius_config_dir"
DALORADIUS_CONFIG_DIR = "daloradius_config_dir"


def daloradius_config_dir_discovery(install_path: Path) -> Discovery:
    """
    Discovery yielding the first known daloRADIUS configuration directory
    under ``install_path`` that ships a sample configuration file.
    """

    def discover() -> Optional[str]:
        for subdir in config.DALORADIUS_CONFIG_SUBDIRS:
            candidate = install_path / subdir
            sample = candidate / f"{config.DALORADIUS_CONFIG_FILENAME}.sample"
            if sample.is_file():
                return str(candidate)
        return None

    return discover


def register_facts(
    prober: FactProber,
    settings: RadiusSettings,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> FactProber:
    """Register the facts used by the RADIUS provisioning plans."""
    prober.register(
        Fact(
            FREERADIUS_CONFIG_DIR,
            first_of(
                first_existing_dir(config.FREERADIUS_DEFAULT_CONFIG_DIR),
                first_matching_dir(
                    config.FREERADIUS_ETC_DIR,
                    config.FREERADIUS_VERSION_DIR_PATTERN,
                ),
            ),
            description=(
                f"{config.FREERADIUS_DEFAULT_CONFIG_DIR}, then directories named "
                f"'{config.FREERADIUS_VERSION_DIR_PATTERN}' below {config.FREERADIUS_ETC_DIR}"
            ),
        )
    )

    if isinstance(settings, DaloradiusSettings):
        prober.register(
            Fact(
                PHP_VERSION,
                command_output(
                    config.PHP_VERSION_COMMAND, options, current_logger
                ),
                description="output of `php -r` printing the major.minor version",
            )
        )
        install_path = settings.daloradius_path
        prober.register(
            Fact(
                DALORADIUS_CONFIG_DIR,
                daloradius_config_dir_discovery(install_path),
                description=", ".join(
                    str(install_path / subdir / f"{config.DALORADIUS_CONFIG_FILENAME}.sample")
                    for subdir in config.DALORADIUS_CONFIG_SUBDIRS
                ),
            )
        )
    return prober
