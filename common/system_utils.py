# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions: privilege checks and systemd unit control.
"""

import logging
import os
import subprocess
from typing import Optional

from common.command_utils import run_elevated_command
from sequencer.config_models import RunOptions


def is_root() -> bool:
    """True when the current process runs with effective uid 0."""
    return os.geteuid() == 0


def systemctl(
    action: str,
    unit: str,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> subprocess.CompletedProcess:
    """
    Run ``systemctl <action> <unit>`` and raise on failure.
    """
    return run_elevated_command(
        ["systemctl", action, unit],
        options,
        capture_output=True,
        current_logger=current_logger,
    )


def _systemctl_query(
    query: str,
    unit: str,
    options: Optional[RunOptions],
    current_logger: Optional[logging.Logger],
) -> str:
    result = run_elevated_command(
        ["systemctl", query, unit],
        options,
        check=False,
        capture_output=True,
        current_logger=current_logger,
    )
    return (result.stdout or "").strip()


def service_is_active(
    unit: str,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """True when ``systemctl is-active`` reports the unit as active."""
    return (
        _systemctl_query("is-active", unit, options, current_logger)
        == "active"
    )


def service_is_enabled(
    unit: str,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """True when ``systemctl is-enabled`` reports the unit as enabled."""
    return _systemctl_query(
        "is-enabled", unit, options, current_logger
    ) in ("enabled", "enabled-runtime", "alias")

