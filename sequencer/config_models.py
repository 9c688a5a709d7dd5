# sequencer/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models and field types shared by every provisioning run.

Settings schemas (the secrets and site values a run needs) are declared by
the caller as ``BaseSettings`` subclasses of ``ProvisionSettings``. The
operational knobs of a run (timeouts, templates, log prefix, which services
are critical) live in ``RunOptions``, which is loaded from an optional YAML
file and the command line.
"""

from pathlib import Path
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_PREFIX_DEFAULT: str = "[RADIUS-SETUP]"
CRITICAL_SERVICES_DEFAULT: List[str] = ["mariadb", "freeradius"]

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "skip": "⏭️",
}

# A setting that must be present and not blank.
NonEmptyStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1)
]

# TCP port numbers, e.g. DB_PORT.
PortNumber = Annotated[int, Field(ge=1, le=65535)]


class ProvisionSettings(BaseSettings):
    """
    Base class for settings schemas.

    Field names map case-insensitively onto the upper-case keys of the
    settings file (``radius_db_user`` <- ``RADIUS_DB_USER``). Instances are
    frozen: a loaded settings object is never mutated during a run.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
        case_sensitive=False,
        env_file_encoding="utf-8",
    )


class RunOptions(BaseModel):
    """Operational options for one provisioning run."""

    model_config = ConfigDict(extra="ignore")

    command_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout in seconds applied to every external command. None waits indefinitely.",
    )
    templates_dir: Optional[Path] = Field(
        default=None,
        description="Directory whose <name>.tmpl files override the shipped templates.",
    )
    log_prefix: str = Field(
        default=LOG_PREFIX_DEFAULT,
        description="Prefix for log messages from the installer.",
    )
    critical_services: List[str] = Field(
        default_factory=lambda: list(CRITICAL_SERVICES_DEFAULT),
        description="Services whose failure to reach the requested state fails the run.",
    )
    upgrade_system: bool = Field(
        default=True,
        description="Run 'apt-get upgrade' before installing packages.",
    )
    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )
