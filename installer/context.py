# installer/context.py
# -*- coding: utf-8 -*-
"""
Everything a step builder needs for one provisioning run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from common.debian.apt_manager import AptManager
from installer.config import TEMPLATES_DIR
from installer.config_models import RadiusSettings
from sequencer.config_models import RunOptions
from sequencer.facts import FactProber
from sequencer.templates import (
    TemplateLibrary,
    render,
    sql_bindings,
    sql_identifier,
)

module_logger = logging.getLogger(__name__)


@dataclass
class ProvisionContext:
    """
    Settings, run options, facts and templates of one run.

    Settings are frozen; the context itself only caches the lazily created
    package manager.
    """

    settings: RadiusSettings
    options: RunOptions = field(default_factory=RunOptions)
    prober: FactProber = field(default_factory=FactProber)
    templates: Optional[TemplateLibrary] = None
    logger: logging.Logger = module_logger
    package_manager: Optional[AptManager] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.templates is None:
            self.templates = TemplateLibrary(
                TEMPLATES_DIR, self.options.templates_dir
            )

    @property
    def packages(self) -> AptManager:
        if self.package_manager is None:
            self.package_manager = AptManager(self.options, logger=self.logger)
        return self.package_manager

    def fact(self, name: str) -> Optional[str]:
        return self.prober.probe(name)

    def bindings(self, **extra: Any) -> Dict[str, Any]:
        """Settings values and the facts probed so far, plus ``extra``."""
        values: Dict[str, Any] = {}
        for name in type(self.settings).model_fields:
            value = getattr(self.settings, name)
            values[name] = str(value) if isinstance(value, Path) else value
        values.update(
            {k: v for k, v in self.prober.facts.items() if v is not None}
        )
        values.update(extra)
        return values

    def sql_bindings(self, **extra: Any) -> Dict[str, str]:
        """``bindings`` escaped for SQL string literals, plus quoted identifiers."""
        values = sql_bindings(self.bindings(**extra))
        values["radius_db_ident"] = sql_identifier(self.settings.radius_db_name)
        return values

    def render(self, template_name: str, bindings: Dict[str, Any]) -> str:
        return render(self.templates.get(template_name), bindings)
