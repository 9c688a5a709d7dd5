# installer/plans.py
# -*- coding: utf-8 -*-
"""
Provisioning profiles.

A profile names the settings schema it needs, the components whose steps
make up its plan (in order) and the components whose services it manages.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Type

import installer.components  # noqa: F401  registers the components
from installer import config
from installer.base_component import BaseComponent
from installer.config_models import (
    DaloradiusSettings,
    FreeradiusSettings,
    RadiusSettings,
)
from installer.context import ProvisionContext
from installer.facts import FREERADIUS_CONFIG_DIR
from installer.registry import ComponentRegistry
from sequencer.service_controller import ServiceState
from sequencer.step_executor import Step


def _freeradius_summary(context: ProvisionContext) -> List[str]:
    s = context.settings
    return [
        f"FreeRADIUS configuration: {context.prober.facts.get(FREERADIUS_CONFIG_DIR)}",
        "Database information:",
        f"  Database: {s.radius_db_name}",
        f"  User: {s.radius_db_user}",
        f"  Host: {s.db_host}:{s.db_port}",
        "Sample NAS client:",
        f"  IP: {s.test_nas_address}",
        "Sample test user:",
        f"  Username: {s.test_user_name}",
        "Test FreeRADIUS authentication:",
        f"  radtest {s.test_user_name} <password> {s.test_nas_address} 0 <secret>",
        f"Check FreeRADIUS status: systemctl status {config.FREERADIUS_SERVICE}",
        f"View FreeRADIUS logs: tail -f {config.FREERADIUS_LOG_FILE}",
        "IMPORTANT: change the test NAS secret and test user credentials before production use.",
    ]


def _daloradius_summary(context: ProvisionContext) -> List[str]:
    s = context.settings
    return [
        f"Access daloRADIUS at: http://{s.server_name}/daloradius/",
        "Default credentials:",
        f"  Username: {config.DALORADIUS_DEFAULT_ADMIN_USER}",
        f"  Password: {config.DALORADIUS_DEFAULT_ADMIN_PASSWORD}",
        "IMPORTANT: Change the default password immediately after first login!",
        "Database information:",
        f"  Database: {s.radius_db_name}",
        f"  User: {s.radius_db_user}",
        f"FreeRADIUS configuration: {context.prober.facts.get(FREERADIUS_CONFIG_DIR)}",
        f"daloRADIUS path: {s.daloradius_path}",
    ]


@dataclass(frozen=True)
class Profile:
    name: str
    settings_schema: Type[RadiusSettings]
    components: Tuple[str, ...]
    service_components: Tuple[str, ...]
    summary: Callable[[ProvisionContext], List[str]]
    description: str = ""

    def build_components(
        self,
        context: ProvisionContext,
        logger: Optional[logging.Logger] = None,
    ) -> Dict[str, BaseComponent]:
        return {
            name: ComponentRegistry.get_component(name)(context, logger)
            for name in dict.fromkeys(
                self.components + self.service_components
            )
        }

    def component_descriptions(self) -> List[Tuple[str, str]]:
        """(name, description) of each component the plan runs, in order."""
        return [
            (
                name,
                ComponentRegistry.get_component(name).metadata.get(
                    "description", ""
                ),
            )
            for name in self.components
        ]

    def steps(
        self,
        context: ProvisionContext,
        logger: Optional[logging.Logger] = None,
    ) -> List[Step]:
        components = self.build_components(context, logger)
        steps: List[Step] = []
        for name in self.components:
            steps.extend(components[name].steps())
        return steps

    def services(
        self,
        context: ProvisionContext,
        logger: Optional[logging.Logger] = None,
    ) -> Dict[str, ServiceState]:
        """
        The services to manage, in order. Called after the steps ran, since
        service names may depend on facts probed by them.
        """
        components = self.build_components(context, logger)
        services: Dict[str, ServiceState] = {}
        for name in self.service_components:
            services.update(components[name].services())
        return services


PROFILES: Dict[str, Profile] = {
    "freeradius": Profile(
        name="freeradius",
        settings_schema=FreeradiusSettings,
        components=("system", "mariadb", "freeradius", "radius_samples"),
        service_components=("mariadb", "freeradius"),
        summary=_freeradius_summary,
        description="FreeRADIUS with MariaDB, a sample NAS and a test user.",
    ),
    "daloradius": Profile(
        name="daloradius",
        settings_schema=DaloradiusSettings,
        components=(
            "system",
            "webserver",
            "mariadb",
            "freeradius",
            "daloradius",
        ),
        service_components=("mariadb", "freeradius", "webserver"),
        summary=_daloradius_summary,
        description="FreeRADIUS with MariaDB and the daloRADIUS web console on nginx.",
    ),
}


def get_profile(name: str) -> Profile:
    """
    Raises:
        KeyError: No profile with that name exists.
    """
    if name not in PROFILES:
        raise KeyError(
            f"Unknown profile '{name}'. Known profiles: {', '.join(PROFILES)}"
        )
    return PROFILES[name]
