# installer/components/webserver.py
# -*- coding: utf-8 -*-
"""
nginx and PHP-FPM for the daloRADIUS console.
"""

from typing import Dict, List

from installer import config
from installer.base_component import BaseComponent
from installer.facts import PHP_VERSION
from installer.registry import ComponentRegistry
from sequencer.service_controller import ServiceState
from sequencer.step_executor import Step


@ComponentRegistry.register(
    name="webserver",
    metadata={
        "description": "nginx web server and PHP-FPM with the extensions daloRADIUS needs.",
    },
)
class WebserverComponent(BaseComponent):
    def php_fpm_service(self) -> str:
        return config.PHP_FPM_SERVICE_TEMPLATE.format(
            php_version=self.context.fact(PHP_VERSION)
        )

    def steps(self) -> List[Step]:
        return [
            self.package_step(
                "install-nginx",
                config.NGINX_PACKAGES,
                description="Install nginx",
            ),
            self.package_step(
                "install-php",
                config.PHP_PACKAGES,
                description="Install PHP-FPM and extensions",
            ),
        ]

    def services(self) -> Dict[str, ServiceState]:
        php_fpm = self.php_fpm_service()
        return {
            php_fpm: self.service_state(php_fpm, package=php_fpm),
            config.NGINX_SERVICE: self.service_state(
                config.NGINX_SERVICE, package=config.NGINX_PACKAGES[0]
            ),
        }
