# installer/components/daloradius.py
# -*- coding: utf-8 -*-
"""
daloRADIUS web console: checkout, schema, deployment, configuration and the
nginx site that serves it.
"""

import re
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping

from common.command_utils import (
    command_error_text,
    log_setup,
    run_command,
    run_elevated_command,
)
from common.db_utils import mysql_error_codes
from common.file_utils import (
    atomic_write,
    path_owned_by,
    read_text_if_exists,
    remove_path,
)
from installer import config
from installer.components.mariadb import SqlComponent
from installer.facts import DALORADIUS_CONFIG_DIR, PHP_VERSION
from installer.registry import ComponentRegistry
from sequencer.errors import StepActionFailed
from sequencer.step_executor import FailurePolicy, Step

NGINX_DEFAULT_SITE = "default"


def php_string(value: object) -> str:
    """Escape ``value`` for a single-quoted PHP string."""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def set_config_values(text: str, values: Mapping[str, object]) -> str:
    """
    Replace the value of each ``$configValues['KEY'] = '...';`` line in a
    daloRADIUS configuration file. Keys missing from ``text`` are left out.
    """
    for key, value in values.items():
        pattern = re.compile(
            r"(\$configValues\['" + re.escape(key) + r"'\]\s*=\s*)'.*?';"
        )
        replacement = f"'{php_string(value)}';"
        text = pattern.sub(lambda m: m.group(1) + replacement, text)
    return text


@ComponentRegistry.register(
    name="daloradius",
    metadata={
        "description": "daloRADIUS web console served by nginx.",
    },
)
class DaloradiusComponent(SqlComponent):
    """
    Fetches daloRADIUS, loads its schema, deploys it under the web root,
    points it at the RADIUS database and publishes it through nginx.
    """

    @property
    def install_path(self) -> Path:
        return self.settings.daloradius_path

    @property
    def checkout(self) -> Path:
        return self.settings.daloradius_checkout

    def source_dir(self) -> Path:
        """The fresh checkout if present, otherwise the deployed copy."""
        return self.checkout if self.checkout.is_dir() else self.install_path

    def _fetch(self) -> None:
        # A leftover checkout may be from another revision.
        remove_path(self.checkout, self.logger)
        run_command(
            ["git", "clone", self.settings.daloradius_repo, str(self.checkout)],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )

    def _import_schema(self) -> None:
        source = self.source_dir()
        schema_files = [
            source / relpath
            for relpath in config.DALORADIUS_SCHEMA_FILES
            if (source / relpath).is_file()
        ]
        if not schema_files:
            raise StepActionFailed(
                "import-daloradius-schema",
                f"no daloRADIUS schema files found under {source}",
            )
        # Some files recreate FreeRADIUS tables loaded by the previous step.
        for schema_file in schema_files:
            try:
                self.import_sql_file(schema_file, force=True)
            except subprocess.CalledProcessError as e:
                codes = mysql_error_codes(command_error_text(e))
                if not codes or set(codes) != {config.MYSQL_ER_TABLE_EXISTS}:
                    raise
                log_setup(
                    f"{self.symbols.get('warning', '⚠️')} {schema_file.name}: "
                    f"{len(codes)} table(s) already existed, kept as they are.",
                    "warning",
                    self.logger,
                )

    def _deploy(self) -> None:
        shutil.copytree(self.checkout, self.install_path, symlinks=True)
        log_setup(
            f"{self.symbols.get('success', '✅')} Copied {self.checkout} to {self.install_path}",
            "info",
            self.logger,
        )

    def config_file(self) -> Path:
        return (
            Path(self.context.fact(DALORADIUS_CONFIG_DIR))
            / config.DALORADIUS_CONFIG_FILENAME
        )

    def desired_config(self) -> str:
        sample = self.config_file().with_name(
            f"{config.DALORADIUS_CONFIG_FILENAME}.sample"
        )
        return set_config_values(
            sample.read_text(encoding="utf-8"),
            {
                "CONFIG_DB_HOST": self.settings.db_host,
                "CONFIG_DB_PORT": self.settings.db_port,
                "CONFIG_DB_USER": self.settings.radius_db_user,
                "CONFIG_DB_PASS": self.settings.db_radius_password,
                "CONFIG_DB_NAME": self.settings.radius_db_name,
            },
        )

    def _configure(self) -> None:
        atomic_write(
            self.config_file(),
            self.desired_config(),
            mode=0o664,
            owner=config.WEB_USER,
            group=config.WEB_GROUP,
            current_logger=self.logger,
        )

    def _set_ownership(self) -> None:
        run_elevated_command(
            [
                "chown",
                "-R",
                f"{config.WEB_USER}:{config.WEB_GROUP}",
                str(self.install_path),
            ],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )

    def _is_web_owned(self) -> bool:
        return all(
            path_owned_by(path, config.WEB_USER, config.WEB_GROUP)
            for path in (self.install_path, self.config_file())
        )

    def site_available(self) -> Path:
        return config.NGINX_SITES_AVAILABLE_DIR / config.NGINX_SITE_NAME

    def site_enabled(self) -> Path:
        return config.NGINX_SITES_ENABLED_DIR / config.NGINX_SITE_NAME

    def site_bindings(self) -> Dict[str, object]:
        return self.context.bindings(daloradius_path=str(self.install_path))

    def _test_nginx(self) -> None:
        run_elevated_command(
            ["nginx", "-t"],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )

    def steps(self) -> List[Step]:
        default_site = config.NGINX_SITES_ENABLED_DIR / NGINX_DEFAULT_SITE
        return [
            self.package_step(
                "install-git", config.GIT_PACKAGES, description="Install git"
            ),
            Step(
                name="fetch-daloradius",
                action=self._fetch,
                check=self.install_path.is_dir,
                description="Clone daloRADIUS",
            ),
            Step(
                name="import-daloradius-schema",
                action=self._import_schema,
                check=lambda: self.radius_table_exists("operators"),
                description="Import the daloRADIUS database schema",
            ),
            Step(
                name="deploy-daloradius",
                action=self._deploy,
                check=self.install_path.is_dir,
                description="Copy daloRADIUS to the web root",
            ),
            Step(
                name="configure-daloradius",
                action=self._configure,
                check=lambda: read_text_if_exists(self.config_file())
                == self.desired_config(),
                facts=(DALORADIUS_CONFIG_DIR,),
                description="Point daloRADIUS at the RADIUS database",
            ),
            Step(
                name="set-daloradius-ownership",
                action=self._set_ownership,
                check=self._is_web_owned,
                facts=(DALORADIUS_CONFIG_DIR,),
                policy=FailurePolicy.WARN,
                description="Hand the daloRADIUS files to the web server user",
            ),
            self.template_step(
                "write-nginx-site",
                "nginx_daloradius.conf",
                destination=self.site_available,
                bindings=self.site_bindings,
                mode=0o644,
                facts=(PHP_VERSION,),
                description="Write the nginx site for daloRADIUS",
            ),
            self.symlink_step(
                "enable-nginx-site",
                target=self.site_available,
                link_path=self.site_enabled,
                description="Enable the daloRADIUS nginx site",
            ),
            Step(
                name="disable-default-site",
                action=lambda: remove_path(default_site, self.logger),
                check=lambda: not (
                    default_site.exists() or default_site.is_symlink()
                ),
                description="Disable the default nginx site",
            ),
            Step(
                name="test-nginx-config",
                action=self._test_nginx,
                description="Test the nginx configuration",
            ),
        ]
