# installer/components/freeradius.py
# -*- coding: utf-8 -*-
"""
FreeRADIUS installation and its SQL module.

The versioned configuration directory (``/etc/freeradius/3.0`` on most
releases) is a fact discovered after the package is installed.
"""

from pathlib import Path
from typing import Any, Dict, List

from common.command_utils import log_setup, run_elevated_command
from common.file_utils import path_owned_by
from installer import config
from installer.components.mariadb import SqlComponent, table_already_exists
from installer.facts import FREERADIUS_CONFIG_DIR
from installer.registry import ComponentRegistry
from sequencer.errors import StepActionFailed
from sequencer.service_controller import ServiceState
from sequencer.step_executor import FailurePolicy, Step

SQL_MODULE = "sql"


def freeradius_string(value: Any) -> str:
    """Escape ``value`` for a double-quoted FreeRADIUS configuration string."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


@ComponentRegistry.register(
    name="freeradius",
    metadata={
        "description": "FreeRADIUS server, its database schema, CA certificate and SQL module.",
    },
)
class FreeradiusComponent(SqlComponent):
    """
    Installs FreeRADIUS, loads its schema into the RADIUS database, creates
    a CA certificate and points the SQL module at MariaDB.
    """

    def config_dir(self) -> Path:
        return Path(self.context.fact(FREERADIUS_CONFIG_DIR))

    def sql_module_available(self) -> Path:
        return self.config_dir() / "mods-available" / SQL_MODULE

    def sql_module_enabled(self) -> Path:
        return self.config_dir() / "mods-enabled" / SQL_MODULE

    @property
    def ca_key_file(self) -> Path:
        return self.settings.cert_dir / config.CA_KEY_FILENAME

    @property
    def ca_cert_file(self) -> Path:
        return self.settings.cert_dir / config.CA_CERT_FILENAME

    def _import_schema(self) -> None:
        self.import_sql_file(self.config_dir() / config.FREERADIUS_SCHEMA_RELPATH)

    def _verify_tables(self) -> None:
        tables = self.root_query("SHOW TABLES;", self.settings.radius_db_name)
        if not tables:
            raise StepActionFailed(
                "verify-radius-tables",
                f"database {self.settings.radius_db_name} has no tables",
            )
        log_setup(
            f"{self.symbols.get('info', 'ℹ️')} Tables in {self.settings.radius_db_name}: {', '.join(tables)}",
            "info",
            self.logger,
        )

    def _ca_exists(self) -> bool:
        return self.ca_key_file.is_file() and self.ca_cert_file.is_file()

    def _generate_ca(self) -> None:
        subject = config.CA_SUBJECT_TEMPLATE.format(
            common_name=self.settings.ca_common_name
        )
        run_elevated_command(
            [
                "openssl",
                "genrsa",
                "-out",
                str(self.ca_key_file),
                str(config.CA_KEY_BITS),
            ],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )
        run_elevated_command(
            [
                "openssl",
                "req",
                "-sha256",
                "-new",
                "-x509",
                "-nodes",
                "-days",
                str(config.CA_VALID_DAYS),
                "-key",
                str(self.ca_key_file),
                "-subj",
                subject,
                "-out",
                str(self.ca_cert_file),
            ],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )

    def sql_module_bindings(self) -> Dict[str, str]:
        values = self.context.bindings(ca_cert_file=str(self.ca_cert_file))
        return {key: freeradius_string(value) for key, value in values.items()}

    def _permissions_set(self) -> bool:
        return path_owned_by(
            self.sql_module_available(), group=config.FREERADIUS_GROUP
        ) and path_owned_by(
            self.sql_module_enabled(),
            owner=config.FREERADIUS_USER,
            group=config.FREERADIUS_GROUP,
            follow_symlinks=False,
        )

    def _set_permissions(self) -> None:
        run_elevated_command(
            ["chgrp", "-h", config.FREERADIUS_GROUP, str(self.sql_module_available())],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )
        run_elevated_command(
            [
                "chown",
                "-h",
                f"{config.FREERADIUS_USER}:{config.FREERADIUS_GROUP}",
                str(self.sql_module_enabled()),
            ],
            self.options,
            capture_output=True,
            current_logger=self.logger,
        )

    def steps(self) -> List[Step]:
        return [
            self.package_step(
                "install-freeradius",
                config.FREERADIUS_PACKAGES,
                description="Install FreeRADIUS",
            ),
            Step(
                name="import-freeradius-schema",
                action=self._import_schema,
                check=lambda: self.radius_table_exists("radcheck"),
                facts=(FREERADIUS_CONFIG_DIR,),
                benign=table_already_exists,
                description="Import the FreeRADIUS database schema",
            ),
            Step(
                name="verify-radius-tables",
                action=self._verify_tables,
                policy=FailurePolicy.WARN,
                description="Verify the RADIUS database tables",
            ),
            Step(
                name="generate-ca-certificate",
                action=self._generate_ca,
                check=self._ca_exists,
                description="Generate the CA key and certificate",
            ),
            self.template_step(
                "write-sql-module",
                "sql_module.conf",
                destination=self.sql_module_available,
                bindings=self.sql_module_bindings,
                # Holds the database password.
                mode=0o640,
                facts=(FREERADIUS_CONFIG_DIR,),
                description="Configure the FreeRADIUS SQL module",
            ),
            self.symlink_step(
                "enable-sql-module",
                target=self.sql_module_available,
                link_path=self.sql_module_enabled,
                facts=(FREERADIUS_CONFIG_DIR,),
                description="Enable the FreeRADIUS SQL module",
            ),
            Step(
                name="set-sql-module-permissions",
                action=self._set_permissions,
                check=self._permissions_set,
                policy=FailurePolicy.WARN,
                facts=(FREERADIUS_CONFIG_DIR,),
                description="Give the freerad group access to the SQL module",
            ),
        ]

    def services(self) -> Dict[str, ServiceState]:
        return {
            config.FREERADIUS_SERVICE: self.service_state(
                config.FREERADIUS_SERVICE, package=config.FREERADIUS_PACKAGES[0]
            )
        }
