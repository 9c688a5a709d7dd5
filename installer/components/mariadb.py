# installer/components/mariadb.py
# -*- coding: utf-8 -*-
"""
MariaDB installation, hardening and the FreeRADIUS database.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from common.command_utils import log_setup
from common.db_utils import (
    mysql_error_code,
    mysql_password_matches,
    mysql_query,
    run_mysql,
    table_exists,
)
from installer import config
from installer.base_component import BaseComponent
from installer.context import ProvisionContext
from installer.registry import ComponentRegistry
from sequencer.errors import StepActionFailed
from sequencer.service_controller import ServiceState
from sequencer.step_executor import Step
from sequencer.templates import sql_literal

# Leftovers of a fresh MariaDB install that hardening removes.
INSECURE_STATE_QUERY = (
    "SELECT "
    "(SELECT COUNT(*) FROM mysql.user WHERE User='') + "
    "(SELECT COUNT(*) FROM mysql.user WHERE User='root' "
    "AND Host NOT IN ('localhost', '127.0.0.1', '::1')) + "
    "(SELECT COUNT(*) FROM information_schema.schemata WHERE schema_name='test') + "
    "(SELECT COUNT(*) FROM mysql.db WHERE Db='test' OR Db='test\\_%');"
)


class SqlComponent(BaseComponent):
    """
    Base for components that run SQL as the MariaDB root user.
    """

    def __init__(
        self,
        context: ProvisionContext,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(context, logger)
        self.root_password = self.settings.db_root_password

    def root_sql(
        self, sql: str, database: Optional[str] = None, force: bool = False
    ) -> None:
        """Run ``sql`` as MariaDB root with the configured password."""
        run_mysql(
            sql,
            database,
            password=self.root_password,
            force=force,
            options=self.options,
            current_logger=self.logger,
        )

    def root_query(self, sql: str, database: Optional[str] = None) -> List[str]:
        return mysql_query(
            sql,
            database,
            password=self.root_password,
            options=self.options,
            current_logger=self.logger,
        )

    def radius_table_exists(self, table: str) -> bool:
        return table_exists(
            self.settings.radius_db_name,
            table,
            password=self.root_password,
            options=self.options,
            current_logger=self.logger,
        )

    def import_sql_file(self, path: Path, force: bool = False) -> None:
        """Load an SQL script into the RADIUS database."""
        log_setup(
            f"{self.symbols.get('gear', '⚙️')} Importing {path} into {self.settings.radius_db_name}...",
            "info",
            self.logger,
        )
        self.root_sql(
            path.read_text(encoding="utf-8"),
            self.settings.radius_db_name,
            force=force,
        )


def table_already_exists(failure: StepActionFailed) -> bool:
    """A schema import that failed only because its tables exist already."""
    return mysql_error_code(failure.detail) == config.MYSQL_ER_TABLE_EXISTS


@ComponentRegistry.register(
    name="mariadb",
    metadata={
        "description": "MariaDB server, root password, hardening and the RADIUS database.",
    },
)
class MariadbComponent(SqlComponent):
    """
    Installs MariaDB, sets the root password, removes the anonymous and test
    leftovers and creates the database and user FreeRADIUS connects with.
    """

    def _root_password_is_set(self) -> bool:
        return mysql_password_matches(
            "root",
            self.root_password,
            options=self.options,
            current_logger=self.logger,
        )

    def _set_root_password(self) -> None:
        # Fresh installs authenticate root through the unix socket only.
        run_mysql(
            self.context.render(
                "set_root_password.sql", self.context.sql_bindings()
            ),
            options=self.options,
            current_logger=self.logger,
        )

    def _is_secured(self) -> bool:
        rows = self.root_query(INSECURE_STATE_QUERY)
        return bool(rows) and rows[0].strip() == "0"

    def _secure(self) -> None:
        self.root_sql(
            self.context.render(
                "secure_mariadb.sql", self.context.sql_bindings()
            )
        )

    def _radius_database_exists(self) -> bool:
        db_name = sql_literal(self.settings.radius_db_name)
        db_user = sql_literal(self.settings.radius_db_user)
        rows = self.root_query(
            "SELECT "
            f"(SELECT COUNT(*) FROM information_schema.schemata WHERE schema_name='{db_name}') + "
            f"(SELECT COUNT(*) FROM mysql.user WHERE User='{db_user}' AND Host='localhost');"
        )
        return bool(rows) and rows[0].strip() == "2"

    def _create_radius_database(self) -> None:
        self.root_sql(
            self.context.render(
                "create_radius_database.sql", self.context.sql_bindings()
            )
        )

    def steps(self) -> List[Step]:
        return [
            self.package_step(
                "install-mariadb",
                config.MARIADB_PACKAGES,
                description="Install MariaDB",
            ),
            Step(
                name="set-mariadb-root-password",
                action=self._set_root_password,
                check=self._root_password_is_set,
                description="Set the MariaDB root password",
            ),
            Step(
                name="secure-mariadb",
                action=self._secure,
                check=self._is_secured,
                description="Secure the MariaDB installation",
            ),
            Step(
                name="create-radius-database",
                action=self._create_radius_database,
                check=self._radius_database_exists,
                description="Create the FreeRADIUS database and user",
            ),
        ]

    def services(self) -> Dict[str, ServiceState]:
        return {
            config.MARIADB_SERVICE: self.service_state(
                config.MARIADB_SERVICE, package=config.MARIADB_PACKAGES[0]
            )
        }
