# installer/components/radius_samples.py
# -*- coding: utf-8 -*-
"""
Sample NAS client and test user for trying out a fresh FreeRADIUS server.
"""

from typing import List

from installer.components.mariadb import SqlComponent
from installer.registry import ComponentRegistry
from sequencer.step_executor import Step
from sequencer.templates import sql_literal


@ComponentRegistry.register(
    name="radius_samples",
    metadata={
        "description": "Adds a local NAS client and a test user to the RADIUS database.",
    },
)
class RadiusSamplesComponent(SqlComponent):
    def _count(self, sql: str) -> int:
        rows = self.root_query(sql, self.settings.radius_db_name)
        return int(rows[0]) if rows else 0

    def _nas_present(self) -> bool:
        address = sql_literal(self.settings.test_nas_address)
        return (
            self._count(f"SELECT COUNT(*) FROM nas WHERE nasname = '{address}';")
            > 0
        )

    def _test_user_present(self) -> bool:
        user = sql_literal(self.settings.test_user_name)
        return (
            self._count(
                "SELECT "
                f"(SELECT COUNT(*) FROM radcheck WHERE username = '{user}' "
                "AND attribute = 'Cleartext-Password') + "
                f"(SELECT COUNT(*) FROM radusergroup WHERE username = '{user}');"
            )
            >= 2
        )

    def _add_from_template(self, template_name: str) -> None:
        self.root_sql(
            self.context.render(template_name, self.context.sql_bindings()),
            self.settings.radius_db_name,
        )

    def steps(self) -> List[Step]:
        return [
            Step(
                name="add-sample-nas",
                action=lambda: self._add_from_template("add_sample_nas.sql"),
                check=self._nas_present,
                description="Add a sample NAS client",
            ),
            Step(
                name="add-test-user",
                action=lambda: self._add_from_template("add_test_user.sql"),
                check=self._test_user_present,
                description="Add a test user",
            ),
        ]
