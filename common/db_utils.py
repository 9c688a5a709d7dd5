# common/db_utils.py
# -*- coding: utf-8 -*-
"""
Helpers for talking to MariaDB through the ``mysql`` command-line client.

SQL is always passed on standard input and passwords through the
``MYSQL_PWD`` environment variable, so neither shows up in the process list
or in the logged command line.
"""

import logging
import os
import re
import subprocess
from typing import Dict, List, Optional

from common.command_utils import run_command, run_elevated_command
from sequencer.config_models import RunOptions
from sequencer.templates import sql_literal

module_logger = logging.getLogger(__name__)

MYSQL_CLIENT = "mysql"

_MYSQL_ERROR_PATTERN = re.compile(r"ERROR (\d+)(?: \(\w+\))?")


def mysql_env(password: Optional[str]) -> Dict[str, str]:
    """Process environment for the client, with ``MYSQL_PWD`` set or removed."""
    env = {k: v for k, v in os.environ.items() if k != "MYSQL_PWD"}
    if password is not None:
        env["MYSQL_PWD"] = password
    return env


def run_mysql(
    sql: str,
    database: Optional[str] = None,
    user: str = "root",
    password: Optional[str] = None,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
    check: bool = True,
    force: bool = False,
) -> subprocess.CompletedProcess:
    """
    Execute ``sql`` with the mysql client in batch mode.

    Without a ``password`` the client is run as the operating-system root
    user, relying on MariaDB's unix-socket authentication for ``root``.

    With ``force`` the client keeps going after a failed statement and
    reports every error at the end, as ``mysql --force`` does.

    Raises:
        subprocess.CalledProcessError: The client exited non-zero and
            ``check`` is True. Its stderr holds MariaDB's ``ERROR nnnn``.
    """
    logger_to_use = current_logger if current_logger else module_logger
    command: List[str] = [
        MYSQL_CLIENT,
        "--batch",
        "--skip-column-names",
        "-u",
        user,
    ]
    if force:
        command.append("--force")
    if database:
        command.append(database)

    if password is None:
        return run_elevated_command(
            command,
            options,
            check=check,
            capture_output=True,
            cmd_input=sql,
            current_logger=logger_to_use,
            env=mysql_env(None),
        )
    return run_command(
        command,
        options,
        check=check,
        capture_output=True,
        cmd_input=sql,
        current_logger=logger_to_use,
        env=mysql_env(password),
    )


def mysql_query(
    sql: str,
    database: Optional[str] = None,
    user: str = "root",
    password: Optional[str] = None,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Run a query and return its output rows as lines."""
    result = run_mysql(
        sql, database, user, password, options, current_logger
    )
    return [line for line in (result.stdout or "").splitlines() if line]


def mysql_password_matches(
    user: str,
    password: str,
    host: str = "localhost",
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    True when the stored credential of ``user``@``host`` is ``password``.

    A successful login proves nothing for ``root`` run by the operating-system
    root user, since unix-socket authentication ignores ``MYSQL_PWD``. The
    password hash in ``mysql.user`` is compared instead. A failed login
    counts as a mismatch.
    """
    sql = (
        "SELECT COUNT(*) FROM mysql.user "
        f"WHERE User = '{sql_literal(user)}' AND Host = '{sql_literal(host)}' "
        f"AND PASSWORD('{sql_literal(password)}') "
        "IN (Password, authentication_string);"
    )
    try:
        result = run_mysql(
            sql,
            user=user,
            password=password,
            options=options,
            current_logger=current_logger,
            check=False,
        )
    except FileNotFoundError:
        return False
    rows = [line for line in (result.stdout or "").splitlines() if line]
    return result.returncode == 0 and bool(rows) and rows[0].strip() != "0"


def table_exists(
    database: str,
    table: str,
    password: Optional[str] = None,
    options: Optional[RunOptions] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """True when ``database`` contains ``table``."""
    rows = mysql_query(
        "SELECT COUNT(*) FROM information_schema.tables "
        f"WHERE table_schema = '{sql_literal(database)}' "
        f"AND table_name = '{sql_literal(table)}';",
        password=password,
        options=options,
        current_logger=current_logger,
    )
    return bool(rows) and rows[0].strip() != "0"


def mysql_error_code(text: str) -> Optional[int]:
    """The MariaDB error number in a client error message, if any."""
    match = _MYSQL_ERROR_PATTERN.search(text or "")
    return int(match.group(1)) if match else None


def mysql_error_codes(text: str) -> List[int]:
    """Every MariaDB error number in client output, in order."""
    return [int(code) for code in _MYSQL_ERROR_PATTERN.findall(text or "")]
