# installer/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the RADIUS server setup.

This module defines truly static values for the installer, such as package
lists for apt installation and fixed paths on the target host.

Values that differ per deployment (database names, passwords, server name)
are handled by 'installer/config_models.py' and 'sequencer/config_loader.py'.
"""

from pathlib import Path

SCRIPT_VERSION: str = "2.0"

TEMPLATES_DIR: Path = Path(__file__).resolve().parent / "templates"

ENV_FILE_DEFAULT: str = ".env"
CONFIG_FILE_DEFAULT: str = "config.yaml"

# --- Package Lists (for apt installation) ---
MARIADB_PACKAGES: list[str] = ["mariadb-server", "mariadb-client"]
FREERADIUS_PACKAGES: list[str] = [
    "freeradius",
    "freeradius-mysql",
    "freeradius-utils",
]
NGINX_PACKAGES: list[str] = ["nginx"]
PHP_PACKAGES: list[str] = [
    "php-fpm",
    "php-gd",
    "php-common",
    "php-mail",
    "php-mail-mime",
    "php-mysql",
    "php-pear",
    "php-db",
    "php-mbstring",
    "php-xml",
    "php-curl",
    "php-zip",
    "php-bcmath",
    "php-json",
]
GIT_PACKAGES: list[str] = ["git"]

# --- MariaDB ---
MARIADB_SERVICE: str = "mariadb"
# "Table already exists"; raised when a schema is imported a second time.
MYSQL_ER_TABLE_EXISTS: int = 1050

# --- FreeRADIUS ---
FREERADIUS_SERVICE: str = "freeradius"
FREERADIUS_ETC_DIR: Path = Path("/etc/freeradius")
FREERADIUS_DEFAULT_CONFIG_DIR: Path = FREERADIUS_ETC_DIR / "3.0"
FREERADIUS_VERSION_DIR_PATTERN: str = "3.*"
FREERADIUS_USER: str = "freerad"
FREERADIUS_GROUP: str = "freerad"
FREERADIUS_SCHEMA_RELPATH: str = "mods-config/sql/main/mysql/schema.sql"
FREERADIUS_LOG_FILE: str = "/var/log/freeradius/radius.log"

# --- Certificates ---
CA_KEY_FILENAME: str = "ca-key.pem"
CA_CERT_FILENAME: str = "ca-cert.pem"
CA_KEY_BITS: int = 2048
CA_VALID_DAYS: int = 3650
CA_SUBJECT_TEMPLATE: str = "/C=US/ST=State/L=City/O=Organization/CN={common_name}"

# --- nginx / PHP ---
NGINX_SERVICE: str = "nginx"
NGINX_SITES_AVAILABLE_DIR: Path = Path("/etc/nginx/sites-available")
NGINX_SITES_ENABLED_DIR: Path = Path("/etc/nginx/sites-enabled")
NGINX_SITE_NAME: str = "daloradius"
PHP_VERSION_COMMAND: list[str] = [
    "php",
    "-r",
    "echo PHP_MAJOR_VERSION.'.'.PHP_MINOR_VERSION;",
]
PHP_FPM_SERVICE_TEMPLATE: str = "php{php_version}-fpm"

# --- daloRADIUS ---
DALORADIUS_REPO_DEFAULT: str = "https://github.com/lirantal/daloradius.git"
DALORADIUS_DIRNAME: str = "daloradius"
DALORADIUS_CONFIG_FILENAME: str = "daloradius.conf.php"
# Newest layout first.
DALORADIUS_CONFIG_SUBDIRS: list[str] = ["app/common/includes", "library"]
# Imported in this order when present in the checkout.
DALORADIUS_SCHEMA_FILES: list[str] = [
    "contrib/db/fr2-mysql-daloradius-and-freeradius.sql",
    "contrib/db/mysql-daloradius.sql",
    "contrib/db/fr3-mysql-freeradius.sql",
]
DALORADIUS_DEFAULT_ADMIN_USER: str = "administrator"
DALORADIUS_DEFAULT_ADMIN_PASSWORD: str = "radius"
WEB_USER: str = "www-data"
WEB_GROUP: str = "www-data"
