# installer/config_models.py
# -*- coding: utf-8 -*-
"""
Settings schemas for the RADIUS provisioning profiles.

Each schema lists the keys a profile needs from the settings file. Fields
without a default are required and must be non-empty; the loader reports
every missing one at once.
"""

from pathlib import Path

from pydantic import Field, field_validator

from installer.config import DALORADIUS_DIRNAME, DALORADIUS_REPO_DEFAULT
from sequencer.config_models import NonEmptyStr, PortNumber, ProvisionSettings

DB_HOST_DEFAULT: str = "localhost"
# Provisioning talks to MariaDB over the local socket only.
LOCAL_DB_HOSTS = ("localhost", "127.0.0.1", "::1")
DB_PORT_DEFAULT: int = 3306
CA_COMMON_NAME_DEFAULT: str = "FreeRADIUS-CA"
CERT_DIR_DEFAULT: Path = Path("/etc/ssl/certs")
TEST_NAS_ADDRESS_DEFAULT: str = "127.0.0.1"
WEB_ROOT_DEFAULT: Path = Path("/var/www/html")
DALORADIUS_CHECKOUT_DEFAULT: Path = Path("/tmp/daloradius")


class RadiusSettings(ProvisionSettings):
    """Database settings shared by every profile."""

    db_root_password: NonEmptyStr = Field(
        description="Password set for the MariaDB root account."
    )
    db_radius_password: NonEmptyStr = Field(
        description="Password of the FreeRADIUS database user."
    )
    radius_db_name: NonEmptyStr = Field(
        description="Name of the FreeRADIUS database."
    )
    radius_db_user: NonEmptyStr = Field(
        description="FreeRADIUS database user."
    )

    db_host: NonEmptyStr = Field(
        default=DB_HOST_DEFAULT, description="Database host FreeRADIUS connects to."
    )
    db_port: PortNumber = Field(
        default=DB_PORT_DEFAULT, description="Database port."
    )
    ca_common_name: NonEmptyStr = Field(
        default=CA_COMMON_NAME_DEFAULT,
        description="Common name of the generated CA certificate.",
    )
    cert_dir: Path = Field(
        default=CERT_DIR_DEFAULT,
        description="Directory holding the CA key and certificate.",
    )

    @field_validator("db_host")
    @classmethod
    def check_local_host(cls, v: str) -> str:
        """Only the local server is provisioned."""
        if v not in LOCAL_DB_HOSTS:
            raise ValueError(
                f"must name the local server ({', '.join(LOCAL_DB_HOSTS)}), got {v!r}"
            )
        return v


class FreeradiusSettings(RadiusSettings):
    """FreeRADIUS with a sample NAS client and test user."""

    test_nas_secret: NonEmptyStr = Field(
        description="Shared secret of the sample NAS client."
    )
    test_user_name: NonEmptyStr = Field(description="Name of the test user.")
    test_user_password: NonEmptyStr = Field(
        description="Password of the test user."
    )
    test_nas_address: NonEmptyStr = Field(
        default=TEST_NAS_ADDRESS_DEFAULT,
        description="Address of the sample NAS client.",
    )


class DaloradiusSettings(RadiusSettings):
    """FreeRADIUS with the daloRADIUS web console behind nginx."""

    server_name: NonEmptyStr = Field(
        description="Host name nginx serves daloRADIUS on."
    )
    web_root: Path = Field(
        default=WEB_ROOT_DEFAULT, description="nginx document root."
    )
    daloradius_repo: NonEmptyStr = Field(
        default=DALORADIUS_REPO_DEFAULT,
        description="Git repository daloRADIUS is cloned from.",
    )
    daloradius_checkout: Path = Field(
        default=DALORADIUS_CHECKOUT_DEFAULT,
        description="Scratch directory for the daloRADIUS clone.",
    )

    @property
    def daloradius_path(self) -> Path:
        return self.web_root / DALORADIUS_DIRNAME


# Never printed by --view-config.
SECRET_FIELDS = frozenset(
    {
        "db_root_password",
        "db_radius_password",
        "test_nas_secret",
        "test_user_password",
    }
)
