"""
Component modules for the installer.

Importing this package registers every component with the
``ComponentRegistry``.
"""

from installer.components import (  # noqa: F401
    daloradius,
    freeradius,
    mariadb,
    radius_samples,
    system,
    webserver,
)
