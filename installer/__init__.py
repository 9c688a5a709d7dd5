"""
RADIUS server installer.

This package holds the FreeRADIUS, MariaDB, nginx, PHP-FPM and daloRADIUS
components and the provisioning profiles built from them.
"""
