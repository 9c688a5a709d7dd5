#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the RADIUS server installer.
"""

import sys

from installer.main_installer import main_installer_entry

if __name__ == "__main__":
    sys.exit(main_installer_entry())
