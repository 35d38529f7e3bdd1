#!/usr/bin/env python3
"""
iDempiere Migration Wizard - Main Entry Point

This script is a wrapper for the wizard located in idempiere_migrate/migrate/
"""

import sys
from idempiere_migrate.migrate.__main__ import main

if __name__ == '__main__':
    sys.exit(main())
