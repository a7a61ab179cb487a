#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Convert a local document to PDF through SharePoint.

Usage:
    python main.py init
    python main.py run <file_path>

See sharepoint_pdf/cli.py for commands, environment variables and exit codes.
"""

import sys

from sharepoint_pdf.cli import main

if __name__ == "__main__":
    sys.exit(main())
