# -*- coding: utf-8 -*-
"""
SharePoint PDF Conversion Script
================================

PURPOSE:
    Converts a local document to PDF by round-tripping it through a SharePoint
    document library with Microsoft Graph. Every run is recorded in a local
    SQLite database (runs, file events, stage-by-stage event log, metrics).

SYNOPSIS:
    sharepoint-pdf init
    sharepoint-pdf run <file_path>
    python -m sharepoint_pdf run <file_path>

COMMANDS:
    init
        Create the database schema and seed placeholder settings.
        Edit the AppSettings row afterwards (site URL, library, credentials).

    run <file_path>
        Convert one file. Prints a single result line:
            OK|FAIL runId=<id> elapsedMs=<n> inputBytes=<n> pdfBytes=<n>

ENVIRONMENT:
    GRAPHLIB_DB                  Database path (default ./Data/GraphLib.db)
    GRAPHLIB_RUN_ID              Run id to use instead of a generated one
    GRAPHLIB_LOG_FAILURES_ONLY   Only write error rows to EventLogs
    GRAPHLIB_LOGIN_ENDPOINT      Azure AD endpoint (default login.microsoftonline.com)
    GRAPHLIB_GRAPH_ENDPOINT      Graph endpoint (default graph.microsoft.com)
    GRAPHLIB_<SETTING>           Per-run overrides of stored settings, e.g.
                                 GRAPHLIB_SITE_URL, GRAPHLIB_PDF_FOLDER,
                                 GRAPHLIB_CLEANUP_TEMP, GRAPHLIB_CLIENT_SECRET
    DEBUG                        Verbose output and tracebacks

EXIT CODES:
    0   Success
    1   Conversion failed or the database is not initialized
    2   Usage error
"""

import sys

from .config import RunOptions, read_setting_overrides
from .errors import SettingsNotInitializedError
from .runner import init_database, run_file
from .utils import is_debug_enabled

USAGE = "Usage: sharepoint-pdf init | run <file_path>"


def command_init(options):
    """Create the database and seed default settings."""
    db_path, seeded = init_database(options.db_path)
    if seeded:
        print(f"[OK] Database initialized: {db_path}")
        print("[=] Placeholder settings were written. Update the AppSettings row before running.")
    else:
        print(f"[=] Database already initialized: {db_path}")
    return 0


def command_run(options, file_path):
    """
    Convert one file and print the one-line result.

    Returns:
        int: Process exit code
    """
    try:
        result = run_file(file_path, options, read_setting_overrides())
    except SettingsNotInitializedError as e:
        print(f"[!] {e}")
        return 1

    status = "OK" if result.success else "FAIL"
    if is_debug_enabled():
        print(f"[DEBUG] {result.summary}")
    print(f"{status} runId={result.run_id} elapsedMs={result.elapsed_ms} "
          f"inputBytes={result.input_bytes} pdfBytes={result.pdf_bytes}")
    return 0 if result.success else 1


def main(argv=None):
    """
    Dispatch the command line.

    Returns:
        int: Process exit code (0 success, 1 failure, 2 usage error)
    """
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(USAGE)
        return 2

    options = RunOptions()
    command = argv[0].lower()

    if command == "init" and len(argv) == 1:
        return command_init(options)
    if command == "run" and len(argv) == 2:
        return command_run(options, argv[1])

    print(USAGE)
    return 2

