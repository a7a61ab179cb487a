# -*- coding: utf-8 -*-
"""
Configuration management for the SharePoint PDF pipeline.

Persisted settings live in the database; this module reads the per-run
overrides and process options from environment variables (a local .env file
is loaded first).
"""

import os

from dotenv import load_dotenv

from .data.db import DEFAULT_DB_PATH
from .utils import parse_bool

# Load environment variables
load_dotenv()

# Environment variable -> Settings field
SETTING_OVERRIDE_VARS = {
    'GRAPHLIB_SITE_URL': 'site_url',
    'GRAPHLIB_LIBRARY_NAME': 'library_name',
    'GRAPHLIB_TEMP_FOLDER': 'temp_folder',
    'GRAPHLIB_PDF_FOLDER': 'pdf_folder',
    'GRAPHLIB_LOCAL_PDF_DIR': 'local_pdf_dir',
    'GRAPHLIB_CLEANUP_TEMP': 'cleanup_temp',
    'GRAPHLIB_CONFLICT_BEHAVIOR': 'conflict_behavior',
    'GRAPHLIB_STORE_PDF': 'store_pdf_in_sharepoint',
    'GRAPHLIB_TENANT_ID': 'tenant_id',
    'GRAPHLIB_CLIENT_ID': 'client_id',
    'GRAPHLIB_CLIENT_SECRET': 'client_secret',
}

BOOLEAN_SETTINGS = {'cleanup_temp', 'store_pdf_in_sharepoint'}


def read_setting_overrides(environ=None):
    """
    Collect Settings overrides from the environment.

    An unset variable means "no override". An empty string is a real
    override for text fields (e.g. GRAPHLIB_PDF_FOLDER= disables PDF storage).
    Unparseable booleans are ignored.

    Args:
        environ (dict): Environment mapping (os.environ when omitted)

    Returns:
        dict: Settings field -> override value
    """
    environ = os.environ if environ is None else environ
    overrides = {}
    for var, field in SETTING_OVERRIDE_VARS.items():
        if var not in environ:
            continue
        value = environ[var]
        if field in BOOLEAN_SETTINGS:
            value = parse_bool(value)
            if value is None:
                continue
        overrides[field] = value
    return overrides


class RunOptions:
    """Process-level options for one invocation"""

    def __init__(self, environ=None):
        environ = os.environ if environ is None else environ
        self.db_path = environ.get('GRAPHLIB_DB') or DEFAULT_DB_PATH
        self.run_id = environ.get('GRAPHLIB_RUN_ID') or None
        self.log_failures_only = parse_bool(environ.get('GRAPHLIB_LOG_FAILURES_ONLY')) or False
        self.login_endpoint = environ.get('GRAPHLIB_LOGIN_ENDPOINT') or "login.microsoftonline.com"
        self.graph_endpoint = environ.get('GRAPHLIB_GRAPH_ENDPOINT') or "graph.microsoft.com"
