# -*- coding: utf-8 -*-
"""
Wiring for the SharePoint PDF pipeline.

Builds the Graph services and repositories around one database engine and
one HTTP session, and exposes the init/run operations used by main.py.
"""

import requests

from .auth import TokenProvider
from .data import (
    ConversionMetricsRepository, DbInitializer, DbSecretProvider, EventLogRepository,
    FileEventRepository, RunRepository, SettingsRepository, create_db_engine, resolve_db_path,
)
from .folders import FolderEnsurer
from .graph_client import GraphClient
from .models import Stage
from .pipeline import SingleFilePipeline
from .resolvers import DriveResolver, SiteResolver
from .transfer import CleanupService, PdfConversionService, UploadService


def build_pipeline(engine, settings, session, token_provider=None,
                   login_endpoint="login.microsoftonline.com", graph_endpoint="graph.microsoft.com"):
    """
    Assemble a SingleFilePipeline.

    Args:
        engine (sqlalchemy.engine.Engine): Database engine for run history
        settings (Settings): Resolved settings (credentials are taken from here)
        session (requests.Session): Configured HTTP session
        token_provider: Optional token provider (MSAL-backed when omitted)
        login_endpoint (str): Azure AD endpoint
        graph_endpoint (str): Graph API endpoint

    Returns:
        SingleFilePipeline: Ready-to-run pipeline
    """
    if token_provider is None:
        token_provider = TokenProvider(
            settings.tenant_id, settings.client_id, settings.client_secret,
            login_endpoint, graph_endpoint
        )
    graph = GraphClient(session, token_provider, graph_endpoint)

    return SingleFilePipeline(
        site_resolver=SiteResolver(graph),
        drive_resolver=DriveResolver(graph),
        folders=FolderEnsurer(graph),
        upload=UploadService(graph, Stage.UPLOAD),
        convert=PdfConversionService(graph),
        store_pdf=UploadService(graph, Stage.STORE_PDF),
        cleanup=CleanupService(graph),
        runs=RunRepository(engine),
        files=FileEventRepository(engine),
        logs=EventLogRepository(engine),
        metrics=ConversionMetricsRepository(engine),
    )


def init_database(db_path):
    """
    Create the database schema and seed placeholder settings.

    Returns:
        tuple: (absolute db path, True if settings were seeded)
    """
    path = resolve_db_path(db_path)
    engine = create_db_engine(path)
    try:
        seeded = DbInitializer(engine).ensure_created_and_seed_defaults()
    finally:
        engine.dispose()
    return path, seeded


def run_file(file_path, options, overrides, session=None, secret_provider=None, cancel_token=None):
    """
    Load settings, apply overrides and convert one file.

    Args:
        file_path (str): Local file to convert
        options (RunOptions): Database path, run id and endpoints
        overrides (dict): Settings field -> value, taking precedence over stored values
        session (requests.Session): HTTP session (a new one is created when omitted)
        secret_provider (SecretProvider): Resolver for stored secrets
        cancel_token (CancellationToken): Optional cancellation signal

    Returns:
        RunResult: Outcome of the run

    Raises:
        SettingsNotInitializedError: If the database has not been initialized
    """
    engine = create_db_engine(resolve_db_path(options.db_path))
    owns_session = session is None
    if owns_session:
        session = requests.Session()
    try:
        stored = SettingsRepository(engine, secret_provider or DbSecretProvider()).get()
        settings = stored.with_overrides(overrides)

        pipeline = build_pipeline(
            engine, settings, session,
            login_endpoint=options.login_endpoint, graph_endpoint=options.graph_endpoint
        )
        return pipeline.run(options.run_id, file_path, settings, options.log_failures_only, cancel_token)
    finally:
        if owns_session:
            session.close()
        engine.dispose()
