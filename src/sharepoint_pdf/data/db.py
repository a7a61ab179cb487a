# -*- coding: utf-8 -*-
"""
SQLite storage for run history and settings.

Defines the schema with SQLAlchemy Core and builds engines that open a new
connection for every unit of work (NullPool). Repositories wrap each write
in its own `engine.begin()` scope.
"""

import datetime
import os

from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, MetaData, String, Table, Text,
    create_engine, event,
)
from sqlalchemy.pool import NullPool

DEFAULT_DB_PATH = "./Data/GraphLib.db"

metadata = MetaData()

runs = Table(
    "Runs", metadata,
    Column("RunId", String, primary_key=True),
    Column("StartedAtUtc", String, nullable=False),
    Column("EndedAtUtc", String, nullable=True),
    Column("Success", Boolean, nullable=False, default=False),
    Column("FileCountTotal", Integer, nullable=False, default=0),
    Column("FileCountSucceeded", Integer, nullable=False, default=0),
    Column("FileCountFailed", Integer, nullable=False, default=0),
    Column("TotalInputBytes", Integer, nullable=False, default=0),
    Column("TotalPdfBytes", Integer, nullable=False, default=0),
)

file_events = Table(
    "FileEvents", metadata,
    Column("Id", Integer, primary_key=True, autoincrement=True),
    Column("RunId", String, ForeignKey("Runs.RunId"), nullable=False, index=True),
    Column("FilePath", Text, nullable=False),
    Column("FileName", String, nullable=False),
    Column("Extension", String, nullable=False),
    Column("SizeBytes", Integer, nullable=False),
    Column("StartedAtUtc", String, nullable=False),
    Column("EndedAtUtc", String, nullable=True),
    Column("Success", Boolean, nullable=False, default=False),
    Column("DriveId", String, nullable=True),
    Column("TempItemId", String, nullable=True),
    Column("PdfItemId", String, nullable=True),
)

event_logs = Table(
    "EventLogs", metadata,
    Column("Id", Integer, primary_key=True, autoincrement=True),
    Column("RunId", String, nullable=False, index=True),
    Column("FileEventId", Integer, ForeignKey("FileEvents.Id"), nullable=True),
    Column("TimestampUtc", String, nullable=False),
    Column("Level", String, nullable=False),
    Column("Stage", String, nullable=False),
    Column("PayloadJson", Text, nullable=False),
)

app_settings = Table(
    "AppSettings", metadata,
    Column("Id", Integer, primary_key=True),
    Column("SiteUrl", Text, nullable=False),
    Column("LibraryName", String, nullable=False),
    Column("TempFolder", String, nullable=False),
    Column("PdfFolder", String, nullable=False),
    Column("CleanupTemp", Boolean, nullable=False),
    Column("ConflictBehavior", String, nullable=False),
    Column("StorePdfInSharePoint", Boolean, nullable=False),
    Column("LocalPdfDir", Text, nullable=False, default=""),
    Column("TenantId", String, nullable=False),
    Column("ClientId", String, nullable=False),
    Column("ClientSecret", Text, nullable=False),
)

conversion_metrics = Table(
    "ConversionMetrics", metadata,
    Column("SourceExtension", String, primary_key=True),
    Column("TargetExtension", String, primary_key=True),
    Column("ConversionCount", Integer, nullable=False, default=0),
    Column("SuccessCount", Integer, nullable=False, default=0),
    Column("FailureCount", Integer, nullable=False, default=0),
    Column("LastAttemptAt", String, nullable=True),
    Column("LastSuccessAt", String, nullable=True),
    Column("LastFailureAt", String, nullable=True),
)


def utc_iso(moment=None):
    """Return an ISO-8601 UTC timestamp for storage."""
    moment = moment or datetime.datetime.now(datetime.timezone.utc)
    return moment.astimezone(datetime.timezone.utc).isoformat()


def resolve_db_path(raw_path, default_path=DEFAULT_DB_PATH):
    """
    Resolve a database path, creating its directory as needed.

    Args:
        raw_path (str): User-supplied path (relative, absolute, blank or None)
        default_path (str): Used when raw_path is blank

    Returns:
        str: Absolute path to the database file
    """
    path = raw_path.strip() if raw_path and raw_path.strip() else default_path
    path = os.path.abspath(os.path.expanduser(path))

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return path


def create_db_engine(db_path):
    """
    Create an engine for a SQLite file.

    Every connect() opens a fresh connection that is closed on release;
    nothing is pooled between repository calls.

    Args:
        db_path (str): Path to the database file

    Returns:
        sqlalchemy.engine.Engine: The engine
    """
    engine = create_engine(f"sqlite:///{db_path}", poolclass=NullPool, future=True)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine
