# -*- coding: utf-8 -*-
"""SQLite persistence for run history, event logs, settings and metrics."""

from .db import DEFAULT_DB_PATH, create_db_engine, resolve_db_path
from .repositories import (
    ConversionMetricsRepository,
    DbInitializer,
    EventLogRepository,
    FileEventRepository,
    RunRepository,
    SettingsRepository,
)
from .secrets import DbSecretProvider, SecretProvider

__all__ = [
    'DEFAULT_DB_PATH',
    'ConversionMetricsRepository',
    'DbInitializer',
    'DbSecretProvider',
    'EventLogRepository',
    'FileEventRepository',
    'RunRepository',
    'SecretProvider',
    'SettingsRepository',
    'create_db_engine',
    'resolve_db_path',
]
