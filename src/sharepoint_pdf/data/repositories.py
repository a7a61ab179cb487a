# -*- coding: utf-8 -*-
"""
Repositories for run history, settings and conversion metrics.

Each method opens its own connection and transaction and closes it before
returning. A Run update and its FileEvent update are separate commits.
"""

from sqlalchemy import func, inspect, insert, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ..errors import SettingsNotInitializedError
from ..models import ConflictBehavior, Settings
from .db import app_settings, conversion_metrics, event_logs, file_events, metadata, runs, utc_iso

SETTINGS_ROW_ID = 1


class DbInitializer:
    """Creates the schema and seeds the default AppSettings row."""

    def __init__(self, engine):
        self.engine = engine

    def ensure_created_and_seed_defaults(self):
        """
        Create missing tables and insert placeholder settings if none exist.

        Returns:
            bool: True if the settings row was seeded by this call
        """
        metadata.create_all(self.engine)

        with self.engine.begin() as conn:
            count = conn.execute(
                select(func.count()).select_from(app_settings).where(app_settings.c.Id == SETTINGS_ROW_ID)
            ).scalar_one()
            if count:
                return False
            conn.execute(insert(app_settings).values(Id=SETTINGS_ROW_ID, **_settings_row(Settings.default_for_init())))
        return True


def _settings_row(settings):
    return {
        'SiteUrl': settings.site_url,
        'LibraryName': settings.library_name,
        'TempFolder': settings.temp_folder,
        'PdfFolder': settings.pdf_folder,
        'CleanupTemp': settings.cleanup_temp,
        'ConflictBehavior': settings.conflict_behavior.to_graph_value(),
        'StorePdfInSharePoint': settings.store_pdf_in_sharepoint,
        'LocalPdfDir': settings.local_pdf_dir,
        'TenantId': settings.tenant_id,
        'ClientId': settings.client_id,
        'ClientSecret': settings.client_secret,
    }


class SettingsRepository:
    """Reads and writes the single AppSettings row."""

    def __init__(self, engine, secret_provider):
        self.engine = engine
        self.secret_provider = secret_provider

    def get(self):
        """
        Load persisted settings.

        Returns:
            Settings: Stored settings with the client secret resolved

        Raises:
            SettingsNotInitializedError: If the database has no settings row
        """
        if not inspect(self.engine).has_table(app_settings.name):
            raise SettingsNotInitializedError("AppSettings table is missing. Run `init` first.")

        with self.engine.connect() as conn:
            row = conn.execute(
                select(app_settings).where(app_settings.c.Id == SETTINGS_ROW_ID)
            ).mappings().first()

        if row is None:
            raise SettingsNotInitializedError("No AppSettings row found. Run `init` first.")

        return Settings(
            site_url=row['SiteUrl'],
            library_name=row['LibraryName'],
            temp_folder=row['TempFolder'],
            pdf_folder=row['PdfFolder'],
            cleanup_temp=bool(row['CleanupTemp']),
            conflict_behavior=ConflictBehavior.parse(row['ConflictBehavior'], ConflictBehavior.REPLACE),
            store_pdf_in_sharepoint=bool(row['StorePdfInSharePoint']),
            local_pdf_dir=row['LocalPdfDir'],
            tenant_id=row['TenantId'],
            client_id=row['ClientId'],
            client_secret=self.secret_provider.get_secret('ClientSecret', row['ClientSecret']),
        )

    def update(self, settings):
        """Overwrite the stored settings row."""
        with self.engine.begin() as conn:
            result = conn.execute(
                update(app_settings).where(app_settings.c.Id == SETTINGS_ROW_ID).values(**_settings_row(settings))
            )
            if result.rowcount == 0:
                raise SettingsNotInitializedError("No AppSettings row found. Run `init` first.")


class RunRepository:
    """Manages the Runs table: one row per pipeline invocation."""

    def __init__(self, engine):
        self.engine = engine

    def insert_run_started(self, run_id, started_at=None):
        with self.engine.begin() as conn:
            conn.execute(insert(runs).values(
                RunId=run_id,
                StartedAtUtc=utc_iso(started_at),
                EndedAtUtc=None,
                Success=False,
                FileCountTotal=0,
                FileCountSucceeded=0,
                FileCountFailed=0,
                TotalInputBytes=0,
                TotalPdfBytes=0,
            ))

    def update_run_finished(self, run_id, ended_at, success, total, succeeded, failed,
                            total_input_bytes, total_pdf_bytes):
        with self.engine.begin() as conn:
            conn.execute(update(runs).where(runs.c.RunId == run_id).values(
                EndedAtUtc=utc_iso(ended_at),
                Success=success,
                FileCountTotal=total,
                FileCountSucceeded=succeeded,
                FileCountFailed=failed,
                TotalInputBytes=total_input_bytes,
                TotalPdfBytes=total_pdf_bytes,
            ))

    def get(self, run_id):
        """Return the Runs row as a dict, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(select(runs).where(runs.c.RunId == run_id)).mappings().first()
        return dict(row) if row else None


class FileEventRepository:
    """Manages the FileEvents table: one row per file processed in a run."""

    def __init__(self, engine):
        self.engine = engine

    def insert_file_started(self, run_id, file_path, file_name, extension, size_bytes, started_at=None):
        """
        Insert a file event at the start of processing.

        Returns:
            int: The new FileEvent id, referenced by EventLogs rows
        """
        with self.engine.begin() as conn:
            result = conn.execute(insert(file_events).values(
                RunId=run_id,
                FilePath=file_path,
                FileName=file_name,
                Extension=extension,
                SizeBytes=size_bytes,
                StartedAtUtc=utc_iso(started_at),
                EndedAtUtc=None,
                Success=False,
                DriveId=None,
                TempItemId=None,
                PdfItemId=None,
            ))
            return result.inserted_primary_key[0]

    def update_file_finished(self, file_event_id, ended_at, success, drive_id, temp_item_id, pdf_item_id):
        with self.engine.begin() as conn:
            conn.execute(update(file_events).where(file_events.c.Id == file_event_id).values(
                EndedAtUtc=utc_iso(ended_at),
                Success=success,
                DriveId=drive_id,
                TempItemId=temp_item_id,
                PdfItemId=pdf_item_id,
            ))

    def list_for_run(self, run_id):
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(file_events).where(file_events.c.RunId == run_id).order_by(file_events.c.Id)
            ).mappings().all()
        return [dict(r) for r in rows]


class EventLogRepository:
    """Append-only structured trace of pipeline stages."""

    def __init__(self, engine):
        self.engine = engine

    def insert(self, run_id, file_event_id, timestamp, level, stage, payload_json):
        """
        Append one log entry.

        Args:
            run_id (str): Run the event belongs to
            file_event_id (int): FileEvent id, or None for run-level events
            timestamp (datetime): When the event occurred
            level (str): 'info', 'warn' or 'error'
            stage (str): Stage tag, e.g. 'upload'
            payload_json (str): JSON-serialized event detail
        """
        with self.engine.begin() as conn:
            conn.execute(insert(event_logs).values(
                RunId=run_id,
                FileEventId=file_event_id,
                TimestampUtc=utc_iso(timestamp),
                Level=level,
                Stage=stage,
                PayloadJson=payload_json,
            ))

    def list_for_run(self, run_id):
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(event_logs).where(event_logs.c.RunId == run_id).order_by(event_logs.c.Id)
            ).mappings().all()
        return [dict(r) for r in rows]


def normalize_extension(ext):
    """Normalize 'DOCX', 'docx' or '.docx' to '.docx'; blank becomes None."""
    if not ext or not ext.strip():
        return None
    ext = ext.strip().lower()
    return ext if ext.startswith('.') else '.' + ext


class ConversionMetricsRepository:
    """Per extension-pair conversion counters (optional analytics sink)."""

    def __init__(self, engine):
        self.engine = engine

    def track(self, source_extension, target_extension, success):
        """
        Count one conversion attempt.

        Rows are upserted and counters incremented atomically. Nothing is
        written when either extension is unknown.
        """
        source_extension = normalize_extension(source_extension)
        target_extension = normalize_extension(target_extension)
        if not source_extension or not target_extension:
            return

        now = utc_iso()
        stmt = sqlite_insert(conversion_metrics).values(
            SourceExtension=source_extension,
            TargetExtension=target_extension,
            ConversionCount=1,
            SuccessCount=1 if success else 0,
            FailureCount=0 if success else 1,
            LastAttemptAt=now,
            LastSuccessAt=now if success else None,
            LastFailureAt=None if success else now,
        )
        c = conversion_metrics.c
        if success:
            changes = {
                'SuccessCount': c.SuccessCount + 1,
                'LastSuccessAt': now,
            }
        else:
            changes = {
                'FailureCount': c.FailureCount + 1,
                'LastFailureAt': now,
            }
        stmt = stmt.on_conflict_do_update(
            index_elements=[c.SourceExtension, c.TargetExtension],
            set_=dict(ConversionCount=c.ConversionCount + 1, LastAttemptAt=now, **changes),
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def get_top(self, top=25):
        """Return the most attempted extension pairs as dicts."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(conversion_metrics)
                .order_by(conversion_metrics.c.ConversionCount.desc())
                .limit(top)
            ).mappings().all()
        return [dict(r) for r in rows]
