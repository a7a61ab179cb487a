# -*- coding: utf-8 -*-
"""
Single-file conversion pipeline.

Sequences site/drive resolution, folder setup, upload, PDF rendition and the
optional store/save/cleanup steps, mirroring every stage into the EventLogs
table. The pipeline is the only place errors are caught: any failure ends
the run, is logged once at 'error' level, and the Run/FileEvent rows are
always finalized.
"""

import datetime
import os
import time
import traceback
import uuid

from .cancellation import check_cancelled
from .errors import PipelineCancelled, PipelineError, PreconditionError
from .events import build_payload_json
from .models import ConflictBehavior, LogLevel, RunResult, Stage
from .utils import format_bytes, is_debug_enabled


def _utc_now():
    return datetime.datetime.now(datetime.timezone.utc)


def pdf_name_for(file_name):
    """Report.docx -> Report.pdf"""
    return os.path.splitext(file_name)[0] + ".pdf"


class _RunState:
    """
    Mutable facts gathered while a run progresses.

    Remote identifiers are write-once: the first observed value is kept.
    """

    _IDENTIFIERS = ('site_id', 'drive_id', 'temp_item_id', 'pdf_item_id')

    def __init__(self, file_path):
        self.stage = Stage.VALIDATE_INPUT
        self.file_path = file_path or ""
        self.file_name = os.path.basename(self.file_path)
        self.extension = os.path.splitext(self.file_name)[1].lstrip('.').lower()
        self.file_event_id = None
        self.input_bytes = 0
        self.pdf_bytes = 0
        self.site_id = None
        self.drive_id = None
        self.temp_item_id = None
        self.pdf_item_id = None

    def assign(self, name, value):
        if name not in self._IDENTIFIERS:
            raise AttributeError(name)
        if getattr(self, name) is None:
            setattr(self, name, value)
        return getattr(self, name)

    def file_payload(self):
        return {
            'path': self.file_path,
            'name': self.file_name,
            'extension': self.extension,
            'sizeBytes': self.input_bytes,
        }


class SingleFilePipeline:
    """
    Converts one local file to PDF through SharePoint.

    All collaborators are injected so each can be replaced in tests.
    """

    def __init__(self, site_resolver, drive_resolver, folders, upload, convert, store_pdf, cleanup,
                 runs, files, logs, metrics=None):
        self.site_resolver = site_resolver
        self.drive_resolver = drive_resolver
        self.folders = folders
        self.upload = upload
        self.convert = convert
        self.store_pdf = store_pdf
        self.cleanup = cleanup

        self.runs = runs
        self.files = files
        self.logs = logs
        self.metrics = metrics

    def run(self, run_id, file_path, settings, log_failures_only=False, cancel_token=None):
        """
        Run the pipeline for one file.

        Args:
            run_id (str): Unique id for this run (a uuid4 is generated when empty)
            file_path (str): Local file to convert
            settings (Settings): Resolved settings for this run
            log_failures_only (bool): Suppress EventLog rows for successful stages
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            RunResult: Outcome summary. Failures are reported here, not raised.

        Raises:
            Exception: Only when the run history itself cannot be written
        """
        run_id = run_id or str(uuid.uuid4())
        clock = time.monotonic()
        state = _RunState(file_path)
        success = False
        error = None

        self.runs.insert_run_started(run_id, _utc_now())

        try:
            content = self._read_input(state, cancel_token)
            state.file_event_id = self.files.insert_file_started(
                run_id, state.file_path, state.file_name, state.extension, state.input_bytes, _utc_now()
            )
            self._validate_settings(state, settings)
            self._execute(run_id, state, content, settings, log_failures_only, cancel_token)
            success = True
        except Exception as e:
            error = e
            self._log_failure(run_id, state, e)
        finally:
            if not self._finalize(run_id, state, success):
                success = False

        elapsed = time.monotonic() - clock
        if success:
            summary = f"OK file='{state.file_name}' pdfBytes={state.pdf_bytes}"
        elif error is None:
            summary = f"FAIL file='{state.file_name}' (run history not recorded)"
        else:
            summary = f"FAIL file='{state.file_name}' ({type(error).__name__})"

        return RunResult(
            run_id=run_id,
            success=success,
            summary=summary,
            input_bytes=state.input_bytes,
            pdf_bytes=state.pdf_bytes,
            elapsed=elapsed,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate_settings(self, state, settings):
        state.stage = Stage.VALIDATE_INPUT
        for name in ('site_url', 'library_name'):
            if not getattr(settings, name).strip():
                raise PreconditionError(f"{name} cannot be empty", Stage.VALIDATE_INPUT)

    def _read_input(self, state, cancel_token):
        state.stage = Stage.VALIDATE_INPUT
        if not state.file_path.strip():
            raise PreconditionError("Input file path was empty.", Stage.VALIDATE_INPUT)

        state.file_path = os.path.abspath(state.file_path)
        if not os.path.isfile(state.file_path):
            raise PreconditionError(f"Input file not found: '{state.file_path}'", Stage.VALIDATE_INPUT)

        state.stage = Stage.READ_INPUT
        check_cancelled(cancel_token, Stage.READ_INPUT)
        try:
            state.input_bytes = os.path.getsize(state.file_path)
            with open(state.file_path, 'rb') as f:
                content = f.read()
        except OSError as e:
            raise PreconditionError(f"Failed reading input file: {e}", Stage.READ_INPUT) from e

        state.input_bytes = len(content)
        return content

    def _execute(self, run_id, state, content, settings, log_failures_only, cancel_token):
        # One client-request-id across the run correlates all Graph calls
        correlation_id = str(uuid.uuid4())

        def stage_done(stage, **facts):
            if log_failures_only:
                return
            payload = {'runId': run_id, 'stage': stage, 'success': True}
            payload.update(facts)
            self.logs.insert(run_id, state.file_event_id, _utc_now(), LogLevel.INFO, stage,
                             build_payload_json(payload))

        # 1) Resolve site
        state.stage = Stage.RESOLVE_SITE
        site_id = state.assign('site_id', self.site_resolver.resolve_site(
            settings.site_url, correlation_id, cancel_token))
        stage_done(Stage.RESOLVE_SITE, siteId=site_id, correlationId=correlation_id,
                   file=state.file_payload())

        # 2) Resolve drive (document library)
        state.stage = Stage.RESOLVE_DRIVE
        drive_id = state.assign('drive_id', self.drive_resolver.resolve_drive(
            site_id, settings.library_name, correlation_id, cancel_token))
        stage_done(Stage.RESOLVE_DRIVE, siteId=site_id, driveId=drive_id,
                   libraryName=settings.library_name)

        # 3) Ensure folders
        state.stage = Stage.ENSURE_FOLDER
        self.folders.ensure_folder(drive_id, settings.temp_folder, correlation_id, cancel_token)
        if settings.stores_pdf:
            self.folders.ensure_folder(drive_id, settings.pdf_folder, correlation_id, cancel_token)
        stage_done(Stage.ENSURE_FOLDER, tempFolder=settings.temp_folder,
                   pdfFolder=settings.pdf_folder if settings.stores_pdf else None)

        # 4) Upload source to the temp folder
        state.stage = Stage.UPLOAD
        temp_item_id = state.assign('temp_item_id', self.upload.upload_to_folder(
            drive_id, settings.temp_folder, state.file_name, content,
            settings.conflict_behavior, correlation_id, cancel_token))
        stage_done(Stage.UPLOAD, driveId=drive_id, tempItemId=temp_item_id,
                   conflictBehavior=settings.conflict_behavior.to_graph_value(),
                   sizeBytes=state.input_bytes)

        # 5) Download the PDF rendition
        state.stage = Stage.CONVERT
        pdf = self.convert.download_pdf(drive_id, temp_item_id, correlation_id, cancel_token)
        state.pdf_bytes = len(pdf)
        stage_done(Stage.CONVERT, driveId=drive_id, tempItemId=temp_item_id, pdfBytes=state.pdf_bytes)

        pdf_name = pdf_name_for(state.file_name)

        # 6) Store the PDF in SharePoint (optional). The target name is
        # deterministic per source file, so the PDF always replaces.
        if settings.stores_pdf:
            state.stage = Stage.STORE_PDF
            pdf_item_id = state.assign('pdf_item_id', self.store_pdf.upload_to_folder(
                drive_id, settings.pdf_folder, pdf_name, pdf,
                ConflictBehavior.REPLACE, correlation_id, cancel_token))
            stage_done(Stage.STORE_PDF, driveId=drive_id, pdfItemId=pdf_item_id,
                       pdfName=pdf_name, pdfFolder=settings.pdf_folder)

        # 7) Save the PDF to local disk (optional)
        if settings.saves_pdf_locally:
            state.stage = Stage.SAVE_PDF_LOCAL
            local_path = self._save_local(settings.local_pdf_dir, pdf_name, pdf, cancel_token)
            stage_done(Stage.SAVE_PDF_LOCAL, localPath=local_path, pdfBytes=state.pdf_bytes)

        # 8) Delete the temp source (optional)
        if settings.cleanup_temp:
            state.stage = Stage.CLEANUP
            deleted = self.cleanup.delete_item(drive_id, temp_item_id, correlation_id, cancel_token)
            stage_done(Stage.CLEANUP, driveId=drive_id, tempItemId=temp_item_id,
                       alreadyDeleted=deleted is False)

        state.stage = Stage.DONE
        stage_done(Stage.DONE, inputBytes=state.input_bytes, pdfBytes=state.pdf_bytes)

        if is_debug_enabled():
            print(f"[OK] Converted '{state.file_name}' ({format_bytes(state.input_bytes)} -> "
                  f"{format_bytes(state.pdf_bytes)})")

    def _save_local(self, directory, pdf_name, pdf, cancel_token):
        check_cancelled(cancel_token, Stage.SAVE_PDF_LOCAL)
        directory = os.path.abspath(os.path.expanduser(directory.strip()))
        local_path = os.path.join(directory, pdf_name)
        try:
            os.makedirs(directory, exist_ok=True)
            with open(local_path, 'wb') as f:
                f.write(pdf)
        except OSError as e:
            raise PipelineError(f"Failed writing PDF to '{local_path}': {e}", Stage.SAVE_PDF_LOCAL) from e
        return local_path

    # ------------------------------------------------------------------
    # Failure and finalization
    # ------------------------------------------------------------------

    def _log_failure(self, run_id, state, error):
        stage = state.stage
        if isinstance(error, PipelineError) and error.stage != Stage.UNKNOWN:
            stage = error.stage

        graph_detail = error.to_payload() if isinstance(error, PipelineError) else None
        error_type = type(error)
        payload = {
            'runId': run_id,
            'stage': stage,
            'success': False,
            'cancelled': isinstance(error, PipelineCancelled),
            'exceptionType': f"{error_type.__module__}.{error_type.__qualname__}",
            'message': str(error),
            'graph': graph_detail,
            'file': state.file_payload(),
        }

        print(f"[!] Run {run_id} failed at stage '{stage}': {error}")
        if is_debug_enabled():
            print(f"[DEBUG] Traceback: {traceback.format_exc()}")

        try:
            self.logs.insert(run_id, state.file_event_id, _utc_now(), LogLevel.ERROR, stage,
                             build_payload_json(payload))
        except Exception as log_error:
            # Finalization must still happen
            print(f"[!] Could not record failure event for run {run_id}: {log_error}")

    def _finalize(self, run_id, state, success):
        """
        Close the FileEvent and Run rows and count the attempt.

        Each write is attempted even if an earlier one fails; failures are
        printed, not raised.

        Returns:
            bool: True if both history rows were written
        """
        ended = _utc_now()
        recorded = True

        if state.file_event_id is not None:
            try:
                self.files.update_file_finished(
                    state.file_event_id, ended, success,
                    state.drive_id, state.temp_item_id, state.pdf_item_id
                )
            except Exception as e:
                print(f"[!] Could not finalize file event {state.file_event_id} for run {run_id}: {e}")
                recorded = False

        # A run whose file history is missing is not reported as a success
        success = success and recorded
        try:
            self.runs.update_run_finished(
                run_id, ended, success,
                total=1,
                succeeded=1 if success else 0,
                failed=0 if success else 1,
                total_input_bytes=state.input_bytes,
                total_pdf_bytes=state.pdf_bytes,
            )
        except Exception as e:
            print(f"[!] Could not finalize run {run_id}: {e}")
            recorded = False

        self._track_metrics(state, success)
        return recorded

    def _track_metrics(self, state, success):
        if self.metrics is None or not state.extension:
            return
        try:
            self.metrics.track(state.extension, 'pdf', success)
        except Exception as e:
            print(f"[!] Could not update conversion metrics: {e}")
