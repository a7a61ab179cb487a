"""Pipeline orchestration tests with in-memory Graph services and a real database."""

import json

import pytest
import requests

from sharepoint_pdf.cancellation import CancellationToken
from sharepoint_pdf.data import (
    ConversionMetricsRepository, EventLogRepository, FileEventRepository, RunRepository,
)
from sharepoint_pdf.errors import GraphRequestError, ResourceNotFoundError
from sharepoint_pdf.models import ConflictBehavior, Settings, Stage
from sharepoint_pdf.pipeline import SingleFilePipeline, pdf_name_for

PDF = b"%PDF-1.7 converted"


class Recorder:
    def __init__(self):
        self.calls = []


class FakeSiteResolver:
    def __init__(self, recorder, error=None):
        self.recorder = recorder
        self.error = error

    def resolve_site(self, site_url, correlation_id=None, cancel_token=None):
        self.recorder.calls.append(("resolve_site", site_url))
        if self.error:
            raise self.error
        return "site-1"


class FakeDriveResolver:
    def __init__(self, recorder, error=None):
        self.recorder = recorder
        self.error = error

    def resolve_drive(self, site_id, library_name, correlation_id=None, cancel_token=None):
        self.recorder.calls.append(("resolve_drive", site_id, library_name))
        if self.error:
            raise self.error
        return "drive-1"


class FakeFolders:
    def __init__(self, recorder):
        self.recorder = recorder

    def ensure_folder(self, drive_id, folder_path, correlation_id=None, cancel_token=None):
        self.recorder.calls.append(("ensure_folder", folder_path))


class FakeUpload:
    def __init__(self, recorder, name, item_id):
        self.recorder = recorder
        self.name = name
        self.item_id = item_id

    def upload_to_folder(self, drive_id, folder_name, file_name, content, conflict_behavior,
                         correlation_id=None, cancel_token=None):
        self.recorder.calls.append((self.name, folder_name, file_name, content, conflict_behavior))
        return self.item_id


class FakeConvert:
    def __init__(self, recorder, cancel_after=None):
        self.recorder = recorder
        self.cancel_after = cancel_after

    def download_pdf(self, drive_id, item_id, correlation_id=None, cancel_token=None):
        self.recorder.calls.append(("download_pdf", item_id))
        if self.cancel_after is not None:
            self.cancel_after.cancel()
        return PDF


class FakeCleanup:
    def __init__(self, recorder, error=None):
        self.recorder = recorder
        self.error = error

    def delete_item(self, drive_id, item_id, correlation_id=None, cancel_token=None):
        self.recorder.calls.append(("delete_item", item_id))
        if self.error:
            raise self.error
        return True


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "Quarterly Report.docx"
    path.write_bytes(b"PK\x03\x04 fake docx body")
    return path


@pytest.fixture
def settings():
    return Settings(
        site_url="https://contoso.sharepoint.com/sites/Docs",
        library_name="Documents",
        temp_folder="GraphLibTemp",
        pdf_folder="GraphLibPdf",
        cleanup_temp=True,
        conflict_behavior=ConflictBehavior.RENAME,
        store_pdf_in_sharepoint=True,
    )


def make_pipeline(engine, recorder, site_error=None, drive_error=None, cleanup_error=None,
                  cancel_after_convert=None):
    return SingleFilePipeline(
        site_resolver=FakeSiteResolver(recorder, site_error),
        drive_resolver=FakeDriveResolver(recorder, drive_error),
        folders=FakeFolders(recorder),
        upload=FakeUpload(recorder, "upload", "temp-1"),
        convert=FakeConvert(recorder, cancel_after_convert),
        store_pdf=FakeUpload(recorder, "store_pdf", "pdf-1"),
        cleanup=FakeCleanup(recorder, cleanup_error),
        runs=RunRepository(engine),
        files=FileEventRepository(engine),
        logs=EventLogRepository(engine),
        metrics=ConversionMetricsRepository(engine),
    )


def logged_stages(engine, run_id):
    return [(row["Level"], row["Stage"]) for row in EventLogRepository(engine).list_for_run(run_id)]


def test_pdf_name_for():
    assert pdf_name_for("Report.final.docx") == "Report.final.pdf"
    assert pdf_name_for("README") == "README.pdf"


def test_full_run_records_every_stage(engine, recorder, source_file, settings):
    result = make_pipeline(engine, recorder).run("run-1", str(source_file), settings)

    assert result.success
    assert result.run_id == "run-1"
    assert result.input_bytes == len(source_file.read_bytes())
    assert result.pdf_bytes == len(PDF)
    assert result.summary == f"OK file='Quarterly Report.docx' pdfBytes={len(PDF)}"

    assert logged_stages(engine, "run-1") == [
        ("info", Stage.RESOLVE_SITE),
        ("info", Stage.RESOLVE_DRIVE),
        ("info", Stage.ENSURE_FOLDER),
        ("info", Stage.UPLOAD),
        ("info", Stage.CONVERT),
        ("info", Stage.STORE_PDF),
        ("info", Stage.CLEANUP),
        ("info", Stage.DONE),
    ]

    run = RunRepository(engine).get("run-1")
    assert run["Success"] is True
    assert run["EndedAtUtc"] is not None
    assert (run["FileCountTotal"], run["FileCountSucceeded"], run["FileCountFailed"]) == (1, 1, 0)
    assert run["TotalInputBytes"] == result.input_bytes
    assert run["TotalPdfBytes"] == len(PDF)

    [file_row] = FileEventRepository(engine).list_for_run("run-1")
    assert file_row["Success"] is True
    assert file_row["Extension"] == "docx"
    assert file_row["SizeBytes"] == result.input_bytes
    assert (file_row["DriveId"], file_row["TempItemId"], file_row["PdfItemId"]) == ("drive-1", "temp-1", "pdf-1")


def test_uploads_use_expected_folders_and_conflict_rules(engine, recorder, source_file, settings):
    make_pipeline(engine, recorder).run("run-1", str(source_file), settings)

    assert ("ensure_folder", "GraphLibTemp") in recorder.calls
    assert ("ensure_folder", "GraphLibPdf") in recorder.calls

    upload = next(c for c in recorder.calls if c[0] == "upload")
    assert upload[1:3] == ("GraphLibTemp", "Quarterly Report.docx")
    assert upload[3] == source_file.read_bytes()
    assert upload[4] is ConflictBehavior.RENAME

    store = next(c for c in recorder.calls if c[0] == "store_pdf")
    assert store[1:4] == ("GraphLibPdf", "Quarterly Report.pdf", PDF)
    assert store[4] is ConflictBehavior.REPLACE

    assert ("delete_item", "temp-1") in recorder.calls


def test_store_and_cleanup_disabled(engine, recorder, source_file, settings):
    settings = settings.with_overrides({"store_pdf_in_sharepoint": False, "cleanup_temp": False})

    result = make_pipeline(engine, recorder).run("run-2", str(source_file), settings)

    assert result.success
    names = [c[0] for c in recorder.calls]
    assert "store_pdf" not in names
    assert "delete_item" not in names
    assert ("ensure_folder", "GraphLibPdf") not in recorder.calls
    stages = [stage for _, stage in logged_stages(engine, "run-2")]
    assert Stage.STORE_PDF not in stages
    assert Stage.CLEANUP not in stages

    [file_row] = FileEventRepository(engine).list_for_run("run-2")
    assert file_row["PdfItemId"] is None


def test_blank_pdf_folder_skips_store(engine, recorder, source_file, settings):
    settings = settings.with_overrides({"pdf_folder": ""})
    make_pipeline(engine, recorder).run("run-3", str(source_file), settings)
    assert "store_pdf" not in [c[0] for c in recorder.calls]


def test_saves_pdf_to_local_directory(engine, recorder, source_file, settings, tmp_path):
    out_dir = tmp_path / "out" / "pdfs"
    settings = settings.with_overrides({"local_pdf_dir": str(out_dir)})

    result = make_pipeline(engine, recorder).run("run-4", str(source_file), settings)

    assert result.success
    assert (out_dir / "Quarterly Report.pdf").read_bytes() == PDF
    assert ("info", Stage.SAVE_PDF_LOCAL) in logged_stages(engine, "run-4")


def test_drive_not_found_still_finalizes(engine, recorder, source_file, settings):
    pipeline = make_pipeline(
        engine, recorder,
        drive_error=ResourceNotFoundError("Drive not found", Stage.RESOLVE_DRIVE),
    )

    result = pipeline.run("run-5", str(source_file), settings)

    assert not result.success
    assert "ResourceNotFoundError" in result.summary
    rows = EventLogRepository(engine).list_for_run("run-5")
    assert [(r["Level"], r["Stage"]) for r in rows] == [
        ("info", Stage.RESOLVE_SITE),
        ("error", Stage.RESOLVE_DRIVE),
    ]
    payload = json.loads(rows[-1]["PayloadJson"])
    assert payload["success"] is False
    assert payload["exceptionType"] == "sharepoint_pdf.errors.ResourceNotFoundError"
    assert payload["cancelled"] is False

    run = RunRepository(engine).get("run-5")
    assert run["Success"] is False
    assert run["EndedAtUtc"] is not None
    assert run["FileCountFailed"] == 1

    [file_row] = FileEventRepository(engine).list_for_run("run-5")
    assert file_row["Success"] is False
    assert file_row["EndedAtUtc"] is not None
    assert file_row["DriveId"] is None


def test_graph_error_payload_is_logged(engine, recorder, source_file, settings):
    error = GraphRequestError("cleanup(delete) failed", Stage.CLEANUP, 423,
                              "locked", request_id="req-9", client_request_id="corr-9")
    result = make_pipeline(engine, recorder, cleanup_error=error).run("run-6", str(source_file), settings)

    assert not result.success
    # The PDF was produced before the failure
    assert result.pdf_bytes == len(PDF)

    last = EventLogRepository(engine).list_for_run("run-6")[-1]
    assert last["Stage"] == Stage.CLEANUP
    graph = json.loads(last["PayloadJson"])["graph"]
    assert graph == {
        "statusCode": 423,
        "requestId": "req-9",
        "clientRequestId": "corr-9",
        "responseBody": "locked",
    }

    [file_row] = FileEventRepository(engine).list_for_run("run-6")
    assert (file_row["TempItemId"], file_row["PdfItemId"]) == ("temp-1", "pdf-1")


def test_untagged_error_is_attributed_to_current_stage(engine, recorder, source_file, settings):
    pipeline = make_pipeline(engine, recorder, site_error=requests.ConnectionError("dns failure"))

    result = pipeline.run("run-7", str(source_file), settings)

    assert not result.success
    assert logged_stages(engine, "run-7") == [("error", Stage.RESOLVE_SITE)]


def test_missing_input_file(engine, recorder, tmp_path, settings):
    result = make_pipeline(engine, recorder).run("run-8", str(tmp_path / "nope.docx"), settings)

    assert not result.success
    assert result.input_bytes == 0
    assert recorder.calls == []
    rows = EventLogRepository(engine).list_for_run("run-8")
    assert [(r["Level"], r["Stage"]) for r in rows] == [("error", Stage.VALIDATE_INPUT)]
    assert rows[0]["FileEventId"] is None
    assert FileEventRepository(engine).list_for_run("run-8") == []
    assert RunRepository(engine).get("run-8")["Success"] is False


def test_blank_site_url_fails_validation(engine, recorder, source_file, settings):
    settings = settings.with_overrides({"site_url": "  "})
    result = make_pipeline(engine, recorder).run("run-9", str(source_file), settings)
    assert not result.success
    assert recorder.calls == []
    assert logged_stages(engine, "run-9") == [("error", Stage.VALIDATE_INPUT)]

    size = len(source_file.read_bytes())
    assert result.input_bytes == size
    assert RunRepository(engine).get("run-9")["TotalInputBytes"] == size

    [file_row] = FileEventRepository(engine).list_for_run("run-9")
    assert file_row["Success"] is False
    assert file_row["SizeBytes"] == size
    assert file_row["EndedAtUtc"] is not None


def test_blank_library_name_still_counts_input_bytes(engine, recorder, source_file, settings):
    settings = settings.with_overrides({"library_name": " "})

    result = make_pipeline(engine, recorder).run("run-9b", str(source_file), settings)

    assert not result.success
    assert result.input_bytes == len(source_file.read_bytes())
    rows = EventLogRepository(engine).list_for_run("run-9b")
    assert len(rows) == 1
    assert rows[0]["FileEventId"] is not None


class FailingFileEvents(FileEventRepository):
    def update_file_finished(self, *args, **kwargs):
        raise RuntimeError("db locked")


class FailingRuns(RunRepository):
    def update_run_finished(self, *args, **kwargs):
        raise RuntimeError("db locked")


def test_file_event_write_failure_returns_failed_result(engine, recorder, source_file, settings, capsys):
    pipeline = make_pipeline(engine, recorder)
    pipeline.files = FailingFileEvents(engine)

    result = pipeline.run("run-9c", str(source_file), settings)

    assert not result.success
    assert result.summary == "FAIL file='Quarterly Report.docx' (run history not recorded)"
    assert result.pdf_bytes == len(PDF)
    assert "db locked" in capsys.readouterr().out

    # The remaining finalization steps still ran
    run = RunRepository(engine).get("run-9c")
    assert run["Success"] is False
    assert run["EndedAtUtc"] is not None
    assert run["FileCountFailed"] == 1
    [row] = ConversionMetricsRepository(engine).get_top()
    assert row["FailureCount"] == 1


def test_run_write_failure_returns_failed_result(engine, recorder, source_file, settings):
    pipeline = make_pipeline(engine, recorder)
    pipeline.runs = FailingRuns(engine)

    result = pipeline.run("run-9d", str(source_file), settings)

    assert not result.success
    [file_row] = FileEventRepository(engine).list_for_run("run-9d")
    assert file_row["Success"] is True
    assert file_row["EndedAtUtc"] is not None


def test_cancellation_stops_remaining_stages(engine, recorder, source_file, settings):
    token = CancellationToken()
    pipeline = make_pipeline(engine, recorder, cancel_after_convert=token)

    # Fake services do not check the token, so cancel before a stage that does
    settings = settings.with_overrides({"local_pdf_dir": "unused", "store_pdf_in_sharepoint": False})
    result = pipeline.run("run-10", str(source_file), settings, cancel_token=token)

    assert not result.success
    assert "PipelineCancelled" in result.summary
    last = EventLogRepository(engine).list_for_run("run-10")[-1]
    assert last["Stage"] == Stage.SAVE_PDF_LOCAL
    assert json.loads(last["PayloadJson"])["cancelled"] is True
    assert "delete_item" not in [c[0] for c in recorder.calls]


def test_cancelled_before_start_reads_nothing(engine, recorder, source_file, settings):
    token = CancellationToken()
    token.cancel()

    result = make_pipeline(engine, recorder).run("run-11", str(source_file), settings, cancel_token=token)

    assert not result.success
    assert result.input_bytes == 0
    assert logged_stages(engine, "run-11") == [("error", Stage.READ_INPUT)]


def test_log_failures_only_writes_only_errors(engine, recorder, source_file, settings):
    pipeline = make_pipeline(engine, recorder)
    assert pipeline.run("run-12", str(source_file), settings, log_failures_only=True).success
    assert logged_stages(engine, "run-12") == []

    failing = make_pipeline(
        engine, Recorder(), drive_error=ResourceNotFoundError("missing", Stage.RESOLVE_DRIVE)
    )
    failing.run("run-13", str(source_file), settings, log_failures_only=True)
    assert logged_stages(engine, "run-13") == [("error", Stage.RESOLVE_DRIVE)]


def test_generated_run_id(engine, recorder, source_file, settings):
    result = make_pipeline(engine, recorder).run(None, str(source_file), settings)
    assert len(result.run_id) == 36
    assert RunRepository(engine).get(result.run_id) is not None


def test_metrics_track_success_and_failure(engine, recorder, source_file, settings):
    make_pipeline(engine, recorder).run("run-14", str(source_file), settings)
    make_pipeline(
        engine, Recorder(), site_error=ResourceNotFoundError("x", Stage.RESOLVE_SITE)
    ).run("run-15", str(source_file), settings)

    [row] = ConversionMetricsRepository(engine).get_top()
    assert (row["SourceExtension"], row["TargetExtension"]) == (".docx", ".pdf")
    assert (row["ConversionCount"], row["SuccessCount"], row["FailureCount"]) == (2, 1, 1)
