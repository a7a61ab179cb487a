# -*- coding: utf-8 -*-
"""
Value objects for the SharePoint PDF pipeline.

This module defines the run settings, the conflict behavior enumeration,
the fixed stage and level vocabularies used in code and persisted logs,
and the result returned to callers.
"""

import dataclasses
import enum
from dataclasses import dataclass


class Stage:
    """Stage names used for control flow, error attribution and EventLog rows."""

    VALIDATE_INPUT = "validateInput"
    READ_INPUT = "readInput"
    RESOLVE_SITE = "resolveSite"
    RESOLVE_DRIVE = "resolveDrive"
    ENSURE_FOLDER = "ensureFolder"
    UPLOAD = "upload"
    CONVERT = "convert"
    STORE_PDF = "storePdf"
    SAVE_PDF_LOCAL = "savePdfLocal"
    CLEANUP = "cleanup"
    DONE = "done"
    UNKNOWN = "unknown"


class LogLevel:
    """Severity levels stored in the EventLogs table."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ConflictBehavior(enum.Enum):
    """
    Server-side rule for a name collision on upload.

    FAIL raises an error if the name exists, REPLACE overwrites it and
    RENAME lets SharePoint pick a new name (e.g. "Document 1.docx").
    """

    FAIL = "fail"
    REPLACE = "replace"
    RENAME = "rename"

    def to_graph_value(self):
        """Return the value Graph expects for @microsoft.graph.conflictBehavior."""
        return self.value

    @classmethod
    def parse(cls, text, default=None):
        """
        Parse a conflict behavior name (case-insensitive).

        Args:
            text (str): Raw value such as "Replace" or " fail "
            default (ConflictBehavior): Returned for empty or unrecognized text
                (REPLACE when omitted)

        Returns:
            ConflictBehavior: The parsed value or the default
        """
        if default is None:
            default = cls.REPLACE
        if not text or not text.strip():
            return default
        try:
            return cls(text.strip().lower())
        except ValueError:
            return default


_STRING_FIELDS = (
    'site_url', 'library_name', 'temp_folder', 'pdf_folder', 'local_pdf_dir',
    'tenant_id', 'client_id', 'client_secret',
)


@dataclass(frozen=True)
class Settings:
    """
    Target and behavior configuration for one conversion run.

    Immutable per run. Built from the persisted AppSettings row and then
    narrowed by caller overrides via with_overrides().
    """

    # Target
    site_url: str = ""
    library_name: str = ""
    temp_folder: str = ""
    pdf_folder: str = ""

    # Behavior
    cleanup_temp: bool = True
    conflict_behavior: ConflictBehavior = ConflictBehavior.REPLACE

    # Toggles
    store_pdf_in_sharepoint: bool = True
    local_pdf_dir: str = ""

    # Auth
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""

    def __post_init__(self):
        # Strings are never None
        for name in _STRING_FIELDS:
            if getattr(self, name) is None:
                object.__setattr__(self, name, "")
        if not isinstance(self.conflict_behavior, ConflictBehavior):
            object.__setattr__(
                self, 'conflict_behavior', ConflictBehavior.parse(self.conflict_behavior)
            )

    @property
    def stores_pdf(self):
        """True when the PDF should be uploaded back to SharePoint."""
        return self.store_pdf_in_sharepoint and bool(self.pdf_folder.strip())

    @property
    def saves_pdf_locally(self):
        """True when the PDF should be written to local disk."""
        return bool(self.local_pdf_dir.strip())

    @classmethod
    def default_for_init(cls):
        """Placeholder values seeded into a freshly initialized database."""
        return cls(
            site_url="https://tenant.sharepoint.com/sites/SiteName",
            library_name="Shared Documents",
            temp_folder="GraphLibTemp",
            pdf_folder="GraphLibPdf",
            cleanup_temp=True,
            conflict_behavior=ConflictBehavior.REPLACE,
            store_pdf_in_sharepoint=True,
            local_pdf_dir="",
            tenant_id="00000000-0000-0000-0000-000000000000",
            client_id="00000000-0000-0000-0000-000000000000",
            client_secret="REPLACE_ME",
        )

    def with_overrides(self, overrides):
        """
        Return a copy with caller overrides applied.

        Args:
            overrides (dict): Field name -> value. None values and unknown keys
                are ignored, so the persisted value wins when the caller is silent.
                conflict_behavior may be given as text.

        Returns:
            Settings: New settings object
        """
        known = {f.name for f in dataclasses.fields(self)}
        changes = {}
        for name, value in (overrides or {}).items():
            if name not in known or value is None:
                continue
            if name == 'conflict_behavior' and not isinstance(value, ConflictBehavior):
                value = ConflictBehavior.parse(value, self.conflict_behavior)
            changes[name] = value
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class RunResult:
    """Outcome of a single pipeline run, as returned to the caller."""

    run_id: str
    success: bool
    summary: str
    input_bytes: int
    pdf_bytes: int
    elapsed: float  # seconds

    @property
    def elapsed_ms(self):
        return int(self.elapsed * 1000)
