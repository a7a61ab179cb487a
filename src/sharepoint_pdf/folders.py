# -*- coding: utf-8 -*-
"""
Folder management for the SharePoint PDF pipeline.

Guarantees that a folder path exists under a drive root, creating missing
levels one at a time.
"""

import urllib.parse

from .errors import GraphRequestError
from .graph_client import read_text_safe
from .models import Stage
from .utils import is_debug_enabled


def split_folder_path(folder_path):
    """
    Split a folder path into its segments.

    Handles both forward slash (/) and backslash (\\) separators and drops
    empty segments, so '/a//b/' and 'a\\b' both become ['a', 'b'].

    Args:
        folder_path (str): Folder path relative to the drive root

    Returns:
        list: Folder names from outermost to innermost
    """
    return [part.strip() for part in (folder_path or "").replace('\\', '/').split('/') if part.strip()]


def quote_path(path):
    """URL-encode a drive-relative path, keeping '/' separators."""
    return urllib.parse.quote(path, safe='/')


class FolderEnsurer:
    """Idempotently creates folder paths under a drive root."""

    def __init__(self, graph):
        self.graph = graph

    def ensure_folder(self, drive_id, folder_path, correlation_id=None, cancel_token=None):
        """
        Make sure a folder path exists under the drive root.

        For each level: GET root:/{path}; 200 means it exists, 404 triggers a
        create with conflictBehavior 'fail' (a concurrent create is fatal).

        Args:
            drive_id (str): Graph drive id
            folder_path (str): Folder path, e.g. 'GraphLibTemp' or '2024/Reports'
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Raises:
            GraphRequestError: On any status other than 200/404 for the check,
                or other than 200/201 for the create
        """
        parts = split_folder_path(folder_path)
        if not parts:
            return

        current_path = ""
        for folder_name in parts:
            parent_path = current_path
            current_path = f"{current_path}/{folder_name}" if current_path else folder_name

            if self._exists(drive_id, current_path, correlation_id, cancel_token):
                if is_debug_enabled():
                    print(f"[✓] Folder already exists: {current_path}")
                continue

            if is_debug_enabled():
                print(f"[+] Creating folder: {current_path}")
            self._create(drive_id, parent_path, folder_name, correlation_id, cancel_token)

    def _exists(self, drive_id, path, correlation_id, cancel_token):
        response = self.graph.send(
            'GET', f"drives/{drive_id}/root:/{quote_path(path)}",
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.ENSURE_FOLDER
        )
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise GraphRequestError.from_response(
            Stage.ENSURE_FOLDER, "ensureFolder(get) failed", response, read_text_safe(response)
        )

    def _create(self, drive_id, parent_path, folder_name, correlation_id, cancel_token):
        if parent_path:
            create_path = f"drives/{drive_id}/root:/{quote_path(parent_path)}:/children"
        else:
            create_path = f"drives/{drive_id}/root/children"

        request_body = {
            "name": folder_name,
            "folder": {},
            "@microsoft.graph.conflictBehavior": "fail"
        }

        response = self.graph.send(
            'POST', create_path, json_data=request_body,
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.ENSURE_FOLDER
        )
        if response.status_code not in (200, 201):
            raise GraphRequestError.from_response(
                Stage.ENSURE_FOLDER, "ensureFolder(post) failed", response, read_text_safe(response)
            )
