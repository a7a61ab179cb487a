# -*- coding: utf-8 -*-
"""
Transfer operations for the SharePoint PDF pipeline.

Uploads bytes into a drive folder, downloads the server-side PDF rendition
of an item, and deletes items. PDF rendering is done entirely by Graph.
"""

from .envelopes import GraphDriveItem, decode_json
from .errors import GraphRequestError
from .folders import quote_path, split_folder_path
from .graph_client import read_text_safe
from .models import Stage
from .utils import format_bytes, is_debug_enabled


class UploadService:
    """
    Uploads file content to a folder in a SharePoint drive.

    The pipeline uses one instance for the temp upload and another for
    storing the PDF; the stage tag tells their failures apart.
    """

    def __init__(self, graph, stage=Stage.UPLOAD):
        self.graph = graph
        self.stage = stage

    def upload_to_folder(self, drive_id, folder_name, file_name, content, conflict_behavior,
                         correlation_id=None, cancel_token=None):
        """
        Upload a small file with a single PUT.

        Args:
            drive_id (str): Graph drive id
            folder_name (str): Target folder path (empty string = drive root)
            file_name (str): Name for the uploaded file
            content (bytes): File content
            conflict_behavior (ConflictBehavior): Name collision rule
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            str: Graph item id of the uploaded file

        Raises:
            GraphRequestError: If Graph returns anything but 200/201
            MissingFieldError: If the response has no item id
        """
        target = "/".join(split_folder_path(folder_name) + [file_name])
        path = f"drives/{drive_id}/root:/{quote_path(target)}:/content"
        params = {'@microsoft.graph.conflictBehavior': conflict_behavior.to_graph_value()}

        if is_debug_enabled():
            print(f"[DEBUG] Uploading '{target}' ({format_bytes(len(content))})")

        response = self.graph.send(
            'PUT', path, data=content, params=params,
            headers={'Content-Type': 'application/octet-stream'},
            correlation_id=correlation_id, cancel_token=cancel_token, stage=self.stage
        )
        if response.status_code not in (200, 201):
            raise GraphRequestError.from_response(
                self.stage, f"{self.stage} failed", response, read_text_safe(response)
            )

        item = GraphDriveItem.from_json(decode_json(response, self.stage, 'uploaded item'), self.stage)
        return item.id


class PdfConversionService:
    """Downloads a drive item as PDF via Graph's ?format=pdf rendition."""

    def __init__(self, graph):
        self.graph = graph

    def download_pdf(self, drive_id, item_id, correlation_id=None, cancel_token=None):
        """
        Download a SharePoint file converted to PDF.

        Works with Office documents (Word, Excel, PowerPoint) and the other
        formats Graph can render.

        Args:
            drive_id (str): Graph drive id
            item_id (str): Graph item id (from the upload response)
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            bytes: Raw PDF content

        Raises:
            GraphRequestError: If Graph returns anything but 200
        """
        response = self.graph.send(
            'GET', f"drives/{drive_id}/items/{item_id}/content",
            params={'format': 'pdf'}, headers={'Accept': 'application/pdf'},
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.CONVERT
        )
        if response.status_code != 200:
            raise GraphRequestError.from_response(
                Stage.CONVERT, "convert(download pdf) failed", response, read_text_safe(response)
            )
        return response.content


class CleanupService:
    """Deletes temporary items once the PDF has been produced."""

    def __init__(self, graph, treat_missing_as_deleted=True):
        """
        Args:
            graph (GraphClient): Graph client
            treat_missing_as_deleted (bool): Accept 404 as an already-deleted item
        """
        self.graph = graph
        self.treat_missing_as_deleted = treat_missing_as_deleted

    def delete_item(self, drive_id, item_id, correlation_id=None, cancel_token=None):
        """
        Delete an item (file or folder) from a drive.

        Args:
            drive_id (str): Graph drive id
            item_id (str): Graph item id
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            bool: True if Graph deleted the item, False if it was already gone

        Raises:
            GraphRequestError: On any other status
        """
        response = self.graph.send(
            'DELETE', f"drives/{drive_id}/items/{item_id}",
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.CLEANUP
        )
        if response.status_code in (200, 204):
            return True
        if response.status_code == 404 and self.treat_missing_as_deleted:
            if is_debug_enabled():
                print(f"[DEBUG] Item {item_id} was already deleted")
            return False
        raise GraphRequestError.from_response(
            Stage.CLEANUP, "cleanup(delete) failed", response, read_text_safe(response)
        )
