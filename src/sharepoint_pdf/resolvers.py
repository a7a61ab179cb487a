# -*- coding: utf-8 -*-
"""
Site and drive resolution for the SharePoint PDF pipeline.

Translates a human-supplied site URL and document library name into the
opaque Graph ids every later call needs.
"""

import urllib.parse

from .envelopes import GraphDrive, GraphSite, decode_json, drive_list
from .errors import GraphRequestError, PreconditionError, ResourceNotFoundError
from .graph_client import read_text_safe
from .models import Stage
from .utils import is_debug_enabled


def split_site_url(site_url):
    """
    Split a SharePoint site URL into host and server-relative path.

    Args:
        site_url (str): e.g. 'https://tenant.sharepoint.com/sites/SiteName'

    Returns:
        tuple: (host, path) e.g. ('tenant.sharepoint.com', '/sites/SiteName')

    Raises:
        PreconditionError: If the URL has no host or no site path
    """
    parsed = urllib.parse.urlparse((site_url or "").strip())
    host = parsed.hostname
    path = parsed.path.rstrip('/')
    if not host:
        raise PreconditionError(f"siteUrl is not a valid URL: '{site_url}'", Stage.RESOLVE_SITE)
    if not path:
        raise PreconditionError(
            "siteUrl must include a site path like https://tenant.sharepoint.com/sites/SiteName",
            Stage.RESOLVE_SITE
        )
    return host, path


class SiteResolver:
    """Resolves a SharePoint site URL to its Graph site id."""

    def __init__(self, graph):
        self.graph = graph

    def resolve_site(self, site_url, correlation_id=None, cancel_token=None):
        """
        Look up a SharePoint site by URL.

        Uses GET sites/{hostname}:{server-relative-path}.

        Args:
            site_url (str): Full site URL including the site path
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            str: Graph site id

        Raises:
            PreconditionError: If the URL has no site path (no network call made)
            GraphRequestError: If Graph returns anything but 200
            MissingFieldError: If the response has no id
        """
        host, path = split_site_url(site_url)

        response = self.graph.send(
            'GET', f"sites/{host}:{urllib.parse.quote(path)}",
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.RESOLVE_SITE
        )
        if response.status_code != 200:
            raise GraphRequestError.from_response(
                Stage.RESOLVE_SITE, "resolveSite failed", response, read_text_safe(response)
            )

        site = GraphSite.from_json(decode_json(response, Stage.RESOLVE_SITE, 'site'), Stage.RESOLVE_SITE)
        if is_debug_enabled():
            print(f"[DEBUG] Resolved site '{site_url}' -> {site.id}")
        return site.id


class DriveResolver:
    """Resolves a document library name to its Graph drive id."""

    def __init__(self, graph):
        self.graph = graph

    def resolve_drive(self, site_id, library_name, correlation_id=None, cancel_token=None):
        """
        Find a document library on a site by display name.

        Lists GET sites/{site_id}/drives and matches 'name' case-insensitively.
        The first match with a usable id wins.

        Args:
            site_id (str): Graph site id
            library_name (str): Library name, e.g. 'Shared Documents'
            correlation_id (str): Request id for tracking
            cancel_token (CancellationToken): Optional cancellation signal

        Returns:
            str: Graph drive id

        Raises:
            GraphRequestError: If Graph returns anything but 200
            ResourceNotFoundError: If no library has that name
        """
        response = self.graph.send(
            'GET', f"sites/{site_id}/drives",
            correlation_id=correlation_id, cancel_token=cancel_token, stage=Stage.RESOLVE_DRIVE
        )
        if response.status_code != 200:
            raise GraphRequestError.from_response(
                Stage.RESOLVE_DRIVE, "resolveDrive failed", response, read_text_safe(response)
            )

        wanted = (library_name or "").casefold()
        data = decode_json(response, Stage.RESOLVE_DRIVE, 'drive list')
        for entry in drive_list(data, Stage.RESOLVE_DRIVE):
            name = entry.get('name')
            if not isinstance(name, str) or name.casefold() != wanted:
                continue
            if entry.get('id'):
                drive = GraphDrive.from_json(entry, Stage.RESOLVE_DRIVE)
                if is_debug_enabled():
                    print(f"[DEBUG] Resolved library '{library_name}' -> {drive.id}")
                return drive.id

        raise ResourceNotFoundError(
            f"Drive (document library) not found by name: '{library_name}'.", Stage.RESOLVE_DRIVE
        )
