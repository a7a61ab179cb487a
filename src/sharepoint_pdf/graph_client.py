# -*- coding: utf-8 -*-
"""
HTTP client for the Microsoft Graph v1.0 API.

Attaches a bearer token and correlation headers to each request. All other
Graph-facing components depend on GraphClient. No retries are performed
here; a failed call is reported to the caller as-is.
"""

import traceback

from .cancellation import check_cancelled
from .errors import PipelineError
from .models import Stage
from .utils import is_debug_enabled


class GraphClient:
    """
    Thin wrapper over an injected requests.Session.

    The session is expected to be fully configured by the caller (adapters,
    proxies, timeouts); this class only adds authentication and tracking.
    """

    def __init__(self, session, token_provider, graph_endpoint="graph.microsoft.com"):
        """
        Args:
            session (requests.Session): Configured HTTP session
            token_provider: Object with get_access_token() -> str
            graph_endpoint (str): Graph host (e.g. 'graph.microsoft.us' for GovCloud)
        """
        self.session = session
        self.token_provider = token_provider
        self.base_url = f"https://{graph_endpoint}/v1.0/"

    def url_for(self, path):
        return self.base_url + path.lstrip('/')

    def send(self, method, path, correlation_id=None, cancel_token=None, stage=Stage.UNKNOWN,
             data=None, json_data=None, params=None, headers=None):
        """
        Send one request to Graph.

        Args:
            method (str): HTTP method ('GET', 'PUT', 'POST', 'DELETE')
            path (str): Path relative to the v1.0 base, e.g. 'sites/{id}/drives'
            correlation_id (str): Optional id sent as client-request-id
            cancel_token (CancellationToken): Optional cancellation signal
            stage (str): Stage issuing the call, for attribution of token failures
            data (bytes): Binary body (mutually exclusive with json_data)
            json_data (dict): JSON body
            params (dict): Query string parameters
            headers (dict): Extra headers

        Returns:
            requests.Response: The response, whatever its status
        """
        check_cancelled(cancel_token, stage)

        try:
            token = self.token_provider.get_access_token()
        except PipelineError as e:
            if e.stage == Stage.UNKNOWN:
                e.stage = stage
            raise

        request_headers = dict(headers or {})
        request_headers['Authorization'] = f"Bearer {token}"
        request_headers.setdefault('Accept', 'application/json')
        if correlation_id:
            # Lets remote-side logs be joined with local EventLog rows
            request_headers['client-request-id'] = correlation_id
            request_headers['return-client-request-id'] = 'true'

        url = self.url_for(path)
        if is_debug_enabled():
            print(f"[DEBUG] {method.upper()} {url}")

        response = self.session.request(
            method.upper(), url,
            headers=request_headers, params=params, data=data, json=json_data
        )

        if is_debug_enabled():
            print(f"[DEBUG] -> {response.status_code} request-id={response.headers.get('request-id')}")
        return response


def read_text_safe(response):
    """
    Read a response body as text, returning "" if it cannot be read.

    Args:
        response (requests.Response): Response to read

    Returns:
        str: Body text or empty string
    """
    try:
        return response.text
    except Exception:
        if is_debug_enabled():
            print(f"[DEBUG] Could not read response body: {traceback.format_exc()}")
        return ""
