# -*- coding: utf-8 -*-
"""
Exception types for the SharePoint PDF pipeline.

Every error raised by a pipeline component carries the stage that raised it,
so the orchestrator can attribute failures without inspecting messages.
"""

from .models import Stage
from .utils import truncate

# Maximum number of response body characters kept on a GraphRequestError
MAX_RESPONSE_BODY = 2000


class PipelineError(Exception):
    """Base class for all stage-attributed pipeline failures."""

    def __init__(self, message, stage=Stage.UNKNOWN):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_payload(self):
        """Return stage-specific diagnostic detail for the EventLog payload."""
        return None


class PreconditionError(PipelineError):
    """Missing input file, unreadable input, or an unusable setting."""


class GraphDomainError(PipelineError):
    """A Graph call succeeded at the transport level but the answer is unusable."""


class ResourceNotFoundError(GraphDomainError):
    """A resolver could not find the requested site, library or item."""


class MissingFieldError(GraphDomainError):
    """A successful Graph response lacked a required field (usually 'id')."""

    def __init__(self, message, stage=Stage.UNKNOWN, field='id'):
        super().__init__(message, stage)
        self.field = field


class GraphAuthError(PipelineError):
    """Token acquisition from Azure AD failed."""


class PipelineCancelled(PipelineError):
    """The caller cancelled the run; treated as a failure outcome."""


class SettingsNotInitializedError(Exception):
    """No AppSettings row exists; the database must be initialized first."""


class GraphRequestError(PipelineError):
    """
    Raised when a Microsoft Graph API call returns a non-success status.

    Captures the HTTP status, a bounded copy of the response body and the
    request/correlation ids Graph echoes back, for joining with remote logs.
    """

    def __init__(self, message, stage, status_code, response_body='',
                 request_id=None, client_request_id=None):
        super().__init__(message, stage)
        self.status_code = status_code
        self.response_body = response_body or ''
        self.request_id = request_id
        self.client_request_id = client_request_id

    def __str__(self):
        return f"{self.message} (HTTP {self.status_code})"

    @classmethod
    def from_response(cls, stage, message, response, body=None):
        """
        Build an error from a requests.Response.

        Args:
            stage (str): Stage that issued the call
            message (str): Short description, e.g. "upload failed"
            response (requests.Response): The failed response
            body (str): Already-read response text (read safely when omitted)

        Returns:
            GraphRequestError: The populated error
        """
        if body is None:
            try:
                body = response.text
            except Exception:
                body = ''
        headers = response.headers
        return cls(
            message,
            stage,
            response.status_code,
            body,
            request_id=headers.get('request-id'),
            client_request_id=headers.get('client-request-id') or headers.get('x-ms-client-request-id'),
        )

    def to_payload(self):
        return {
            'statusCode': self.status_code,
            'requestId': self.request_id,
            'clientRequestId': self.client_request_id,
            'responseBody': truncate(self.response_body, MAX_RESPONSE_BODY),
        }
