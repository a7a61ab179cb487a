# -*- coding: utf-8 -*-
"""
Typed shapes for the Graph API JSON envelopes the pipeline depends on.

Each shape decodes only the fields the pipeline needs and raises
MissingFieldError when a required one is absent, so a change in the
remote API surfaces as a clear, stage-attributed failure.
"""

from dataclasses import dataclass

from .errors import MissingFieldError


def decode_json(response, stage, what):
    """
    Decode a response body as a JSON object.

    Args:
        response (requests.Response): Successful Graph response
        stage (str): Stage tag for errors
        what (str): Human-readable name of the expected object

    Returns:
        dict: Decoded JSON object

    Raises:
        MissingFieldError: If the body is not a JSON object
    """
    try:
        data = response.json()
    except ValueError:
        raise MissingFieldError(f"Graph returned a non-JSON body for {what}.", stage)
    if not isinstance(data, dict):
        raise MissingFieldError(f"Graph returned an unexpected body for {what}.", stage)
    return data


def _require_id(data, stage, what):
    item_id = data.get('id')
    if not isinstance(item_id, str) or not item_id.strip():
        raise MissingFieldError(f"Graph did not return {what} id.", stage)
    return item_id


@dataclass(frozen=True)
class GraphSite:
    id: str
    web_url: str = ""

    @classmethod
    def from_json(cls, data, stage):
        return cls(id=_require_id(data, stage, 'site'), web_url=data.get('webUrl') or "")


@dataclass(frozen=True)
class GraphDrive:
    id: str
    name: str

    @classmethod
    def from_json(cls, data, stage):
        return cls(id=_require_id(data, stage, 'drive'), name=data.get('name') or "")


@dataclass(frozen=True)
class GraphDriveItem:
    id: str
    name: str = ""
    size: int = 0

    @classmethod
    def from_json(cls, data, stage):
        return cls(
            id=_require_id(data, stage, 'item'),
            name=data.get('name') or "",
            size=data.get('size') or 0,
        )


def drive_list(data, stage):
    """
    Extract the raw drive entries from a GET sites/{id}/drives envelope.

    Raises:
        MissingFieldError: If the 'value' array is missing
    """
    value = data.get('value')
    if not isinstance(value, list):
        raise MissingFieldError("Graph did not return a drive list.", stage, field='value')
    return [d for d in value if isinstance(d, dict)]
