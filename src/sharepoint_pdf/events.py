# -*- coding: utf-8 -*-
"""
Payload serialization for EventLogs rows.
"""

import datetime
import enum
import json


def _default(value):
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, bytes):
        return len(value)
    return str(value)


def build_payload_json(payload):
    """
    Serialize an event payload to compact single-line JSON.

    Datetimes become ISO-8601 strings and enums their values.

    Args:
        payload (dict): Event detail

    Returns:
        str: JSON text without indentation or newlines
    """
    return json.dumps(payload, separators=(',', ':'), ensure_ascii=False, default=_default)
