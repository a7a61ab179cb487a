# -*- coding: utf-8 -*-
"""
Shared utility functions for the SharePoint PDF pipeline.

This module provides common helper functions used across multiple modules.
"""

import os


def is_debug_enabled():
    """
    Check if debug mode is enabled via DEBUG environment variable.

    Returns:
        bool: True if debug mode is enabled, False otherwise
    """
    return os.environ.get('DEBUG', 'false').lower() == 'true'


def parse_bool(value):
    """
    Parse a loosely formatted boolean string.

    Accepts "1", "true", "yes", "y" as True and "0", "false", "no", "n" as False.

    Args:
        value (str): Raw text (may be None)

    Returns:
        bool or None: Parsed value, or None when the text is empty or unrecognized
    """
    if value is None:
        return None
    text = value.strip().lower()
    if text in ('1', 'true', 'yes', 'y'):
        return True
    if text in ('0', 'false', 'no', 'n'):
        return False
    return None


def truncate(text, max_length):
    """
    Truncate text to max_length characters, marking the cut.

    Args:
        text (str): Text to truncate (None and empty are returned unchanged)
        max_length (int): Maximum number of characters to keep

    Returns:
        str: Original text, or the first max_length characters plus '...(truncated)'
    """
    if not text or len(text) <= max_length:
        return text
    return text[:max_length] + "...(truncated)"


def format_bytes(bytes_value):
    """
    Convert bytes to human-readable format.

    Args:
        bytes_value (int): Number of bytes to format

    Returns:
        str: Human-readable string (e.g., "1.5 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_value < 1024.0:
            return f"{bytes_value:.1f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.1f} TB"
