# -*- coding: utf-8 -*-
"""
Cooperative cancellation for pipeline runs.

A single CancellationToken is threaded through every remote call and disk
I/O step. Components call raise_if_cancelled() before doing work.
"""

import threading

from .errors import PipelineCancelled
from .models import Stage


class CancellationToken:
    """Thread-safe cancellation flag."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Signal cancellation. Safe to call from any thread, more than once."""
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self, stage=Stage.UNKNOWN):
        """
        Raise PipelineCancelled if cancellation was requested.

        Args:
            stage (str): Stage about to start, used for attribution
        """
        if self._event.is_set():
            raise PipelineCancelled("Operation was cancelled.", stage)


def check_cancelled(cancel_token, stage):
    """Call raise_if_cancelled on an optional token."""
    if cancel_token is not None:
        cancel_token.raise_if_cancelled(stage)
