"""Cooperative cancellation shared by every stage of a run."""

import threading
from typing import Optional

from pitch_pipeline.errors import RunCancelled


class CancellationToken:
    """Set once from any thread; queried synchronously around gateway calls."""

    def __init__(self):
        self._event = threading.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    def raise_if_cancelled(self, stage_key: Optional[str] = None):
        if self._event.is_set():
            raise RunCancelled(stage_key)
