"""Run-scoped progress fan-out to a single streaming subscriber."""

from __future__ import annotations

import logging
from typing import Callable

from tech_analyst.models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class ProgressEmitter:
    """Best-effort progress channel for one pipeline run.

    Events are delivered synchronously to the registered callback and never
    buffered. With no subscriber, or after ``close()``, events are dropped.
    A failing subscriber never breaks the run.
    """

    def __init__(self, callback: ProgressCallback | None = None):
        self._callback = callback
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: ProgressEvent) -> None:
        if self._closed or self._callback is None:
            return
        try:
            self._callback(event)
        except Exception as e:
            logger.warning("Progress subscriber failed: %s", e)

    def report(
        self,
        stage: str,
        substage: str,
        message: str,
        progress: int | None = None,
        total: int | None = None,
        company: str | None = None,
    ) -> None:
        """Shorthand for ``emit(ProgressEvent(...))``."""
        if self._closed or self._callback is None:
            return
        self.emit(ProgressEvent(
            stage=stage,
            substage=substage,
            message=message,
            progress=progress,
            total=total,
            company=company,
        ))

    def close(self) -> None:
        self._closed = True
        self._callback = None
