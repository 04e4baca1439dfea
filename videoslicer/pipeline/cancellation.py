"""Cooperative cancellation for long-running pipeline runs."""

from __future__ import annotations

import threading

from ..errors import PipelineCancelledError


class CancellationToken:
    """Thread-safe flag a caller sets to stop a run between work items."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; the run stops at its next checkpoint."""

        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """Raise `PipelineCancelledError` when cancellation was requested."""

        if self._event.is_set():
            raise PipelineCancelledError(
                stage=stage,
                detail=f"Run cancelled during `{stage}`.",
            )
