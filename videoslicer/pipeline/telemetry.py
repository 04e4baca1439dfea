"""Stage telemetry helper methods for videoslicer pipelines.

Responsibilities:
- Map phases onto fixed sub-ranges of overall progress.
- Emit monotonic `ProgressEvent`s to an optional subscriber.
- Wrap phase actions with start/complete/failure logging and state transitions.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import threading
from typing import TypeVar

from ..errors import PipelineStageError
from ..models.datatypes import ProgressEvent
from ..telemetry.logger import RunLogger
from .state import PipelineState, PipelineStateMachine

_StageResult = TypeVar("_StageResult")

ProgressCallback = Callable[[ProgressEvent], None]


class PipelineTelemetryMixin:
    """Provide progress and stage-telemetry helper methods."""

    _PROGRESS_RANGES: Mapping[str, tuple[int, int]] = {}

    _run_logger: RunLogger | None
    _progress_callback: ProgressCallback | None

    def _init_telemetry(
        self,
        run_logger: RunLogger | None,
        progress_callback: ProgressCallback | None,
    ) -> None:
        self._run_logger = run_logger
        self._progress_callback = progress_callback
        self._progress_lock = threading.Lock()
        self._last_percent = -1

    def _reset_progress(self) -> None:
        with self._progress_lock:
            self._last_percent = -1

    def _emit_progress(self, phase: str, percent: int, message: str = "") -> None:
        """Emit one progress event, dropping ticks that would not advance it."""

        bounded = max(0, min(100, int(percent)))
        with self._progress_lock:
            if bounded <= self._last_percent:
                return
            self._last_percent = bounded
        if self._progress_callback is not None:
            self._progress_callback(ProgressEvent(phase=phase, percent=bounded, message=message))
        if self._run_logger is not None:
            self._run_logger.log_progress(phase, bounded)

    def _emit_phase_fraction(self, phase: str, done: int, total: int, message: str = "") -> None:
        """Emit progress for `done/total` items scaled into the phase sub-range."""

        low, high = self._PROGRESS_RANGES.get(phase, (0, 100))
        if total <= 0:
            self._emit_progress(phase, high, message)
            return
        self._emit_progress(phase, low + ((high - low) * done) // total, message)

    def _on_stage_start(self, stage_name: str, **context: object) -> None:
        low, _ = self._PROGRESS_RANGES.get(stage_name, (0, 100))
        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage_name, **context)
        self._emit_progress(stage_name, low)

    def _on_stage_complete(self, stage_name: str) -> None:
        _, high = self._PROGRESS_RANGES.get(stage_name, (0, 100))
        self._emit_progress(stage_name, high)
        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage_name)

    def _on_stage_failure(self, stage_name: str, exc: Exception) -> None:
        """Emit stage-failure event with sanitized exception metadata."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure(stage_name, type(exc).__name__)

    def _run_phase(
        self,
        machine: PipelineStateMachine,
        state: PipelineState,
        action: Callable[[], _StageResult],
        **context: object,
    ) -> _StageResult:
        """Enter `state`, run its action and emit telemetry events.

        Exceptions that are not `PipelineStageError` are wrapped so callers
        always receive one stage-scoped failure.
        """

        machine.advance(state)
        stage_name = state.value
        self._on_stage_start(stage_name, **context)
        try:
            result = action()
        except PipelineStageError as exc:
            self._on_stage_failure(stage_name, exc)
            raise
        except Exception as exc:
            self._on_stage_failure(stage_name, exc)
            raise PipelineStageError(
                stage=stage_name,
                detail=f"Unexpected {type(exc).__name__} during `{stage_name}`: {exc}",
            ) from exc
        self._on_stage_complete(stage_name)
        return result
