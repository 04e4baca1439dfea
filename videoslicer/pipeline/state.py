"""Explicit run state machines for the slicing and embedding pipelines."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class PipelineState(str, Enum):
    """States a pipeline run moves through."""

    IDLE = "idle"
    DECODING = "decoding"
    SAMPLING = "sampling"
    UNPACKING = "unpacking"
    MATCHING = "matching"
    TAGGING = "tagging"
    PACKAGING = "packaging"
    DONE = "done"
    FAILED = "failed"


SLICING_TRANSITIONS: Mapping[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.DECODING}),
    PipelineState.DECODING: frozenset({PipelineState.SAMPLING}),
    PipelineState.SAMPLING: frozenset({PipelineState.PACKAGING}),
    PipelineState.PACKAGING: frozenset({PipelineState.DONE}),
}

EMBEDDING_TRANSITIONS: Mapping[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.UNPACKING}),
    PipelineState.UNPACKING: frozenset({PipelineState.MATCHING}),
    PipelineState.MATCHING: frozenset({PipelineState.TAGGING}),
    PipelineState.TAGGING: frozenset({PipelineState.PACKAGING}),
    PipelineState.PACKAGING: frozenset({PipelineState.DONE}),
}

_TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED})


class PipelineStateMachine:
    """Track one run's state and reject transitions the run graph does not allow.

    `FAILED` is reachable from every non-terminal state.
    """

    def __init__(self, transitions: Mapping[PipelineState, frozenset[PipelineState]]) -> None:
        self._transitions = transitions
        self._state = PipelineState.IDLE
        self._history: list[PipelineState] = [PipelineState.IDLE]

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> tuple[PipelineState, ...]:
        return tuple(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state in _TERMINAL_STATES

    def advance(self, target: PipelineState) -> None:
        """Move to `target`, raising `RuntimeError` for an illegal transition."""

        allowed = self._transitions.get(self._state, frozenset())
        if target not in allowed:
            raise RuntimeError(
                f"Illegal pipeline transition `{self._state.value}` -> `{target.value}`."
            )
        self._set(target)

    def fail(self) -> None:
        """Move to `FAILED` unless the run already ended."""

        if not self.is_terminal:
            self._set(PipelineState.FAILED)

    def _set(self, target: PipelineState) -> None:
        self._state = target
        self._history.append(target)
