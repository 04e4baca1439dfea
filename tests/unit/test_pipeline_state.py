"""Unit tests for run state machines, cancellation tokens and run logging."""

from __future__ import annotations

import io

import pytest

from videoslicer.errors import PipelineCancelledError
from videoslicer.pipeline.cancellation import CancellationToken
from videoslicer.pipeline.state import (
    EMBEDDING_TRANSITIONS,
    SLICING_TRANSITIONS,
    PipelineState,
    PipelineStateMachine,
)
from videoslicer.telemetry.logger import RunLogger


def test_slicing_machine_walks_the_forward_graph() -> None:
    """Slicing runs should move idle -> decoding -> sampling -> packaging -> done."""

    machine = PipelineStateMachine(SLICING_TRANSITIONS)
    for state in (
        PipelineState.DECODING,
        PipelineState.SAMPLING,
        PipelineState.PACKAGING,
        PipelineState.DONE,
    ):
        machine.advance(state)

    assert machine.is_terminal
    assert [state.value for state in machine.history] == [
        "idle",
        "decoding",
        "sampling",
        "packaging",
        "done",
    ]


def test_illegal_transitions_are_rejected() -> None:
    """Skipping a phase or entering a phase of the other pipeline should fail."""

    slicing = PipelineStateMachine(SLICING_TRANSITIONS)
    embedding = PipelineStateMachine(EMBEDDING_TRANSITIONS)

    with pytest.raises(RuntimeError, match="`idle` -> `sampling`"):
        slicing.advance(PipelineState.SAMPLING)
    with pytest.raises(RuntimeError, match="`idle` -> `decoding`"):
        embedding.advance(PipelineState.DECODING)


def test_fail_is_reachable_until_a_terminal_state() -> None:
    """`fail` should mark running machines failed and leave finished ones alone."""

    running = PipelineStateMachine(EMBEDDING_TRANSITIONS)
    running.advance(PipelineState.UNPACKING)
    running.fail()
    running.fail()

    assert running.state is PipelineState.FAILED
    assert running.history[-2:] == (PipelineState.UNPACKING, PipelineState.FAILED)
    with pytest.raises(RuntimeError):
        running.advance(PipelineState.MATCHING)


def test_cancellation_token_raises_with_the_current_stage() -> None:
    """A cancelled token should raise `PipelineCancelledError` naming the stage."""

    token = CancellationToken()
    token.raise_if_cancelled("sampling")

    token.cancel()

    assert token.cancelled
    with pytest.raises(PipelineCancelledError, match="Run cancelled during `sampling`") as exc_info:
        token.raise_if_cancelled("sampling")
    assert exc_info.value.stage == "sampling"


def test_run_logger_emits_sorted_sanitized_context() -> None:
    """Phase lines should be deterministic and progress ticks hidden at INFO."""

    sink = io.StringIO()
    run_logger = RunLogger(sink=sink, level="INFO")

    run_logger.log_stage_start("sampling", rate=8, chunks=80)
    run_logger.log_progress("sampling", 50)
    run_logger.log_stage_failure("sampling", "Decode Error")

    lines = sink.getvalue().splitlines()
    assert lines == [
        "[phase] level=INFO stage=sampling event=start chunks=80 rate=8",
        "[phase] level=ERROR stage=sampling event=failure error_type=Decode_Error",
    ]
