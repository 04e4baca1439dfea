"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
progress lines, run summaries, chunk plans and pair listings.
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import (
    ChunkDescriptor,
    EmbedResult,
    MatchedPair,
    ProgressEvent,
    SliceResult,
)


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print one terminal diagnostic for a failed command and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}` ({exc.kind}): {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


class ProgressPrinter:
    """Render pipeline progress events as stable one-line records."""

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_progress(self, event: ProgressEvent) -> None:
        typer.echo(
            f"[progress] command={self._command_name} "
            f"phase={event.phase} percent={event.percent}"
        )


def echo_slice_summary(result: SliceResult, output_path: Path) -> None:
    """Print chunk counts and the written archive path."""

    typer.echo(f"Source duration (s): {result.duration_seconds:.3f}")
    typer.echo(f"Rate (chunks/s): {result.rate}")
    typer.echo(f"Chunks: {result.chunk_count}")
    typer.echo(f"Archive entries: {len(result.entry_names)}")
    typer.echo(f"Archive: {output_path}")


def echo_embed_summary(result: EmbedResult, output_path: Path) -> None:
    """Print matched indices and the written archive path."""

    typer.echo(f"Matched pairs: {len(result.matched_indices)}")
    typer.echo(f"Indices: {', '.join(result.matched_indices)}")
    typer.echo(f"Archive: {output_path}")


def echo_chunk_plan(descriptors: list[ChunkDescriptor]) -> None:
    """Print one row per planned chunk: label, start and end seconds."""

    for descriptor in descriptors:
        typer.echo(
            f"{descriptor.label}  {descriptor.start_time:.6f}  {descriptor.end_time:.6f}"
        )
    typer.echo(f"Chunks: {len(descriptors)}")


def echo_pairs(pairs: list[MatchedPair]) -> None:
    """Print matched pairs in discovery order."""

    for pair in pairs:
        typer.echo(f"{pair.index}: {pair.audio_name} + {pair.cover_name}")
    typer.echo(f"Matched pairs: {len(pairs)}")


def echo_index_overflow_warning(chunk_count: int, max_index: int) -> None:
    """Warn when chunk labels outgrow the 3-digit names `embed` can pair."""

    if chunk_count <= max_index:
        return
    typer.secho(
        f"Warning: {chunk_count} chunks exceed index {max_index:03d}; entries past "
        f"`audio_{max_index:03d}` get wider labels and will not pair in `embed`.",
        fg=typer.colors.YELLOW,
        err=True,
    )
