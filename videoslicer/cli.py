"""Command-line interface for videoslicer.

Responsibilities:
- Expose user-facing commands for slicing, cover embedding and inspection.
- Convert CLI arguments, `VIDEOSLICER_*` variables and an optional YAML file
  into `SlicerConfig`.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import (
    ProgressPrinter,
    echo_chunk_plan,
    echo_embed_summary,
    echo_index_overflow_warning,
    echo_pairs,
    echo_slice_summary,
    exit_with_command_error,
)
from .config import ConfigLoader, SlicerConfig
from .errors import PipelineStageError
from .io.archive import ZipArchiveCodec
from .io.pair_matcher import MAX_PAIR_INDEX, PairMatcher
from .media.ffmpeg import FfmpegMediaService
from .pipeline import SlicingPipeline, TagEmbeddingPipeline
from .planning import ChunkPlanner
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="videoslicer",
    no_args_is_help=True,
    help="Slice video audio into covered chunks and embed covers into audio tags.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
VerboseOption = Annotated[
    bool | None,
    typer.Option("--verbose/--quiet", help="Show per-tick DEBUG progress logs."),
]


def _load_base_config(config_path: Path | None) -> SlicerConfig:
    """Load `VIDEOSLICER_*` values and an optional YAML file, mapping failures to stage errors."""

    try:
        return ConfigLoader.from_sources(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        source = f"config file `{config_path}`" if config_path is not None else "configuration"
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid {source}: {exc}",
            hint="Fix config schema/values (YAML or `VIDEOSLICER_*` variables) and rerun.",
        ) from exc


def _resolve_config(config_file: Path | None, **overrides: object) -> SlicerConfig:
    """Resolve effective command config: environment, then YAML, then CLI overrides."""

    base_config = _load_base_config(config_file)
    try:
        return base_config.with_overrides(**overrides)
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=str(exc),
            hint="Adjust the command options and rerun.",
        ) from exc


def _write_output(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


@app.command("slice")
def slice_command(
    video: Annotated[Path, typer.Argument(help="Path to the source video.")],
    rate: Annotated[
        int | None,
        typer.Option("--rate", "-r", help="Chunks per second of source duration."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Output zip path (default: `<video>_chunks.zip`)."),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", help="Chunk worker threads; 1 keeps processing sequential."),
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = None,
) -> None:
    """Split a video's audio into equal chunks, each paired with a cover frame."""

    output_path = out if out is not None else Path(f"{video.stem}_chunks.zip")
    try:
        config = _resolve_config(config_file, rate=rate, workers=workers, verbose=verbose)
        pipeline = SlicingPipeline(
            FfmpegMediaService(jpeg_quality=config.jpeg_quality),
            codec=ZipArchiveCodec(config.compression),
            workers=config.workers,
            run_logger=RunLogger(level=config.log_level),
            progress_callback=ProgressPrinter("slice").on_progress,
        )
        result = pipeline.run(video, config.rate)
        _write_output(output_path, result.archive)
    except Exception as exc:
        exit_with_command_error("slice", exc)
    echo_slice_summary(result, output_path)
    echo_index_overflow_warning(result.chunk_count, MAX_PAIR_INDEX)


@app.command("embed")
def embed_command(
    archive: Annotated[Path, typer.Argument(help="Zip with `audio_NNN` and `cover_NNN` entries.")],
    out: Annotated[
        Path | None,
        typer.Option(
            "--out", "-o", help="Output zip path (default: `<archive>_with_covers.zip`)."
        ),
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = None,
) -> None:
    """Embed each cover into its matching audio file's tags."""

    output_path = out if out is not None else Path(f"{archive.stem}_with_covers.zip")
    try:
        config = _resolve_config(config_file, verbose=verbose)
        if not archive.is_file():
            raise PipelineStageError(
                stage="unpacking",
                detail=f"Input archive not found: `{archive}`.",
                hint="Pass an existing zip archive path.",
            )
        pipeline = TagEmbeddingPipeline(
            codec=ZipArchiveCodec(config.compression),
            title_template=config.tag_title_template,
            artist=config.tag_artist,
            album=config.tag_album,
            run_logger=RunLogger(level=config.log_level),
            progress_callback=ProgressPrinter("embed").on_progress,
        )
        result = pipeline.run(archive.read_bytes())
        _write_output(output_path, result.archive)
    except Exception as exc:
        exit_with_command_error("embed", exc)
    echo_embed_summary(result, output_path)


@app.command("plan")
def plan_command(
    duration: Annotated[float, typer.Argument(help="Source duration in seconds.")],
    rate: Annotated[
        int | None,
        typer.Option("--rate", "-r", help="Chunks per second of source duration."),
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """Print the chunk plan for a duration without touching any media."""

    try:
        config = _resolve_config(config_file, rate=rate)
        descriptors = ChunkPlanner().plan(duration, config.rate)
    except Exception as exc:
        exit_with_command_error("plan", exc)
    echo_chunk_plan(descriptors)


@app.command("match")
def match_command(
    archive: Annotated[Path, typer.Argument(help="Zip with `audio_NNN` and `cover_NNN` entries.")],
) -> None:
    """List audio/cover pairs an archive would contribute to `embed`."""

    try:
        if not archive.is_file():
            raise PipelineStageError(
                stage="unpacking",
                detail=f"Input archive not found: `{archive}`.",
                hint="Pass an existing zip archive path.",
            )
        entries = ZipArchiveCodec().read(archive.read_bytes())
        pairs = PairMatcher().match(entries)
    except Exception as exc:
        exit_with_command_error("match", exc)
    echo_pairs(pairs)


def main() -> None:
    """Run the videoslicer CLI application."""

    app()
