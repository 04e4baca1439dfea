"""Video decode/seek service backed by the `ffmpeg` and `ffprobe` executables.

Responsibilities:
- Stage source bytes on disk and hand out owned `MediaHandle`s.
- Read duration and audio geometry, decode the full audio track to floats.
- Capture one JPEG frame at a timestamp at native resolution.
- Map missing tools and tool failures to `DecodeError`.
"""

from __future__ import annotations

from array import array
import itertools
import json
from pathlib import Path
import subprocess
import sys
import tempfile
from typing import Protocol

from ..errors import DecodeError
from ..models.datatypes import DecodedAudio, MediaHandle
from ..parsing import normalize_optional_string
from ..runtime_tools import resolve_executable

DEFAULT_JPEG_QUALITY = 5

_handle_ids = itertools.count(1)


class MediaService(Protocol):
    """Decode/seek collaborator used by the slicing pipeline."""

    def open(self, source: bytes | Path) -> MediaHandle: ...

    def duration(self, handle: MediaHandle) -> float: ...

    def decode_audio(self, handle: MediaHandle) -> DecodedAudio: ...

    def capture_frame_at(self, handle: MediaHandle, time: float) -> bytes: ...

    def close(self, handle: MediaHandle) -> None: ...


def new_handle(path: Path, *, owns_path: bool) -> MediaHandle:
    """Create a handle with a fresh process-unique identifier."""

    return MediaHandle(path=path, owns_path=owns_path, handle_id=next(_handle_ids))


class FfmpegMediaService:
    """`MediaService` implementation running ffmpeg/ffprobe subprocesses."""

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        """Initialize with the fixed mjpeg quality scale (2 best, 31 smallest)."""

        self._jpeg_quality = jpeg_quality

    def open(self, source: bytes | Path) -> MediaHandle:
        """Open a source given as raw bytes or as an existing file path."""

        if isinstance(source, Path):
            if not source.is_file():
                raise DecodeError(
                    detail=f"Source video not found: `{source}`.",
                    hint="Pass an existing video file path.",
                )
            return new_handle(source, owns_path=False)

        if not source:
            raise DecodeError(detail="Source video is empty.")
        with tempfile.NamedTemporaryFile(
            prefix="videoslicer-", suffix=".media", delete=False
        ) as staged:
            staged.write(source)
        return new_handle(Path(staged.name), owns_path=True)

    def duration(self, handle: MediaHandle) -> float:
        """Return container duration in seconds."""

        output = self._run(
            "ffprobe",
            [
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                str(handle.path),
            ],
        )
        raw = normalize_optional_string(output.decode("utf-8", errors="replace"))
        try:
            value = float(raw) if raw is not None else float("nan")
        except ValueError:
            value = float("nan")
        if not value >= 0:
            raise DecodeError(
                detail=f"Could not determine duration of `{handle.path.name}` (got {raw!r}).",
            )
        return value

    def decode_audio(self, handle: MediaHandle) -> DecodedAudio:
        """Decode the first audio stream into per-channel float samples."""

        sample_rate, channel_count = self._read_audio_stream_info(handle)
        raw = self._run(
            "ffmpeg",
            [
                "-v",
                "error",
                "-i",
                str(handle.path),
                "-vn",
                "-map",
                "0:a:0",
                "-ac",
                str(channel_count),
                "-ar",
                str(sample_rate),
                "-f",
                "f32le",
                "-acodec",
                "pcm_f32le",
                "-",
            ],
        )
        usable = len(raw) - len(raw) % (4 * channel_count)
        interleaved = array("f")
        interleaved.frombytes(raw[:usable])
        if sys.byteorder != "little":
            interleaved.byteswap()
        channels = tuple(
            interleaved[channel_index::channel_count] for channel_index in range(channel_count)
        )
        return DecodedAudio(
            sample_rate=sample_rate,
            channel_count=channel_count,
            samples=channels,
        )

    def capture_frame_at(self, handle: MediaHandle, time: float) -> bytes:
        """Capture the frame nearest `time` as JPEG bytes at native resolution."""

        image = self._run(
            "ffmpeg",
            [
                "-v",
                "error",
                "-ss",
                f"{max(0.0, time):.6f}",
                "-i",
                str(handle.path),
                "-frames:v",
                "1",
                "-f",
                "image2pipe",
                "-vcodec",
                "mjpeg",
                "-q:v",
                str(self._jpeg_quality),
                "-",
            ],
        )
        if not image:
            raise DecodeError(
                detail=f"No video frame available at {time:.3f}s in `{handle.path.name}`.",
                hint="Verify the source contains a video stream.",
            )
        return image

    def close(self, handle: MediaHandle) -> None:
        """Release a handle, deleting its staged temporary file when owned."""

        if handle.owns_path:
            handle.path.unlink(missing_ok=True)

    def _read_audio_stream_info(self, handle: MediaHandle) -> tuple[int, int]:
        """Return `(sample_rate, channel_count)` of the first audio stream."""

        output = self._run(
            "ffprobe",
            [
                "-v",
                "error",
                "-select_streams",
                "a:0",
                "-show_entries",
                "stream=sample_rate,channels",
                "-of",
                "json",
                str(handle.path),
            ],
        )
        try:
            streams = json.loads(output.decode("utf-8")).get("streams", [])
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(
                detail=f"Unreadable ffprobe output for `{handle.path.name}`: {exc}",
            ) from exc
        if not streams:
            raise DecodeError(
                detail=f"Source `{handle.path.name}` has no audio stream.",
                hint="Slicing needs a video with an audio track.",
            )
        try:
            sample_rate = int(streams[0]["sample_rate"])
            channel_count = int(streams[0]["channels"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(
                detail=f"Audio stream of `{handle.path.name}` lacks sample geometry.",
            ) from exc
        if sample_rate <= 0 or channel_count <= 0:
            raise DecodeError(
                detail=(
                    f"Invalid audio geometry in `{handle.path.name}`: "
                    f"{sample_rate} Hz, {channel_count} channel(s)."
                ),
            )
        return sample_rate, channel_count

    def _run(self, tool: str, arguments: list[str]) -> bytes:
        """Run one media tool and return its stdout bytes."""

        command = [resolve_executable(tool), *arguments]
        try:
            completed = subprocess.run(command, check=True, capture_output=True)
        except FileNotFoundError as exc:
            raise DecodeError(
                detail=f"Media tool `{tool}` is not available on PATH.",
                hint=f"Install ffmpeg or point `VIDEOSLICER_{tool.upper()}` at the binary.",
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = normalize_optional_string(
                (exc.stderr or b"").decode("utf-8", errors="replace")
            ) or "no stderr output"
            raise DecodeError(
                detail=f"`{tool}` failed: {stderr}",
                hint="Verify the source is a readable, non-corrupt video file.",
            ) from exc
        return completed.stdout
