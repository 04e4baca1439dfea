"""Shared pytest fixtures for the full videoslicer test suite."""

from __future__ import annotations

from array import array
from collections.abc import Callable
import io
from pathlib import Path
import threading
import zipfile

import pytest

from videoslicer.errors import DecodeError
from videoslicer.models.datatypes import DecodedAudio, MediaHandle

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no CRC: 417-byte frames.
_MP3_FRAME_HEADER = b"\xff\xfb\x90\x00"
_MP3_FRAME_SIZE = 417
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 17
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF\x00" + b"\x00" * 24 + b"\xff\xd9"


def chunk_level(chunk_index: int) -> float:
    """Return the constant sample value used for one fake chunk (exact in float32)."""

    return chunk_index / 128.0


class FakeMediaService:
    """In-memory `MediaService` that records calls instead of running ffmpeg.

    Every `frames_per_chunk` frames of the decoded track share one level so
    tests can tell which chunk a WAV window was cut from.
    """

    def __init__(
        self,
        *,
        duration: float,
        sample_rate: int = 800,
        channel_count: int = 1,
        decoded_seconds: float | None = None,
        frames_per_chunk: int | None = None,
        fail_capture_at: float | None = None,
        fail_decode: bool = False,
    ) -> None:
        """Initialize fake geometry and optional failure points."""

        self.duration_seconds = duration
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.decoded_seconds = duration if decoded_seconds is None else decoded_seconds
        self.frames_per_chunk = frames_per_chunk
        self.fail_capture_at = fail_capture_at
        self.fail_decode = fail_decode
        self.opened: list[MediaHandle] = []
        self.closed: list[MediaHandle] = []
        self.capture_times: list[float] = []
        self.max_concurrent_captures = 0
        self._active_captures = 0
        self._guard = threading.Lock()

    def open(self, source: bytes | Path) -> MediaHandle:
        """Return a handle that never touches the filesystem."""

        _ = source
        handle = MediaHandle(path=Path("fake.media"), owns_path=False, handle_id=len(self.opened) + 1000)
        self.opened.append(handle)
        return handle

    def duration(self, handle: MediaHandle) -> float:
        """Return the configured source duration."""

        _ = handle
        return self.duration_seconds

    def decode_audio(self, handle: MediaHandle) -> DecodedAudio:
        """Return per-chunk constant levels, negated on odd channels."""

        _ = handle
        if self.fail_decode:
            raise DecodeError(detail="fake source is corrupt")
        frame_count = int(round(self.decoded_seconds * self.sample_rate))
        channels = []
        for channel_index in range(self.channel_count):
            sign = -1.0 if channel_index % 2 else 1.0
            if self.frames_per_chunk:
                values = [
                    sign * chunk_level(frame // self.frames_per_chunk) for frame in range(frame_count)
                ]
            else:
                values = [0.0] * frame_count
            channels.append(array("f", values))
        return DecodedAudio(
            sample_rate=self.sample_rate,
            channel_count=self.channel_count,
            samples=tuple(channels),
        )

    def capture_frame_at(self, handle: MediaHandle, time: float) -> bytes:
        """Return a tiny JPEG-shaped payload stamped with the capture time."""

        _ = handle
        with self._guard:
            self._active_captures += 1
            self.max_concurrent_captures = max(
                self.max_concurrent_captures, self._active_captures
            )
        try:
            if self.fail_capture_at is not None and abs(time - self.fail_capture_at) < 1e-9:
                raise DecodeError(detail=f"cannot seek to {time}")
            with self._guard:
                self.capture_times.append(time)
            return JPEG_BYTES + f"@{time:.6f}".encode("ascii")
        finally:
            with self._guard:
                self._active_captures -= 1

    def close(self, handle: MediaHandle) -> None:
        """Record handle release."""

        self.closed.append(handle)


def build_mp3(frame_count: int = 24) -> bytes:
    """Return a minimal MPEG audio stream of silent frames without tags."""

    frame = _MP3_FRAME_HEADER + b"\x00" * (_MP3_FRAME_SIZE - len(_MP3_FRAME_HEADER))
    return frame * frame_count


def build_zip(entries: dict[str, bytes]) -> bytes:
    """Return zip bytes holding `entries` in insertion order."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def read_zip(data: bytes) -> dict[str, bytes]:
    """Return zip entries by name."""

    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


@pytest.fixture(autouse=True)
def _clear_videoslicer_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient `VIDEOSLICER_*` variables out of CLI and loader tests."""

    for key in ("RATE", "MAX_RATE", "WORKERS", "JPEG_QUALITY", "COMPRESSION",
                "TAG_TITLE_TEMPLATE", "TAG_ARTIST", "TAG_ALBUM", "VERBOSE"):
        monkeypatch.delenv(f"VIDEOSLICER_{key}", raising=False)


@pytest.fixture
def fake_media_factory() -> Callable[..., FakeMediaService]:
    """Provide a factory for configurable fake media services."""

    return FakeMediaService


@pytest.fixture
def mp3_bytes() -> bytes:
    """Provide an untagged MP3 stream."""

    return build_mp3()


@pytest.fixture
def png_bytes() -> bytes:
    """Provide bytes carrying a PNG signature."""

    return PNG_BYTES


@pytest.fixture
def jpeg_bytes() -> bytes:
    """Provide bytes carrying a JPEG signature."""

    return JPEG_BYTES


@pytest.fixture
def zip_builder() -> Callable[[dict[str, bytes]], bytes]:
    """Provide the zip-building helper."""

    return build_zip


@pytest.fixture
def zip_reader() -> Callable[[bytes], dict[str, bytes]]:
    """Provide the zip-reading helper."""

    return read_zip
