"""Core datatypes shared across videoslicer modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Keep sample geometry and archive naming explicit and typed.

Key types:
- `ChunkDescriptor`, `DecodedAudio`, `AudioChunk`, `ArchiveEntry`,
  `MatchedPair`, `TagFields`, `ProgressEvent`, `SliceResult`, `EmbedResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


@dataclass(frozen=True, slots=True)
class ChunkDescriptor:
    """One planned time slice of the source.

    Attributes:
        index: 0-based chunk index in planner order.
        start_time: Slice start in seconds.
        duration: Slice length in seconds (`1 / rate`).
    """

    index: int
    start_time: float
    duration: float

    @property
    def end_time(self) -> float:
        """Exclusive slice end in seconds."""

        return self.start_time + self.duration

    @property
    def label(self) -> str:
        """1-based, 3-digit zero-padded label used in archive entry names."""

        return f"{self.index + 1:03d}"


@dataclass(frozen=True, slots=True)
class DecodedAudio:
    """Whole decoded audio track held in memory.

    Attributes:
        sample_rate: Samples per second per channel.
        channel_count: Number of channels.
        samples: One float sequence per channel, values nominally in `[-1, 1]`.
    """

    sample_rate: int
    channel_count: int
    samples: tuple[Sequence[float], ...]

    @property
    def frame_count(self) -> int:
        """Number of sample frames (samples per channel)."""

        if not self.samples:
            return 0
        return len(self.samples[0])

    @property
    def duration_seconds(self) -> float:
        """Decoded track length in seconds."""

        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)


@dataclass(frozen=True, slots=True)
class AudioChunk:
    """Raw multi-channel sample block for one chunk window."""

    sample_rate: int
    channel_count: int
    samples: tuple[Sequence[float], ...]

    @property
    def frame_count(self) -> int:
        """Number of sample frames (samples per channel)."""

        if not self.samples:
            return 0
        return len(self.samples[0])


@dataclass(frozen=True, slots=True)
class MediaHandle:
    """Opened source media staged on disk for the decode tools.

    Attributes:
        path: Filesystem path the decode tools read from.
        owns_path: Whether `path` is a temporary file to delete on close.
        handle_id: Process-unique identifier, used to key per-handle locks.
    """

    path: Path
    owns_path: bool
    handle_id: int


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """One named binary entry of a zip archive."""

    name: str
    data: bytes


@dataclass(frozen=True, slots=True)
class MatchedPair:
    """Audio and cover entry names sharing one 3-digit index.

    Attributes:
        index: Index text exactly as found in the entry names (e.g. `007`).
        audio_name: Archive entry name of the audio file.
        cover_name: Archive entry name of the cover image.
    """

    index: str
    audio_name: str
    cover_name: str

    @property
    def audio_extension(self) -> str:
        """Audio file extension as written in the entry name, without the dot."""

        return self.audio_name.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True)
class TagFields:
    """Text fields written next to the embedded cover picture."""

    title: str
    artist: str
    album: str


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress notification emitted by a running pipeline.

    Attributes:
        phase: Current pipeline state name (`decoding`, `sampling`, ...).
        percent: Overall progress in `[0, 100]`.
        message: Optional short human-readable note.
    """

    phase: str
    percent: int
    message: str = ""


@dataclass(frozen=True, slots=True)
class SliceResult:
    """Outcome of one slicing run."""

    archive: bytes
    chunk_count: int
    rate: int
    duration_seconds: float
    entry_names: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class EmbedResult:
    """Outcome of one cover-embedding run."""

    archive: bytes
    matched_indices: tuple[str, ...] = field(default_factory=tuple)
    entry_names: tuple[str, ...] = field(default_factory=tuple)
