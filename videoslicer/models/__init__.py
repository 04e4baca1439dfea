"""Shared data models for slicing and cover-embedding pipelines."""

from .datatypes import (
    ArchiveEntry,
    AudioChunk,
    ChunkDescriptor,
    DecodedAudio,
    EmbedResult,
    MatchedPair,
    MediaHandle,
    ProgressEvent,
    SliceResult,
    TagFields,
)

__all__ = [
    "ArchiveEntry",
    "AudioChunk",
    "ChunkDescriptor",
    "DecodedAudio",
    "EmbedResult",
    "MatchedPair",
    "MediaHandle",
    "ProgressEvent",
    "SliceResult",
    "TagFields",
]
