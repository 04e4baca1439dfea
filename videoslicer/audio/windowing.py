"""Chunk window extraction from a decoded audio track."""

from __future__ import annotations

from array import array

from ..models.datatypes import AudioChunk, ChunkDescriptor, DecodedAudio


def window_bounds(descriptor: ChunkDescriptor, sample_rate: int) -> tuple[int, int]:
    """Return `(start_frame, frame_count)` of a descriptor at a sample rate.

    Start and length are rounded independently, so every chunk has the same
    length. When `sample_rate / rate` is fractional, neighbouring windows can
    be one frame apart (a dropped frame) while starts stay within half a frame
    of their exact timestamps.
    """

    start_frame = int(round(descriptor.start_time * sample_rate))
    frame_count = int(round(descriptor.duration * sample_rate))
    return start_frame, frame_count


def extract_window(decoded: DecodedAudio, descriptor: ChunkDescriptor) -> AudioChunk:
    """Cut one chunk out of the decoded track.

    The chunk is always exactly `round(duration * sample_rate)` frames long;
    frames past the end of the source are zero-filled instead of shortening it.
    """

    start_frame, frame_count = window_bounds(descriptor, decoded.sample_rate)
    available_end = min(start_frame + frame_count, decoded.frame_count)

    channels: list[array] = []
    for channel in decoded.samples:
        window = array("f", channel[start_frame:available_end])
        missing = frame_count - len(window)
        if missing > 0:
            window.extend(array("f", [0.0]) * missing)
        channels.append(window)

    return AudioChunk(
        sample_rate=decoded.sample_rate,
        channel_count=decoded.channel_count,
        samples=tuple(channels),
    )
