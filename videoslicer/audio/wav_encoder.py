"""Float-sample to 16-bit PCM WAV container encoding.

Responsibilities:
- Validate chunk sample geometry before writing anything.
- Clamp and scale float samples into signed 16-bit PCM deterministically.
- Emit a canonical 44-byte RIFF/WAVE header followed by interleaved frames.
"""

from __future__ import annotations

from array import array
import io
import math
import sys
import wave

from ..errors import EncodingError
from ..models.datatypes import AudioChunk

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
_SAMPLE_WIDTH_BYTES = BITS_PER_SAMPLE // 8
_POSITIVE_SCALE = 32767
_NEGATIVE_SCALE = 32768


def float_to_pcm16(value: float) -> int:
    """Convert one float sample to a signed 16-bit integer.

    The value is clamped to `[-1, 1]`, then scaled by 32768 when negative and
    32767 otherwise, truncating toward zero. NaN encodes as silence.
    """

    if math.isnan(value):
        return 0
    clamped = min(1.0, max(-1.0, value))
    if clamped < 0:
        return int(clamped * _NEGATIVE_SCALE)
    return int(clamped * _POSITIVE_SCALE)


class WavEncoder:
    """Encode `AudioChunk` sample blocks as uncompressed PCM16 WAV bytes."""

    def encode(self, chunk: AudioChunk) -> bytes:
        """Return WAV bytes of exactly `44 + frames * channels * 2` length."""

        self._validate_geometry(chunk)
        frames = self._interleave(chunk)

        with io.BytesIO() as buffer:
            with wave.open(buffer, "wb") as wav_file:
                wav_file.setnchannels(chunk.channel_count)
                wav_file.setsampwidth(_SAMPLE_WIDTH_BYTES)
                wav_file.setframerate(chunk.sample_rate)
                wav_file.setnframes(chunk.frame_count)
                wav_file.writeframes(frames)
            return buffer.getvalue()

    def _interleave(self, chunk: AudioChunk) -> bytes:
        """Interleave per-channel samples, channels varying fastest."""

        pcm = array("h", bytes(chunk.frame_count * chunk.channel_count * _SAMPLE_WIDTH_BYTES))
        channel_count = chunk.channel_count
        for channel_index, channel in enumerate(chunk.samples):
            position = channel_index
            for value in channel:
                pcm[position] = float_to_pcm16(float(value))
                position += channel_count
        if sys.byteorder != "little":
            pcm.byteswap()
        return pcm.tobytes()

    def _validate_geometry(self, chunk: AudioChunk) -> None:
        """Reject sample blocks the WAV header cannot describe."""

        if chunk.channel_count < 1:
            raise EncodingError(
                detail=f"Channel count must be at least 1, got {chunk.channel_count}.",
            )
        if chunk.sample_rate < 1:
            raise EncodingError(
                detail=f"Sample rate must be positive, got {chunk.sample_rate}.",
            )
        if len(chunk.samples) != chunk.channel_count:
            raise EncodingError(
                detail=(
                    f"Chunk declares {chunk.channel_count} channel(s) but carries "
                    f"{len(chunk.samples)} sample list(s)."
                ),
            )
        lengths = {len(channel) for channel in chunk.samples}
        if len(lengths) > 1:
            raise EncodingError(
                detail=f"Channel sample lists differ in length: {sorted(lengths)}.",
                hint="Extract all channels with the same window before encoding.",
            )
