"""Audio windowing, WAV encoding, and cover tagging components."""

from .tags import CoverTagWriter, EmbeddedTags
from .wav_encoder import WavEncoder
from .windowing import extract_window

__all__ = ["CoverTagWriter", "EmbeddedTags", "WavEncoder", "extract_window"]
