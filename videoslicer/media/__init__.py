"""Media decode, seek and frame capture components."""

from .ffmpeg import FfmpegMediaService, MediaService
from .frame_sampler import FrameSampler

__all__ = ["FfmpegMediaService", "FrameSampler", "MediaService"]
