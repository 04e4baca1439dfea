"""Top-level package for videoslicer.

This package slices a video's audio track into equal-duration WAV chunks, each
paired with a cover frame captured at the chunk start, and embeds covers back
into audio tags. The entry points are `SlicingPipeline` and
`TagEmbeddingPipeline`.
"""

from .pipeline import SlicingPipeline, TagEmbeddingPipeline

__all__ = ["SlicingPipeline", "TagEmbeddingPipeline", "__version__"]

__version__ = "0.1.0"
