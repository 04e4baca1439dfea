"""videoslicer pipeline package.

This package contains the forward slicing pipeline, the cover-embedding merge
pipeline, and their shared state, cancellation and telemetry helpers.
"""

from .cancellation import CancellationToken
from .embedding import TagEmbeddingPipeline
from .slicing import SlicingPipeline
from .state import PipelineState, PipelineStateMachine

__all__ = [
    "CancellationToken",
    "PipelineState",
    "PipelineStateMachine",
    "SlicingPipeline",
    "TagEmbeddingPipeline",
]
