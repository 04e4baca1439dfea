"""Domain exceptions for pipeline and CLI diagnostics.

Every pipeline failure is a `PipelineStageError` carrying the stage it
happened in, a human-readable detail and an optional remediation hint.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    default_stage = "pipeline"

    def __init__(
        self,
        *,
        detail: str,
        stage: str | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage if stage is not None else self.default_stage
        self.detail = detail
        self.hint = hint

    @property
    def kind(self) -> str:
        """Return the error kind name reported to callers."""

        return type(self).__name__


class DecodeError(PipelineStageError):
    """Source media could not be opened, inspected, decoded or sampled."""

    default_stage = "decode"


class EncodingError(PipelineStageError):
    """WAV container construction failed, usually because of bad sample geometry."""

    default_stage = "encode"


class TagInjectionError(PipelineStageError):
    """Audio input could not be parsed or re-written with cover tags."""

    default_stage = "tag"


class ArchiveError(PipelineStageError):
    """Zip archive could not be read or written."""

    default_stage = "archive"


class NoMatchError(PipelineStageError):
    """Merge input contained no audio/cover pair sharing an index."""

    default_stage = "match"


class PipelineCancelledError(PipelineStageError):
    """Run was cancelled through its cancellation token."""

    default_stage = "cancel"
