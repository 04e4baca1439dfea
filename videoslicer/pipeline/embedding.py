"""Merge pipeline: zip of audio + cover entries -> zip of cover-tagged audio.

Responsibilities:
- Unpack the input archive and pair entries by their 3-digit index.
- Embed each pair's cover and fixed text fields into the audio tags.
- Name outputs with the matched index verbatim, never re-enumerated.
"""

from __future__ import annotations

import asyncio

from ..audio.tags import CoverTagWriter
from ..errors import NoMatchError
from ..io.archive import ZipArchiveCodec
from ..io.pair_matcher import PairMatcher
from ..models.datatypes import ArchiveEntry, EmbedResult, MatchedPair, TagFields
from ..telemetry.logger import RunLogger
from .cancellation import CancellationToken
from .state import EMBEDDING_TRANSITIONS, PipelineState, PipelineStateMachine
from .telemetry import PipelineTelemetryMixin, ProgressCallback

DEFAULT_TITLE_TEMPLATE = "Track {index}"
DEFAULT_ARTIST = "Video Slicer"
DEFAULT_ALBUM = "Sliced Audio"


def tagged_entry_name(pair: MatchedPair) -> str:
    """Return the output archive name for one tagged audio entry."""

    return f"audio_{pair.index}_with_cover.{pair.audio_extension}"


class TagEmbeddingPipeline(PipelineTelemetryMixin):
    """Coordinate archive codec, pair matcher and tag writer for one archive."""

    _PROGRESS_RANGES = {
        PipelineState.UNPACKING.value: (0, 5),
        PipelineState.MATCHING.value: (5, 10),
        PipelineState.TAGGING.value: (10, 90),
        PipelineState.PACKAGING.value: (90, 100),
    }

    def __init__(
        self,
        *,
        tag_writer: CoverTagWriter | None = None,
        codec: ZipArchiveCodec | None = None,
        matcher: PairMatcher | None = None,
        title_template: str = DEFAULT_TITLE_TEMPLATE,
        artist: str = DEFAULT_ARTIST,
        album: str = DEFAULT_ALBUM,
        run_logger: RunLogger | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._tag_writer = tag_writer if tag_writer is not None else CoverTagWriter()
        self._codec = codec if codec is not None else ZipArchiveCodec()
        self._matcher = matcher if matcher is not None else PairMatcher()
        self._title_template = title_template
        self._artist = artist
        self._album = album
        self._init_telemetry(run_logger, progress_callback)
        self.state_machine = PipelineStateMachine(EMBEDDING_TRANSITIONS)

    def tag_fields(self, index: str) -> TagFields:
        """Return the text fields written for one matched index."""

        return TagFields(
            title=self._title_template.format(index=index),
            artist=self._artist,
            album=self._album,
        )

    def run(
        self,
        archive: bytes,
        cancellation: CancellationToken | None = None,
    ) -> EmbedResult:
        """Tag every matched pair of `archive` and return the output zip."""

        token = cancellation if cancellation is not None else CancellationToken()
        machine = PipelineStateMachine(EMBEDDING_TRANSITIONS)
        self.state_machine = machine
        self._reset_progress()
        try:
            token.raise_if_cancelled(PipelineState.UNPACKING.value)
            entries = self._run_phase(
                machine,
                PipelineState.UNPACKING,
                lambda: self._codec.read(archive),
            )
            pairs = self._run_phase(
                machine,
                PipelineState.MATCHING,
                lambda: self._match(entries),
                entries=len(entries),
            )
            outputs = self._run_phase(
                machine,
                PipelineState.TAGGING,
                lambda: self._tag(entries, pairs, token),
                pairs=len(pairs),
            )
            token.raise_if_cancelled(PipelineState.PACKAGING.value)
            packed = self._run_phase(
                machine,
                PipelineState.PACKAGING,
                lambda: self._codec.write(outputs),
                entries=len(outputs),
            )
            machine.advance(PipelineState.DONE)
        except BaseException:
            machine.fail()
            raise

        return EmbedResult(
            archive=packed,
            matched_indices=tuple(pair.index for pair in pairs),
            entry_names=tuple(entry.name for entry in outputs),
        )

    async def run_async(
        self,
        archive: bytes,
        cancellation: CancellationToken | None = None,
    ) -> EmbedResult:
        """Run on a worker thread so the calling event loop stays responsive."""

        return await asyncio.to_thread(self.run, archive, cancellation)

    def _match(self, entries: dict[str, bytes]) -> list[MatchedPair]:
        pairs = self._matcher.match(entries)
        if not pairs:
            raise NoMatchError(
                detail="No matching pairs: archive has no `audio_NNN` / `cover_NNN` entries "
                "sharing an index.",
                hint="Name entries like `audio_001.mp3` and `cover_001.png`.",
            )
        return pairs

    def _tag(
        self,
        entries: dict[str, bytes],
        pairs: list[MatchedPair],
        token: CancellationToken,
    ) -> list[ArchiveEntry]:
        """Tag pairs in discovery order; the first failure aborts the run."""

        phase = PipelineState.TAGGING.value
        outputs: list[ArchiveEntry] = []
        for done, pair in enumerate(pairs, start=1):
            token.raise_if_cancelled(phase)
            tagged = self._tag_writer.inject(
                entries[pair.audio_name],
                entries[pair.cover_name],
                self.tag_fields(pair.index),
                audio_name=pair.audio_name,
                cover_name=pair.cover_name,
            )
            outputs.append(ArchiveEntry(name=tagged_entry_name(pair), data=tagged))
            self._emit_phase_fraction(phase, done, len(pairs))
        return outputs
