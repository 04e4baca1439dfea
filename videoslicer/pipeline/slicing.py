"""Forward pipeline: video + rate -> zip of `audio_NNN.wav` / `cover_NNN.jpg` pairs.

Responsibilities:
- Decode the whole audio track once, then slice it chunk by chunk in planner order.
- Capture one cover frame per chunk at the chunk start time.
- Package every pair under the same 1-based, 3-digit index.
- Release the media handle on success, failure and cancellation alike.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from ..audio.wav_encoder import WavEncoder
from ..audio.windowing import extract_window
from ..io.archive import ZipArchiveCodec
from ..media.ffmpeg import FfmpegMediaService, MediaService
from ..media.frame_sampler import FrameSampler
from ..models.datatypes import (
    ArchiveEntry,
    ChunkDescriptor,
    DecodedAudio,
    MediaHandle,
    SliceResult,
)
from ..planning import ChunkPlanner
from ..telemetry.logger import RunLogger
from .cancellation import CancellationToken
from .state import SLICING_TRANSITIONS, PipelineState, PipelineStateMachine
from .telemetry import PipelineTelemetryMixin, ProgressCallback

COVER_EXTENSION = "jpg"
AUDIO_EXTENSION = "wav"


def audio_entry_name(descriptor: ChunkDescriptor) -> str:
    """Return the archive name of a chunk's audio file."""

    return f"audio_{descriptor.label}.{AUDIO_EXTENSION}"


def cover_entry_name(descriptor: ChunkDescriptor) -> str:
    """Return the archive name of a chunk's cover image."""

    return f"cover_{descriptor.label}.{COVER_EXTENSION}"


class SlicingPipeline(PipelineTelemetryMixin):
    """Coordinate planner, frame sampler and WAV encoder for one source video."""

    _PROGRESS_RANGES = {
        PipelineState.DECODING.value: (0, 10),
        PipelineState.SAMPLING.value: (10, 90),
        PipelineState.PACKAGING.value: (90, 100),
    }

    def __init__(
        self,
        media: MediaService | None = None,
        *,
        planner: ChunkPlanner | None = None,
        encoder: WavEncoder | None = None,
        codec: ZipArchiveCodec | None = None,
        workers: int = 1,
        run_logger: RunLogger | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize collaborators; defaults use ffmpeg and deflated zip output."""

        if workers < 1:
            raise ValueError("workers must be a positive integer.")
        self._media = media if media is not None else FfmpegMediaService()
        self._sampler = FrameSampler(self._media)
        self._planner = planner if planner is not None else ChunkPlanner()
        self._encoder = encoder if encoder is not None else WavEncoder()
        self._codec = codec if codec is not None else ZipArchiveCodec()
        self._workers = workers
        self._init_telemetry(run_logger, progress_callback)
        self.state_machine = PipelineStateMachine(SLICING_TRANSITIONS)

    def run(
        self,
        source: bytes | Path,
        rate: int,
        cancellation: CancellationToken | None = None,
    ) -> SliceResult:
        """Slice `source` at `rate` chunks per second and return the zip archive."""

        token = cancellation if cancellation is not None else CancellationToken()
        machine = PipelineStateMachine(SLICING_TRANSITIONS)
        self.state_machine = machine
        self._reset_progress()
        opened: list[MediaHandle] = []
        try:
            token.raise_if_cancelled(PipelineState.DECODING.value)
            handle, duration, decoded = self._run_phase(
                machine,
                PipelineState.DECODING,
                lambda: self._decode(source, opened),
            )
            descriptors = self._planner.plan(duration, rate)
            entries = self._run_phase(
                machine,
                PipelineState.SAMPLING,
                lambda: self._sample(handle, duration, decoded, descriptors, token),
                chunks=len(descriptors),
                rate=rate,
            )
            token.raise_if_cancelled(PipelineState.PACKAGING.value)
            archive = self._run_phase(
                machine,
                PipelineState.PACKAGING,
                lambda: self._codec.write(entries),
                entries=len(entries),
            )
            machine.advance(PipelineState.DONE)
        except BaseException:
            machine.fail()
            raise
        finally:
            for handle in opened:
                self._release(handle)

        return SliceResult(
            archive=archive,
            chunk_count=len(descriptors),
            rate=rate,
            duration_seconds=duration,
            entry_names=tuple(entry.name for entry in entries),
        )

    async def run_async(
        self,
        source: bytes | Path,
        rate: int,
        cancellation: CancellationToken | None = None,
    ) -> SliceResult:
        """Run on a worker thread so the calling event loop stays responsive."""

        return await asyncio.to_thread(self.run, source, rate, cancellation)

    def _decode(
        self,
        source: bytes | Path,
        opened: list[MediaHandle],
    ) -> tuple[MediaHandle, float, DecodedAudio]:
        """Open the source and decode its full audio track."""

        handle = self._media.open(source)
        opened.append(handle)
        duration = self._media.duration(handle)
        decoded = self._media.decode_audio(handle)
        return handle, duration, decoded

    def _sample(
        self,
        handle: MediaHandle,
        duration: float,
        decoded: DecodedAudio,
        descriptors: list[ChunkDescriptor],
        token: CancellationToken,
    ) -> list[ArchiveEntry]:
        """Build audio/cover entries for every descriptor, in index order."""

        phase = PipelineState.SAMPLING.value
        total = len(descriptors)
        if self._workers == 1 or total <= 1:
            entries: list[ArchiveEntry] = []
            for done, descriptor in enumerate(descriptors, start=1):
                token.raise_if_cancelled(phase)
                entries.extend(self._process_chunk(handle, duration, decoded, descriptor))
                self._emit_phase_fraction(phase, done, total)
            return entries

        results: dict[int, tuple[ArchiveEntry, ArchiveEntry]] = {}
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="videoslicer-chunk"
        ) as pool:
            futures: list[Future[tuple[ArchiveEntry, ArchiveEntry]]] = []
            future_index: dict[Future[tuple[ArchiveEntry, ArchiveEntry]], int] = {}
            for descriptor in descriptors:
                future = pool.submit(
                    self._process_chunk, handle, duration, decoded, descriptor
                )
                futures.append(future)
                future_index[future] = descriptor.index
            try:
                for done, future in enumerate(as_completed(futures), start=1):
                    token.raise_if_cancelled(phase)
                    results[future_index[future]] = future.result()
                    self._emit_phase_fraction(phase, done, total)
            except BaseException:
                for pending in futures:
                    pending.cancel()
                raise

        ordered: list[ArchiveEntry] = []
        for descriptor in descriptors:
            ordered.extend(results[descriptor.index])
        return ordered

    def _process_chunk(
        self,
        handle: MediaHandle,
        duration: float,
        decoded: DecodedAudio,
        descriptor: ChunkDescriptor,
    ) -> tuple[ArchiveEntry, ArchiveEntry]:
        """Encode one chunk's audio window and capture its cover frame."""

        cover = self._sampler.capture(handle, descriptor.start_time, duration)
        wav = self._encoder.encode(extract_window(decoded, descriptor))
        return (
            ArchiveEntry(name=audio_entry_name(descriptor), data=wav),
            ArchiveEntry(name=cover_entry_name(descriptor), data=cover),
        )

    def _release(self, handle: MediaHandle) -> None:
        self._sampler.release(handle)
        self._media.close(handle)
