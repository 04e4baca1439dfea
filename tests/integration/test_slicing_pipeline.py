"""Integration tests for the forward slicing pipeline over a fake media service."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import io
import struct

import pytest

from videoslicer.errors import DecodeError, PipelineCancelledError
from videoslicer.models.datatypes import ProgressEvent
from videoslicer.pipeline import CancellationToken, PipelineState, SlicingPipeline
from videoslicer.telemetry.logger import RunLogger


def _pcm(wav_bytes: bytes) -> tuple[int, ...]:
    payload = wav_bytes[44:]
    return struct.unpack(f"<{len(payload) // 2}h", payload)


def test_two_second_source_at_rate_two_yields_four_named_pairs(
    fake_media_factory: Callable[..., object],
    zip_reader: Callable[[bytes], dict[str, bytes]],
) -> None:
    """Entries should be `audio_NNN.wav`/`cover_NNN.jpg`, 1-based and paired per chunk."""

    media = fake_media_factory(duration=2.0, frames_per_chunk=400)
    pipeline = SlicingPipeline(media)

    result = pipeline.run(b"video-bytes", 2)

    assert result.chunk_count == 4
    assert result.entry_names == (
        "audio_001.wav",
        "cover_001.jpg",
        "audio_002.wav",
        "cover_002.jpg",
        "audio_003.wav",
        "cover_003.jpg",
        "audio_004.wav",
        "cover_004.jpg",
    )
    entries = zip_reader(result.archive)
    assert list(entries) == list(result.entry_names)
    assert {len(entries[f"audio_00{k}.wav"]) for k in range(1, 5)} == {44 + 400 * 2}
    assert media.capture_times == [0.0, 0.5, 1.0, 1.5]
    assert entries["cover_003.jpg"].endswith(b"@1.000000")
    assert pipeline.state_machine.state is PipelineState.DONE
    assert media.closed == media.opened


def test_ten_second_source_at_rate_eight_keeps_chunk_order_and_levels(
    fake_media_factory: Callable[..., object],
    zip_reader: Callable[[bytes], dict[str, bytes]],
) -> None:
    """Each WAV should hold exactly the samples of its own chunk window."""

    media = fake_media_factory(duration=10.0, channel_count=2, frames_per_chunk=100)

    result = SlicingPipeline(media).run(b"video-bytes", 8)

    entries = zip_reader(result.archive)
    assert result.chunk_count == 80
    assert len(entries) == 160
    assert result.entry_names[-2:] == ("audio_080.wav", "cover_080.jpg")
    assert media.capture_times[0] == 0.0
    assert media.capture_times[-1] == pytest.approx(9.875)
    for index in (0, 1, 41, 79):
        pcm = _pcm(entries[f"audio_{index + 1:03d}.wav"])
        assert len(pcm) == 100 * 2
        assert pcm[0::2] == (int(index / 128 * 32767),) * 100
        assert pcm[1::2] == (int(-index / 128 * 32768),) * 100


def test_short_decoded_track_is_zero_filled_to_full_chunk_length(
    fake_media_factory: Callable[..., object],
    zip_reader: Callable[[bytes], dict[str, bytes]],
) -> None:
    """A decoded track shorter than the container should pad the last chunk."""

    media = fake_media_factory(duration=2.0, decoded_seconds=1.6, frames_per_chunk=400)

    entries = zip_reader(SlicingPipeline(media).run(b"video-bytes", 2).archive)

    pcm = _pcm(entries["audio_004.wav"])
    assert len(pcm) == 400
    assert pcm[:80] == (int(3 / 128 * 32767),) * 80
    assert pcm[80:] == (0,) * 320


def test_sub_second_source_produces_an_empty_archive(
    fake_media_factory: Callable[..., object],
    zip_reader: Callable[[bytes], dict[str, bytes]],
) -> None:
    """Fractional trailing seconds are dropped, so a 0.5 s source yields no chunks."""

    media = fake_media_factory(duration=0.5)

    result = SlicingPipeline(media).run(b"video-bytes", 8)

    assert result.chunk_count == 0
    assert zip_reader(result.archive) == {}
    assert media.capture_times == []


def test_capture_failure_fails_run_and_releases_handle(
    fake_media_factory: Callable[..., object],
) -> None:
    """A failing frame capture should propagate as `DecodeError` and close the source."""

    sink = io.StringIO()
    media = fake_media_factory(duration=2.0, fail_capture_at=0.5)
    pipeline = SlicingPipeline(media, run_logger=RunLogger(sink=sink))

    with pytest.raises(DecodeError, match="cannot seek to 0.5"):
        pipeline.run(b"video-bytes", 2)

    assert pipeline.state_machine.state is PipelineState.FAILED
    assert len(media.opened) == 1
    assert media.closed == media.opened
    assert "stage=sampling event=failure error_type=DecodeError" in sink.getvalue()


def test_decode_failure_fails_before_sampling(fake_media_factory: Callable[..., object]) -> None:
    """A corrupt source should fail in the decoding phase without captures."""

    media = fake_media_factory(duration=2.0, fail_decode=True)
    pipeline = SlicingPipeline(media)

    with pytest.raises(DecodeError) as exc_info:
        pipeline.run(b"video-bytes", 2)

    assert exc_info.value.stage == "decode"
    assert pipeline.state_machine.history[-2:] == (PipelineState.DECODING, PipelineState.FAILED)
    assert media.capture_times == []
    assert media.closed == media.opened


def test_invalid_rate_is_rejected_and_source_released(
    fake_media_factory: Callable[..., object],
) -> None:
    """A non-positive rate should raise `ValueError` and still close the handle."""

    media = fake_media_factory(duration=2.0)

    with pytest.raises(ValueError, match="rate must be a positive integer"):
        SlicingPipeline(media).run(b"video-bytes", 0)

    assert media.closed == media.opened


def test_cancellation_mid_sampling_stops_at_next_chunk(
    fake_media_factory: Callable[..., object],
) -> None:
    """Cancelling from a progress callback should stop the run and release the source."""

    media = fake_media_factory(duration=10.0)
    token = CancellationToken()

    def _cancel_halfway(event: ProgressEvent) -> None:
        if event.phase == "sampling" and event.percent >= 50:
            token.cancel()

    pipeline = SlicingPipeline(media, progress_callback=_cancel_halfway)

    with pytest.raises(PipelineCancelledError) as exc_info:
        pipeline.run(b"video-bytes", 8, cancellation=token)

    assert exc_info.value.stage == "sampling"
    assert len(media.capture_times) == 40
    assert pipeline.state_machine.state is PipelineState.FAILED
    assert media.closed == media.opened


def test_pre_cancelled_token_never_opens_the_source(
    fake_media_factory: Callable[..., object],
) -> None:
    """A token cancelled before the run should stop it before decoding."""

    media = fake_media_factory(duration=2.0)
    token = CancellationToken()
    token.cancel()

    with pytest.raises(PipelineCancelledError):
        SlicingPipeline(media).run(b"video-bytes", 2, cancellation=token)

    assert media.opened == []


def test_worker_pool_output_matches_sequential_output(
    fake_media_factory: Callable[..., object],
) -> None:
    """Parallel chunk workers should produce a byte-identical archive."""

    sequential_media = fake_media_factory(duration=3.0, frames_per_chunk=200)
    parallel_media = fake_media_factory(duration=3.0, frames_per_chunk=200)

    sequential = SlicingPipeline(sequential_media).run(b"video-bytes", 4)
    parallel = SlicingPipeline(parallel_media, workers=4).run(b"video-bytes", 4)

    assert parallel.archive == sequential.archive
    assert parallel.entry_names == sequential.entry_names
    assert sorted(parallel_media.capture_times) == sequential_media.capture_times
    assert parallel_media.max_concurrent_captures == 1


def test_progress_is_monotonic_and_ends_at_one_hundred(
    fake_media_factory: Callable[..., object],
) -> None:
    """Progress events should strictly increase from 0 to 100 across phases."""

    events: list[ProgressEvent] = []
    pipeline = SlicingPipeline(
        fake_media_factory(duration=2.0),
        progress_callback=events.append,
    )

    pipeline.run(b"video-bytes", 4)

    percents = [event.percent for event in events]
    assert percents[0] == 0
    assert percents == sorted(set(percents))
    assert (events[-1].phase, events[-1].percent) == ("packaging", 100)
    assert [event.phase for event in events if event.phase == "sampling"]


def test_run_async_returns_same_result_as_run(
    fake_media_factory: Callable[..., object],
) -> None:
    """The async wrapper should produce the same archive as a direct run."""

    direct = SlicingPipeline(fake_media_factory(duration=2.0)).run(b"video-bytes", 2)
    awaited = asyncio.run(
        SlicingPipeline(fake_media_factory(duration=2.0)).run_async(b"video-bytes", 2)
    )

    assert awaited.archive == direct.archive


def test_run_logger_reports_each_phase(fake_media_factory: Callable[..., object]) -> None:
    """INFO logs should show one start and one complete line per phase."""

    sink = io.StringIO()
    SlicingPipeline(
        fake_media_factory(duration=1.0),
        run_logger=RunLogger(sink=sink),
    ).run(b"video-bytes", 2)

    lines = sink.getvalue().splitlines()
    assert lines == [
        "[phase] level=INFO stage=decoding event=start",
        "[phase] level=INFO stage=decoding event=complete",
        "[phase] level=INFO stage=sampling event=start chunks=2 rate=2",
        "[phase] level=INFO stage=sampling event=complete",
        "[phase] level=INFO stage=packaging event=start entries=4",
        "[phase] level=INFO stage=packaging event=complete",
    ]
