"""Chunk planning for rate-driven audio slicing.

Responsibilities:
- Turn a source duration and a chunks-per-second rate into ordered slices.
- Keep the whole-second truncation policy in one place.
"""

from __future__ import annotations

import math

from .models.datatypes import ChunkDescriptor


class ChunkPlanner:
    """Plan equal-duration chunk descriptors over whole seconds of a source.

    Each whole second is subdivided into `rate` slices independently; the
    fractional remainder of the source duration is never sliced.
    """

    def chunk_count(self, total_duration_seconds: float, rate: int) -> int:
        """Return `floor(total_duration_seconds) * rate` for a validated rate."""

        self._require_rate(rate)
        return self._whole_seconds(total_duration_seconds) * rate

    def plan(self, total_duration_seconds: float, rate: int) -> list[ChunkDescriptor]:
        """Build descriptors walking whole seconds outer and sub-chunks inner."""

        self._require_rate(rate)
        step = 1.0 / rate
        descriptors: list[ChunkDescriptor] = []
        for second in range(self._whole_seconds(total_duration_seconds)):
            for sub_chunk in range(rate):
                descriptors.append(
                    ChunkDescriptor(
                        index=second * rate + sub_chunk,
                        start_time=second + sub_chunk * step,
                        duration=step,
                    )
                )
        return descriptors

    def _whole_seconds(self, total_duration_seconds: float) -> int:
        """Truncate a duration to whole seconds, mapping invalid values to zero."""

        if not math.isfinite(total_duration_seconds) or total_duration_seconds <= 0:
            return 0
        return int(math.floor(total_duration_seconds))

    def _require_rate(self, rate: int) -> None:
        if isinstance(rate, bool) or not isinstance(rate, int) or rate < 1:
            raise ValueError(f"rate must be a positive integer, got {rate!r}.")
