"""Index-based pairing of independently named audio and cover entries."""

from __future__ import annotations

from collections.abc import Iterable
import re

from ..models.datatypes import MatchedPair

# Highest index the 3-digit entry names can carry.
MAX_PAIR_INDEX = 999

_AUDIO_NAME_RE = re.compile(r"audio_([0-9]{3})\.(?:mp3|wav)", re.IGNORECASE)
_COVER_NAME_RE = re.compile(r"cover_([0-9]{3})\.(?:png|jpg|jpeg)", re.IGNORECASE)


def _basename(name: str) -> str:
    return name.replace("\\", "/").rsplit("/", 1)[-1]


class PairMatcher:
    """Resolve `audio_NNN.*` and `cover_NNN.*` entries into pairs by shared index.

    Indices present in only one role are dropped silently; an empty result is
    left for the caller to judge.
    """

    def audio_indices(self, names: Iterable[str]) -> dict[str, str]:
        """Map index -> first audio-shaped entry name, in discovery order."""

        return self._indices(names, _AUDIO_NAME_RE)

    def cover_indices(self, names: Iterable[str]) -> dict[str, str]:
        """Map index -> first cover-shaped entry name, in discovery order."""

        return self._indices(names, _COVER_NAME_RE)

    def match(self, names: Iterable[str]) -> list[MatchedPair]:
        """Return pairs for indices found in both roles, in audio discovery order."""

        ordered_names = list(names)
        audio = self.audio_indices(ordered_names)
        covers = self.cover_indices(ordered_names)
        return [
            MatchedPair(index=index, audio_name=audio_name, cover_name=covers[index])
            for index, audio_name in audio.items()
            if index in covers
        ]

    def matched_indices(self, names: Iterable[str]) -> set[str]:
        """Return the set of indices present under both roles."""

        return {pair.index for pair in self.match(names)}

    def _indices(self, names: Iterable[str], pattern: re.Pattern[str]) -> dict[str, str]:
        found: dict[str, str] = {}
        for name in names:
            matched = pattern.fullmatch(_basename(name))
            if matched is not None:
                found.setdefault(matched.group(1), name)
        return found
