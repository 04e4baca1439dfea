"""Archive I/O and entry pairing components."""

from .archive import ZipArchiveCodec
from .pair_matcher import PairMatcher

__all__ = ["PairMatcher", "ZipArchiveCodec"]
