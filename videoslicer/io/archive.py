"""Zip archive codec for slicing and embedding outputs.

Responsibilities:
- Read zip bytes into an ordered name -> bytes mapping.
- Write entries into deterministic zip bytes (fixed timestamps, stable order).
- Map codec failures to `ArchiveError`.
"""

from __future__ import annotations

from collections.abc import Iterable
import io
import zipfile

from ..errors import ArchiveError
from ..models.datatypes import ArchiveEntry

# Earliest timestamp a zip entry can carry.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_COMPRESSION_MODES = {
    "deflate": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


class ZipArchiveCodec:
    """Read and write in-memory zip archives."""

    def __init__(self, compression: str = "deflate") -> None:
        """Initialize with a compression mode (`deflate` or `stored`)."""

        if compression not in _COMPRESSION_MODES:
            supported = ", ".join(sorted(_COMPRESSION_MODES))
            raise ValueError(
                f"Unsupported archive compression `{compression}`; supported: {supported}."
            )
        self._compression = _COMPRESSION_MODES[compression]

    def read(self, data: bytes) -> dict[str, bytes]:
        """Return file entries by name in archive order, skipping directories.

        When a name occurs more than once, the first occurrence wins.
        """

        entries: dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                for info in archive.infolist():
                    if info.is_dir() or info.filename in entries:
                        continue
                    entries[info.filename] = archive.read(info)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError) as exc:
            raise ArchiveError(
                detail=f"Failed to read archive: {exc}",
                hint="Provide a valid, unencrypted zip archive.",
            ) from exc
        return entries

    def write(self, entries: Iterable[ArchiveEntry]) -> bytes:
        """Return zip bytes containing `entries` in iteration order."""

        buffer = io.BytesIO()
        seen: set[str] = set()
        try:
            with zipfile.ZipFile(buffer, "w", compression=self._compression) as archive:
                for entry in entries:
                    if entry.name in seen:
                        raise ArchiveError(detail=f"Duplicate archive entry name `{entry.name}`.")
                    seen.add(entry.name)
                    info = zipfile.ZipInfo(entry.name, date_time=_FIXED_DATE_TIME)
                    info.compress_type = self._compression
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, entry.data)
        except (zipfile.LargeZipFile, OSError, ValueError) as exc:
            raise ArchiveError(detail=f"Failed to write archive: {exc}") from exc
        return buffer.getvalue()
