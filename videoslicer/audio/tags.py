"""Cover-art and text tag injection for MP3 and WAV audio.

Responsibilities:
- Write ID3 title/artist/album frames and one front-cover picture frame.
- Replace previously written frames so repeated tagging stays deterministic.
- Guarantee the audio payload outside the tag region is left byte-identical.
"""

from __future__ import annotations

from dataclasses import dataclass
import io

from mutagen import MutagenError
from mutagen.id3 import APIC, TALB, TIT2, TPE1, Encoding, PictureType
from mutagen.mp3 import MP3
from mutagen.wave import WAVE

from ..errors import TagInjectionError
from ..models.datatypes import TagFields

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_JPEG_SIGNATURE = b"\xff\xd8\xff"
_REPLACED_FRAME_IDS = ("TIT2", "TPE1", "TALB", "APIC")
_ID3_CHUNK_IDS = frozenset({b"id3 ", b"ID3 "})


@dataclass(frozen=True, slots=True)
class EmbeddedTags:
    """Tag values read back from a tagged audio buffer.

    Attributes:
        fields: Title, artist and album text (empty strings when absent).
        cover: Embedded front-cover image bytes, or `None`.
        cover_mime: MIME type declared by the picture frame.
    """

    fields: TagFields
    cover: bytes | None
    cover_mime: str | None


class CoverTagWriter:
    """Embed cover pictures and text fields into audio tag containers."""

    ID3_VERSION = 3

    def inject(
        self,
        audio: bytes,
        cover: bytes,
        fields: TagFields,
        *,
        audio_name: str | None = None,
        cover_name: str | None = None,
    ) -> bytes:
        """Return a copy of `audio` carrying the given text fields and cover."""

        if not audio:
            raise TagInjectionError(detail=f"Audio entry `{audio_name or '<bytes>'}` is empty.")
        if not cover:
            raise TagInjectionError(detail=f"Cover entry `{cover_name or '<bytes>'}` is empty.")

        buffer = io.BytesIO(audio)
        try:
            tagged_file = self._open(buffer, audio, audio_name)
            if tagged_file.tags is None:
                tagged_file.add_tags()
            tags = tagged_file.tags
            for frame_id in _REPLACED_FRAME_IDS:
                tags.delall(frame_id)
            tags.add(TIT2(encoding=Encoding.UTF8, text=[fields.title]))
            tags.add(TPE1(encoding=Encoding.UTF8, text=[fields.artist]))
            tags.add(TALB(encoding=Encoding.UTF8, text=[fields.album]))
            tags.add(
                APIC(
                    encoding=Encoding.UTF8,
                    mime=picture_mime(cover, cover_name),
                    type=PictureType.COVER_FRONT,
                    desc="Cover",
                    data=cover,
                )
            )
            # Loading leaves the buffer at EOF; saving must see the existing tag.
            buffer.seek(0)
            tagged_file.save(buffer, v2_version=self.ID3_VERSION)
        except (MutagenError, ValueError) as exc:
            raise TagInjectionError(
                detail=f"Failed to tag `{audio_name or '<bytes>'}`: {exc}",
                hint="Only MP3 and PCM WAV audio entries can carry embedded covers.",
            ) from exc

        tagged = buffer.getvalue()
        if audio_payload(tagged) != audio_payload(audio):
            raise TagInjectionError(
                detail=f"Tagging `{audio_name or '<bytes>'}` altered the audio payload.",
            )
        return tagged

    def read(self, audio: bytes, *, audio_name: str | None = None) -> EmbeddedTags:
        """Read text fields and the front cover back from a tagged buffer."""

        buffer = io.BytesIO(audio)
        try:
            tagged_file = self._open(buffer, audio, audio_name)
        except (MutagenError, ValueError) as exc:
            raise TagInjectionError(
                detail=f"Failed to read tags from `{audio_name or '<bytes>'}`: {exc}",
            ) from exc

        tags = tagged_file.tags
        if tags is None:
            return EmbeddedTags(fields=TagFields("", "", ""), cover=None, cover_mime=None)

        pictures = tags.getall("APIC")
        front = next(
            (picture for picture in pictures if picture.type == PictureType.COVER_FRONT),
            pictures[0] if pictures else None,
        )
        return EmbeddedTags(
            fields=TagFields(
                title=_first_text(tags, "TIT2"),
                artist=_first_text(tags, "TPE1"),
                album=_first_text(tags, "TALB"),
            ),
            cover=front.data if front is not None else None,
            cover_mime=front.mime if front is not None else None,
        )

    def _open(self, buffer: io.BytesIO, audio: bytes, audio_name: str | None) -> MP3 | WAVE:
        """Open the buffer with the mutagen file type matching its container."""

        if container_kind(audio, audio_name) == "wav":
            return WAVE(buffer)
        return MP3(buffer)


def container_kind(audio: bytes, audio_name: str | None = None) -> str:
    """Classify an audio buffer as `wav` or `mp3` from magic bytes, then name."""

    if audio[0:4] == b"RIFF" and audio[8:12] == b"WAVE":
        return "wav"
    if audio_name is not None and audio_name.lower().endswith(".wav"):
        return "wav"
    return "mp3"


def picture_mime(cover: bytes, cover_name: str | None = None) -> str:
    """Return the cover MIME type from its signature, falling back to its name."""

    if cover.startswith(_PNG_SIGNATURE):
        return "image/png"
    if cover.startswith(_JPEG_SIGNATURE):
        return "image/jpeg"
    if cover_name is not None and cover_name.lower().endswith(".png"):
        return "image/png"
    return "image/jpeg"


def audio_payload(audio: bytes) -> bytes:
    """Return the bytes of an audio buffer that lie outside any ID3 tag region.

    WAV: every RIFF chunk except `id3 ` chunks, without the RIFF size field.
    MP3: the stream without a leading ID3v2 block or a trailing ID3v1 block.
    """

    if audio[0:4] == b"RIFF" and audio[8:12] == b"WAVE":
        return _riff_payload(audio)
    return _mpeg_payload(audio)


def _riff_payload(audio: bytes) -> bytes:
    """Join all non-ID3 RIFF chunks in file order."""

    chunk_payload = audio[12:]
    kept: list[bytes] = []
    offset = 0
    while offset + 8 <= len(chunk_payload):
        chunk_id = chunk_payload[offset : offset + 4]
        chunk_size = int.from_bytes(chunk_payload[offset + 4 : offset + 8], "little")
        full_end = min(offset + 8 + chunk_size + (chunk_size % 2), len(chunk_payload))
        if chunk_id not in _ID3_CHUNK_IDS:
            kept.append(chunk_payload[offset:full_end])
        offset = full_end
    return b"".join(kept)


def _mpeg_payload(audio: bytes) -> bytes:
    """Strip a leading ID3v2 block and a trailing ID3v1 block."""

    start = 0
    if audio[0:3] == b"ID3" and len(audio) >= 10:
        size = 0
        for byte in audio[6:10]:
            size = (size << 7) | (byte & 0x7F)
        has_footer = bool(audio[5] & 0x10)
        start = 10 + size + (10 if has_footer else 0)
    end = len(audio)
    if end - start >= 128 and audio[end - 128 : end - 125] == b"TAG":
        end -= 128
    return audio[start:end]


def _first_text(tags: object, frame_id: str) -> str:
    """Return the first text value of an ID3 frame, or an empty string."""

    frames = tags.getall(frame_id)
    if not frames or not frames[0].text:
        return ""
    return str(frames[0].text[0])
