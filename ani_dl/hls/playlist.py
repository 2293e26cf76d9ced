"""
Parses HLS playlist text into master (variant) or media (segment) models and
selects the best variant of a master playlist.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import m3u8
from m3u8.parser import ParseError

from ani_dl.exceptions import InvalidPlaylistError, NoVariantsError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Variant:
    """One bitrate/resolution rendition listed by a master playlist."""

    uri: str
    bandwidth: int
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def resolution(self) -> str:
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return "unknown"


@dataclass(frozen=True)
class Segment:
    uri: str
    duration: float


@dataclass(frozen=True)
class MasterPlaylist:
    variants: tuple[Variant, ...]


@dataclass(frozen=True)
class MediaPlaylist:
    """Segments in playback order. The order is never changed after parsing."""

    segments: tuple[Segment, ...]

    @property
    def total_duration(self) -> float:
        return sum(segment.duration for segment in self.segments)

    def __len__(self) -> int:
        return len(self.segments)


Playlist = Union[MasterPlaylist, MediaPlaylist]


def parse_playlist(text: str) -> Playlist:
    """
    Parses raw playlist text.

    URIs are returned exactly as written in the playlist; relative URIs are
    resolved later against the playlist URL by the caller.

    Args:
        text: The body of a .m3u8 response.

    Returns:
        A MasterPlaylist when the text declares stream variants, otherwise a
        MediaPlaylist.

    Raises:
        InvalidPlaylistError: If the text is not an HLS playlist or lists neither
        variants nor segments.
    """
    text = (text or "").lstrip("\ufeff \t\r\n")
    if not text.startswith("#EXTM3U"):
        raise InvalidPlaylistError("Response is not an HLS playlist (missing #EXTM3U).")

    try:
        parsed = m3u8.loads(text)
    except (ParseError, ValueError) as e:
        raise InvalidPlaylistError(f"Could not parse playlist: {e}") from e

    if parsed.is_variant:
        variants = tuple(
            _to_variant(p) for p in parsed.playlists if p.uri and p.stream_info
        )
        if variants:
            return MasterPlaylist(variants=variants)

    segments = tuple(
        Segment(uri=s.uri, duration=float(s.duration or 0.0))
        for s in parsed.segments
        if s.uri
    )
    if not segments:
        raise InvalidPlaylistError("Playlist contains no variants and no segments.")

    if any(key and key.method and key.method.upper() != "NONE" for key in parsed.keys):
        log.warning(
            "[yellow]Media playlist is encrypted; segments will be saved as-is "
            "without decryption.[/yellow]"
        )

    return MediaPlaylist(segments=segments)


def _to_variant(playlist: m3u8.Playlist) -> Variant:
    info = playlist.stream_info
    width, height = info.resolution if info.resolution else (None, None)
    return Variant(
        uri=playlist.uri,
        bandwidth=int(info.bandwidth or 0),
        width=width,
        height=height,
    )


def select_best_variant(master: MasterPlaylist) -> Variant:
    """
    Returns the variant with the highest bandwidth. On ties the first variant in
    playlist order wins.
    """
    if not master.variants:
        raise NoVariantsError("Master playlist has no variants to choose from.")

    best = master.variants[0]
    for variant in master.variants[1:]:
        if variant.bandwidth > best.bandwidth:
            best = variant
    return best
