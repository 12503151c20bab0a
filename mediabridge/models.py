"""
MediaBridge: Data Model

Plain dataclasses shared by the reconciler, the page probes and the shell.

PlayerState / MetaItem / Video mirror the hosted app's internal
``services.core.transport.getState('player')`` snapshot.  Every nested
field is optional; ``from_json`` uses presence tests and returns None
(or an empty value) instead of raising on unexpected shapes.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Optional


def _p(s):
    """Parse a JSON string to a dict. Returns {} on failure."""
    if not s:
        return {}
    if isinstance(s, dict):
        return s
    try:
        result = json.loads(s)
        return result if isinstance(result, dict) else {}
    except Exception:
        return {}


def _str(value) -> str:
    """Coerce a JS value to a string field. null/undefined/non-strings -> ''."""
    return value if isinstance(value, str) else ""


def _int(value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


# ---------------------------------------------------------------------------
# Canonical output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetadataRecord:
    """Now-playing metadata. An empty field means "unknown", not "no media"."""

    title: str = ""
    artist: str = ""
    poster: str = ""
    logo: str = ""

    def dedup_key(self) -> tuple:
        # artist is not part of the key
        return (self.title, self.poster, self.logo)

    def to_payload(self) -> dict:
        return {
            "title": self.title,
            "artist": self.artist,
            "poster": self.poster,
            "thumbnail": self.poster,
            "logo": self.logo,
        }


@dataclass
class InternalPlayerState:
    """Snapshot derived from the hosted app's internal player state."""

    event_name: Optional[str] = None
    series_name: str = ""
    episode_title: str = ""
    artwork_url: str = ""
    logo_url: str = ""

    def is_empty(self) -> bool:
        return not (self.series_name or self.episode_title
                    or self.artwork_url or self.logo_url)

    def copy(self) -> "InternalPlayerState":
        return replace(self)


@dataclass
class ReconcilerContext:
    """
    All mutable reconciler state for one page lifetime.

    Built once by whoever schedules the timers and handed to both the
    state hook and the reconciler.  Nothing else reads or writes it.
    """

    last_notified: MetadataRecord = field(default_factory=MetadataRecord)
    internal: InternalPlayerState = field(default_factory=InternalPlayerState)
    hooked: bool = False


# ---------------------------------------------------------------------------
# Internal player state (getState('player'))
# ---------------------------------------------------------------------------

@dataclass
class Video:
    id: str = ""
    title: str = ""
    thumbnail: str = ""
    thumbnail_url: str = ""
    season: int = 0
    episode: int = 0

    @classmethod
    def from_json(cls, raw) -> Optional["Video"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            id=_str(raw.get("id")),
            title=_str(raw.get("title")),
            thumbnail=_str(raw.get("thumbnail")),
            thumbnail_url=_str(raw.get("thumbnailUrl")),
            season=_int(raw.get("season")),
            episode=_int(raw.get("episode")),
        )


@dataclass
class MetaItem:
    name: str = ""
    background: str = ""
    logo: str = ""
    videos: list = field(default_factory=list)

    @classmethod
    def from_json(cls, raw) -> Optional["MetaItem"]:
        if not isinstance(raw, dict):
            return None
        videos = []
        raw_videos = raw.get("videos")
        if isinstance(raw_videos, list):
            for v in raw_videos:
                video = Video.from_json(v)
                if video is not None:
                    videos.append(video)
        return cls(
            name=_str(raw.get("name")),
            background=_str(raw.get("background")),
            logo=_str(raw.get("logo")),
            videos=videos,
        )

    def find_video(self, video_id: str) -> Optional[Video]:
        for v in self.videos:
            if v.id == video_id:
                return v
        return None


@dataclass
class PlayerState:
    event_name: Optional[str] = None
    meta_item: Optional[MetaItem] = None
    selected_video_id: Optional[str] = None

    @classmethod
    def from_json(cls, raw: Any) -> Optional["PlayerState"]:
        """
        Parse a player state dict (or its JSON text).

        Shape: ``{event: {name}, metaItem: {...}, selected: {streamRequest:
        {path: {id}}}}``.  Returns None when nothing usable was sent.
        """
        data = _p(raw)
        if not data:
            return None

        event_name = None
        event = data.get("event")
        if isinstance(event, dict) and isinstance(event.get("name"), str):
            event_name = event["name"]

        selected_video_id = None
        selected = data.get("selected")
        if isinstance(selected, dict):
            stream_request = selected.get("streamRequest")
            if isinstance(stream_request, dict):
                path = stream_request.get("path")
                if isinstance(path, dict) and isinstance(path.get("id"), str):
                    selected_video_id = path["id"]

        return cls(
            event_name=event_name,
            meta_item=MetaItem.from_json(data.get("metaItem")),
            selected_video_id=selected_video_id,
        )


# ---------------------------------------------------------------------------
# navigator.mediaSession.metadata
# ---------------------------------------------------------------------------

@dataclass
class MediaSessionMetadata:
    title: str = ""
    artist: str = ""
    artwork: list = field(default_factory=list)   # artwork src URLs, in order

    @classmethod
    def from_json(cls, raw) -> Optional["MediaSessionMetadata"]:
        if not isinstance(raw, dict):
            return None
        artwork = []
        raw_artwork = raw.get("artwork")
        if isinstance(raw_artwork, list):
            for a in raw_artwork:
                if isinstance(a, dict):
                    artwork.append(_str(a.get("src")))
                elif isinstance(a, str):
                    artwork.append(a)
        return cls(
            title=_str(raw.get("title")),
            artist=_str(raw.get("artist")),
            artwork=artwork,
        )
