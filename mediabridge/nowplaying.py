"""
Now-playing state kept by the shell and published over MPRIS (mpris.py).

Artwork fields are sticky: an update that carries an empty poster, thumbnail
or logo keeps the last known value.  Title and artist are taken as sent.
"""

from dataclasses import dataclass
from typing import Optional

from mediabridge.ipc import MetadataUpdate


NO_TRACK_ID = "/org/mpris/MediaPlayer2/TrackList/NoTrack"


@dataclass
class NowPlaying:
    title: Optional[str] = None
    artist: Optional[str] = None
    poster: Optional[str] = None
    thumbnail: Optional[str] = None
    logo: Optional[str] = None
    rich_metadata_active: bool = False

    def update(self, event: MetadataUpdate):
        self.rich_metadata_active = True
        self.title = event.title
        self.artist = event.artist
        if event.poster:
            self.poster = event.poster
        if event.thumbnail:
            self.thumbnail = event.thumbnail
        if event.logo:
            self.logo = event.logo

    @property
    def art_url(self) -> Optional[str]:
        """Thumbnail first, then poster, then logo."""
        return self.thumbnail or self.poster or self.logo

    @property
    def playback_status(self) -> str:
        return "Playing" if self.rich_metadata_active else "Stopped"

    def mpris_metadata(self) -> dict:
        """The Metadata map published on org.mpris.MediaPlayer2.Player."""
        metadata = {"mpris:trackid": NO_TRACK_ID}
        if self.title:
            metadata["xesam:title"] = self.title
        if self.artist:
            metadata["xesam:artist"] = [self.artist]
        if self.art_url:
            metadata["mpris:artUrl"] = self.art_url
        return metadata

    def window_title(self, app_name: str) -> str:
        if self.title and self.artist and self.artist != self.title:
            return f"{self.title} - {self.artist}"
        if self.title:
            return self.title
        return app_name
