"""
MediaBridge: Metadata Reconciler

Turns whatever the page exposes into one MetadataRecord and tells the shell
when it changes.

Source precedence per tick:
  1. internal player state (StateHook, refreshed on its own timer)
  2. navigator.mediaSession.metadata  (its title always wins when present)
  3. DOM selectors, only for fields still empty

The state hook and the tick run on separate timers, so the internal state a
tick sees can be up to one poll interval old.  That is expected.
"""

import json
import time

from mediabridge.models import (
    InternalPlayerState,
    MetadataRecord,
    PlayerState,
    ReconcilerContext,
)
from mediabridge.sources import (
    LOGO_SELECTORS,
    POSTER_SELECTORS,
    TITLE_SELECTORS,
    PageSnapshot,
    first_image,
    first_text,
)


VIDEO_CHANGED_EVENT = "video-changed"
METADATA_UPDATE_EVENT = "metadata-update"
MESSAGE_TYPE_INVOKE = 6
PLACEHOLDER_TITLE = "stremio"


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Internal state derivation
# ---------------------------------------------------------------------------

def episode_title(series_name, video) -> str:
    """
    "<s>x<e> <title>" when the video has a title (prefix skipped if already
    there), "<series> (<s>x<e>)" when it has only numbers, else the bare title.
    """
    has_numbers = bool(video.season and video.episode)
    if video.title:
        title = video.title
        if has_numbers and f"{video.season}x" not in title:
            title = f"{video.season}x{video.episode} {title}"
        return title
    if has_numbers:
        return f"{series_name} ({video.season}x{video.episode})"
    return ""


def derive_internal_state(state: PlayerState, previous: InternalPlayerState) -> InternalPlayerState:
    """Apply one player state poll on top of ``previous``. Does not mutate it."""
    internal = previous.copy()

    if state.event_name == VIDEO_CHANGED_EVENT:
        internal = InternalPlayerState(event_name=state.event_name)

    meta = state.meta_item
    if meta is None:
        return internal

    series_name = meta.name
    ep_title = ""
    art = ""

    if state.selected_video_id is not None:
        video = meta.find_video(state.selected_video_id)
        if video is not None:
            art = video.thumbnail or video.thumbnail_url
            ep_title = episode_title(series_name, video)

    if not art:
        art = meta.background or meta.logo

    if meta.logo:
        internal.logo_url = meta.logo

    internal.event_name = state.event_name
    internal.episode_title = ep_title
    internal.series_name = series_name
    internal.artwork_url = art
    return internal


class StateHook:
    """
    Internal player state poller.

    ``try_attach`` is called every reconciliation tick; the first time the
    page reports its internal services it starts the poll timer through
    ``start_timer`` and never does so again.
    """

    def __init__(self, context: ReconcilerContext, start_timer):
        self._ctx = context
        self._start_timer = start_timer

    def try_attach(self, has_services: bool) -> bool:
        if self._ctx.hooked or not has_services:
            return False
        try:
            self._start_timer()
        except Exception as e:
            print(f"[metadata] Failed to hook services: {e}")
            return False
        self._ctx.hooked = True
        return True

    def poll(self, raw_state) -> bool:
        """Fold one getState('player') result into the context. False if ignored."""
        try:
            state = PlayerState.from_json(raw_state)
            if state is None:
                return False
            self._ctx.internal = derive_internal_state(state, self._ctx.internal)
            return True
        except Exception:
            return False


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------

def reconcile(snapshot: PageSnapshot, internal: InternalPlayerState) -> MetadataRecord:
    """Merge all sources into a candidate record."""
    title = snapshot.document_title
    artist = ""
    poster = ""
    logo = ""

    # Source 1: internal state
    if internal.artwork_url:
        poster = internal.artwork_url
    if internal.episode_title:
        title = internal.episode_title
    if internal.series_name:
        artist = internal.series_name
    if internal.logo_url:
        logo = internal.logo_url

    # Source 2: media session
    session = snapshot.media_session
    if session is not None:
        if not poster and session.artwork:
            poster = session.artwork[0]
        if not artist and session.artist:
            artist = session.artist
        if session.title:
            title = session.title

    # Source 3: DOM fallback
    if not title or title.strip().lower() == PLACEHOLDER_TITLE:
        title = first_text(snapshot, TITLE_SELECTORS) or title
    if not poster:
        poster = first_image(snapshot, POSTER_SELECTORS)
    if not logo:
        logo = first_image(snapshot, LOGO_SELECTORS)

    return MetadataRecord(title=title, artist=artist, poster=poster, logo=logo)


def build_notification(record: MetadataRecord, message_id=None) -> str:
    """Serialize the metadata-update message the shell expects."""
    return json.dumps({
        "id": _now_ms() if message_id is None else message_id,
        "type": MESSAGE_TYPE_INVOKE,
        "args": [METADATA_UPDATE_EVENT, record.to_payload()],
    })


class MetadataReconciler:
    """Runs one reconciliation per ``tick`` and sends through ``send`` on change."""

    def __init__(self, context: ReconcilerContext, hook: StateHook, send, clock=_now_ms):
        self._ctx = context
        self._hook = hook
        self._send = send
        self._clock = clock

    @property
    def last_notified(self) -> MetadataRecord:
        return self._ctx.last_notified

    def tick(self, snapshot: PageSnapshot):
        """Returns the record that was sent, or None when nothing changed."""
        self._hook.try_attach(snapshot.has_services)

        candidate = reconcile(snapshot, self._ctx.internal)
        if candidate.dedup_key() == self._ctx.last_notified.dedup_key():
            return None

        self._ctx.last_notified = candidate
        self._send(build_notification(candidate, self._clock()))
        return candidate
