"""
MediaBridge: MPRIS Publisher

Exposes NowPlaying on the session bus so desktop media widgets (GNOME,
KDE, playerctl) show what the hosted app is playing:

  org.mpris.MediaPlayer2          Raise / Quit, identity
  org.mpris.MediaPlayer2.Player   PlaybackStatus, Metadata (read-only)

The shell has no player of its own, so CanControl is False and no transport
methods are exported.  Without a session bus (Windows, macOS, CI) ``start``
logs and returns False; ``publish`` is then a no-op.
"""

from PySide6.QtCore import ClassInfo, Property, QObject, Slot
from PySide6.QtDBus import QDBusAbstractAdaptor, QDBusConnection, QDBusMessage


SERVICE_NAME = "org.mpris.MediaPlayer2.mediabridge"
OBJECT_PATH = "/org/mpris/MediaPlayer2"
ROOT_INTERFACE = "org.mpris.MediaPlayer2"
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"


@ClassInfo(**{"D-Bus Interface": ROOT_INTERFACE})
class MprisRootAdaptor(QDBusAbstractAdaptor):

    def __init__(self, service):
        super().__init__(service)
        self._service = service

    @Slot()
    def Raise(self):
        self._service.on_raise()

    @Slot()
    def Quit(self):
        self._service.on_quit()

    def _true(self):
        return True

    def _false(self):
        return False

    def _identity(self):
        return self._service.identity

    def _desktop_entry(self):
        return self._service.identity.lower()

    def _uri_schemes(self):
        return list(self._service.uri_schemes)

    def _mime_types(self):
        return []

    CanQuit = Property(bool, _true)
    CanRaise = Property(bool, _true)
    HasTrackList = Property(bool, _false)
    Identity = Property(str, _identity)
    DesktopEntry = Property(str, _desktop_entry)
    SupportedUriSchemes = Property("QStringList", _uri_schemes)
    SupportedMimeTypes = Property("QStringList", _mime_types)


@ClassInfo(**{"D-Bus Interface": PLAYER_INTERFACE})
class MprisPlayerAdaptor(QDBusAbstractAdaptor):

    def __init__(self, service):
        super().__init__(service)
        self._service = service

    def _playback_status(self):
        return self._service.now_playing.playback_status

    def _metadata(self):
        return self._service.now_playing.mpris_metadata()

    def _rate(self):
        return 1.0

    def _false(self):
        return False

    PlaybackStatus = Property(str, _playback_status)
    Metadata = Property("QVariantMap", _metadata)
    Rate = Property(float, _rate)
    MinimumRate = Property(float, _rate)
    MaximumRate = Property(float, _rate)
    CanControl = Property(bool, _false)
    CanPlay = Property(bool, _false)
    CanPause = Property(bool, _false)
    CanSeek = Property(bool, _false)
    CanGoNext = Property(bool, _false)
    CanGoPrevious = Property(bool, _false)


class MprisService(QObject):
    """Owns both adaptors; the shell calls ``publish`` after every NowPlaying update."""

    def __init__(self, now_playing, on_raise, on_quit, identity: str,
                 uri_schemes=(), parent=None):
        super().__init__(parent)
        self.now_playing = now_playing
        self.on_raise = on_raise
        self.on_quit = on_quit
        self.identity = identity
        self.uri_schemes = tuple(uri_schemes)

        self.root = MprisRootAdaptor(self)
        self.player = MprisPlayerAdaptor(self)
        self._bus = None

    @property
    def registered(self) -> bool:
        return self._bus is not None

    def start(self, bus=None) -> bool:
        bus = bus if bus is not None else QDBusConnection.sessionBus()
        if not bus.isConnected():
            print("[mpris] No session bus, media controls disabled")
            return False
        if not bus.registerService(SERVICE_NAME):
            print(f"[mpris] Could not claim {SERVICE_NAME}")
            return False
        if not bus.registerObject(OBJECT_PATH, self):
            print(f"[mpris] Could not register {OBJECT_PATH}")
            bus.unregisterService(SERVICE_NAME)
            return False
        self._bus = bus
        print(f"[mpris] Registered as {SERVICE_NAME}")
        return True

    def publish(self) -> bool:
        """Emit PropertiesChanged for the player interface. False when not registered."""
        if self._bus is None:
            return False
        changed = {
            "PlaybackStatus": self.now_playing.playback_status,
            "Metadata": self.now_playing.mpris_metadata(),
        }
        message = QDBusMessage.createSignal(OBJECT_PATH, PROPERTIES_INTERFACE, "PropertiesChanged")
        message.setArguments([PLAYER_INTERFACE, changed, []])
        return self._bus.send(message)

    def stop(self):
        if self._bus is None:
            return
        self._bus.unregisterObject(OBJECT_PATH)
        self._bus.unregisterService(SERVICE_NAME)
        self._bus = None
