"""
MediaBridge: App Shell

Native shell around the hosted web app.
Creates a QMainWindow hosting one QWebEngineView with the IPC shim injected.

Handles:
  - App lifecycle, single-instance lock (QLocalServer)
  - Boot config (--url / --dev-tools / --poll-interval, MEDIABRIDGE_* env)
  - Bridge wiring (bridge.py) and shell-side IPC events (ipc.py)
  - Now-playing updates coming from the metadata reconciler
  - MPRIS media controls (mpris.py)
  - DevTools policy
"""

import argparse
import json
import os
import sys
from pathlib import Path

from PySide6.QtCore import Qt, QUrl, QTimer
from PySide6.QtGui import QIcon
from PySide6.QtNetwork import QLocalServer, QLocalSocket
from PySide6.QtWidgets import QApplication, QMainWindow
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWebEngineCore import QWebEnginePage, QWebEngineSettings

from mediabridge import bridge as bridge_module
from mediabridge import ipc
from mediabridge.mpris import MprisService
from mediabridge.nowplaying import NowPlaying

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

APP_NAME = "MediaBridge"
SOCKET_NAME = "MediaBridgeShell"
DEFAULT_URL = "https://web.stremio.com/"
DEEPLINK_SCHEMES = ("stremio://",)

_HERE = Path(__file__).resolve().parent
ICON_PATH = _HERE / "icon.png"


def find_deeplink(argv) -> str:
    """First argv entry that looks like something the web app can open."""
    for arg in argv or []:
        if isinstance(arg, str) and arg.startswith(DEEPLINK_SCHEMES):
            return arg
    return ""


# ---------------------------------------------------------------------------
# WebEngine page that logs tagged console messages
# ---------------------------------------------------------------------------

class ShellWebPage(QWebEnginePage):
    """Custom page to surface the shim's console output."""

    def javaScriptConsoleMessage(self, level, message, line, source):
        if "[mediabridge]" in message:
            print(message)


# ---------------------------------------------------------------------------
# Main Window
# ---------------------------------------------------------------------------

class ShellWindow(QMainWindow):
    """Single QWebEngineView plus the IPC bridge."""

    def __init__(self, url: str = DEFAULT_URL, dev_tools: bool = False,
                 poll_interval_ms: int = bridge_module.POLL_INTERVAL_MS):
        super().__init__()

        self.setWindowTitle(APP_NAME)
        self.setMinimumSize(800, 600)
        self.resize(1200, 800)
        self.setStyleSheet("background-color: #000000;")

        if ICON_PATH.exists():
            self.setWindowIcon(QIcon(str(ICON_PATH)))

        self.now_playing = NowPlaying()
        self._pending_deeplink = ""
        self._minimized = False

        self._web_view = QWebEngineView()
        self._web_page = ShellWebPage(self._web_view)
        self._web_view.setPage(self._web_page)

        settings = self._web_view.settings()
        settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalStorageEnabled, True)
        settings.setAttribute(QWebEngineSettings.WebAttribute.FullScreenSupportEnabled, True)
        self._web_page.fullScreenRequested.connect(self._on_fullscreen_requested)

        self.setCentralWidget(self._web_view)

        # --- IPC bridge ---
        self._bridge = bridge_module.setup_bridge(
            self._web_view, self.handle_message, poll_interval_ms
        )

        # --- MPRIS ---
        self._mpris = MprisService(
            self.now_playing, self.raise_window, self.close,
            identity=APP_NAME, uri_schemes=("stremio",), parent=self,
        )
        self._mpris.start()

        # --- DevTools ---
        self._dev_tools = dev_tools
        self._dev_tools_view: QWebEngineView | None = None

        self._url = url
        self._web_view.load(QUrl(url))
        self._web_view.loadFinished.connect(self._on_load_finished)

    def _on_load_finished(self, ok: bool):
        if not ok:
            print(f"[shell] Failed to load: {self._url}")
        self.show()

    # --- IPC ---

    def handle_message(self, data):
        """Receiver for everything the page posts through the transport."""
        event = ipc.parse_request(data)
        if event is None:
            return

        if isinstance(event, ipc.Init):
            self.send_event(event)
        elif isinstance(event, ipc.Ready):
            self.show()
            if self._pending_deeplink:
                self.open_media(self._pending_deeplink)
                self._pending_deeplink = ""
        elif isinstance(event, ipc.Fullscreen):
            self.set_fullscreen(event.on)
            self.send_event(event)
        elif isinstance(event, ipc.Quit):
            self.close()
        elif isinstance(event, ipc.MetadataUpdate):
            self.now_playing.update(event)
            self.setWindowTitle(self.now_playing.window_title(APP_NAME))
            self._mpris.publish()

    def send_event(self, event):
        response = ipc.create_response(event)
        if response is not None and getattr(self, "_bridge", None) is not None:
            self._bridge.send_to_page(response)

    def open_media(self, deeplink: str):
        self.send_event(ipc.OpenMedia(deeplink))

    def queue_deeplink(self, deeplink: str):
        """Deeplinks from argv wait for app-ready."""
        self._pending_deeplink = deeplink

    # --- DevTools ---

    def toggle_dev_tools(self):
        if not self._dev_tools:
            return
        if self._dev_tools_view is None:
            self._dev_tools_view = QWebEngineView()
            self._web_page.setDevToolsPage(self._dev_tools_view.page())
        if self._dev_tools_view.isVisible():
            self._dev_tools_view.hide()
        else:
            self._dev_tools_view.show()

    # --- Window controls ---

    def raise_window(self):
        if self.isMinimized():
            self.showNormal()
        self.show()
        self.activateWindow()
        self.raise_()

    def set_fullscreen(self, on: bool):
        if on:
            self.showFullScreen()
        else:
            self.showNormal()

    def _on_fullscreen_requested(self, request):
        """HTML5 fullscreen from the page (video player button, F key)."""
        request.accept()
        self.set_fullscreen(request.toggleOn())

    def changeEvent(self, event):
        super().changeEvent(event)
        if event.type() == event.Type.WindowStateChange:
            self._update_visibility(bool(self.windowState() & Qt.WindowState.WindowMinimized))

    def _update_visibility(self, minimized: bool):
        # Fullscreen and maximize changes are not visibility changes
        if minimized == self._minimized:
            return
        self._minimized = minimized
        self.send_event(ipc.Visibility(not minimized))

    def closeEvent(self, event):
        self._bridge.watcher.stop()
        self._mpris.stop()
        super().closeEvent(event)


# ---------------------------------------------------------------------------
# Single-instance lock via QLocalServer
# ---------------------------------------------------------------------------

class SingleInstanceGuard:
    """
    One shell per user session.

    A second launch hands its deeplink (or an empty string, meaning "just
    focus") to the running shell over the local socket and exits.
    """

    def __init__(self, name: str = SOCKET_NAME):
        self._name = name
        self._server: QLocalServer | None = None

    def try_lock(self, deeplink: str = "", on_handoff=None) -> bool:
        """True if this is the first instance; otherwise forwards ``deeplink``."""
        socket = QLocalSocket()
        socket.connectToServer(self._name)
        if socket.waitForConnected(500):
            socket.write(encode_handoff(deeplink))
            socket.waitForBytesWritten(1000)
            socket.disconnectFromServer()
            return False

        # Stale socket left by a crashed shell (Linux/macOS)
        QLocalServer.removeServer(self._name)

        self._server = QLocalServer()
        self._server.listen(self._name)
        if on_handoff:
            self._server.newConnection.connect(
                lambda: self._handle_connection(on_handoff)
            )
        return True

    def _handle_connection(self, callback):
        conn = self._server.nextPendingConnection() if self._server else None
        if not conn:
            return
        conn.waitForReadyRead(1000)
        data = conn.readAll().data()
        conn.disconnectFromServer()
        callback(decode_handoff(data))


def encode_handoff(deeplink: str) -> bytes:
    return json.dumps({"deeplink": deeplink or ""}).encode("utf-8")


def decode_handoff(data: bytes) -> str:
    """Deeplink sent by a second launch; '' for focus-only or unreadable payloads."""
    try:
        msg = json.loads(data.decode("utf-8"))
    except ValueError:
        print("[shell] Ignoring unreadable handoff from second instance")
        return ""
    deeplink = msg.get("deeplink") if isinstance(msg, dict) else None
    return find_deeplink([deeplink])


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="MediaBridge web app shell")
    parser.add_argument(
        "--url", dest="url", default="",
        help=f"Web app to host (default: {DEFAULT_URL})"
    )
    parser.add_argument(
        "--dev-tools", action="store_true", default=False,
        help="Enable DevTools (Ctrl+Shift+I / F12)"
    )
    parser.add_argument(
        "--poll-interval", dest="poll_interval", type=int, default=None,
        help="Metadata poll interval in ms (default: 2000)"
    )
    parser.add_argument(
        "links", nargs="*", default=[],
        help="Deeplinks to open (stremio://...)"
    )
    return parser.parse_known_args(argv)


def resolve_config(args, environ=None) -> dict:
    """Merge CLI args with MEDIABRIDGE_* environment overrides."""
    env = os.environ if environ is None else environ

    url = (args.url or env.get("MEDIABRIDGE_URL", "") or DEFAULT_URL).strip()
    dev_tools = args.dev_tools or env.get("MEDIABRIDGE_DEVTOOLS") == "1"

    poll_ms = args.poll_interval
    if poll_ms is None:
        try:
            poll_ms = int(env.get("MEDIABRIDGE_POLL_MS", ""))
        except ValueError:
            poll_ms = bridge_module.POLL_INTERVAL_MS
    poll_ms = max(bridge_module.MIN_POLL_INTERVAL_MS, poll_ms)

    return {
        "url": url,
        "dev_tools": dev_tools,
        "poll_interval_ms": poll_ms,
        "deeplink": find_deeplink(args.links),
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    args, _unknown = parse_args()
    config = resolve_config(args)

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_NAME)

    guard = SingleInstanceGuard()
    win = None

    def on_second_instance(deeplink):
        """Focus the existing window and open the forwarded deeplink."""
        if win is None:
            return
        win.raise_window()
        if deeplink:
            win.open_media(deeplink)

    if not guard.try_lock(config["deeplink"], on_second_instance):
        print("[shell] Another instance is running. Forwarded deeplink and exiting.")
        sys.exit(0)

    print(f"[shell] Hosting {config['url']} (poll {config['poll_interval_ms']}ms)")
    win = ShellWindow(
        url=config["url"],
        dev_tools=config["dev_tools"],
        poll_interval_ms=config["poll_interval_ms"],
    )
    if config["deeplink"]:
        win.queue_deeplink(config["deeplink"])

    if config["dev_tools"]:
        from PySide6.QtGui import QShortcut, QKeySequence
        QShortcut(QKeySequence("Ctrl+Shift+I"), win, win.toggle_dev_tools)
        QShortcut(QKeySequence("F12"), win, win.toggle_dev_tools)

    # Show even if the page never reports app-ready
    QTimer.singleShot(5000, win.show)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
