"""
MediaBridge: QWebChannel Bridge

Wires the transport shim and the metadata reconciler into a QWebEngineView.

Architecture:
  - IPC_SHIM_JS (transport.py) is injected before page load.  It grabs Qt's
    real webChannelTransport, opens a QWebChannel to the 'ipc' object below,
    then replaces window.qt / chrome.webview with the emulated transport the
    hosted app expects.
  - page -> shell:  window.ipc.postMessage -> IPC_RECEIVER -> IpcBridge.postMessage
                    -> IpcChannel.post_message -> shell receiver
  - shell -> page:  IpcChannel.deliver -> page forwarder -> runJavaScript(IPC_SENDER(...))
  - MetadataWatcher owns the ReconcilerContext and two QTimers:
      tick timer:   PAGE_PROBE_JS -> PageSnapshot -> MetadataReconciler.tick
      state timer:  STATE_PROBE_JS -> IpcBridge.playerState -> StateHook.poll
    The state timer is only started once the page exposes window.services.
"""

import json

from PySide6.QtCore import QObject, QTimer, Slot
from PySide6.QtWebChannel import QWebChannel
from PySide6.QtWebEngineWidgets import QWebEngineView

from mediabridge.models import ReconcilerContext
from mediabridge.reconciler import MetadataReconciler, StateHook
from mediabridge.sources import PAGE_PROBE_JS, STATE_PROBE_JS, PageSnapshot
from mediabridge.transport import IPC_SHIM_JS, IpcChannel


POLL_INTERVAL_MS = 2000
MIN_POLL_INTERVAL_MS = 250


# ---------------------------------------------------------------------------
# ipc: the only object registered on the QWebChannel
# ---------------------------------------------------------------------------

class IpcBridge(QObject):
    """Receives page -> shell traffic from IPC_SHIM_JS."""

    def __init__(self, channel: IpcChannel, parent=None):
        super().__init__(parent)
        self._channel = channel
        self._state_handler = None

    def setStateHandler(self, handler):
        self._state_handler = handler

    @Slot(str)
    def postMessage(self, data):
        self._channel.post_message(data)

    @Slot(str)
    def playerState(self, data):
        if self._state_handler is not None:
            self._state_handler(data)


# ---------------------------------------------------------------------------
# Metadata watcher
# ---------------------------------------------------------------------------

class MetadataWatcher(QObject):
    """
    Drives the reconciler from the page.

    Both timers run for the page's lifetime; ``stop`` exists for window
    teardown only.
    """

    def __init__(self, page, send, interval_ms: int = POLL_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._page = page
        interval_ms = max(MIN_POLL_INTERVAL_MS, int(interval_ms))

        self._send = send

        self._state_timer = QTimer(self)
        self._state_timer.setInterval(interval_ms)
        self._state_timer.timeout.connect(self._poll_state)

        self.reset()

        self._tick_timer = QTimer(self)
        self._tick_timer.setInterval(interval_ms)
        self._tick_timer.timeout.connect(self._tick)

    def reset(self):
        """Fresh context for a new page lifetime (load, reload, navigation)."""
        self._state_timer.stop()
        self.context = ReconcilerContext()
        self.hook = StateHook(self.context, self._state_timer.start)
        self.reconciler = MetadataReconciler(self.context, self.hook, self._send)

    def start(self):
        self._tick_timer.start()

    def stop(self):
        self._tick_timer.stop()
        self._state_timer.stop()

    # ── timers ──────────────────────────────────────────────────────────

    def _tick(self):
        try:
            self._page.runJavaScript(PAGE_PROBE_JS, 0, self.on_snapshot)
        except Exception as e:
            print(f"[metadata] Page probe failed: {e}")

    def _poll_state(self):
        try:
            self._page.runJavaScript(STATE_PROBE_JS, 0)
        except Exception:
            pass

    # ── probe results ───────────────────────────────────────────────────

    def on_snapshot(self, result):
        snapshot = PageSnapshot.from_json(result)
        if snapshot is None:
            return
        record = self.reconciler.tick(snapshot)
        if record is not None:
            print(f"[metadata] Now playing: {record.title!r} / {record.artist!r}")

    def on_player_state(self, data):
        self.hook.poll(data)


# ═══════════════════════════════════════════════════════════════════════════
# SETUP: called from app.py
# ═══════════════════════════════════════════════════════════════════════════

def _read_qrc_text(path: str) -> str:
    """Read a Qt resource file (qrc://) as UTF-8 text."""
    from PySide6.QtCore import QFile, QIODevice
    f = QFile(path)
    if f.open(QIODevice.OpenModeFlag.ReadOnly):
        data = bytes(f.readAll()).decode("utf-8", errors="replace")
        f.close()
        return data
    return ""


def page_forwarder(page):
    """Channel listener that hands shell -> page messages to IPC_SENDER."""
    def forward(message):
        data = message.get("data")
        page.runJavaScript(
            "try { globalThis.IPC_SENDER(" + json.dumps(data) + "); } catch(e) {}"
        )
    return forward


class Bridge:
    """What setup_bridge returns; app.py keeps it alive for the window's lifetime."""

    def __init__(self, channel, ipc, watcher, web_channel):
        self.channel = channel
        self.ipc = ipc
        self.watcher = watcher
        self._web_channel = web_channel

    def send_to_page(self, data: str):
        self.channel.deliver(data)


def setup_bridge(web_view: QWebEngineView, on_message, interval_ms: int = POLL_INTERVAL_MS) -> Bridge:
    """
    Wire up QWebChannel, the IPC shim and the metadata watcher on ``web_view``.

    ``on_message`` receives every string the page (or the reconciler) posts.
    Call this AFTER creating the QWebEngineView but BEFORE loading the page.
    """
    page = web_view.page()

    channel = IpcChannel(on_message)
    ipc = IpcBridge(channel)

    web_channel = QWebChannel()
    web_channel.registerObject("ipc", ipc)
    page.setWebChannel(web_channel)

    channel.add_event_listener("message", page_forwarder(page))

    # Inline qwebchannel.js with the shim so QWebChannel exists as soon as
    # the injected script runs.
    qwc_js = _read_qrc_text(":/qtwebchannel/qwebchannel.js")
    if not qwc_js:
        qwc_js = _read_qrc_text("qrc:///qtwebchannel/qwebchannel.js")
    if not qwc_js:
        print("[ipc] qwebchannel.js not found in Qt resources")

    # Keep newlines, flattening breaks // comments
    combined = qwc_js + "\n" + IPC_SHIM_JS if qwc_js else IPC_SHIM_JS

    from PySide6.QtWebEngineCore import QWebEngineScript
    script = QWebEngineScript()
    script.setName("mediabridge_ipc_shim")
    script.setSourceCode(combined)
    script.setInjectionPoint(QWebEngineScript.InjectionPoint.DocumentCreation)
    script.setWorldId(QWebEngineScript.ScriptWorldId.MainWorld)
    script.setRunsOnSubFrames(False)
    page.scripts().insert(script)

    watcher = MetadataWatcher(page, channel.post_message, interval_ms, parent=web_view)
    ipc.setStateHandler(watcher.on_player_state)
    page.loadStarted.connect(watcher.reset)
    watcher.start()

    return Bridge(channel, ipc, watcher, web_channel)
