import json

import pytest

pytest.importorskip("PySide6.QtWebEngineWidgets")

from mediabridge import bridge as bridge_module
from mediabridge.bridge import IpcBridge, MetadataWatcher, page_forwarder
from mediabridge.transport import IpcChannel


class FakePage:
    """Records runJavaScript calls instead of talking to Chromium."""

    def __init__(self):
        self.scripts_run = []

    def runJavaScript(self, source, world_id=0, callback=None):
        self.scripts_run.append(source)


def test_ipc_bridge_forwards_page_messages():
    sent = []
    ipc = IpcBridge(IpcChannel(sent.append))
    ipc.postMessage('{"type": 3}')
    assert sent == ['{"type": 3}']


def test_ipc_bridge_forwards_player_state():
    states = []
    ipc = IpcBridge(IpcChannel())
    ipc.playerState("{}")  # no handler yet
    ipc.setStateHandler(states.append)
    ipc.playerState('{"metaItem": {}}')
    assert states == ['{"metaItem": {}}']


def test_page_forwarder_calls_ipc_sender():
    page = FakePage()
    channel = IpcChannel()
    channel.add_event_listener("message", page_forwarder(page))
    channel.deliver('{"id": 0}')
    assert page.scripts_run == ['try { globalThis.IPC_SENDER("{\\"id\\": 0}"); } catch(e) {}']


def test_watcher_sends_on_change_and_hooks_services(qt_core_app):
    sent = []
    watcher = MetadataWatcher(FakePage(), sent.append, interval_ms=1000)

    watcher.on_snapshot({"documentTitle": "Movie", "hasServices": True})
    watcher.on_snapshot({"documentTitle": "Movie", "hasServices": True})

    assert len(sent) == 1
    assert json.loads(sent[0])["args"][1]["title"] == "Movie"
    assert watcher.context.hooked
    assert watcher._state_timer.isActive()
    watcher.stop()


def test_watcher_player_state_feeds_next_tick(qt_core_app):
    sent = []
    watcher = MetadataWatcher(FakePage(), sent.append, interval_ms=1000)
    watcher.on_player_state(json.dumps({"metaItem": {"name": "Show", "background": "https://img/bg.jpg"}}))
    watcher.on_snapshot({"documentTitle": "Stremio"})

    payload = json.loads(sent[-1])["args"][1]
    assert payload["artist"] == "Show"
    assert payload["poster"] == payload["thumbnail"] == "https://img/bg.jpg"
    watcher.stop()


def test_watcher_reset_starts_a_new_page_lifetime(qt_core_app):
    sent = []
    watcher = MetadataWatcher(FakePage(), sent.append, interval_ms=1000)
    watcher.on_snapshot({"documentTitle": "Movie", "hasServices": True})
    watcher.reset()

    assert not watcher.context.hooked
    assert not watcher._state_timer.isActive()
    watcher.on_snapshot({"documentTitle": "Movie"})
    assert len(sent) == 2
    watcher.stop()


def test_watcher_tick_runs_page_probe(qt_core_app):
    page = FakePage()
    watcher = MetadataWatcher(page, lambda data: None, interval_ms=10)
    watcher._tick()
    watcher._poll_state()
    assert page.scripts_run == [bridge_module.PAGE_PROBE_JS, bridge_module.STATE_PROBE_JS]
    watcher.stop()


def test_watcher_skips_failed_page_read(qt_core_app):
    sent = []
    watcher = MetadataWatcher(FakePage(), sent.append, interval_ms=1000)

    watcher.on_snapshot({"documentTitle": "Movie"})
    watcher.on_snapshot(None)
    watcher.on_snapshot({"documentTitle": "Movie"})

    assert [json.loads(s)["args"][1]["title"] for s in sent] == ["Movie"]
    assert watcher.context.last_notified.title == "Movie"
    watcher.stop()
