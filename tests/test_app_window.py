import json
from types import SimpleNamespace

import pytest

pytest.importorskip("PySide6.QtWebEngineWidgets")

from mediabridge import ipc
from mediabridge.app import ShellWindow, decode_handoff, encode_handoff


def fake_window():
    """Just the attributes the window-control handlers touch."""
    sent = []
    win = SimpleNamespace(
        _minimized=False,
        fullscreen=[],
        sent=sent,
    )
    win.send_event = sent.append
    win.set_fullscreen = win.fullscreen.append
    return win


class FakeFullScreenRequest:
    def __init__(self, on):
        self.on = on
        self.accepted = False

    def accept(self):
        self.accepted = True

    def toggleOn(self):
        return self.on


def test_page_fullscreen_request_is_accepted():
    win = fake_window()
    enter = FakeFullScreenRequest(True)
    leave = FakeFullScreenRequest(False)

    ShellWindow._on_fullscreen_requested(win, enter)
    ShellWindow._on_fullscreen_requested(win, leave)

    assert enter.accepted and leave.accepted
    assert win.fullscreen == [True, False]


def test_visibility_sent_only_when_minimized_state_flips():
    win = fake_window()

    ShellWindow._update_visibility(win, False)   # fullscreen / maximize
    ShellWindow._update_visibility(win, True)
    ShellWindow._update_visibility(win, True)
    ShellWindow._update_visibility(win, False)

    assert win.sent == [ipc.Visibility(False), ipc.Visibility(True)]


def test_handoff_carries_only_the_deeplink():
    payload = encode_handoff("stremio:///detail/movie/tt1")
    assert json.loads(payload) == {"deeplink": "stremio:///detail/movie/tt1"}
    assert decode_handoff(payload) == "stremio:///detail/movie/tt1"
    assert decode_handoff(encode_handoff("")) == ""


def test_handoff_ignores_unknown_and_unreadable_payloads(capsys):
    assert decode_handoff(b'{"deeplink": "file:///etc/passwd"}') == ""
    assert decode_handoff(b'["mediabridge", "stremio://x"]') == ""
    assert decode_handoff(b"\xff\xfe") == ""
    assert "unreadable handoff" in capsys.readouterr().out
