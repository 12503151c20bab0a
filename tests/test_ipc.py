import json

from mediabridge import __version__, ipc
from mediabridge.nowplaying import NO_TRACK_ID, NowPlaying
from mediabridge.reconciler import build_notification
from mediabridge.models import MetadataRecord


def test_parse_init():
    assert ipc.parse_request('{"id": 0, "type": 3}') == ipc.Init()


def test_parse_named_events():
    assert ipc.parse_request({"type": 6, "args": ["app-ready", {}]}) == ipc.Ready()
    assert ipc.parse_request({"type": 6, "args": ["quit"]}) == ipc.Quit()
    assert ipc.parse_request(
        {"type": 6, "args": ["win-set-visibility", {"fullscreen": True}]}
    ) == ipc.Fullscreen(True)


def test_parse_metadata_update_from_reconciler_message():
    record = MetadataRecord(title="Ep", artist="Show", poster="https://img/p.jpg")
    event = ipc.parse_request(build_notification(record, 1))
    assert event == ipc.MetadataUpdate(
        title="Ep", artist="Show", poster="https://img/p.jpg",
        thumbnail="https://img/p.jpg", logo="",
    )


def test_parse_rejects_bad_requests(capsys):
    assert ipc.parse_request("{not json") is None
    assert ipc.parse_request('{"type": 9}') is None
    assert ipc.parse_request({"type": 6}) is None
    assert ipc.parse_request({"type": 6, "args": ["nope", {}]}) is None
    assert ipc.parse_request({"type": 6, "args": ["win-set-visibility", {}]}) is None
    assert ipc.parse_request("[]") is None
    assert "[ipc] Failed to parse request" in capsys.readouterr().out


def test_init_response():
    message = json.loads(ipc.create_response(ipc.Init()))
    assert message["id"] == 0
    assert message["type"] == 3
    assert message["object"] == "transport"
    assert message["data"]["transport"]["properties"][1] == ["", "shellVersion", "", __version__]


def test_signal_responses():
    fullscreen = json.loads(ipc.create_response(ipc.Fullscreen(True)))
    assert fullscreen["args"] == ["win-visibility-changed",
                                  {"visible": True, "visibility": 1, "isFullscreen": True}]

    hidden = json.loads(ipc.create_response(ipc.Visibility(False)))
    assert hidden["args"][1] == {"visible": False, "visibility": 0, "isFullscreen": False}

    open_media = json.loads(ipc.create_response(ipc.OpenMedia("stremio:///detail/series/tt1")))
    assert open_media["type"] == 1
    assert open_media["args"] == ["open-media", "stremio:///detail/series/tt1"]


def test_events_without_response():
    assert ipc.create_response(ipc.Ready()) is None
    assert ipc.create_response(ipc.MetadataUpdate(title="x")) is None


def test_now_playing_keeps_known_artwork():
    now = NowPlaying()
    now.update(ipc.MetadataUpdate(title="Ep", artist="Show", poster="p1", thumbnail="p1", logo="l1"))
    now.update(ipc.MetadataUpdate(title="Ep 2", artist="Show", poster="", thumbnail="", logo=None))

    assert now.rich_metadata_active
    assert now.title == "Ep 2"
    assert (now.poster, now.thumbnail, now.logo) == ("p1", "p1", "l1")
    assert now.art_url == "p1"


def test_now_playing_window_title():
    now = NowPlaying()
    assert now.window_title("App") == "App"
    now.update(ipc.MetadataUpdate(title="Ep", artist="Show"))
    assert now.window_title("App") == "Ep - Show"
    now.update(ipc.MetadataUpdate(title="Movie", artist=""))
    assert now.window_title("App") == "Movie"


def test_now_playing_mpris_metadata_prefers_thumbnail():
    now = NowPlaying()
    assert now.playback_status == "Stopped"
    assert now.mpris_metadata() == {"mpris:trackid": NO_TRACK_ID}

    now.update(ipc.MetadataUpdate(title="Ep", artist="Show", poster="p", thumbnail="t", logo="l"))
    assert now.playback_status == "Playing"
    assert now.mpris_metadata() == {
        "mpris:trackid": NO_TRACK_ID,
        "xesam:title": "Ep",
        "xesam:artist": ["Show"],
        "mpris:artUrl": "t",
    }


def test_now_playing_mpris_art_falls_back_to_poster_then_logo():
    now = NowPlaying()
    now.update(ipc.MetadataUpdate(title="Movie", logo="l"))
    assert now.mpris_metadata()["mpris:artUrl"] == "l"
    now.update(ipc.MetadataUpdate(title="Movie", poster="p"))
    assert now.mpris_metadata()["mpris:artUrl"] == "p"
    assert "xesam:artist" not in now.mpris_metadata()
