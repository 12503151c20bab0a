import pytest

pytest.importorskip("PySide6.QtWebEngineWidgets")

from mediabridge.app import DEFAULT_URL, find_deeplink, parse_args, resolve_config


def test_defaults():
    args, _ = parse_args([])
    config = resolve_config(args, environ={})
    assert config == {
        "url": DEFAULT_URL,
        "dev_tools": False,
        "poll_interval_ms": 2000,
        "deeplink": "",
    }


def test_env_overrides():
    args, _ = parse_args([])
    config = resolve_config(args, environ={
        "MEDIABRIDGE_URL": "http://localhost:8080/",
        "MEDIABRIDGE_DEVTOOLS": "1",
        "MEDIABRIDGE_POLL_MS": "500",
    })
    assert config["url"] == "http://localhost:8080/"
    assert config["dev_tools"] is True
    assert config["poll_interval_ms"] == 500


def test_cli_beats_env_and_interval_is_clamped():
    args, _ = parse_args(["--url", "http://cli/", "--poll-interval", "10"])
    config = resolve_config(args, environ={"MEDIABRIDGE_URL": "http://env/"})
    assert config["url"] == "http://cli/"
    assert config["poll_interval_ms"] == 250


def test_bad_env_interval_falls_back():
    args, _ = parse_args([])
    assert resolve_config(args, environ={"MEDIABRIDGE_POLL_MS": "fast"})["poll_interval_ms"] == 2000


def test_deeplink_from_argv():
    args, _ = parse_args(["stremio:///detail/movie/tt1"])
    assert resolve_config(args, environ={})["deeplink"] == "stremio:///detail/movie/tt1"
    assert find_deeplink(["--foo", "file.txt"]) == ""
