"""
MediaBridge: Shell IPC Protocol

What the shell does with the strings that come out of the transport, and what
it sends back.

Requests:   {"id": n, "type": 3}                       -> Init
            {"id": n, "type": 6, "args": [name, data]}  -> named event
Responses:  {"id": n, "type": 1|3, "object": "transport", "data"|"args": ...}

Unknown or malformed requests are logged and dropped (parse_request -> None).
"""

import json
from dataclasses import dataclass
from typing import Optional

from mediabridge import __version__


TRANSPORT_NAME = "transport"

TYPE_SIGNAL = 1
TYPE_INIT = 3
TYPE_INVOKE = 6


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Init:
    pass


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Fullscreen:
    on: bool


@dataclass(frozen=True)
class Visibility:
    visible: bool


@dataclass(frozen=True)
class OpenMedia:
    deeplink: str


@dataclass(frozen=True)
class MetadataUpdate:
    title: Optional[str] = None
    artist: Optional[str] = None
    poster: Optional[str] = None
    thumbnail: Optional[str] = None
    logo: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> "MetadataUpdate":
        def opt(key):
            v = data.get(key)
            return v if isinstance(v, str) else None
        return cls(
            title=opt("title"),
            artist=opt("artist"),
            poster=opt("poster"),
            thumbnail=opt("thumbnail"),
            logo=opt("logo"),
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

def _event_from_request(msg: dict):
    msg_type = msg.get("type")
    if msg_type == TYPE_INIT:
        return Init()
    if msg_type != TYPE_INVOKE:
        raise ValueError("Unknown type")

    args = msg.get("args")
    if not isinstance(args, list):
        raise ValueError("Missing args")
    name = args[0] if args else None
    if not isinstance(name, str):
        raise ValueError("Invalid name")

    if len(args) < 2:
        if name == "quit":
            return Quit()
        raise ValueError(f"Unknown method: {name}")

    data = args[1]
    if name == "app-ready":
        return Ready()
    if name == "win-set-visibility":
        if not isinstance(data, dict) or not isinstance(data.get("fullscreen"), bool):
            raise ValueError("Invalid win-set-visibility object")
        return Fullscreen(data["fullscreen"])
    if name == "metadata-update":
        if not isinstance(data, dict):
            raise ValueError("Invalid metadata-update object")
        return MetadataUpdate.from_json(data)
    raise ValueError(f"Unknown method: {name}")


def parse_request(data):
    """Parse one inbound transport message. Returns an event or None."""
    try:
        msg = json.loads(data) if isinstance(data, (str, bytes)) else data
        if not isinstance(msg, dict):
            raise ValueError("Not an object")
        return _event_from_request(msg)
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        print(f"[ipc] Failed to parse request: {e}")
        return None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def _signal(args) -> dict:
    return {"id": 1, "type": TYPE_SIGNAL, "object": TRANSPORT_NAME, "args": args}


def create_response(event) -> Optional[str]:
    """Serialize the shell's reply to ``event``; None when there is nothing to say."""
    if isinstance(event, Init):
        message = {
            "id": 0,
            "type": TYPE_INIT,
            "object": TRANSPORT_NAME,
            "data": {
                "transport": {
                    "properties": [[], ["", "shellVersion", "", __version__]],
                    "signals": [],
                    "methods": [["onEvent"]],
                },
            },
        }
    elif isinstance(event, Fullscreen):
        message = _signal(["win-visibility-changed", {
            "visible": True,
            "visibility": 1,
            "isFullscreen": event.on,
        }])
    elif isinstance(event, Visibility):
        message = _signal(["win-visibility-changed", {
            "visible": event.visible,
            "visibility": int(event.visible),
            "isFullscreen": False,
        }])
    elif isinstance(event, OpenMedia):
        message = _signal(["open-media", event.deeplink])
    else:
        return None
    return json.dumps(message)
