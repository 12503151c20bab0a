"""MediaBridge: embedded web view IPC shim and now-playing metadata bridge."""

__version__ = "0.1.0"
