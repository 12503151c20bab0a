"""
MediaBridge: Transport Shim

Presents a uniform postMessage / addEventListener('message') channel on top of
a pair of host primitives:

  - receiver:  outbound delivery, called with every payload the page sends
  - deliver(): inbound entry point the host calls; fans out to subscribers

The same three operations are also reachable under two legacy shapes so code
written against either host keeps working:

  channel.qt.webChannelTransport.send(data)
  channel.chrome.webview.postMessage / addEventListener / removeEventListener

IPC_SHIM_JS is the page-side twin of IpcChannel.  It is injected at
DocumentCreation (see bridge.setup_bridge) and routes IPC_RECEIVER through
the QWebChannel 'ipc' object back into Python.
"""

from types import SimpleNamespace


MESSAGE_EVENT = "message"


class UnsupportedEventKind(ValueError):
    """Raised when (un)subscribing for anything other than 'message'."""

    def __init__(self, name):
        super().__init__(f"Unsupported event: {name!r}")
        self.name = name


class IpcChannel:
    """
    Bidirectional message channel.

    Handlers are called synchronously, in registration order, on whatever
    thread calls ``deliver``.  ``post_message`` is fire-and-forget: no queue,
    no return value.
    """

    def __init__(self, receiver=None):
        self._receiver = receiver
        self._listeners = []

        # Backward compatibility
        self.qt = SimpleNamespace(
            webChannelTransport=SimpleNamespace(send=self.post_message),
        )
        self.chrome = SimpleNamespace(
            webview=SimpleNamespace(
                postMessage=self.post_message,
                addEventListener=self.add_event_listener,
                removeEventListener=self.remove_event_listener,
            ),
        )

    # --- page -> host ---

    def post_message(self, data):
        if self._receiver is None:
            print("[ipc] No receiver attached, dropping message")
            return
        self._receiver(data)

    send = post_message

    # --- host -> page ---

    def deliver(self, data):
        """Host entry point (IPC_SENDER). Every current listener gets {'data': data}."""
        for listener in list(self._listeners):
            listener({"data": data})

    # --- listeners ---

    def add_event_listener(self, name, listener):
        if name != MESSAGE_EVENT:
            raise UnsupportedEventKind(name)
        self._listeners.append(listener)

    def remove_event_listener(self, name, listener):
        if name != MESSAGE_EVENT:
            raise UnsupportedEventKind(name)
        self._listeners = [it for it in self._listeners if it is not listener]

    subscribe = add_event_listener
    unsubscribe = remove_event_listener

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


# ═══════════════════════════════════════════════════════════════════════════
# JS SHIM: injected into QWebEngineView before page load
#
# The real Qt transport is captured first, used for our own QWebChannel to
# Python, and then replaced by the emulated one the hosted app expects.
# ═══════════════════════════════════════════════════════════════════════════

IPC_SHIM_JS = r"""
(function() {
  var nativeTransport = window.qt && window.qt.webChannelTransport;
  var pending = [];
  var host = null;

  if (nativeTransport && typeof QWebChannel !== 'undefined') {
    new QWebChannel(nativeTransport, function(channel) {
      host = channel.objects.ipc;
      window.__mediabridgeHost = host;
      for (var i = 0; i < pending.length; i++) host.postMessage(pending[i]);
      pending = [];
      console.log('[mediabridge] host channel ready');
    });
  } else {
    console.log('[mediabridge] native transport missing, outbound messages will queue');
  }

  globalThis.IPC_RECEIVER = function(data) {
    var s = (typeof data === 'string') ? data : JSON.stringify(data);
    if (host) host.postMessage(s); else pending.push(s);
  };

  var createIpc = function() {
    var listeners = [];

    globalThis.IPC_SENDER = function(data) {
      listeners.slice().forEach(function(listener) {
        listener({ data: data });
      });
    };

    return {
      postMessage: function(data) {
        globalThis.IPC_RECEIVER(data);
      },
      addEventListener: function(name, listener) {
        if (name !== 'message') throw Error('Unsupported event');
        listeners.push(listener);
      },
      removeEventListener: function(name, listener) {
        if (name !== 'message') throw Error('Unsupported event');
        listeners = listeners.filter(function(it) { return it !== listener; });
      }
    };
  };

  window.ipc = createIpc();

  // Backward compatibility
  window.qt = {
    webChannelTransport: {
      send: window.ipc.postMessage
    }
  };

  globalThis.chrome = globalThis.chrome || {};
  globalThis.chrome.webview = {
    postMessage: window.ipc.postMessage,
    addEventListener: function(name, listener) {
      window.ipc.addEventListener(name, listener);
    },
    removeEventListener: function(name, listener) {
      window.ipc.removeEventListener(name, listener);
    }
  };

  window.ipc.addEventListener('message', function(message) {
    var t = window.qt.webChannelTransport;
    if (typeof t.onmessage === 'function') t.onmessage(message);
  });

  console.log('[mediabridge] IPC script injected');
})();
"""
