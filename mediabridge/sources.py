"""
MediaBridge: Page Sources

The reconciler never touches the DOM directly.  Each tick the watcher runs
PAGE_PROBE_JS in the page and hands the returned object to
``PageSnapshot.from_json``; the internal player state is sampled the same way
by STATE_PROBE_JS, which reports back through the ``ipc.playerState`` slot
because ``getState()`` is async and runJavaScript() cannot await it.

Selector order matters: the first hit wins.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from mediabridge.models import MediaSessionMetadata, _p, _str


TITLE_SELECTORS = (
    ".nav-bar-layer",
    ".player-title",
    ".video-title",
    ".meta-title",
    "h1",
)

POSTER_SELECTORS = (
    ".player-poster img",
    ".meta-poster img",
    'img[class*="poster"]',
    'img[src*="poster"]',
)

LOGO_SELECTORS = (
    'img[src*="logo"]',
    ".logo-container img",
    ".logo img",
)


@dataclass
class PageSnapshot:
    """One sample of the page's DOM and runtime APIs."""

    document_title: str = ""
    media_session: Optional[MediaSessionMetadata] = None
    has_services: bool = False
    texts: dict = field(default_factory=dict)    # selector -> innerText
    images: dict = field(default_factory=dict)   # selector -> img src

    @classmethod
    def from_json(cls, raw: Any) -> Optional["PageSnapshot"]:
        """
        Build a snapshot from the probe result.

        None when the probe produced no object (navigation in progress, failed
        conversion); the caller skips that tick so nothing is cleared.
        """
        data = _p(raw)
        if not data:
            return None
        texts = data.get("texts")
        images = data.get("images")
        return cls(
            document_title=_str(data.get("documentTitle")),
            media_session=MediaSessionMetadata.from_json(data.get("mediaSession")),
            has_services=data.get("hasServices") is True,
            texts={k: v for k, v in texts.items() if isinstance(v, str)}
            if isinstance(texts, dict) else {},
            images={k: v for k, v in images.items() if isinstance(v, str)}
            if isinstance(images, dict) else {},
        )

    def query_text(self, selector: str) -> str:
        return self.texts.get(selector, "")

    def query_image(self, selector: str) -> str:
        return self.images.get(selector, "")


def first_text(snapshot: PageSnapshot, selectors) -> str:
    """Trimmed text of the first selector with non-blank text, else ''."""
    for selector in selectors:
        text = snapshot.query_text(selector).strip()
        if text:
            return text
    return ""


def first_image(snapshot: PageSnapshot, selectors) -> str:
    """src of the first selector that matched an image with a source, else ''."""
    for selector in selectors:
        src = snapshot.query_image(selector)
        if src:
            return src
    return ""


# ═══════════════════════════════════════════════════════════════════════════
# JS PROBES: evaluated with QWebEnginePage.runJavaScript()
# ═══════════════════════════════════════════════════════════════════════════

_PAGE_PROBE_TEMPLATE = r"""
(function() {
  var out = { documentTitle: '', mediaSession: null, hasServices: false, texts: {}, images: {} };
  try { out.documentTitle = String(document.title || ''); } catch (e) {}
  try {
    out.hasServices = !!(window.services && window.services.core);
  } catch (e) {}
  try {
    var md = navigator.mediaSession && navigator.mediaSession.metadata;
    if (md) {
      out.mediaSession = {
        title: md.title || '',
        artist: md.artist || '',
        artwork: Array.prototype.map.call(md.artwork || [], function(a) {
          return { src: (a && a.src) || '' };
        })
      };
    }
  } catch (e) {}
  var textSelectors = %(text_selectors)s;
  var imageSelectors = %(image_selectors)s;
  for (var i = 0; i < textSelectors.length; i++) {
    try {
      var el = document.querySelector(textSelectors[i]);
      if (el && el.innerText) out.texts[textSelectors[i]] = String(el.innerText);
    } catch (e) {}
  }
  for (var j = 0; j < imageSelectors.length; j++) {
    try {
      var img = document.querySelector(imageSelectors[j]);
      if (img && img.src) out.images[imageSelectors[j]] = String(img.src);
    } catch (e) {}
  }
  return out;
})();
"""

PAGE_PROBE_JS = _PAGE_PROBE_TEMPLATE % {
    "text_selectors": json.dumps(list(TITLE_SELECTORS)),
    "image_selectors": json.dumps(list(POSTER_SELECTORS + LOGO_SELECTORS)),
}

# Posts the player state through the QWebChannel 'ipc' object set up by
# IPC_SHIM_JS.  Errors are dropped; the next poll tries again.
STATE_PROBE_JS = r"""
(function() {
  try {
    var t = window.services && window.services.core && window.services.core.transport;
    var host = window.__mediabridgeHost;
    if (!t || !host) return false;
    Promise.resolve(t.getState('player')).then(function(state) {
      if (state) host.playerState(JSON.stringify(state));
    }).catch(function() {});
    return true;
  } catch (e) {
    return false;
  }
})();
"""
