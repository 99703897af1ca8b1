"""
Video URL Normalization
=======================
Maps every known encoding of a video reference onto one canonical
watch-style URL so that references can be compared by value.

Recognised forms (checked in priority order):
    1. Embed path          ``https://www.youtube.com/embed/{id}``
    2. Short-link host     ``https://youtu.be/{id}``
    3. Watch form          ``https://www.youtube.com/watch?v={id}``
    4. Wrapping redirector ``https://cdn.embedly.com/...?url=<watch URL>``
       (decoded once, then re-normalized)

Protocol-relative inputs (``//www.youtube.com/...``) are coerced to https.
Anything else yields ``None``.  ``normalize`` never raises.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import parse_qs, unquote, urlparse

# Canonical output form
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"

# Hosts that serve the player / watch pages
_PLAYER_HOSTS = ("youtube.com", "youtube-nocookie.com")
_SHORT_HOSTS = ("youtu.be",)

# Redirector services that wrap a watch URL in a query parameter
_WRAPPER_HOSTS = ("cdn.embedly.com",)
_WRAPPER_PARAMS = ("url", "src")

# Substrings used by the extractor and traversal to spot video-host addresses
VIDEO_HOST_MARKERS: List[str] = [
    "youtube.com",
    "youtu.be",
    "youtube-nocookie.com",
    "cdn.embedly.com",
]

# Video ids are URL-safe base64-ish tokens
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Player path segments that name a playlist, not a video
_RESERVED_IDS = frozenset({"videoseries"})

# Raw video-host URLs inside serialized markup / inline scripts
VIDEO_URL_IN_TEXT_RE = re.compile(
    r"""(?:https?:)?//(?:[\w-]+\.)*"""
    r"""(?:youtube\.com|youtube-nocookie\.com|youtu\.be|cdn\.embedly\.com)"""
    r"""/[^\s"'<>()\\]+""",
    re.IGNORECASE,
)


def _host_matches(host: str, domains) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def is_video_host_url(url: Optional[str]) -> bool:
    """Cheap substring check: does *url* point at a known video host?"""
    if not url:
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in VIDEO_HOST_MARKERS)


class VideoURLNormalizer:
    """
    Canonicalizes video references.

    The instance is stateless; a module-level default is exposed through
    :func:`normalize_video_url`.
    """

    def __init__(self, unwrap_redirectors: bool = True):
        """
        Args:
            unwrap_redirectors: Follow one level of redirector wrapping
                (``cdn.embedly.com?url=...``).
        """
        self.unwrap_redirectors = unwrap_redirectors

    def normalize(self, raw: Optional[str]) -> Optional[str]:
        """
        Normalize a raw reference.

        Args:
            raw: Any string scraped from an attribute or markup.

        Returns:
            ``https://www.youtube.com/watch?v={id}`` or None.
        """
        try:
            return self._normalize(raw, unwrap=self.unwrap_redirectors)
        except Exception:
            return None

    def _normalize(self, raw: Optional[str], unwrap: bool) -> Optional[str]:
        if not raw or not isinstance(raw, str):
            return None

        url = raw.strip()
        if not url:
            return None
        if url.startswith("//"):
            url = "https:" + url

        try:
            parsed = urlparse(url)
        except ValueError:
            return None

        if parsed.scheme.lower() not in ("http", "https"):
            return None
        host = (parsed.hostname or "").lower()
        if not host:
            return None

        # ── 1. Embed path ─────────────────────────────────────────
        if _host_matches(host, _PLAYER_HOSTS) and parsed.path.startswith("/embed/"):
            return self._canonical(parsed.path[len("/embed/"):].split("/")[0])

        # ── 2. Short link ─────────────────────────────────────────
        if _host_matches(host, _SHORT_HOSTS):
            return self._canonical(parsed.path.lstrip("/").split("/")[0])

        # ── 3. Watch form ─────────────────────────────────────────
        if _host_matches(host, _PLAYER_HOSTS):
            video_ids = parse_qs(parsed.query).get("v")
            if video_ids:
                return self._canonical(video_ids[0])
            return None

        # ── 4. Wrapping redirector (one level only) ───────────────
        if unwrap and _host_matches(host, _WRAPPER_HOSTS):
            params = parse_qs(parsed.query)
            for key in _WRAPPER_PARAMS:
                for inner in params.get(key, []):
                    # parse_qs already decoded once; some embeds double-encode
                    if "%" in inner:
                        inner = unquote(inner)
                    if "youtube.com/watch" not in inner.lower():
                        continue
                    result = self._normalize(inner, unwrap=False)
                    if result:
                        return result

        return None

    @staticmethod
    def _canonical(video_id: str) -> Optional[str]:
        video_id = (video_id or "").strip()
        if not video_id or not _VIDEO_ID_RE.match(video_id):
            return None
        if video_id.lower() in _RESERVED_IDS:
            return None
        return WATCH_URL_TEMPLATE.format(video_id=video_id)


_DEFAULT_NORMALIZER = VideoURLNormalizer()


def normalize_video_url(raw: Optional[str]) -> Optional[str]:
    """Module-level shortcut for :meth:`VideoURLNormalizer.normalize`."""
    return _DEFAULT_NORMALIZER.normalize(raw)


def video_id_of(reference: str) -> Optional[str]:
    """Return the bare video id of a canonical reference."""
    canonical = normalize_video_url(reference)
    if not canonical:
        return None
    return canonical.rsplit("=", 1)[-1]
