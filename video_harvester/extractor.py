"""
Content Extractor
=================
Finds video references visible in ONE surface (no recursion).

Two strategies, both always attempted:
    1. Structured query — anchors and frame elements whose address
       attribute points at a known video host.
    2. Textual scan — serialize the rendered markup and pattern-match
       raw video URLs that script-generated markup hides from (1).

The extractor yields *raw* strings; normalization and de-duplication
happen when they are inserted into the ``ResultSet``.
"""

from __future__ import annotations

import html
import logging
from typing import AsyncIterator, List, Optional

from .normalizer import VIDEO_HOST_MARKERS, VIDEO_URL_IN_TEXT_RE, is_video_host_url
from .surface import Surface

logger = logging.getLogger(__name__)


def _attribute_selector(tag: str, attribute: str) -> str:
    return ", ".join(f'{tag}[{attribute}*="{marker}"]' for marker in VIDEO_HOST_MARKERS)


# a[href*="youtube.com"], a[href*="youtu.be"], ...
ANCHOR_SELECTOR = _attribute_selector("a", "href")

# Frame-like elements; the address check happens per element so lazy
# ``data-src`` players are caught too.
FRAME_SELECTOR = "iframe, frame, embed"

# Attributes that may carry a frame's address (rendered first)
FRAME_ADDRESS_ATTRIBUTES: List[str] = ["src", "data-src"]


async def frame_address(element) -> Optional[str]:
    """Rendered address of a frame element (``src``, then ``data-src``)."""
    for attribute in FRAME_ADDRESS_ATTRIBUTES:
        value = await element.get_attribute(attribute)
        if value:
            return value
    return None


class ContentExtractor:
    """
    Extracts raw video references from a single surface.

    Usage::

        extractor = ContentExtractor()
        async for raw in extractor.extract(surface):
            results.add_raw(raw)
    """

    def __init__(self, text_scan: bool = True):
        """
        Args:
            text_scan: Run the markup fallback scan after the structured query
        """
        self.text_scan = text_scan

    async def extract(self, surface: Surface) -> AsyncIterator[str]:
        """
        Yield raw references found in *surface*.

        The sequence is lazy and read once; calling again re-reads the live
        DOM, which may have changed in between.
        """
        async for raw in self._from_anchors(surface):
            yield raw
        async for raw in self._from_frames(surface):
            yield raw
        if self.text_scan:
            async for raw in self._from_markup(surface):
                yield raw

    # ------------------------------------------------------------------
    # Structured query
    # ------------------------------------------------------------------

    async def _from_anchors(self, surface: Surface) -> AsyncIterator[str]:
        try:
            anchors = await surface.query_all(ANCHOR_SELECTOR)
        except Exception as e:
            logger.debug(f"[EXTRACT] Anchor query failed on {surface.url[:80]}: {e}")
            return

        for anchor in anchors:
            try:
                href = await anchor.get_attribute("href")
            except Exception as e:
                # Detached between query and read
                logger.debug(f"[EXTRACT] Skipping stale anchor: {e}")
                continue
            if href:
                yield href

    async def _from_frames(self, surface: Surface) -> AsyncIterator[str]:
        try:
            frames = await surface.query_all(FRAME_SELECTOR)
        except Exception as e:
            logger.debug(f"[EXTRACT] Frame query failed on {surface.url[:80]}: {e}")
            return

        for element in frames:
            try:
                address = await frame_address(element)
            except Exception as e:
                logger.debug(f"[EXTRACT] Skipping stale frame element: {e}")
                continue
            if is_video_host_url(address):
                yield address

    # ------------------------------------------------------------------
    # Textual fallback
    # ------------------------------------------------------------------

    async def _from_markup(self, surface: Surface) -> AsyncIterator[str]:
        try:
            markup = await surface.content()
        except Exception as e:
            logger.debug(f"[EXTRACT] Could not serialize {surface.url[:80]}: {e}")
            return
        if not markup:
            return

        # JSON blobs in inline scripts escape slashes
        markup = html.unescape(markup.replace("\\/", "/"))
        for match in VIDEO_URL_IN_TEXT_RE.finditer(markup):
            yield match.group(0)
