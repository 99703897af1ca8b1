"""
Frame Traversal Engine
======================
Recursive descent through a surface tree (page → iframes → nested
course-player frames), running the ``ContentExtractor`` at every node
and accumulating into the run's ``ResultSet``.

Per surface:
    1. Extract references visible in the surface itself.
    2. Enumerate frame elements.  A frame whose address is itself a video
       host is recorded as a reference and NOT entered (playback frames
       are slow and usually cross-origin).  Any other frame is entered.
    3. A child surface that cannot be acquired (detached, cross-origin)
       contributes nothing; siblings are still visited.

Also hosts the two surface-tree helpers the navigation layer needs:
    - ``find_surface_with_selector`` — depth-first frame search
    - ``activate_shadow_button``     — pierce exactly one shadow root
"""

from __future__ import annotations

import logging
from typing import Hashable, Optional, Set

from .extractor import FRAME_SELECTOR, ContentExtractor, frame_address
from .models import ResultSet
from .normalizer import is_video_host_url
from .surface import Surface

logger = logging.getLogger(__name__)

# Real-world nesting stays around 5; this only stops pathological trees
_DEFAULT_MAX_DEPTH = 16


class FrameTraversal:
    """
    Walks a surface tree and fills a ``ResultSet`` in place.

    Usage::

        traversal = FrameTraversal()
        added = await traversal.traverse(page_surface, results)
    """

    def __init__(
        self,
        extractor: Optional[ContentExtractor] = None,
        max_depth: int = _DEFAULT_MAX_DEPTH,
    ):
        self.extractor = extractor or ContentExtractor()
        self.max_depth = max_depth

    async def traverse(self, root: Surface, results: ResultSet) -> int:
        """
        Visit *root* and every reachable nested surface.

        Returns:
            Number of references that were new to *results*.
        """
        seen: Set[Hashable] = set()
        added = await self._visit(root, results, depth=0, seen=seen)
        logger.info(
            f"[TRAVERSE] {len(seen)} surface(s) visited, {added} new reference(s), "
            f"{len(results)} total"
        )
        return added

    async def _visit(
        self,
        surface: Surface,
        results: ResultSet,
        depth: int,
        seen: Set[Hashable],
    ) -> int:
        indent = "  " * depth
        if surface.identity in seen:
            return 0
        seen.add(surface.identity)

        added = 0
        async for raw in self.extractor.extract(surface):
            reference = results.add_raw(raw)
            if reference:
                added += 1
                logger.info(f"{indent}[TRAVERSE] Found video: {reference}")

        if depth >= self.max_depth:
            logger.warning(f"{indent}[TRAVERSE] Depth limit {self.max_depth} reached — not descending")
            return added

        try:
            frame_elements = await surface.query_all(FRAME_SELECTOR)
        except Exception as e:
            logger.debug(f"{indent}[TRAVERSE] Frame enumeration failed: {e}")
            return added

        for element in frame_elements:
            try:
                address = await frame_address(element)
            except Exception as e:
                logger.debug(f"{indent}[TRAVERSE] Skipping stale frame element: {e}")
                continue

            if is_video_host_url(address):
                # Recorded as a reference, never entered
                reference = results.add_raw(address)
                if reference:
                    added += 1
                    logger.info(f"{indent}[TRAVERSE] Found video frame: {reference}")
                continue

            try:
                child = await element.content_surface()
            except Exception as e:
                logger.debug(f"{indent}[TRAVERSE] Frame unreachable ({(address or '')[:60]}): {e}")
                continue
            if child is None:
                logger.debug(f"{indent}[TRAVERSE] Frame unreachable ({(address or '')[:60]})")
                continue

            logger.debug(f"{indent}[TRAVERSE] Entering nested frame {(address or child.url)[:80]}")
            try:
                added += await self._visit(child, results, depth + 1, seen)
            except Exception as e:
                # Frame detached mid-visit; keep what it already contributed
                logger.debug(f"{indent}[TRAVERSE] Nested frame failed mid-visit: {e}")

        return added


async def find_surface_with_selector(
    surface: Surface,
    selector: str,
    _seen: Optional[Set[Hashable]] = None,
) -> Optional[Surface]:
    """Depth-first search for the first surface containing *selector*."""
    seen = _seen if _seen is not None else set()
    if surface.identity in seen:
        return None
    seen.add(surface.identity)

    try:
        if await surface.query_all(selector):
            return surface
        children = await surface.child_surfaces()
    except Exception as e:
        logger.debug(f"[TRAVERSE] Frame search skipped {surface.url[:80]}: {e}")
        return None

    for child in children:
        found = await find_surface_with_selector(child, selector, seen)
        if found is not None:
            return found
    return None


async def activate_shadow_button(
    surface: Surface,
    host_selector: str = "d2l-button",
    inner_selector: str = "button",
    *,
    timeout_ms: int = 5000,
    host=None,
) -> bool:
    """
    Click the real control hidden inside a custom element's shadow root.

    Document-level queries cannot see into shadow trees, so the host is
    located first and exactly one shadow level is pierced.

    Args:
        surface: Surface containing the host element
        host_selector: Selector for the custom element
        inner_selector: Selector for the clickable node inside its shadow root
        timeout_ms: Wait bound for the host and the click
        host: Already-located host element (skips the wait)

    Returns:
        True if the inner control was clicked.
    """
    if host is None:
        host = await surface.wait_for_selector(host_selector, timeout_ms)
    if host is None:
        logger.debug(f"[TRAVERSE] Shadow host '{host_selector}' not found")
        return False

    root = await host.shadow_root()
    if root is None:
        logger.debug(f"[TRAVERSE] '{host_selector}' has no open shadow root")
        return False

    target = await root.query_one(inner_selector)
    if target is None:
        logger.debug(f"[TRAVERSE] No '{inner_selector}' inside '{host_selector}' shadow root")
        return False

    await target.scroll_into_view(timeout_ms=timeout_ms)
    await target.click(timeout_ms=timeout_ms)
    logger.info(f"[TRAVERSE] Activated shadow-hosted control <{host_selector}>")
    return True
