"""
Interaction Policy
==================
Page-level interactions that force lazy or collapsed content to mount
before extraction.

  1. **expand_collapsed_sections** — activate every collapsed header
  2. **scroll_to_bottom**           — scroll until the document stops growing
  3. **dismiss_cookie_consent**     — best-effort consent banner click

None of these own navigation, and none raise: each element failure is
skipped, each missing control is a no-op.
"""

from __future__ import annotations

import logging
from typing import List

from .surface import Surface
from .utils import attempt

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Selector catalogue
# ---------------------------------------------------------------------------

# Elements exposing a collapsed state or a recognised section header class
COLLAPSED_SECTION_SELECTORS: List[str] = [
    '[aria-expanded="false"]',
    '.section-header',
]

COOKIE_CONSENT_SELECTORS: List[str] = [
    'button:has-text("Accept All")',
    'button:has-text("Accept all")',
    '#onetrust-accept-btn-handler',
]

_SCROLL_HEIGHT_JS = "() => document.body ? document.body.scrollHeight : 0"
_SCROLL_TO_BOTTOM_JS = "() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)"


async def expand_collapsed_sections(
    surface: Surface,
    *,
    pause_ms: int = 500,
    click_timeout_ms: int = 3000,
) -> int:
    """Activate each collapsed section in turn.

    Returns:
        Number of sections successfully clicked.
    """
    try:
        candidates = await surface.query_all(", ".join(COLLAPSED_SECTION_SELECTORS))
    except Exception as e:
        logger.debug(f"[EXPAND] Section query failed: {e}")
        return 0

    clicked = 0
    for element in candidates:
        async def _expand(el=element):
            await el.scroll_into_view(timeout_ms=click_timeout_ms)
            await el.click(timeout_ms=click_timeout_ms)
            return True

        if await attempt("expand section", _expand, default=False):
            clicked += 1
            await surface.pause(pause_ms)

    if candidates:
        logger.info(f"[EXPAND] Expanded {clicked}/{len(candidates)} collapsed section(s)")
    return clicked


async def scroll_to_bottom(
    surface: Surface,
    *,
    pause_ms: int = 1000,
    max_passes: int = 30,
) -> int:
    """Scroll until the document height stops growing.

    Returns:
        Number of scroll passes performed.
    """
    passes = 0
    try:
        previous = -1
        height = await surface.evaluate(_SCROLL_HEIGHT_JS) or 0
        while height > previous and passes < max_passes:
            previous = height
            await surface.evaluate(_SCROLL_TO_BOTTOM_JS)
            await surface.pause(pause_ms)
            height = await surface.evaluate(_SCROLL_HEIGHT_JS) or 0
            passes += 1
    except Exception as e:
        logger.debug(f"[SCROLL] Stopped after {passes} pass(es): {e}")
    return passes


async def dismiss_cookie_consent(
    surface: Surface,
    *,
    settle_ms: int = 2000,
    after_click_ms: int = 1000,
) -> bool:
    """Click an 'Accept All' style consent button if one is showing."""
    await surface.pause(settle_ms)
    for selector in COOKIE_CONSENT_SELECTORS:
        try:
            button = await surface.query_one(selector)
        except Exception:
            continue
        if button is None:
            continue
        async def _accept(el=button):
            await el.click()
            return True

        if await attempt("cookie consent", _accept, default=False):
            logger.info(f"[COOKIE] Dismissed via: {selector}")
            await surface.pause(after_click_ms)
            return True
    logger.debug("[COOKIE] No consent banner found")
    return False
