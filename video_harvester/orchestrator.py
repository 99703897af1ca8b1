"""
Session Orchestrator
====================
Owns the browser lifecycle for one harvest run, picks the navigation
strategy per address, and guarantees that whatever was collected is
written out — even when login fails or the browser dies mid-run.

Public entry points::

    orchestrator = SessionOrchestrator(config)
    outcome = await orchestrator.run_module_scrape(credentials, addresses)
    outcome = await orchestrator.run_single_content_scrape(credentials, address)

    # or, from synchronous code
    outcome = orchestrator.run_module_scrape_sync(credentials, addresses)

Addresses are processed sequentially on ONE shared page, so a login
performed for the first address carries over to the rest.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncContextManager, AsyncIterator, Callable, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .auth.base_auth import BaseAuthHandler, Credentials
from .auth.brightspace_auth import BrightspaceAuthHandler
from .exporter import write_outputs
from .models import FailureReason, NavigationState, ResultSet, RunOutcome
from .navigation import (
    LESSON_CHAIN,
    MODULE_VIEWER,
    SINGLE_CONTENT,
    NavigationProfile,
    NavigationStateMachine,
)
from .run_config import HarvestRunConfig
from .surface import PlaywrightSurface, Surface
from .traversal import FrameTraversal
from .utils import ensure_scheme, is_valid_url, short

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------

# Externally hosted course-authoring share links (Articulate Rise)
_LESSON_CHAIN_URL_RE = re.compile(
    r"^https?://(?:[\w-]+\.)*rise\.articulate\.com/share/", re.IGNORECASE
)


class Strategy(str, Enum):
    MODULE_VIEWER = "module_viewer"
    SINGLE_CONTENT = "single_content"
    LESSON_CHAIN = "lesson_chain"


_PROFILES = {
    Strategy.MODULE_VIEWER: MODULE_VIEWER,
    Strategy.SINGLE_CONTENT: SINGLE_CONTENT,
    Strategy.LESSON_CHAIN: LESSON_CHAIN,
}


def is_lesson_chain_address(address: str) -> bool:
    return bool(_LESSON_CHAIN_URL_RE.match(ensure_scheme(address)))


def select_strategy(address: str, single: bool = False) -> Strategy:
    """Pick the navigation strategy from the address string alone.

    A course-authoring share link always runs the lesson chain, even
    when a single-page scrape was requested.
    """
    if is_lesson_chain_address(address):
        return Strategy.LESSON_CHAIN
    return Strategy.SINGLE_CONTENT if single else Strategy.MODULE_VIEWER


def profile_for(strategy: Strategy) -> NavigationProfile:
    return _PROFILES[strategy]


# ---------------------------------------------------------------------------
# Browser lifecycle
# ---------------------------------------------------------------------------

SurfaceFactory = Callable[[HarvestRunConfig], AsyncContextManager[Surface]]


@asynccontextmanager
async def playwright_surface(config: HarvestRunConfig) -> AsyncIterator[Surface]:
    """Launch Chromium, open one page, and yield it as a ``Surface``.

    Everything is closed on exit, whatever happened inside the block.
    """
    playwright = await async_playwright().start()
    browser = None
    context = None
    try:
        browser = await playwright.chromium.launch(
            headless=config.headless,
            args=list(config.browser_args),
        )
        context = await browser.new_context()
        page = await context.new_page()
        logger.info(f"[RUN] Browser launched (headless={config.headless})")
        yield PlaywrightSurface(page)
    finally:
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug(f"[RUN] Context close failed: {e}")
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.debug(f"[RUN] Browser close failed: {e}")
        await playwright.stop()
        logger.info("[RUN] Browser closed")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class SessionOrchestrator:
    """
    Runs one harvest over one or more addresses.

    Args:
        config: Run configuration (defaults if omitted)
        auth_handler: LMS login handler (Brightspace if omitted)
        surface_factory: ``config -> async context manager yielding a Surface``;
            tests inject an in-memory surface here
    """

    def __init__(
        self,
        config: Optional[HarvestRunConfig] = None,
        auth_handler: Optional[BaseAuthHandler] = None,
        surface_factory: Optional[SurfaceFactory] = None,
    ):
        self.config = config or HarvestRunConfig()
        self.auth_handler = auth_handler or BrightspaceAuthHandler()
        self.surface_factory = surface_factory or playwright_surface

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_module_scrape(
        self, credentials: Optional[Credentials], addresses: List[str]
    ) -> RunOutcome:
        """Harvest every address in order (module paging, or lesson chain
        for share links)."""
        return await self._run(credentials, addresses, single=False)

    async def run_single_content_scrape(
        self, credentials: Optional[Credentials], address: str
    ) -> RunOutcome:
        """Harvest one already-open content page without paging."""
        return await self._run(credentials, [address], single=True)

    def run_module_scrape_sync(
        self, credentials: Optional[Credentials], addresses: List[str]
    ) -> RunOutcome:
        return asyncio.run(self.run_module_scrape(credentials, addresses))

    def run_single_content_scrape_sync(
        self, credentials: Optional[Credentials], address: str
    ) -> RunOutcome:
        return asyncio.run(self.run_single_content_scrape(credentials, address))

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def _run(
        self,
        credentials: Optional[Credentials],
        addresses: List[str],
        single: bool,
    ) -> RunOutcome:
        targets = self._clean_addresses(addresses)
        results = ResultSet()
        traversal = FrameTraversal(max_depth=self.config.max_frame_depth)
        reason = FailureReason.NONE
        message = ""
        outcome: Optional[RunOutcome] = None
        start = time.time()

        self.config.log_summary(targets)

        try:
            async with self.surface_factory(self.config) as surface:
                for index, address in enumerate(targets, 1):
                    strategy = select_strategy(address, single=single)
                    logger.info(
                        f"[RUN] ({index}/{len(targets)}) {strategy.value}: {short(address)}"
                    )
                    if strategy != Strategy.LESSON_CHAIN and not self.auth_handler.detect(address):
                        logger.info(
                            f"[RUN] Address does not look like {self.auth_handler.portal_name}"
                            " — trying its sign-in flow anyway"
                        )

                    machine = NavigationStateMachine(
                        surface,
                        results,
                        self.config,
                        profile_for(strategy),
                        auth_handler=self.auth_handler,
                        traversal=traversal,
                    )
                    state = await machine.run(address, credentials)
                    if state == NavigationState.FAILED:
                        reason = machine.failure_reason
                        message = machine.failure_message
                        logger.error(
                            f"[RUN] Stopping after {short(address)}: {reason.value} — {message}"
                        )
                        break
        except PlaywrightError as e:
            reason, message = FailureReason.BROWSER, str(e)
            logger.error(f"[RUN] Browser failure: {e}")
        except Exception as e:
            reason, message = FailureReason.UNEXPECTED, str(e)
            logger.error(f"[RUN] Unexpected failure: {e}", exc_info=True)
        finally:
            outcome = RunOutcome.from_results(results, targets, reason=reason, message=message)
            self._persist(outcome)

        elapsed = time.time() - start
        logger.info(
            f"[RUN] {outcome.status.value.upper()} — {len(outcome.links)} link(s) "
            f"from {len(targets)} address(es) in {elapsed:.1f}s"
        )
        return outcome

    def _persist(self, outcome: RunOutcome) -> None:
        try:
            write_outputs(outcome, self.config)
        except Exception as e:
            logger.error(f"[EXPORT] Writing results failed: {e}", exc_info=True)

    @staticmethod
    def _clean_addresses(addresses: List[str]) -> List[str]:
        cleaned: List[str] = []
        for raw in addresses:
            address = ensure_scheme(raw)
            if not address:
                continue
            if not is_valid_url(address):
                logger.warning(f"[RUN] Skipping invalid address: {raw!r}")
                continue
            cleaned.append(address)
        return cleaned
