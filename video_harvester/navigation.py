"""
Navigation State Machine
========================
Drives one browser surface from the target address to "no more content",
running the ``FrameTraversal`` at every stable content state.

States::

    LoggingIn ──► AwaitingCourseEntry ──► OnContentPage ──► AdvancingToNext
                                               ▲                  │
                                               └──── next found ──┘
                                                        no next ──► Done
    (any state) ── AuthenticationError / crash ──► Failed

Three navigation profiles share the machine:

    - ``MODULE_VIEWER``  — LMS module content: login, "Start Course" /
      shadow-hosted "Review Content" entry, collapsed sections, the
      sidebar lesson list inside a nested frame, then the "next" control.
    - ``LESSON_CHAIN``   — externally hosted course-authoring player:
      no login, cookie consent, start/resume entry, then a chain of
      "next lesson" links on a single surface.
    - ``SINGLE_CONTENT`` — one LMS content page: login, sections, lesson
      list, no paging.

Failure policy: only ``AuthenticationError`` (and a crashed browser) ends
in ``Failed``.  Every optional control that is missing, every stale
element and every slow navigation degrades to "continue".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .auth.base_auth import BaseAuthHandler, Credentials
from .interaction_policy import (
    dismiss_cookie_consent,
    expand_collapsed_sections,
    scroll_to_bottom,
)
from .models import AuthenticationError, FailureReason, NavigationState, ResultSet
from .run_config import HarvestRunConfig
from .surface import ElementRef, Surface
from .traversal import FrameTraversal, activate_shadow_button, find_surface_with_selector
from .utils import attempt, short

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Navigation profiles
# ---------------------------------------------------------------------------

@dataclass
class NavigationProfile:
    """Selectors and switches for one navigation paradigm."""
    name: str
    requires_login: bool = True
    dismiss_cookie_consent: bool = False
    # Course-entry controls, one list per priority tier.  Within a tier the
    # first match in document order wins.
    course_entry_tiers: List[str] = field(default_factory=list)
    # Custom elements whose clickable target lives in their shadow root
    shadow_hosts: List[str] = field(default_factory=list)
    expand_sections: bool = True
    # Presence of this element enables the sidebar lesson walk
    lesson_viewer_selector: Optional[str] = None
    lesson_link_selector: Optional[str] = None
    next_selectors: List[str] = field(default_factory=list)


MODULE_VIEWER = NavigationProfile(
    name="module_viewer",
    requires_login=True,
    course_entry_tiers=[
        'button:has-text("Start Course"), a:has-text("Start Course"), '
        'd2l-button:has-text("Start Course"), d2l-button:has-text("Review"), '
        'd2l-button:has-text("Resume")',
    ],
    shadow_hosts=["d2l-button"],
    expand_sections=True,
    lesson_viewer_selector="d2l-sequence-viewer",
    lesson_link_selector="a.lesson-link",
    next_selectors=[
        'a.d2l-iterator-button-next:not([aria-disabled="true"])',
        'a[aria-label^="Next"]:not([aria-disabled="true"])',
        'button[aria-label^="Next"]:not([disabled])',
    ],
)

LESSON_CHAIN = NavigationProfile(
    name="lesson_chain",
    requires_login=False,
    dismiss_cookie_consent=True,
    course_entry_tiers=[
        'a.cover__header-content-action-link.overview__button-enrolled',
        'a.cover__header-content-action-link',
        'a:has-text("Start course"), button:has-text("Start course"), '
        'a:has-text("Resume course"), button:has-text("Resume course")',
    ],
    expand_sections=False,
    next_selectors=[
        'a.lesson-nav-link__link[data-direction="next"]',
        'a[data-direction="next"]',
    ],
)

# One already-open content page: no entry gate, no paging
SINGLE_CONTENT = NavigationProfile(
    name="single_content",
    requires_login=True,
    course_entry_tiers=[],
    expand_sections=True,
    lesson_viewer_selector="d2l-sequence-viewer",
    lesson_link_selector="a.lesson-link",
    next_selectors=[],
)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class NavigationStateMachine:
    """
    One navigation run over one address.

    The ``ResultSet`` is owned by the caller and may be shared across
    several addresses of the same run; this machine only adds to it.

    Usage::

        machine = NavigationStateMachine(surface, results, config, MODULE_VIEWER,
                                         auth_handler=BrightspaceAuthHandler())
        final_state = await machine.run(address, credentials)
    """

    def __init__(
        self,
        surface: Surface,
        results: ResultSet,
        config: Optional[HarvestRunConfig] = None,
        profile: NavigationProfile = MODULE_VIEWER,
        *,
        auth_handler: Optional[BaseAuthHandler] = None,
        traversal: Optional[FrameTraversal] = None,
    ):
        self.surface = surface
        self.results = results
        self.config = config or HarvestRunConfig()
        self.profile = profile
        self.auth_handler = auth_handler
        self.traversal = traversal or FrameTraversal(max_depth=self.config.max_frame_depth)

        self.state = NavigationState.LOGGING_IN
        self.failure_reason = FailureReason.NONE
        self.failure_message = ""
        self.pages_visited = 0
        self.history: List[NavigationState] = []

        self._address = ""
        self._credentials: Optional[Credentials] = None
        self._lessons_walked = False

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def run(self, address: str, credentials: Optional[Credentials] = None) -> NavigationState:
        """Drive the machine to ``Done`` or ``Failed`` and return it."""
        self._address = address
        self._credentials = credentials
        self.pages_visited = 0
        self._lessons_walked = False
        self.failure_reason = FailureReason.NONE
        self.failure_message = ""
        self.history = []

        initial = (
            NavigationState.LOGGING_IN
            if self.profile.requires_login
            else NavigationState.AWAITING_COURSE_ENTRY
        )
        self._transition(initial)
        logger.info(f"[NAV] {self.profile.name}: {short(address)}")

        if not self.profile.requires_login:
            await attempt(
                "navigate to address",
                lambda: self.surface.navigate(address, self.config.navigation_timeout_ms),
            )
            if self.profile.dismiss_cookie_consent:
                await dismiss_cookie_consent(
                    self.surface,
                    settle_ms=self.config.cookie_settle_ms,
                    after_click_ms=self.config.cookie_after_click_ms,
                )

        handlers = {
            NavigationState.LOGGING_IN: self._logging_in,
            NavigationState.AWAITING_COURSE_ENTRY: self._awaiting_course_entry,
            NavigationState.ON_CONTENT_PAGE: self._on_content_page,
            NavigationState.ADVANCING_TO_NEXT: self._advancing_to_next,
        }

        while not self.state.is_terminal:
            try:
                next_state = await handlers[self.state]()
            except AuthenticationError as e:
                logger.error(f"[NAV] Authentication failed: {e}")
                self._fail(FailureReason.AUTHENTICATION, str(e))
                break
            except Exception as e:
                logger.error(f"[NAV] Unrecoverable error in {self.state.value}: {e}", exc_info=True)
                self._fail(FailureReason.NAVIGATION, str(e))
                break
            self._transition(next_state)

        logger.info(
            f"[NAV] Finished in {self.state.value} after {self.pages_visited} page(s); "
            f"{len(self.results)} reference(s) so far"
        )
        return self.state

    def _transition(self, new_state: NavigationState) -> None:
        if new_state != self.state or not self.history:
            logger.debug(f"[NAV] {self.state.value} → {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def _fail(self, reason: FailureReason, message: str) -> None:
        self.failure_reason = reason
        self.failure_message = message
        self._transition(NavigationState.FAILED)

    # ------------------------------------------------------------------
    # LoggingIn
    # ------------------------------------------------------------------

    async def _logging_in(self) -> NavigationState:
        if self.auth_handler is None:
            raise AuthenticationError(f"No login handler configured for {self.profile.name}")
        await self.auth_handler.login(self.surface, self._credentials, self._address, self.config)
        return NavigationState.AWAITING_COURSE_ENTRY

    # ------------------------------------------------------------------
    # AwaitingCourseEntry
    # ------------------------------------------------------------------

    async def _awaiting_course_entry(self) -> NavigationState:
        entered = await self._enter_course()
        if not entered:
            logger.info("[NAV] No course-entry control — continuing with the rendered content")
        if not self.profile.requires_login:
            await self.surface.pause(self.config.first_lesson_wait_ms)
        return NavigationState.ON_CONTENT_PAGE

    async def _enter_course(self) -> bool:
        for tier in self.profile.course_entry_tiers:
            control = await self._first_entry_control(tier)
            if control is None:
                continue
            return await self._activate_entry_control(control)
        return False

    async def _first_entry_control(self, selector: str) -> Optional[ElementRef]:
        waited = await attempt(
            "course entry lookup",
            lambda: self.surface.wait_for_selector(selector, self.config.optional_control_timeout_ms),
        )
        if waited is None:
            return None
        try:
            candidates = await self.surface.query_all(selector)
        except Exception:
            return waited
        return candidates[0] if candidates else waited

    async def _activate_entry_control(self, control: ElementRef) -> bool:
        try:
            tag = await control.tag_name()
        except Exception:
            tag = ""

        if tag in self.profile.shadow_hosts:
            clicked = await attempt(
                "shadow-hosted course entry",
                lambda: activate_shadow_button(
                    self.surface,
                    host=control,
                    timeout_ms=self.config.shadow_host_timeout_ms,
                ),
                timeout_s=self.config.optional_step_timeout_s,
                default=False,
            )
            if clicked:
                await self.surface.wait_for_settle(self.config.settle_timeout_ms)
        else:
            async def _click():
                await control.scroll_into_view(timeout_ms=self.config.click_timeout_ms)
                await control.click(timeout_ms=self.config.click_timeout_ms)
                return True

            clicked = await attempt(
                "course entry", _click,
                timeout_s=self.config.optional_step_timeout_s,
                default=False,
            )

        if clicked:
            logger.info(f"[NAV] Entered course via <{tag or 'control'}>")
            await self.surface.pause(self.config.course_entry_wait_ms)
        return bool(clicked)

    # ------------------------------------------------------------------
    # OnContentPage
    # ------------------------------------------------------------------

    async def _on_content_page(self) -> NavigationState:
        self.pages_visited += 1
        logger.info(f"[NAV] Content page {self.pages_visited}: {short(self.surface.url)}")

        if self.profile.expand_sections:
            await expand_collapsed_sections(
                self.surface,
                pause_ms=self.config.section_click_pause_ms,
                click_timeout_ms=self.config.click_timeout_ms,
            )
        await self._scroll()
        await self.traversal.traverse(self.surface, self.results)

        if self.profile.lesson_viewer_selector and not self._lessons_walked:
            self._lessons_walked = True
            await attempt("lesson list walk", self._walk_lesson_list, default=0)

        return NavigationState.ADVANCING_TO_NEXT

    async def _scroll(self) -> None:
        await scroll_to_bottom(
            self.surface,
            pause_ms=self.config.scroll_pause_ms,
            max_passes=self.config.max_scroll_passes,
        )

    async def _walk_lesson_list(self) -> int:
        """Click each sidebar lesson in turn and re-run traversal after each.

        The lesson list lives in a nested frame; handles are re-queried on
        every iteration because each click re-renders the list.
        """
        viewer = await attempt(
            "lesson viewer lookup",
            lambda: self.surface.query_one(self.profile.lesson_viewer_selector),
        )
        if viewer is None:
            logger.debug("[NAV] No sequence viewer — skipping lesson walk")
            return 0

        selector = self.profile.lesson_link_selector
        lesson_frame = await find_surface_with_selector(self.surface, selector)
        if lesson_frame is None:
            logger.info("[NAV] Sequence viewer present but no lesson list frame found")
            return 0

        total = len(await lesson_frame.query_all(selector))
        logger.info(f"[NAV] Found {total} lesson link(s) in nested frame")

        walked = 0
        for index in range(total):
            try:
                links = await lesson_frame.query_all(selector)
            except Exception as e:
                logger.info(f"[NAV] Lesson list frame went away after {walked} lesson(s): {e}")
                break
            if index >= len(links):
                break
            link = links[index]

            async def _open(el=link):
                await el.scroll_into_view(timeout_ms=self.config.click_timeout_ms)
                await el.click(timeout_ms=self.config.click_timeout_ms)
                return True

            if not await attempt(
                f"lesson {index + 1}", _open,
                timeout_s=self.config.optional_step_timeout_s,
                default=False,
            ):
                logger.info(f"[NAV] Could not open lesson {index + 1}/{total}")
                continue

            walked += 1
            logger.info(f"[NAV] Opened lesson {index + 1}/{total}")
            await self.surface.pause(self.config.lesson_load_wait_ms)
            await self._scroll()
            await self.traversal.traverse(self.surface, self.results)

        return walked

    # ------------------------------------------------------------------
    # AdvancingToNext
    # ------------------------------------------------------------------

    async def _advancing_to_next(self) -> NavigationState:
        if self.pages_visited >= self.config.max_content_pages:
            logger.warning(f"[NAV] Page limit {self.config.max_content_pages} reached — stopping")
            return NavigationState.DONE

        next_control = await self._find_next_control()
        if next_control is None:
            logger.info("[NAV] No 'next' control — done")
            return NavigationState.DONE

        href = await attempt("read next href", lambda: next_control.get_attribute("href"))
        logger.info(f"[NAV] Advancing to next page {short(href or '')}")
        await attempt(
            "scroll next control",
            lambda: next_control.scroll_into_view(timeout_ms=self.config.click_timeout_ms),
        )
        # A missing navigation event still counts as advanced
        await attempt(
            "advance",
            lambda: self.surface.activate_and_wait(next_control, self.config.next_navigation_timeout_ms),
            timeout_s=self.config.optional_step_timeout_s,
            default=False,
        )
        await self.surface.pause(self.config.after_next_wait_ms)
        return NavigationState.ON_CONTENT_PAGE

    async def _find_next_control(self) -> Optional[ElementRef]:
        for selector in self.profile.next_selectors:
            control = await attempt("next lookup", lambda: self.surface.query_one(selector))
            if control is not None:
                return control
        return None
