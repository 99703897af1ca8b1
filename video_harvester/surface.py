"""
Browser Surface Abstraction
===========================
The only browser operations the harvesting core relies on.

A *surface* is any renderable DOM context: the top-level page, an
iframe's document, or a frame reached through a custom element.  An
*element* is a handle to one node inside a surface.  A *scope* is
anything that can be queried with a selector (surfaces and open
shadow roots).

``PlaywrightSurface`` / ``PlaywrightElement`` adapt the async Playwright
API.  Tests substitute an in-memory tree implementing the same ABCs, so
traversal and navigation run without a browser.

All operations are coroutines and may fail independently; callers decide
whether a failure is skippable.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Hashable, List, Optional, Union

from playwright.async_api import ElementHandle, Frame, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Abstract contracts
# ---------------------------------------------------------------------------

class Scope(ABC):
    """Something elements can be queried from."""

    @abstractmethod
    async def query_all(self, selector: str) -> List["ElementRef"]:
        """All matching elements, in document order."""
        ...

    @abstractmethod
    async def query_one(self, selector: str) -> Optional["ElementRef"]:
        """First matching element, or None."""
        ...


class ElementRef(ABC):
    """Handle to one element inside a surface."""

    @abstractmethod
    async def get_attribute(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    async def tag_name(self) -> str:
        ...

    @abstractmethod
    async def click(self, timeout_ms: int = 5000) -> None:
        ...

    @abstractmethod
    async def scroll_into_view(self, timeout_ms: int = 5000) -> None:
        ...

    @abstractmethod
    async def content_surface(self) -> Optional["Surface"]:
        """Child surface for a frame element (None if unreachable)."""
        ...

    @abstractmethod
    async def shadow_root(self) -> Optional[Scope]:
        """Open shadow root attached to this element, if any."""
        ...

    @abstractmethod
    async def fill(self, value: str) -> None:
        ...

    @abstractmethod
    async def type_text(self, text: str, delay_ms: int = 0) -> None:
        """Send real keystrokes (some login forms ignore ``fill``)."""
        ...

    @abstractmethod
    async def input_value(self) -> str:
        ...


class Surface(Scope):
    """A renderable DOM context (page or frame)."""

    @property
    @abstractmethod
    def identity(self) -> Hashable:
        """Stable key used to avoid visiting the same surface twice."""
        ...

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        ...

    @abstractmethod
    async def wait_for_selector(
        self, selector: str, timeout_ms: int
    ) -> Optional[ElementRef]:
        """Wait for a selector; None when it never appears."""
        ...

    @abstractmethod
    async def wait_for_settle(self, timeout_ms: int) -> bool:
        """Wait for network idle; False when the bound is exceeded."""
        ...

    @abstractmethod
    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        ...

    @abstractmethod
    async def content(self) -> str:
        """Serialized rendered markup of this surface only."""
        ...

    @abstractmethod
    async def child_surfaces(self) -> List["Surface"]:
        """Directly nested frames."""
        ...

    @abstractmethod
    async def activate_and_wait(self, element: ElementRef, timeout_ms: int) -> bool:
        """Click *element* and wait for the navigation it triggers.

        Returns False when no navigation completed within *timeout_ms*
        (the click itself still happened).
        """
        ...

    @abstractmethod
    async def pause(self, ms: int) -> None:
        ...


# ---------------------------------------------------------------------------
# Playwright adapters
# ---------------------------------------------------------------------------

class PlaywrightElement(ElementRef):
    """``ElementHandle`` adapter."""

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    async def get_attribute(self, name: str) -> Optional[str]:
        return await self.handle.get_attribute(name)

    async def tag_name(self) -> str:
        return (await self.handle.evaluate("el => el.tagName") or "").lower()

    async def click(self, timeout_ms: int = 5000) -> None:
        await self.handle.click(timeout=timeout_ms)

    async def scroll_into_view(self, timeout_ms: int = 5000) -> None:
        await self.handle.scroll_into_view_if_needed(timeout=timeout_ms)

    async def content_surface(self) -> Optional["Surface"]:
        frame = await self.handle.content_frame()
        if frame is None or frame.is_detached():
            return None
        return PlaywrightSurface(frame)

    async def shadow_root(self) -> Optional[Scope]:
        js_handle = await self.handle.evaluate_handle("el => el.shadowRoot")
        root = js_handle.as_element()
        if root is None:
            await js_handle.dispose()
            return None
        return PlaywrightShadowRoot(root)

    async def fill(self, value: str) -> None:
        await self.handle.fill(value)

    async def type_text(self, text: str, delay_ms: int = 0) -> None:
        await self.handle.type(text, delay=delay_ms)

    async def input_value(self) -> str:
        return await self.handle.input_value()


class PlaywrightShadowRoot(Scope):
    """Query scope rooted at an open shadow root."""

    def __init__(self, root: ElementHandle):
        self.root = root

    async def query_all(self, selector: str) -> List[ElementRef]:
        return [PlaywrightElement(h) for h in await self.root.query_selector_all(selector)]

    async def query_one(self, selector: str) -> Optional[ElementRef]:
        handle = await self.root.query_selector(selector)
        return PlaywrightElement(handle) if handle else None


class PlaywrightSurface(Surface):
    """Adapter over a Playwright ``Page`` or ``Frame``."""

    def __init__(self, target: Union[Page, Frame]):
        self.target = target

    @property
    def frame(self) -> Frame:
        if isinstance(self.target, Page):
            return self.target.main_frame
        return self.target

    @property
    def identity(self) -> Hashable:
        return id(self.frame)

    @property
    def url(self) -> str:
        return self.target.url

    async def navigate(self, url: str, timeout_ms: int) -> None:
        await self.target.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    async def query_all(self, selector: str) -> List[ElementRef]:
        return [PlaywrightElement(h) for h in await self.target.query_selector_all(selector)]

    async def query_one(self, selector: str) -> Optional[ElementRef]:
        handle = await self.target.query_selector(selector)
        return PlaywrightElement(handle) if handle else None

    async def wait_for_selector(
        self, selector: str, timeout_ms: int
    ) -> Optional[ElementRef]:
        try:
            handle = await self.target.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeout:
            return None
        return PlaywrightElement(handle) if handle else None

    async def wait_for_settle(self, timeout_ms: int) -> bool:
        try:
            await self.target.wait_for_load_state("networkidle", timeout=timeout_ms)
            return True
        except PlaywrightTimeout:
            return False

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self.target.evaluate(expression, arg)

    async def content(self) -> str:
        return await self.target.content()

    async def child_surfaces(self) -> List[Surface]:
        return [
            PlaywrightSurface(child)
            for child in self.frame.child_frames
            if not child.is_detached()
        ]

    async def activate_and_wait(self, element: ElementRef, timeout_ms: int) -> bool:
        try:
            async with self.target.expect_navigation(
                wait_until="domcontentloaded", timeout=timeout_ms
            ):
                await element.click(timeout_ms=timeout_ms)
            return True
        except PlaywrightTimeout:
            logger.debug(f"[NAV] No navigation within {timeout_ms}ms after click")
            return False
        except PlaywrightError as e:
            # Navigation replaced the frame mid-click
            logger.debug(f"[NAV] Click/navigation interrupted: {e}")
            return False

    async def pause(self, ms: int) -> None:
        await self.target.wait_for_timeout(ms)
