"""
In-memory surface tree for driving the harvester without a browser.

Elements form a plain tree; a frame element points at a child
``FakeSurface`` and a custom element may carry a ``FakeScope`` shadow
root.  Selectors support the subset the harvester uses: tag, ``#id``,
``.class``, ``[attr]``, ``[attr="v"]`` / ``*=`` / ``^=`` / ``$=``,
``:has-text("x")``, ``:not(...)`` and comma-separated lists.
"""

import asyncio
import itertools
import re
from typing import Callable, List, Optional

from video_harvester.surface import ElementRef, Scope, Surface


class StaleElementError(RuntimeError):
    pass


# ---------------------------------------------------------------------------
# Selector matching
# ---------------------------------------------------------------------------

_TAG = re.compile(r"[a-zA-Z][\w-]*|\*")
_ID = re.compile(r"#([\w-]+)")
_CLASS = re.compile(r"\.([\w-]+)")
_ATTR = re.compile(r'\[([\w-]+)(?:([*^$]?=)"([^"]*)")?\]')
_HAS_TEXT = re.compile(r':has-text\("([^"]*)"\)')


def split_selector_list(selector: str) -> List[str]:
    """Split on top-level commas (not inside quotes, brackets or parens)."""
    parts, depth, quoted, current = [], 0, False, []
    for ch in selector:
        if ch == '"':
            quoted = not quoted
        elif not quoted and ch in "([":
            depth += 1
        elif not quoted and ch in ")]":
            depth -= 1
        elif not quoted and depth == 0 and ch == ",":
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if "".join(current).strip():
        parts.append("".join(current).strip())
    return parts


def _closing_paren(text: str, open_index: int) -> int:
    depth, quoted = 0, False
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == '"':
            quoted = not quoted
        elif not quoted and ch == "(":
            depth += 1
        elif not quoted and ch == ")":
            depth -= 1
            if depth == 0:
                return i
    raise ValueError(f"Unbalanced selector: {text}")


def matches_compound(element: "FakeElement", compound: str) -> bool:
    s = compound.strip()
    pos = 0
    m = _TAG.match(s, pos)
    if m:
        if m.group(0) != "*" and element.tag != m.group(0).lower():
            return False
        pos = m.end()

    while pos < len(s):
        if s.startswith(":not(", pos):
            end = _closing_paren(s, pos + 4)
            inner = s[pos + 5:end]
            if any(matches_compound(element, part) for part in split_selector_list(inner)):
                return False
            pos = end + 1
            continue

        m = _HAS_TEXT.match(s, pos)
        if m:
            if m.group(1).lower() not in element.text_content().lower():
                return False
            pos = m.end()
            continue

        m = _ID.match(s, pos)
        if m:
            if element.attrs.get("id") != m.group(1):
                return False
            pos = m.end()
            continue

        m = _CLASS.match(s, pos)
        if m:
            if m.group(1) not in element.attrs.get("class", "").split():
                return False
            pos = m.end()
            continue

        m = _ATTR.match(s, pos)
        if m:
            name, op, expected = m.groups()
            actual = element.attrs.get(name)
            if actual is None:
                return False
            if op == "=" and actual != expected:
                return False
            if op == "*=" and expected not in actual:
                return False
            if op == "^=" and not actual.startswith(expected):
                return False
            if op == "$=" and not actual.endswith(expected):
                return False
            pos = m.end()
            continue

        raise ValueError(f"Unsupported selector fragment {s[pos:]!r} in {compound!r}")
    return True


def matches(element: "FakeElement", selector: str) -> bool:
    return any(matches_compound(element, part) for part in split_selector_list(selector))


# ---------------------------------------------------------------------------
# Elements and scopes
# ---------------------------------------------------------------------------

class FakeElement(ElementRef):
    """One node.  ``on_click`` runs after every successful click."""

    def __init__(
        self,
        tag: str,
        attrs: Optional[dict] = None,
        text: str = "",
        children: Optional[List["FakeElement"]] = None,
        *,
        frame: Optional["FakeSurface"] = None,
        shadow: Optional["FakeScope"] = None,
        unreachable: bool = False,
        stale: bool = False,
        drops_keystrokes: bool = False,
        on_click: Optional[Callable[[], None]] = None,
    ):
        self.tag = tag.lower()
        self.attrs = dict(attrs or {})
        self.text = text
        self.children = list(children or [])
        self.frame = frame
        self.shadow = shadow
        self.unreachable = unreachable
        self.stale = stale
        self.drops_keystrokes = drops_keystrokes
        self.on_click = on_click
        self.value = ""
        self.clicks = 0

    def __repr__(self):
        return f"<FakeElement {self.tag} {self.attrs}>"

    def _check(self):
        if self.stale:
            raise StaleElementError("Element is not attached to the DOM")

    def text_content(self) -> str:
        return " ".join([self.text] + [c.text_content() for c in self.children]).strip()

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def serialize(self) -> str:
        attrs = "".join(f' {k}="{v}"' for k, v in self.attrs.items())
        inner = self.text + "".join(c.serialize() for c in self.children)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"

    async def get_attribute(self, name: str) -> Optional[str]:
        self._check()
        return self.attrs.get(name)

    async def tag_name(self) -> str:
        self._check()
        return self.tag

    async def click(self, timeout_ms: int = 5000) -> None:
        self._check()
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    async def scroll_into_view(self, timeout_ms: int = 5000) -> None:
        self._check()

    async def content_surface(self) -> Optional["FakeSurface"]:
        self._check()
        if self.unreachable:
            raise PermissionError("Blocked a frame from accessing a cross-origin frame")
        return self.frame

    async def shadow_root(self) -> Optional["FakeScope"]:
        self._check()
        return self.shadow

    async def fill(self, value: str) -> None:
        self._check()
        self.value = value

    async def type_text(self, text: str, delay_ms: int = 0) -> None:
        self._check()
        if not self.drops_keystrokes:
            self.value += text

    async def input_value(self) -> str:
        self._check()
        return self.value


class FakeScope(Scope):
    """A queryable list of root elements (also used as a shadow root)."""

    def __init__(self, elements: Optional[List[FakeElement]] = None):
        self.elements = list(elements or [])

    def all_elements(self):
        for element in self.elements:
            yield from element.walk()

    async def query_all(self, selector: str) -> List[FakeElement]:
        return [el for el in self.all_elements() if matches(el, selector)]

    async def query_one(self, selector: str) -> Optional[FakeElement]:
        found = await self.query_all(selector)
        return found[0] if found else None


_ids = itertools.count(1)


class FakeSurface(FakeScope, Surface):
    """A page or frame document.

    Args:
        markup: Serialized markup returned by ``content()``; when None the
            element tree is serialized instead.
        heights: Successive ``scrollHeight`` values (the last one repeats).
        identity: Override to make two objects count as the same surface.
    """

    def __init__(
        self,
        url: str = "https://lms.example.edu/page",
        elements: Optional[List[FakeElement]] = None,
        *,
        markup: Optional[str] = None,
        heights: Optional[List[int]] = None,
        identity=None,
        broken: bool = False,
    ):
        super().__init__(elements)
        self._url = url
        self.markup = markup
        self.heights = list(heights or [1000])
        self._identity = identity if identity is not None else next(_ids)
        self.broken = broken
        self.visited: List[str] = []
        self.paused_ms: List[int] = []

    def set_elements(self, elements: List[FakeElement]) -> None:
        self.elements = list(elements)

    def add(self, element: FakeElement) -> None:
        self.elements.append(element)

    @property
    def identity(self):
        return self._identity

    @property
    def url(self) -> str:
        return self._url

    async def navigate(self, url: str, timeout_ms: int) -> None:
        self.visited.append(url)
        self._url = url

    async def query_all(self, selector: str) -> List[FakeElement]:
        if self.broken:
            raise RuntimeError("Frame was detached")
        return await super().query_all(selector)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> Optional[FakeElement]:
        return await self.query_one(selector)

    async def wait_for_settle(self, timeout_ms: int) -> bool:
        return True

    async def evaluate(self, expression: str, arg=None):
        if "scrollTo(" in expression:
            return None
        if "scrollHeight" in expression:
            return self.heights.pop(0) if len(self.heights) > 1 else self.heights[0]
        return None

    async def content(self) -> str:
        if self.broken:
            raise RuntimeError("Frame was detached")
        if self.markup is not None:
            return self.markup
        return "<html><body>" + "".join(el.serialize() for el in self.elements) + "</body></html>"

    async def child_surfaces(self) -> List["FakeSurface"]:
        return [
            el.frame for el in self.all_elements()
            if el.frame is not None and not el.unreachable
        ]

    async def activate_and_wait(self, element: ElementRef, timeout_ms: int) -> bool:
        await element.click(timeout_ms=timeout_ms)
        return True

    async def pause(self, ms: int) -> None:
        self.paused_ms.append(ms)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def anchor(href: str, text: str = "", **kwargs) -> FakeElement:
    return FakeElement("a", {"href": href}, text, **kwargs)


def iframe(src: Optional[str] = None, frame: Optional[FakeSurface] = None, **kwargs) -> FakeElement:
    attrs = {"src": src} if src else {}
    return FakeElement("iframe", attrs, frame=frame, **kwargs)


def run(coro):
    return asyncio.run(coro)
