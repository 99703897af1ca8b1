"""
Tests for interaction_policy.py — section expansion, scrolling and the
consent banner.
"""

from fake_surface import FakeElement, FakeSurface, anchor, run

from video_harvester.interaction_policy import (
    dismiss_cookie_consent,
    expand_collapsed_sections,
    scroll_to_bottom,
)


class TestExpandCollapsedSections:

    def test_clicks_each_collapsed_section(self):
        surface = FakeSurface(elements=[])
        first = FakeElement("button", {"aria-expanded": "false"}, "Week 1")
        header = FakeElement("div", {"class": "section-header"}, "Week 2")
        expanded = FakeElement("button", {"aria-expanded": "true"}, "Week 3")

        def reveal():
            first.attrs["aria-expanded"] = "true"
            surface.add(anchor("https://youtu.be/hidden1"))

        first.on_click = reveal
        surface.set_elements([first, header, expanded])

        assert run(expand_collapsed_sections(surface)) == 2
        assert first.clicks == 1
        assert header.clicks == 1
        assert expanded.clicks == 0
        assert run(surface.query_one('a[href*="youtu.be"]')) is not None

    def test_stale_section_skipped(self):
        stale = FakeElement("button", {"aria-expanded": "false"}, stale=True)
        fresh = FakeElement("button", {"aria-expanded": "false"})
        surface = FakeSurface(elements=[stale, fresh])
        assert run(expand_collapsed_sections(surface)) == 1
        assert fresh.clicks == 1

    def test_nothing_to_expand(self):
        assert run(expand_collapsed_sections(FakeSurface(elements=[]))) == 0

    def test_query_failure(self):
        assert run(expand_collapsed_sections(FakeSurface(broken=True))) == 0


class TestScrollToBottom:

    def test_stops_when_height_stable(self):
        surface = FakeSurface(heights=[1000])
        assert run(scroll_to_bottom(surface)) == 1

    def test_follows_growing_document(self):
        surface = FakeSurface(heights=[1000, 2000, 3000, 3000])
        assert run(scroll_to_bottom(surface)) == 3

    def test_pass_cap(self):
        surface = FakeSurface(heights=list(range(1000, 100_000, 1000)))
        assert run(scroll_to_bottom(surface, max_passes=5)) == 5


class TestCookieConsent:

    def test_accepts_banner(self):
        button = FakeElement("button", {"id": "accept"}, "Accept All")
        surface = FakeSurface(elements=[button])
        assert run(dismiss_cookie_consent(surface)) is True
        assert button.clicks == 1

    def test_no_banner(self):
        surface = FakeSurface(elements=[FakeElement("button", text="Start course")])
        assert run(dismiss_cookie_consent(surface)) is False

    def test_stale_banner_is_not_fatal(self):
        surface = FakeSurface(elements=[FakeElement("button", text="Accept all", stale=True)])
        assert run(dismiss_cookie_consent(surface)) is False
