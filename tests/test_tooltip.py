"""
Tooltip Timing Tests
====================

Show after the pointer rests on a node for the show delay, hide after the
hide delay once it leaves, and never flicker when the pointer re-enters.
"""
import pytest

from graphi.config import TooltipSettings
from graphi.interaction.tooltip import TooltipContent, TooltipController
from graphi.model.dataset import Paper

PAPERS = {
    "a": Paper(id="a", title="Attention Is All You Need, and <More>", authors="Vaswani, Shazeer",
               year=2017, citations=98000, category="Deep Learning"),
    "b": Paper(id="b", title="Deep Residual Learning", authors="He, Zhang", year=2016,
               citations=1234567, category="Computer Vision"),
}


class Recorder:
    def __init__(self, tooltip):
        self.events = []
        tooltip.shown.connect(lambda content, anchor: self.events.append(("shown", content.node_id)))
        tooltip.hidden.connect(lambda: self.events.append(("hidden",)))


@pytest.fixture
def tooltip(scheduler):
    return TooltipController(TooltipSettings(), scheduler, PAPERS.get)


@pytest.fixture
def recorder(tooltip):
    return Recorder(tooltip)


class TestTooltipContent:

    def test_full_title_and_formatted_citations(self):
        content = TooltipContent.from_paper(PAPERS["b"])
        assert content.title == "Deep Residual Learning"
        assert content.citations == "1,234,567"
        assert content.lines() == [
            "Deep Residual Learning",
            "Authors: He, Zhang",
            "Year: 2016",
            "Citations: 1,234,567",
            "Category: Computer Vision",
        ]

    def test_html_is_escaped(self):
        html = TooltipContent.from_paper(PAPERS["a"]).to_html()
        assert "&lt;More&gt;" in html
        assert "<strong>Citations:</strong> 98,000" in html


class TestTooltipTiming:

    def test_shows_after_delay(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(199)
        assert recorder.events == []
        scheduler.advance(1)
        assert recorder.events == [("shown", "a")]
        assert tooltip.visible == "a"

    def test_short_hover_shows_nothing(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(150)
        tooltip.leave("a")
        scheduler.advance(1000)
        assert recorder.events == []

    def test_hides_after_delay(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(200)
        tooltip.leave("a")
        scheduler.advance(499)
        assert tooltip.visible == "a"
        scheduler.advance(1)
        assert recorder.events == [("shown", "a"), ("hidden",)]
        assert tooltip.visible is None

    def test_reentering_cancels_pending_hide(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(200)
        tooltip.leave("a")
        scheduler.advance(300)
        tooltip.enter("a", (12, 12))
        scheduler.advance(2000)
        assert recorder.events == [("shown", "a")]
        assert tooltip.visible == "a"

    def test_moving_to_another_node_switches_content(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(200)
        tooltip.leave("a")
        tooltip.enter("b", (40, 40))
        scheduler.advance(200)
        assert recorder.events == [("shown", "a"), ("shown", "b")]
        assert tooltip.visible == "b"
        assert tooltip.anchor == (40, 40)

    def test_unknown_node_ignored(self, tooltip, recorder, scheduler):
        tooltip.enter("zzz", (0, 0))
        scheduler.advance(1000)
        assert recorder.events == []
        assert tooltip.hovered is None

    def test_dispose_hides_immediately(self, tooltip, recorder, scheduler):
        tooltip.enter("a", (10, 10))
        scheduler.advance(200)
        tooltip.dispose()
        assert recorder.events == [("shown", "a"), ("hidden",)]
        assert scheduler.pending == 0
        tooltip.enter("b", (0, 0))
        scheduler.advance(1000)
        assert tooltip.visible is None
