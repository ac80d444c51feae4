import logging

import pytest

from graphi.layout.scale import RadiusScale
from graphi.model.dataset import Paper


def paper(citations, paper_id="p"):
    return Paper(id=paper_id, title="T", authors="A", year=2000, citations=citations, category="NLP")


class TestRadiusScale:

    def test_extent_maps_to_radius_range(self):
        scale = RadiusScale.from_papers([paper(10), paper(1000), paper(505)], 8, 25)
        assert (scale.citation_min, scale.citation_max) == (10, 1000)
        assert scale(10) == 8
        assert scale(1000) == 25
        assert scale(505) == pytest.approx(16.5)

    def test_every_radius_within_bounds(self):
        papers = [paper(c, str(i)) for i, c in enumerate([0, 3, 17, 250, 9000, 120000])]
        scale = RadiusScale.from_papers(papers, 8, 25)
        for p in papers:
            assert 8 <= scale.radius_of(p) <= 25

    def test_monotonic(self):
        scale = RadiusScale.from_papers([paper(0), paper(100)], 8, 25)
        radii = [scale(c) for c in range(0, 101, 5)]
        assert radii == sorted(radii)

    def test_out_of_domain_is_clamped(self):
        scale = RadiusScale.from_papers([paper(10), paper(20)], 8, 25)
        assert scale(0) == 8
        assert scale(10_000) == 25

    def test_degenerate_extent_uses_midpoint(self, caplog):
        with caplog.at_level(logging.WARNING, logger="graphi"):
            scale = RadiusScale.from_papers([paper(42), paper(42)], 8, 25)
        assert scale.is_degenerate
        assert scale(42) == pytest.approx(16.5)
        assert "midpoint" in caplog.text

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            RadiusScale.from_papers([], 8, 25)
