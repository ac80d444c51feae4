from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from graphi.model.dataset import Paper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RadiusScale:
    """
    Linear map from a paper's citation count to its circle radius.

    The domain is the citation extent of the dataset, the range is
    [radius_min, radius_max]. Values outside the domain are clamped.
    """
    citation_min: int
    citation_max: int
    radius_min: float
    radius_max: float

    @classmethod
    def from_papers(cls, papers: Iterable[Paper], radius_min: float, radius_max: float) -> RadiusScale:
        """
        Compute the citation extent in a single pass.

        Args:
            papers: All papers of the dataset (must not be empty).
            radius_min: Radius of the least cited paper.
            radius_max: Radius of the most cited paper.

        Raises:
            ValueError: If ``papers`` is empty.
        """
        low: int | None = None
        high: int | None = None
        for paper in papers:
            if low is None or paper.citations < low:
                low = paper.citations
            if high is None or paper.citations > high:
                high = paper.citations

        if low is None or high is None:
            raise ValueError("Cannot derive a radius scale from an empty node set.")

        scale = cls(citation_min=low, citation_max=high, radius_min=radius_min, radius_max=radius_max)
        if scale.is_degenerate:
            logger.warning(
                f"All papers have {low} citations; using the midpoint radius {scale.midpoint:g} for every node."
            )
        return scale

    @property
    def is_degenerate(self) -> bool:
        return self.citation_max == self.citation_min

    @property
    def midpoint(self) -> float:
        return (self.radius_min + self.radius_max) / 2

    def __call__(self, citations: float) -> float:
        if self.is_degenerate:
            return self.midpoint
        t = (citations - self.citation_min) / (self.citation_max - self.citation_min)
        t = min(1.0, max(0.0, t))
        return self.radius_min + t * (self.radius_max - self.radius_min)

    def radius_of(self, paper: Paper) -> float:
        return self(paper.citations)
