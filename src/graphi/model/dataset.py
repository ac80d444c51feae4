"""
Dataset Records
===============
Immutable descriptions of papers and the citations between them.

Why is this file needed?
------------------------
1. Validation: Every integrity rule (unique ids, non-negative citation counts,
   citations pointing at known papers) is checked here, once, before any
   simulation exists.
2. Decoupling: The layout engine only ever sees validated records, so it never
   has to guard against malformed input in the middle of a tick.

Classes:
    Paper: One node of the citation graph.
    Citation: One directed edge (source cites target).
    Dataset: A validated collection of both.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from graphi.errors import DataError

logger = logging.getLogger(__name__)

PAPER_FIELDS: tuple[str, ...] = ("id", "title", "authors", "year", "citations", "category")


def _require_str(record: Mapping[str, Any], key: str, where: str) -> str:
    value = record[key]
    if not isinstance(value, str):
        raise DataError(f"{where}: field '{key}' must be a string, got {type(value).__name__}.")
    return value


def _require_int(record: Mapping[str, Any], key: str, where: str) -> int:
    value = record[key]
    # bool is an int subclass; JSON numbers may arrive as 12.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataError(f"{where}: field '{key}' must be a number, got {type(value).__name__}.")
    if isinstance(value, float) and not value.is_integer():
        raise DataError(f"{where}: field '{key}' must be a whole number, got {value}.")
    return int(value)


def _as_identifier(value: Any, where: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise DataError(f"{where}: identifier must be a string or integer, got {value!r}.")
    return str(value)


@dataclass(frozen=True)
class Paper:
    """A research paper, i.e. one node of the graph."""
    id: str
    title: str
    authors: str
    year: int
    citations: int
    category: str

    @classmethod
    def from_record(cls, record: Any, position: int) -> Paper:
        """
        Validate a raw node record.

        Args:
            record: One element of the payload's ``nodes`` list.
            position: Index of the record, used in error messages.

        Returns:
            The validated paper.

        Raises:
            DataError: If a field is missing or has the wrong type.
        """
        where = f"node #{position}"
        if not isinstance(record, Mapping):
            raise DataError(f"{where}: expected an object, got {type(record).__name__}.")

        missing = [key for key in PAPER_FIELDS if key not in record]
        if missing:
            raise DataError(f"{where}: missing field(s) {missing}.")

        authors = record["authors"]
        if isinstance(authors, list) and all(isinstance(a, str) for a in authors):
            authors = ", ".join(authors)
        elif not isinstance(authors, str):
            raise DataError(f"{where}: field 'authors' must be a string or a list of strings.")

        citations = _require_int(record, "citations", where)
        if citations < 0:
            raise DataError(f"{where}: citation count must be non-negative, got {citations}.")

        return cls(
            id=_as_identifier(record["id"], where),
            title=_require_str(record, "title", where),
            authors=authors,
            year=_require_int(record, "year", where),
            citations=citations,
            category=_require_str(record, "category", where),
        )


@dataclass(frozen=True)
class Citation:
    """A directed edge: ``source`` cites ``target``."""
    source: str
    target: str

    @classmethod
    def from_record(cls, record: Any, position: int) -> Citation:
        where = f"edge #{position}"
        if not isinstance(record, Mapping):
            raise DataError(f"{where}: expected an object, got {type(record).__name__}.")
        for key in ("source", "target"):
            if key not in record:
                raise DataError(f"{where}: missing field '{key}'.")
        return cls(
            source=_as_identifier(record["source"], where),
            target=_as_identifier(record["target"], where),
        )


@dataclass(frozen=True)
class Dataset:
    """A validated set of papers and citations loaded under one identifier."""
    identifier: str
    papers: tuple[Paper, ...]
    citations: tuple[Citation, ...]

    def __post_init__(self) -> None:
        if not self.papers:
            raise DataError(f"Dataset '{self.identifier}' contains no nodes.")

        seen: set[str] = set()
        for paper in self.papers:
            if paper.id in seen:
                raise DataError(f"Dataset '{self.identifier}': duplicate node id '{paper.id}'.")
            seen.add(paper.id)

        for i, citation in enumerate(self.citations):
            for end in (citation.source, citation.target):
                if end not in seen:
                    raise DataError(
                        f"Dataset '{self.identifier}': edge #{i} references unknown node '{end}'."
                    )

    @classmethod
    def from_payload(cls, identifier: str, payload: Any) -> Dataset:
        """
        Build a dataset from the ``{nodes: [...], edges: [...]}`` structure.

        Raises:
            DataError: If the payload does not have the expected shape.
        """
        if not isinstance(payload, Mapping):
            raise DataError(f"Dataset '{identifier}' must be an object with 'nodes' and 'edges'.")

        nodes = payload.get("nodes")
        edges = payload.get("edges", [])
        if not isinstance(nodes, list):
            raise DataError(f"Dataset '{identifier}': 'nodes' must be a list.")
        if not isinstance(edges, list):
            raise DataError(f"Dataset '{identifier}': 'edges' must be a list.")

        papers = tuple(Paper.from_record(record, i) for i, record in enumerate(nodes))
        citations = tuple(Citation.from_record(record, i) for i, record in enumerate(edges))
        dataset = cls(identifier=identifier, papers=papers, citations=citations)
        logger.debug(f"Validated dataset '{identifier}': {len(papers)} nodes, {len(citations)} edges.")
        return dataset

    def paper(self, paper_id: str) -> Optional[Paper]:
        for paper in self.papers:
            if paper.id == paper_id:
                return paper
        return None
