# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import re
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

CONCEPT_ID_SEPARATOR = ":"
CONCEPT_ID_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]*:[A-Za-z0-9_.\-]+")


def concept_prefix(concept_id: str) -> str:
    """Returns the namespace prefix of a concept id, i.e. everything before the first ':'."""
    return concept_id.split(CONCEPT_ID_SEPARATOR, 1)[0]


def is_valid_concept_id(concept_id: str) -> bool:
    """
    Checks that the id looks like PREFIX:LOCAL. The prefix is a letter followed by
    letters, digits or underscores; the local part may also hold dots and dashes.
    """
    return CONCEPT_ID_PATTERN.fullmatch(concept_id) is not None


class Term(BaseModel):
    """
    A node of the phenotype vocabulary hierarchy.

    Terms are loaded once per session and never change afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    synonyms: Tuple[str, ...] = ()
    definition: Optional[str] = None

    @property
    def prefix(self) -> str:
        return concept_prefix(self.id)


class Span(BaseModel):
    """Half-open character range [start, end) into one specific query text."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "Span":
        if self.end < self.start:
            raise ValueError(f"Span end ({self.end}) precedes start ({self.start})")
        return self

    def __len__(self) -> int:
        return self.end - self.start


class MinedConcept(BaseModel):
    """A raw hit from the mining service."""

    model_config = ConfigDict(frozen=True)

    span: Span
    term: Term


class PhenotypeTerm(BaseModel):
    """
    Curated, user-facing annotation.

    `present=False` marks an explicitly excluded (NOT) finding. Terms added by hand
    from the ontology tree have no span.
    """

    model_config = ConfigDict(frozen=True)

    term: Term
    span: Optional[Span] = None
    present: bool = True

    @property
    def key(self) -> Tuple[str, bool]:
        """Identity used for deduplication of the review list."""
        return (self.term.id, self.present)


class TermDetails(BaseModel):
    id: str
    name: str
    synonyms: str
    definition: str

    @classmethod
    def from_term(cls, term: Term) -> "TermDetails":
        return cls(
            id=term.id,
            name=term.name,
            synonyms=", ".join(term.synonyms),
            definition=term.definition or "",
        )


class Signal(str, Enum):
    """Outcome of a review round, raised towards the embedding application."""

    DONE = "DONE"
    CANCELLED = "CANCELLED"


class ParentPolicy(str, Enum):
    """
    How a single parent is picked when climbing a term with several parents.

    FIRST_DECLARED keeps the order reported by the graph; LOWEST_ID picks the
    lexicographically smallest parent id.
    """

    FIRST_DECLARED = "first_declared"
    LOWEST_ID = "lowest_id"


class Manifest(BaseModel):
    version: str
    source_date: str
    checksums: Dict[str, str]


class TextMiningResult(BaseModel):
    """Approved terms of a curation session together with the publication they were mined from."""

    model_config = ConfigDict(frozen=True)

    terms: FrozenSet[PhenotypeTerm] = frozenset()
    pmid: str = ""
