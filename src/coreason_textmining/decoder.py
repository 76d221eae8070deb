# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import json
from typing import Any, Iterable, List, Optional, Set, Tuple

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from coreason_textmining.exceptions import MalformedPayload
from coreason_textmining.schemas import MinedConcept, PhenotypeTerm, Span, Term, concept_prefix, is_valid_concept_id

DEFAULT_VOCABULARY = "HP"


class MiningToken(BaseModel):
    id: str = Field(min_length=1)
    categories: List[str] = []
    terms: List[str] = Field(min_length=1)

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not is_valid_concept_id(value):
            raise ValueError(f"malformed concept id {value!r}")
        return value


class MiningRecord(BaseModel):
    """
    One hit of the mining server:
    {"token": {"id": ..., "categories": [...], "terms": [...]}, "start": ..., "end": ...}
    """

    token: MiningToken
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "MiningRecord":
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) precedes start ({self.start})")
        return self

    def to_mined_concept(self, span: Span) -> MinedConcept:
        # The first term is the preferred label
        return MinedConcept(
            span=span,
            term=Term(id=self.token.id, name=self.token.terms[0]),
        )


def _parse_array(payload: str) -> List[Any]:
    try:
        data = json.loads(payload)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedPayload(f"Mining payload is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise MalformedPayload(f"Mining payload must be a JSON array, got {type(data).__name__}")
    return data


def utf16_offsets(text: str) -> List[Optional[int]]:
    """
    Maps UTF-16 code-unit offsets to indices into `text`.

    The mining server counts UTF-16 code units, so characters outside the Basic
    Multilingual Plane occupy two offsets. The offset between the two halves of
    such a character maps to None. The last entry maps the end of the text.
    """
    offsets: List[Optional[int]] = []
    for i, ch in enumerate(text):
        offsets.append(i)
        if ord(ch) > 0xFFFF:
            offsets.append(None)
    offsets.append(len(text))
    return offsets


def decode(payload: str, query_text: str, vocabulary: str = DEFAULT_VOCABULARY) -> List[MinedConcept]:
    """
    Parses a raw mining payload into concepts of the target vocabulary.

    Args:
        payload: Raw JSON returned by the mining server.
        query_text: The exact text that was submitted; spans must fit inside it.
        vocabulary: Id prefix of the target vocabulary (e.g. "HP").

    Returns:
        List[MinedConcept]: Distinct hits sorted by span start, with spans converted
        from UTF-16 offsets to indices into `query_text`.

    Raises:
        MalformedPayload: If the payload is not a JSON array.
    """
    records = _parse_array(payload)
    offsets = utf16_offsets(query_text)
    query_length = len(offsets) - 1

    seen: Set[Tuple[str, int, int]] = set()
    concepts: List[MinedConcept] = []
    dropped = 0
    for i, raw in enumerate(records):
        try:
            record = MiningRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Dropping malformed mining record #{i}: {e.error_count()} validation error(s)")
            dropped += 1
            continue

        if record.end > query_length:
            logger.warning(
                f"Dropping mining record #{i} ({record.token.id}): span {record.start}-{record.end} "
                f"exceeds query length {query_length}"
            )
            dropped += 1
            continue

        start, end = offsets[record.start], offsets[record.end]
        if start is None or end is None:
            logger.warning(
                f"Dropping mining record #{i} ({record.token.id}): span {record.start}-{record.end} "
                f"splits a surrogate pair"
            )
            dropped += 1
            continue

        if concept_prefix(record.token.id) != vocabulary:
            continue

        key = (record.token.id, start, end)
        if key in seen:
            continue
        seen.add(key)
        concepts.append(record.to_mined_concept(Span(start=start, end=end)))

    concepts.sort(key=lambda c: c.span.start)
    logger.info(f"Decoded {len(concepts)} {vocabulary} concept(s) from {len(records)} record(s), dropped {dropped}")
    return concepts


def to_phenotype_terms(concepts: Iterable[MinedConcept]) -> List[PhenotypeTerm]:
    """Every mined concept starts out as a present finding."""
    return [PhenotypeTerm(term=c.term, span=c.span, present=True) for c in concepts]
