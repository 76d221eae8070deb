# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import pytest
from pydantic import ValidationError

from coreason_textmining.schemas import (
    Manifest,
    MinedConcept,
    ParentPolicy,
    PhenotypeTerm,
    Signal,
    Span,
    Term,
    TermDetails,
    concept_prefix,
    is_valid_concept_id,
)


@pytest.mark.parametrize(
    "concept_id, prefix",
    [
        ("HP:0001324", "HP"),
        ("MONDO:0005027", "MONDO"),
        ("NCBITaxon:9606", "NCBITaxon"),
        ("weird:id:with:colons", "weird"),
        ("nocolon", "nocolon"),
    ],
)
def test_concept_prefix(concept_id: str, prefix: str) -> None:
    assert concept_prefix(concept_id) == prefix


@pytest.mark.parametrize(
    "concept_id, valid",
    [
        ("HP:0001324", True),
        ("HP:", False),
        (":0001324", False),
        ("HP0001324", False),
        ("", False),
        ("HP: 0001324", False),
        ("HP:0001324\n", False),
        ("NCBITaxon:9606", True),
        ("CHEBI:15377-1.2", True),
        ("1HP:0001324", False),
        ("HP:1');alert(1);//", False),
        ("HP:<b>", False),
    ],
)
def test_is_valid_concept_id(concept_id: str, valid: bool) -> None:
    assert is_valid_concept_id(concept_id) is valid


def test_term_defaults() -> None:
    term = Term(id="HP:0001324", name="Muscle weakness")
    assert term.synonyms == ()
    assert term.definition is None
    assert term.prefix == "HP"


def test_term_is_frozen() -> None:
    term = Term(id="HP:0001324", name="Muscle weakness")
    with pytest.raises(ValidationError):
        term.name = "Weakness"  # type: ignore[misc]


def test_span_validation() -> None:
    span = Span(start=3, end=7)
    assert len(span) == 4
    assert len(Span(start=5, end=5)) == 0

    with pytest.raises(ValidationError, match="precedes start"):
        Span(start=7, end=3)
    with pytest.raises(ValidationError):
        Span(start=-1, end=3)


def test_phenotype_term_key() -> None:
    term = Term(id="HP:0003198", name="Myopathy")
    present = PhenotypeTerm(term=term, span=Span(start=0, end=8))
    excluded = PhenotypeTerm(term=term, present=False)

    assert present.key == ("HP:0003198", True)
    assert excluded.key == ("HP:0003198", False)
    assert excluded.span is None


def test_phenotype_terms_are_hashable() -> None:
    term = Term(id="HP:0003198", name="Myopathy")
    a = PhenotypeTerm(term=term, span=Span(start=0, end=8))
    b = PhenotypeTerm(term=term, span=Span(start=0, end=8))

    assert {a, b} == {a}


def test_mined_concept() -> None:
    concept = MinedConcept(span=Span(start=12, end=20), term=Term(id="HP:0003198", name="myopathy"))
    assert concept.term.prefix == "HP"


def test_term_details_from_term() -> None:
    term = Term(id="HP:0001324", name="Muscle weakness", synonyms=("Muscular weakness", "Weakness of muscles"))
    details = TermDetails.from_term(term)

    assert details.synonyms == "Muscular weakness, Weakness of muscles"
    assert details.definition == ""


def test_enums() -> None:
    assert Signal("DONE") is Signal.DONE
    assert ParentPolicy("lowest_id") is ParentPolicy.LOWEST_ID
    with pytest.raises(ValueError):
        ParentPolicy("shortest")


def test_manifest() -> None:
    manifest = Manifest(version="v1", source_date="2025-01-01", checksums={"ontology.duckdb": "abc"})
    assert manifest.checksums["ontology.duckdb"] == "abc"

    with pytest.raises(ValidationError):
        Manifest(version="v1")  # type: ignore[call-arg]
