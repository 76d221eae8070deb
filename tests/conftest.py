# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import csv
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional

import duckdb
import pytest

from coreason_textmining.build import OntologyBuilder
from coreason_textmining.graph import DuckDBOntologyGraph
from coreason_textmining.navigator import OntologyNavigator
from coreason_textmining.schemas import PhenotypeTerm, Span, Term
from ontology_data import PARENTS, SYNONYMS, TERMS, create_ontology_tables


@pytest.fixture
def duckdb_con() -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """In-memory DuckDB connection holding the sample hierarchy."""
    con = duckdb.connect(":memory:")
    create_ontology_tables(con)
    yield con
    con.close()


@pytest.fixture
def graph(duckdb_con: duckdb.DuckDBPyConnection) -> DuckDBOntologyGraph:
    return DuckDBOntologyGraph(duckdb_con)


@pytest.fixture
def navigator(graph: DuckDBOntologyGraph) -> OntologyNavigator:
    return OntologyNavigator(graph)


@pytest.fixture
def source_csvs(tmp_path: Path) -> Path:
    src = tmp_path / "terms_src"
    src.mkdir()

    with open(src / "TERM.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["term_id", "name", "definition"])
        for term_id, name, definition in TERMS:
            if term_id != "HP:9999999":
                writer.writerow([term_id, name, definition or ""])

    with open(src / "TERM_PARENT.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["term_id", "parent_id"])
        writer.writerows(PARENTS)

    with open(src / "TERM_SYNONYM.csv", "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["term_id", "synonym"])
        writer.writerows(SYNONYMS)

    return src


@pytest.fixture
def ontology_pack(tmp_path: Path, source_csvs: Path) -> Path:
    """A pack built by the real builder from the sample CSVs."""
    pack_dir = tmp_path / "hp_pack"
    builder = OntologyBuilder(source_csvs, pack_dir)
    builder.build_ontology()
    builder.generate_manifest(version="vTest", source_date="2025-01-01")
    return pack_dir


PhenotypeFactory = Callable[..., PhenotypeTerm]
RecordFactory = Callable[..., Dict[str, Any]]


@pytest.fixture
def make_phenotype() -> PhenotypeFactory:
    def _make(term_id: str, name: str, start: int, end: int, present: bool = True) -> PhenotypeTerm:
        return PhenotypeTerm(term=Term(id=term_id, name=name), span=Span(start=start, end=end), present=present)

    return _make


@pytest.fixture
def make_record() -> RecordFactory:
    """Builds one record as returned by the mining server."""

    def _make(term_id: str, label: str, start: int, end: int, categories: Optional[List[str]] = None) -> Dict[str, Any]:
        return {
            "token": {"id": term_id, "categories": categories or ["Phenotype"], "terms": [label]},
            "start": start,
            "end": end,
        }

    return _make
