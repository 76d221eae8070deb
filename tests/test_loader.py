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
from pathlib import Path
from typing import Dict
from unittest.mock import patch

import duckdb
import pytest

from coreason_textmining.build import MANIFEST, ONTOLOGY_DB, file_sha256
from coreason_textmining.loader import OntologyLoader
from ontology_data import create_ontology_tables


def _write_manifest(pack: Path, checksums: Dict[str, str]) -> None:
    manifest = {"version": "v1", "source_date": "2025-01-01", "checksums": checksums}
    (pack / MANIFEST).write_text(json.dumps(manifest))


@pytest.fixture
def rootless_pack(tmp_path: Path) -> Path:
    """A pack whose database passes the checksum but declares no root term."""
    pack = tmp_path / "rootless"
    pack.mkdir()
    con = duckdb.connect(str(pack / ONTOLOGY_DB))
    create_ontology_tables(con, root_id=None)
    con.close()
    _write_manifest(pack, {ONTOLOGY_DB: file_sha256(pack / ONTOLOGY_DB)})
    return pack


def test_load_graph(ontology_pack: Path) -> None:
    """A pack produced by the builder loads and answers queries."""
    graph = OntologyLoader(ontology_pack).load_graph()

    assert graph.root_id() == "HP:0000001"
    assert graph.exists_path("HP:0001324", "HP:0000001") is True
    term = graph.term_for_id("HP:0001324")
    assert term is not None
    assert term.name == "Muscle weakness"


def test_connection_is_read_only(ontology_pack: Path) -> None:
    con = OntologyLoader(ontology_pack).load_connection()
    try:
        with pytest.raises(duckdb.Error):
            con.execute("DELETE FROM term")
    finally:
        con.close()


def test_load_manifest(ontology_pack: Path) -> None:
    loader = OntologyLoader(ontology_pack)
    manifest = loader.load_manifest()

    assert manifest.version == "vTest"
    assert manifest.source_date == "2025-01-01"
    assert manifest.checksums[ONTOLOGY_DB] == file_sha256(ontology_pack / ONTOLOGY_DB)
    assert loader.manifest is manifest


def test_verify_integrity_returns_manifest(ontology_pack: Path) -> None:
    loader = OntologyLoader(ontology_pack)
    assert loader.verify_integrity().version == "vTest"
    assert loader.manifest is not None


def test_checksum_mismatch(ontology_pack: Path) -> None:
    """Modification of the database triggers an integrity error."""
    with open(ontology_pack / ONTOLOGY_DB, "ab") as f:
        f.write(b"corruption")

    with pytest.raises(ValueError, match="Integrity check failed"):
        OntologyLoader(ontology_pack).load_graph()


def test_missing_database(ontology_pack: Path) -> None:
    (ontology_pack / ONTOLOGY_DB).unlink()
    with pytest.raises(FileNotFoundError, match="Artifact not found"):
        OntologyLoader(ontology_pack).load_connection()


def test_manifest_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Manifest not found"):
        OntologyLoader(tmp_path).load_graph()


def test_manifest_invalid_json(tmp_path: Path) -> None:
    (tmp_path / MANIFEST).write_text("{invalid_json")
    with pytest.raises(ValueError, match="Invalid manifest"):
        OntologyLoader(tmp_path).load_manifest()


def test_manifest_missing_fields(tmp_path: Path) -> None:
    (tmp_path / MANIFEST).write_text(json.dumps({"version": "v1"}))
    with pytest.raises(ValueError, match="Invalid manifest"):
        OntologyLoader(tmp_path).load_manifest()


def test_manifest_must_cover_database(tmp_path: Path) -> None:
    (tmp_path / "notes.txt").write_text("hello")
    _write_manifest(tmp_path, {"notes.txt": file_sha256(tmp_path / "notes.txt")})

    loader = OntologyLoader(tmp_path)
    with pytest.raises(ValueError, match=f"does not list {ONTOLOGY_DB}"):
        loader.load_manifest()
    assert loader.manifest is None


def test_pack_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Ontology pack not found"):
        OntologyLoader(tmp_path / "non_existent")


def test_pack_must_be_directory(tmp_path: Path) -> None:
    archive = tmp_path / "hp_pack.zip"
    archive.write_bytes(b"PK")
    with pytest.raises(FileNotFoundError, match="Ontology pack not found"):
        OntologyLoader(archive)


def test_path_traversal_rejected(tmp_path: Path) -> None:
    pack = tmp_path / "pack"
    pack.mkdir()
    (tmp_path / "outside.duckdb").write_bytes(b"data")
    _write_manifest(pack, {"../outside.duckdb": "0" * 64, ONTOLOGY_DB: "0" * 64})
    (pack / ONTOLOGY_DB).write_bytes(b"data")

    with pytest.raises(ValueError, match="Path traversal"):
        OntologyLoader(pack).verify_integrity()


def test_symlink_rejected(tmp_path: Path) -> None:
    pack = tmp_path / "pack"
    pack.mkdir()
    target = pack / "real.duckdb"
    target.write_bytes(b"data")
    (pack / ONTOLOGY_DB).symlink_to(target)
    _write_manifest(pack, {ONTOLOGY_DB: file_sha256(target)})

    with pytest.raises(ValueError, match="Symlinks not allowed"):
        OntologyLoader(pack).verify_integrity()


def test_pack_without_root(rootless_pack: Path) -> None:
    with pytest.raises(ValueError, match="does not declare a root"):
        OntologyLoader(rootless_pack).load_graph()

    # the connection was released, so the file can be opened for writing again
    con = duckdb.connect(str(rootless_pack / ONTOLOGY_DB))
    con.close()


def test_connection_failure(ontology_pack: Path) -> None:
    loader = OntologyLoader(ontology_pack)
    with patch("coreason_textmining.loader.duckdb.connect", side_effect=duckdb.IOException("locked")):
        with pytest.raises(ValueError, match="Failed to initialize DuckDB connection: locked"):
            loader.load_connection()
