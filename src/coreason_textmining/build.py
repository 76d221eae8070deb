# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import hashlib
import json
from pathlib import Path
from typing import Dict, Optional, Union

import duckdb
from loguru import logger

ONTOLOGY_DB = "ontology.duckdb"
MANIFEST = "manifest.json"


def file_sha256(path: Path) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(4096), b""):
            sha256.update(block)
    return sha256.hexdigest()


class OntologyBuilder:
    """
    Offline Builder utility to compile pre-extracted term tables into an ontology pack.

    Expected CSV files (with headers):
    - TERM.csv: term_id,name,definition
    - TERM_PARENT.csv: term_id,parent_id (one row per is-a edge, in preferred parent order)
    - TERM_SYNONYM.csv (optional): term_id,synonym
    """

    REQUIRED_FILES = ["TERM.csv", "TERM_PARENT.csv"]
    OPTIONAL_FILES = ["TERM_SYNONYM.csv"]

    def __init__(self, source_dir: Union[str, Path], output_dir: Union[str, Path]):
        """
        Initialize the OntologyBuilder.

        Args:
            source_dir: Directory containing the CSV files.
            output_dir: Directory where the pack will be written.
        """
        self.source_dir = Path(source_dir)
        self.output_dir = Path(output_dir)

    def _verify_source_files(self) -> None:
        """Verify that all required CSV files exist in the source directory."""
        if not self.source_dir.exists():
            raise FileNotFoundError(f"Source directory not found: {self.source_dir}")

        for filename in self.REQUIRED_FILES:
            file_path = self.source_dir / filename
            if not file_path.exists():
                raise FileNotFoundError(f"Required file not found: {filename}")

    def build_ontology(self, root_id: Optional[str] = None) -> Path:
        """
        Builds the ontology.duckdb artifact from the source CSVs.

        Args:
            root_id: Id of the root term. When omitted the single term without
                parents is used.

        Returns:
            The path to the generated ontology.duckdb file.
        """
        self._verify_source_files()

        if not self.output_dir.exists():
            self.output_dir.mkdir(parents=True, exist_ok=True)

        db_path = self.output_dir / ONTOLOGY_DB

        # Remove existing file if it exists to ensure a clean build
        db_path.unlink(missing_ok=True)

        logger.info(f"Building ontology artifact at {db_path}")

        con = None
        try:
            con = duckdb.connect(str(db_path))

            self._load_terms(con)
            self._load_parents(con)
            self._load_synonyms(con)
            self._write_root(con, root_id)
            self._create_indexes(con)

            con.close()
            con = None
            logger.info("Ontology build complete.")
            return db_path

        except Exception as e:
            logger.error(f"Failed to build ontology artifact: {e}")
            if con:
                con.close()
            db_path.unlink(missing_ok=True)  # Cleanup partial build
            raise RuntimeError(f"Build failed: {e}") from e

    def _csv(self, filename: str) -> str:
        return f"read_csv_auto('{self.source_dir / filename}', header=True, all_varchar=True)"

    def _load_terms(self, con: duckdb.DuckDBPyConnection) -> None:
        logger.info("Loading term table")
        con.execute(f"""
            CREATE TABLE term AS
            SELECT term_id, name, NULLIF(definition, '') AS definition
            FROM {self._csv("TERM.csv")}
        """)

    def _load_parents(self, con: duckdb.DuckDBPyConnection) -> None:
        # ord keeps the file order, which is the declared parent order
        logger.info("Loading term_parent table")
        con.execute(f"""
            CREATE TABLE term_parent AS
            SELECT term_id, parent_id, row_number() OVER () AS ord
            FROM {self._csv("TERM_PARENT.csv")}
        """)

    def _load_synonyms(self, con: duckdb.DuckDBPyConnection) -> None:
        if (self.source_dir / "TERM_SYNONYM.csv").exists():
            logger.info("Loading term_synonym table")
            con.execute(f"""
                CREATE TABLE term_synonym AS
                SELECT term_id, synonym, row_number() OVER () AS ord
                FROM {self._csv("TERM_SYNONYM.csv")}
            """)
        else:
            con.execute("CREATE TABLE term_synonym (term_id VARCHAR, synonym VARCHAR, ord BIGINT)")

    def _write_root(self, con: duckdb.DuckDBPyConnection, root_id: Optional[str]) -> None:
        if root_id is None:
            rows = con.execute("""
                SELECT term_id FROM term
                WHERE term_id NOT IN (SELECT term_id FROM term_parent)
            """).fetchall()
            if len(rows) != 1:
                raise ValueError(f"Expected exactly one term without parents, found {len(rows)}")
            root_id = rows[0][0]
        elif con.execute("SELECT 1 FROM term WHERE term_id = ?", [root_id]).fetchone() is None:
            raise ValueError(f"Root term {root_id} is not defined in TERM.csv")

        logger.info(f"Using {root_id} as ontology root")
        con.execute("CREATE TABLE ontology_meta (key VARCHAR, value VARCHAR)")
        con.execute("INSERT INTO ontology_meta VALUES ('root_id', ?)", [root_id])

    def _create_indexes(self, con: duckdb.DuckDBPyConnection) -> None:
        """Creates indexes for parent/child lookups."""
        logger.info("Creating indexes...")

        con.execute("CREATE INDEX idx_term_id ON term(term_id)")
        con.execute("CREATE INDEX idx_parent_term ON term_parent(term_id)")
        con.execute("CREATE INDEX idx_parent_parent ON term_parent(parent_id)")
        con.execute("CREATE INDEX idx_synonym_term ON term_synonym(term_id)")

        logger.info("Indexes created.")

    def generate_manifest(self, version: str = "v1.0", source_date: str = "2025-01-01") -> Path:
        """
        Writes manifest.json with the checksum of the ontology database.
        """
        db_path = self.output_dir / ONTOLOGY_DB
        if not db_path.exists():
            raise FileNotFoundError(f"Ontology database not found at {db_path}, run build_ontology first")

        manifest_path = self.output_dir / MANIFEST
        checksums: Dict[str, str] = {ONTOLOGY_DB: file_sha256(db_path)}

        manifest_data = {"version": version, "source_date": source_date, "checksums": checksums}

        with open(manifest_path, "w") as f:
            json.dump(manifest_data, f, indent=2)

        return manifest_path
