# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

from typing import Dict, List, Optional

import duckdb
from loguru import logger

from coreason_textmining.schemas import Term

REQUIRED_TABLES = ["term", "term_synonym", "term_parent", "ontology_meta"]


class DuckDBOntologyGraph:
    """
    Term hierarchy backed by the tables of an ontology pack.

    Tables:
    - term(term_id, name, definition)
    - term_synonym(term_id, synonym, ord)
    - term_parent(term_id, parent_id, ord)
    - ontology_meta(key, value), with key 'root_id'
    """

    def __init__(self, duckdb_conn: duckdb.DuckDBPyConnection):
        self.duckdb_conn = duckdb_conn

        # Verify tables exist
        for table in REQUIRED_TABLES:
            try:
                self.duckdb_conn.execute(f"SELECT 1 FROM {table} LIMIT 1")
            except Exception as e:
                logger.error(f"Table '{table}' not found or invalid: {e}")
                raise ValueError(f"Table '{table}' is missing in the ontology.") from e

        self._root_id = self._load_root_id()

    def _load_root_id(self) -> str:
        row = self.duckdb_conn.execute("SELECT value FROM ontology_meta WHERE key = 'root_id'").fetchone()
        if row is None or not row[0]:
            raise ValueError("Ontology does not declare a root term.")
        return str(row[0])

    def root_id(self) -> str:
        return self._root_id

    def term_for_id(self, term_id: str) -> Optional[Term]:
        row = self.duckdb_conn.execute(
            "SELECT term_id, name, definition FROM term WHERE term_id = ?", [term_id]
        ).fetchone()
        if row is None:
            return None

        synonyms = self.duckdb_conn.execute(
            "SELECT synonym FROM term_synonym WHERE term_id = ? ORDER BY ord", [term_id]
        ).fetchall()
        return Term(id=row[0], name=row[1], definition=row[2], synonyms=tuple(s[0] for s in synonyms))

    def parents_of(self, term_id: str) -> List[str]:
        """
        Returns the direct parents in declaration order.
        """
        try:
            rows = self.duckdb_conn.execute(
                "SELECT parent_id FROM term_parent WHERE term_id = ? ORDER BY ord", [term_id]
            ).fetchall()
            return [r[0] for r in rows]
        except Exception as e:
            logger.error(f"Error querying parents for {term_id}: {e}")
            return []

    def children_of(self, term_id: str) -> List[str]:
        try:
            rows = self.duckdb_conn.execute(
                "SELECT term_id FROM term_parent WHERE parent_id = ? ORDER BY ord", [term_id]
            ).fetchall()
            return [r[0] for r in rows]
        except Exception as e:
            logger.error(f"Error querying children for {term_id}: {e}")
            return []

    def exists_path(self, from_id: str, to_id: str) -> bool:
        """
        Walks parent links upwards from `from_id` with a recursive query.
        A term always reaches itself.
        """
        query = """
            WITH RECURSIVE ancestors(term_id) AS (
                SELECT CAST(? AS VARCHAR)
                UNION
                SELECT p.parent_id
                FROM term_parent p
                JOIN ancestors a ON p.term_id = a.term_id
            )
            SELECT 1 FROM ancestors WHERE term_id = ? LIMIT 1
        """
        try:
            return self.duckdb_conn.execute(query, [from_id, to_id]).fetchone() is not None
        except Exception as e:
            logger.error(f"Error checking path from {from_id} to {to_id}: {e}")
            return False

    def all_terms(self) -> List[Term]:
        synonyms: Dict[str, List[str]] = {}
        for term_id, synonym in self.duckdb_conn.execute(
            "SELECT term_id, synonym FROM term_synonym ORDER BY term_id, ord"
        ).fetchall():
            synonyms.setdefault(term_id, []).append(synonym)

        rows = self.duckdb_conn.execute("SELECT term_id, name, definition FROM term ORDER BY term_id").fetchall()
        return [
            Term(id=row[0], name=row[1], definition=row[2], synonyms=tuple(synonyms.get(row[0], [])))
            for row in rows
        ]
