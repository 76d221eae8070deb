# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

from pathlib import Path
from typing import Optional, Union

import duckdb
from loguru import logger
from pydantic import ValidationError

from coreason_textmining.build import MANIFEST, ONTOLOGY_DB, file_sha256
from coreason_textmining.graph import DuckDBOntologyGraph
from coreason_textmining.schemas import Manifest


class OntologyLoader:
    """
    Opens an ontology pack written by OntologyBuilder.

    The pack directory holds ontology.duckdb and a manifest.json carrying its
    SHA-256 checksum. The database is opened read-only, and only after every
    artifact listed in the manifest matched its checksum.
    """

    def __init__(self, pack_path: Union[str, Path]):
        self.pack_path = Path(pack_path)
        if not self.pack_path.is_dir():
            raise FileNotFoundError(f"Ontology pack not found at: {self.pack_path}")

        self.manifest: Optional[Manifest] = None

    @property
    def db_path(self) -> Path:
        return self.pack_path / ONTOLOGY_DB

    def load_manifest(self) -> Manifest:
        """
        Parses manifest.json.

        Raises:
            FileNotFoundError: If the pack has no manifest.
            ValueError: If the manifest is invalid or does not cover the ontology database.
        """
        manifest_path = self.pack_path / MANIFEST
        if not manifest_path.exists():
            raise FileNotFoundError(f"Manifest not found at: {manifest_path}")

        try:
            manifest = Manifest.model_validate_json(manifest_path.read_text())
        except ValidationError as e:
            raise ValueError(f"Invalid manifest {manifest_path}: {e}") from e

        if ONTOLOGY_DB not in manifest.checksums:
            raise ValueError(f"Manifest does not list {ONTOLOGY_DB}")

        self.manifest = manifest
        return manifest

    def _artifact_path(self, filename: str) -> Path:
        path = self.pack_path / filename
        if not path.resolve().is_relative_to(self.pack_path.resolve()):
            raise ValueError(f"Security Violation: Path traversal detected in {filename}")
        if path.is_symlink():
            raise ValueError(f"Security Violation: Symlinks not allowed for artifact {filename}")
        if not path.is_file():
            raise FileNotFoundError(f"Artifact not found: {filename}")
        return path

    def verify_integrity(self) -> Manifest:
        """
        Checks every artifact listed in the manifest against its checksum.

        Raises:
            ValueError: On a checksum mismatch or an artifact outside the pack.
        """
        manifest = self.manifest or self.load_manifest()
        logger.info(f"Verifying ontology pack {manifest.version} ({manifest.source_date})")

        for filename, expected_hash in manifest.checksums.items():
            calculated_hash = file_sha256(self._artifact_path(filename))
            if calculated_hash != expected_hash:
                logger.error(f"Checksum mismatch for {filename}. Expected {expected_hash}, got {calculated_hash}")
                raise ValueError(f"Integrity check failed for {filename}")

        logger.info("Integrity check passed.")
        return manifest

    def load_connection(self) -> duckdb.DuckDBPyConnection:
        """Verifies the pack and opens the ontology database read-only."""
        self.verify_integrity()

        logger.info(f"Connecting to DuckDB at {self.db_path}")
        try:
            return duckdb.connect(str(self.db_path), read_only=True)
        except duckdb.Error as e:
            logger.error(f"Failed to open {self.db_path}: {e}")
            raise ValueError(f"Failed to initialize DuckDB connection: {e}") from e

    def load_graph(self) -> DuckDBOntologyGraph:
        """
        Loads the pack and wraps it in a graph query facade.

        Raises:
            ValueError: If the database lacks the term tables or does not declare a root.
        """
        con = self.load_connection()
        try:
            graph = DuckDBOntologyGraph(con)
        except ValueError:
            con.close()
            raise
        logger.info(f"Ontology pack loaded with root {graph.root_id()}")
        return graph
