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
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer

from coreason_textmining import __version__
from coreason_textmining.annotator import render, render_document
from coreason_textmining.build import OntologyBuilder
from coreason_textmining.client import MiningClient
from coreason_textmining.config import TextMiningSettings
from coreason_textmining.decoder import decode, to_phenotype_terms
from coreason_textmining.loader import OntologyLoader
from coreason_textmining.navigator import OntologyNavigator
from coreason_textmining.schemas import ParentPolicy
from coreason_textmining.utils.logger import logger

app = typer.Typer(
    name="coreason-textmining",
    help="CLI for coreason-textmining: phenotype concept mining and curation.",
    add_completion=False,
)


@app.command()
def build(
    source: Annotated[Path, typer.Option("--source", "-s", help="Path to source CSV directory", exists=True)],
    output: Annotated[Path, typer.Option("--output", "-o", help="Path to output directory")],
    root: Annotated[Optional[str], typer.Option("--root", "-r", help="Id of the root term")] = None,
    pack_version: Annotated[str, typer.Option("--pack-version", help="Version written to the manifest")] = "v1.0",
) -> None:
    """
    Build an ontology pack from term CSV tables.
    """
    logger.info(f"Starting ontology build from {source} to {output}")

    try:
        builder = OntologyBuilder(source, output)
        builder.build_ontology(root_id=root)
        builder.generate_manifest(version=pack_version)
        logger.info("Ontology build completed successfully.")
    except Exception:
        logger.exception("Ontology build failed")
        sys.exit(1)


@app.command()
def mine(
    text: Annotated[str, typer.Argument(help="Text to send to the mining server")],
    server: Annotated[Optional[str], typer.Option("--server", "-s", help="Mining server URL")] = None,
    vocabulary: Annotated[Optional[str], typer.Option("--vocabulary", "-v", help="Vocabulary id prefix")] = None,
    document: Annotated[bool, typer.Option("--document", help="Emit a full HTML page")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Emit mined terms as JSON instead of markup")] = False,
) -> None:
    """
    Mine concepts from text and print highlighted markup.
    """
    settings = TextMiningSettings.from_env()
    try:
        with MiningClient(server or settings.server_url, timeout=settings.timeout) as client:
            payload = client.mine(text)
        terms = to_phenotype_terms(decode(payload, text, vocabulary=vocabulary or settings.vocabulary))
    except Exception:
        logger.exception("Mining failed")
        sys.exit(1)

    if as_json:
        typer.echo(json.dumps([t.model_dump() for t in terms], indent=2))
    else:
        typer.echo(render_document(text, terms) if document else render(text, terms))


@app.command()
def path(
    term_id: Annotated[str, typer.Argument(help="Term id, e.g. HP:0001324")],
    pack: Annotated[Path, typer.Option("--pack", "-p", help="Path to ontology pack directory", exists=True)],
    policy: Annotated[
        ParentPolicy, typer.Option("--policy", help="Parent chosen when a term has several")
    ] = ParentPolicy.FIRST_DECLARED,
) -> None:
    """
    Print the path from the root to a term.
    """
    try:
        graph = OntologyLoader(pack).load_graph()
        navigator = OntologyNavigator(graph, parent_policy=policy)
        ids = navigator.path_from_root_to(navigator.term_for_id(term_id))
    except Exception:
        logger.exception("Path lookup failed")
        sys.exit(1)

    for depth, node_id in enumerate(ids):
        term = graph.term_for_id(node_id)
        typer.echo(f"{'  ' * depth}{node_id} {term.name if term else ''}")


@app.command()
def version() -> None:
    """Print the version of coreason-textmining."""
    typer.echo(f"coreason-textmining v{__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()  # pragma: no cover
