# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from coreason_textmining.annotator import render, render_document
from coreason_textmining.client import MiningClient
from coreason_textmining.config import TextMiningSettings
from coreason_textmining.decoder import decode, to_phenotype_terms
from coreason_textmining.exceptions import MiningRoundError, PathNotFound, UnresolvedId
from coreason_textmining.loader import OntologyLoader
from coreason_textmining.navigator import OntologyNavigator
from coreason_textmining.schemas import PhenotypeTerm, Term
from coreason_textmining.utils.logger import logger


# Pydantic Models for Requests
class RenderRequest(BaseModel):
    text: str
    concepts: List[PhenotypeTerm]
    document: bool = False


class MineRequest(BaseModel):
    text: str


class MarkupResponse(BaseModel):
    markup: str


class MineResponse(BaseModel):
    terms: List[PhenotypeTerm]
    markup: str


class PathResponse(BaseModel):
    term: Term
    path: List[str]


# Lifespan Management
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Loads settings and, when a pack is configured, the ontology navigator.
    """
    settings = TextMiningSettings.from_env()
    app.state.settings = settings
    app.state.navigator = None

    if settings.pack_path:
        logger.info(f"Initializing text-mining server with pack: {settings.pack_path}")
        try:
            graph = OntologyLoader(settings.pack_path).load_graph()
            app.state.navigator = OntologyNavigator(graph, parent_policy=settings.parent_policy)
            logger.info("Ontology loaded successfully.")
        except Exception as e:
            logger.exception("Failed to load ontology pack.")
            raise RuntimeError(f"Server initialization failed: {e}") from e
    else:
        logger.warning("TEXTMINING_PACK_PATH is not set, ontology endpoints are disabled.")

    yield

    logger.info("Shutting down text-mining server.")


app = FastAPI(title="Coreason Text-Mining API", lifespan=lifespan)


def _navigator() -> OntologyNavigator:
    navigator: Optional[OntologyNavigator] = app.state.navigator
    if navigator is None:
        raise HTTPException(status_code=503, detail="Ontology is not available")
    return navigator


@app.get("/health")
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.
    """
    return {"status": "ready"}


@app.post("/render", response_model=MarkupResponse)
async def render_markup(request: RenderRequest) -> MarkupResponse:
    """
    Highlight the given concepts in the text.
    """
    if request.document:
        return MarkupResponse(markup=render_document(request.text, request.concepts))
    return MarkupResponse(markup=render(request.text, request.concepts))


@app.post("/mine", response_model=MineResponse)
def mine(request: MineRequest) -> MineResponse:
    """
    Run the text through the mining server and return the highlighted result.
    """
    if not request.text.strip():
        raise HTTPException(status_code=422, detail="text is required")

    settings: TextMiningSettings = app.state.settings
    try:
        with MiningClient(settings.server_url, timeout=settings.timeout) as client:
            payload = client.mine(request.text)
        terms = to_phenotype_terms(decode(payload, request.text, vocabulary=settings.vocabulary))
    except MiningRoundError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return MineResponse(terms=terms, markup=render(request.text, terms))


@app.get("/terms/{term_id}/path", response_model=PathResponse)
def term_path(term_id: str) -> PathResponse:
    """
    Path of term ids from the top-level term down to `term_id`.
    """
    navigator = _navigator()
    try:
        term = navigator.term_for_id(term_id)
        return PathResponse(term=term, path=navigator.path_from_root_to(term))
    except (UnresolvedId, PathNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@app.get("/search", response_model=PathResponse)
def search(name: str) -> PathResponse:
    """
    Look a term up by its exact name.
    """
    navigator = _navigator()
    term_id = navigator.labels.get(name)
    if term_id is None:
        raise HTTPException(status_code=404, detail=f"No term named '{name}'")
    return term_path(term_id)


@app.get("/suggest")
def suggest(prefix: str, limit: int = 10) -> List[str]:
    """
    Autocomplete term names.
    """
    return _navigator().suggest(prefix, limit=limit)
