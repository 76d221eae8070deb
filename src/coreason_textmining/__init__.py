# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

"""
coreason-textmining
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .annotator import FocusBridge, partition_for_review, render, render_document
from .client import MiningClient
from .decoder import decode, to_phenotype_terms
from .exceptions import (
    MalformedPayload,
    MiningRoundError,
    PathNotFound,
    ProtocolError,
    TextMiningError,
    TransportError,
    UnresolvedId,
)
from .graph import DuckDBOntologyGraph
from .loader import OntologyLoader
from .navigator import OntologyNavigator, TreeNode
from .schemas import MinedConcept, ParentPolicy, PhenotypeTerm, Signal, Span, Term, TextMiningResult
from .session import CurationSession, ReviewRound

__all__ = [
    "CurationSession",
    "ReviewRound",
    "MiningClient",
    "DuckDBOntologyGraph",
    "OntologyLoader",
    "OntologyNavigator",
    "TreeNode",
    "FocusBridge",
    "render",
    "render_document",
    "partition_for_review",
    "decode",
    "to_phenotype_terms",
    "Term",
    "Span",
    "MinedConcept",
    "PhenotypeTerm",
    "ParentPolicy",
    "Signal",
    "TextMiningResult",
    "TextMiningError",
    "MiningRoundError",
    "TransportError",
    "ProtocolError",
    "MalformedPayload",
    "PathNotFound",
    "UnresolvedId",
]
