# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

from typing import Callable, List, Optional, Protocol

from coreason_textmining.schemas import Signal, Term


class OntologyGraph(Protocol):
    """
    Protocol for read-only access to a single-rooted term hierarchy.
    """

    def term_for_id(self, term_id: str) -> Optional[Term]:
        """
        Returns the term with the given id, or None if the ontology does not know it.
        """
        ...

    def parents_of(self, term_id: str) -> List[str]:
        """
        Returns ids of the direct parents of a term.
        """
        ...

    def children_of(self, term_id: str) -> List[str]:
        """
        Returns ids of the direct children of a term.
        """
        ...

    def exists_path(self, from_id: str, to_id: str) -> bool:
        """
        Checks whether `to_id` is reachable from `from_id` by following parent links.
        """
        ...

    def root_id(self) -> str:
        """
        Returns the id of the declared root term.
        """
        ...

    def all_terms(self) -> List[Term]:
        """
        Returns every term of the ontology.
        """
        ...


SignalHook = Callable[[Signal], None]
FocusHook = Callable[[str], None]
