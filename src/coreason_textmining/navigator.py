# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import threading
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from coreason_textmining.exceptions import PathNotFound, UnresolvedId
from coreason_textmining.interfaces import OntologyGraph
from coreason_textmining.schemas import ParentPolicy, PhenotypeTerm, Term, TermDetails


class TreeNode:
    """
    A term shown in the ontology tree.

    Children are computed on first access and cached for the lifetime of the node.
    """

    def __init__(self, term: Term):
        self.term = term
        self.expanded = False
        self._children: Optional[Tuple["TreeNode", ...]] = None

    @property
    def is_materialized(self) -> bool:
        return self._children is not None

    def __repr__(self) -> str:
        return f"TreeNode({self.term.id!r}, {self.term.name!r})"


class OntologyNavigator:
    """
    Lazily materialized tree view over a single-rooted term hierarchy.

    Nodes are kept in an arena keyed by term id, so a term reachable through
    several parents is represented by a single node. The root is always expanded
    and hidden from the visible rows.
    """

    def __init__(self, graph: OntologyGraph, parent_policy: ParentPolicy = ParentPolicy.FIRST_DECLARED):
        self.graph = graph
        self.parent_policy = parent_policy
        self._nodes: Dict[str, TreeNode] = {}
        self._lock = threading.RLock()
        self._labels: Optional[Dict[str, str]] = None
        self.selected: Optional[TreeNode] = None

        root_term = graph.term_for_id(graph.root_id())
        if root_term is None:
            raise ValueError("Ontology should have a term for the root term ID!")
        self.root = self._node(root_term)
        self.root.expanded = True

    def _node(self, term: Term) -> TreeNode:
        node = self._nodes.get(term.id)
        if node is None:
            node = TreeNode(term)
            self._nodes[term.id] = node
        return node

    def children_of(self, node: TreeNode) -> Tuple[TreeNode, ...]:
        """
        Returns the children of a node sorted by name.

        The first call queries the graph; unresolvable ids and duplicates are
        skipped. Later calls return the very same tuple.
        """
        if node._children is not None:
            return node._children

        with self._lock:
            if node._children is None:
                logger.debug(f"Getting children for term {node.term.name}")
                terms: Dict[str, Term] = {}
                for child_id in self.graph.children_of(node.term.id):
                    term = self.graph.term_for_id(child_id)
                    if term is None:
                        logger.debug(f"Skipping unresolved child {child_id} of {node.term.id}")
                        continue
                    terms.setdefault(term.id, term)
                ordered = sorted(terms.values(), key=lambda t: t.name)
                node._children = tuple(self._node(t) for t in ordered)
        return node._children

    def is_leaf(self, node: TreeNode) -> bool:
        """Asks the graph directly; the child cache is left untouched."""
        return not self.graph.children_of(node.term.id)

    def _pick_parent(self, parents: Sequence[str]) -> Optional[str]:
        if not parents:
            return None
        if self.parent_policy is ParentPolicy.LOWEST_ID:
            return min(parents)
        return parents[0]

    def path_from_root_to(self, term: Term) -> List[str]:
        """
        Resolves the ids from the top-level term down to `term`, both included.

        The path is found by climbing one parent at a time, chosen by the parent
        policy, so with several parents it is not necessarily the shortest one.
        The hidden root is not part of the result; the path to the root itself is empty.

        Raises:
            PathNotFound: If the root cannot be reached from the term.
        """
        root_id = self.graph.root_id()
        if term.id == root_id:
            return []
        if not self.graph.exists_path(term.id, root_id):
            raise PathNotFound(term.id, root_id)

        ids = [term.id]
        visited = {term.id}
        current = term.id
        while current != root_id:
            parent = self._pick_parent(self.graph.parents_of(current))
            if parent is None or parent in visited:
                logger.error(f"Climb from {term.id} stopped at {current} before reaching {root_id}")
                raise PathNotFound(term.id, root_id)
            ids.append(parent)
            visited.add(parent)
            current = parent

        ids.reverse()
        return ids[1:]

    def expand_and_select(self, path: Sequence[str]) -> Optional[TreeNode]:
        """
        Expands the tree top-down along `path` and selects the deepest node reached.

        If some level has no child with the next id the walk stops there; the
        nodes expanded so far stay expanded.
        """
        node = self.root
        target: Optional[TreeNode] = None
        for term_id in path:
            match = next((child for child in self.children_of(node) if child.term.id == term_id), None)
            if match is None:
                logger.warning(f"Term {term_id} is not a child of {node.term.id}, stopping expansion")
                break
            match.expanded = True
            node = match
            target = match

        if target is not None:
            self.selected = target
        return target

    def focus_on_term(self, term: Term) -> bool:
        """
        Expands the tree until `term` and selects it.

        Returns False and keeps the current selection when no path exists.
        """
        try:
            path = self.path_from_root_to(term)
        except PathNotFound as e:
            logger.warning(str(e))
            return False
        return self.expand_and_select(path) is not None

    def focus_on_id(self, term_id: str) -> bool:
        try:
            term = self.term_for_id(term_id)
        except UnresolvedId as e:
            logger.warning(str(e))
            return False
        return self.focus_on_term(term)

    def term_for_id(self, term_id: str) -> Term:
        term = self.graph.term_for_id(term_id)
        if term is None:
            raise UnresolvedId(term_id)
        return term

    @property
    def labels(self) -> Dict[str, str]:
        """Term name to term id lookup, built once. The first term wins on duplicate names."""
        if self._labels is None:
            with self._lock:
                if self._labels is None:
                    labels: Dict[str, str] = {}
                    for term in self.graph.all_terms():
                        labels.setdefault(term.name, term.id)
                    logger.info(f"Indexed {len(labels)} term names")
                    self._labels = labels
        return self._labels

    def search(self, name: str) -> bool:
        """
        Jumps to the term with exactly this name. Unknown names have no effect.
        """
        term_id = self.labels.get(name)
        if term_id is None:
            logger.debug(f"No term named '{name}'")
            return False
        return self.focus_on_id(term_id)

    def suggest(self, prefix: str, limit: int = 10) -> List[str]:
        """Case-insensitive autocompletion over term names."""
        if not prefix.strip():
            return []
        needle = prefix.lower()
        return sorted(name for name in self.labels if name.lower().startswith(needle))[:limit]

    def visible_nodes(self) -> List[TreeNode]:
        """Rows currently shown in the tree, depth-first, without the hidden root."""
        rows: List[TreeNode] = []
        stack = list(reversed(self.children_of(self.root)))
        while stack:
            node = stack.pop()
            rows.append(node)
            if node.expanded:
                stack.extend(reversed(self.children_of(node)))
        return rows

    def selected_index(self) -> Optional[int]:
        """Row of the selection among the visible rows, used to scroll it into view."""
        if self.selected is None:
            return None
        for i, node in enumerate(self.visible_nodes()):
            if node is self.selected:
                return i
        return None

    def describe_selection(self) -> Optional[TermDetails]:
        if self.selected is None:
            return None
        return TermDetails.from_term(self.selected.term)

    def phenotype_term_for_selection(self, present: bool = True) -> Optional[PhenotypeTerm]:
        """Creates an annotation for the selected term, as done when a term is added by hand."""
        if self.selected is None:
            return None
        return PhenotypeTerm(term=self.selected.term, present=present)

    def clear(self) -> None:
        """Drops every cached node and the label index."""
        with self._lock:
            self._nodes.clear()
            self._labels = None
            self.selected = None
            self.root._children = None
            self._nodes[self.root.term.id] = self.root
