# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import queue
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Type

from loguru import logger

from coreason_textmining.annotator import FocusBridge, partition_for_review, render
from coreason_textmining.client import MiningClient
from coreason_textmining.config import TextMiningSettings
from coreason_textmining.decoder import DEFAULT_VOCABULARY, decode, to_phenotype_terms
from coreason_textmining.exceptions import MiningRoundError
from coreason_textmining.interfaces import FocusHook, OntologyGraph, SignalHook
from coreason_textmining.navigator import OntologyNavigator
from coreason_textmining.schemas import ParentPolicy, PhenotypeTerm, Signal, TextMiningResult

TermKey = Tuple[str, bool]


@dataclass(frozen=True)
class RoundMessage:
    """Completion of a background mining request, tagged with the round it belongs to."""

    token: int
    query: str
    payload: Optional[str] = None
    error: Optional[Exception] = None


class ReviewRound:
    """
    Mined terms of one round as presented to the curator.

    Holds the highlighted markup, the deduplicated present/NOT lists and the
    checkbox state. Terms that were approved before the round are listed
    pre-checked but not highlighted, since their spans refer to another text.
    """

    def __init__(self, token: int, query: str, mined: List[PhenotypeTerm], approved: Iterable[PhenotypeTerm]):
        self.token = token
        self.query = query
        self.markup = render(query, mined)

        approved = list(approved)
        self._entries: Dict[TermKey, PhenotypeTerm] = {}
        present, not_present = partition_for_review(mined + approved)
        for term in present + not_present:
            self._entries[term.key] = term
        self._initial_keys: Set[TermKey] = set(self._entries)
        self._checked: Set[TermKey] = {t.key for t in approved if t.key in self._entries}

    @property
    def present_terms(self) -> List[PhenotypeTerm]:
        return sorted((t for t in self._entries.values() if t.present), key=lambda t: t.term.name)

    @property
    def not_present_terms(self) -> List[PhenotypeTerm]:
        return sorted((t for t in self._entries.values() if not t.present), key=lambda t: t.term.name)

    @property
    def keys(self) -> Set[TermKey]:
        return set(self._entries)

    @property
    def reviewed_keys(self) -> Set[TermKey]:
        """Keys the round was opened with plus the current ones, so reclassified entries count as reviewed."""
        return self._initial_keys | set(self._entries)

    def is_checked(self, term_id: str, present: bool = True) -> bool:
        return (term_id, present) in self._checked

    def set_checked(self, term_id: str, checked: bool, present: bool = True) -> None:
        key = (term_id, present)
        if key not in self._entries:
            raise KeyError(f"{term_id} ({'present' if present else 'NOT'}) is not part of this review")
        if checked:
            self._checked.add(key)
        else:
            self._checked.discard(key)

    def reclassify(self, term_id: str, present: bool) -> PhenotypeTerm:
        """
        Moves a term between the present and NOT lists, keeping its checkbox state.
        If the target list already holds the term, the source entry is merged into it.
        """
        source = (term_id, not present)
        target = (term_id, present)
        if target in self._entries:
            if source in self._entries:
                del self._entries[source]
                if source in self._checked:
                    self._checked.discard(source)
                    self._checked.add(target)
            return self._entries[target]
        if source not in self._entries:
            raise KeyError(f"{term_id} is not part of this review")

        moved = self._entries.pop(source).model_copy(update={"present": present})
        self._entries[target] = moved
        if source in self._checked:
            self._checked.discard(source)
            self._checked.add(target)
        return moved

    def approved_terms(self) -> Set[PhenotypeTerm]:
        return {self._entries[key] for key in self._checked}


class CurationSession:
    """
    State owner of one curation dialog.

    All methods are meant to be called from the interactive thread. Mining
    requests run on a single background worker; their completion is delivered as
    a RoundMessage and applied by `process_pending`. Messages of superseded
    rounds, or arriving after `close`, are discarded.
    """

    def __init__(
        self,
        graph: OntologyGraph,
        client: MiningClient,
        vocabulary: str = DEFAULT_VOCABULARY,
        parent_policy: ParentPolicy = ParentPolicy.FIRST_DECLARED,
        approved: Optional[Iterable[PhenotypeTerm]] = None,
        signal_hook: Optional[SignalHook] = None,
        focus_hook: Optional[FocusHook] = None,
        failure_hook: Optional[Callable[[Exception], None]] = None,
        owns_client: bool = False,
        pmid: Optional[str] = None,
    ):
        self.graph = graph
        self.client = client
        self.vocabulary = vocabulary
        self.navigator = OntologyNavigator(graph, parent_policy=parent_policy)
        self.bridge = FocusBridge(self._focus)
        self.signal_hook = signal_hook
        self.focus_hook = focus_hook
        self.failure_hook = failure_hook
        self.owns_client = owns_client
        self._pmid = pmid or ""

        self._approved: Set[PhenotypeTerm] = set(approved or [])
        self._messages: "queue.Queue[RoundMessage]" = queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="textmining")
        self._future: Optional[Future[None]] = None
        self._token = 0
        self._busy = False
        self._closed = False

        self.review: Optional[ReviewRound] = None
        self.last_error: Optional[Exception] = None

    @classmethod
    def from_settings(cls, settings: TextMiningSettings, graph: OntologyGraph, **kwargs: Any) -> "CurationSession":
        client = MiningClient(settings.server_url, timeout=settings.timeout)
        return cls(
            graph,
            client,
            vocabulary=settings.vocabulary,
            parent_policy=settings.parent_policy,
            owns_client=True,
            **kwargs,
        )

    @property
    def pmid(self) -> str:
        """PubMed id of the publication under review; empty when unknown."""
        return self._pmid

    @pmid.setter
    def pmid(self, pmid: Optional[str]) -> None:
        self._pmid = "" if pmid is None else pmid

    @property
    def approved_terms(self) -> Set[PhenotypeTerm]:
        """Copy of the approved set."""
        return set(self._approved)

    def add_terms(self, terms: Iterable[PhenotypeTerm]) -> None:
        self._approved.update(terms)

    def remove_terms(self, terms: Iterable[PhenotypeTerm]) -> None:
        self._approved.difference_update(terms)

    def add_selected_term(self, present: bool = True) -> Optional[PhenotypeTerm]:
        """Approves the term selected in the ontology tree."""
        term = self.navigator.phenotype_term_for_selection(present=present)
        if term is not None:
            self._approved.add(term)
        return term

    @property
    def busy(self) -> bool:
        """True while a mining round is outstanding; submission should be disabled."""
        return self._busy

    @property
    def current_token(self) -> int:
        return self._token

    def submit(self, query: str) -> int:
        """
        Starts a mining round in the background.

        Returns:
            int: Token identifying the round.

        Raises:
            ValueError: If the query is empty.
            RuntimeError: If the session is closed or another round is outstanding.
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        if self._busy:
            raise RuntimeError("A mining round is already in progress")
        if not query.strip():
            raise ValueError("query is required")

        self._token += 1
        self._busy = True
        self.last_error = None
        token = self._token
        logger.info(f"Starting mining round {token}")
        self._future = self._executor.submit(self._mine, token, query)
        return token

    def _mine(self, token: int, query: str) -> None:
        """Runs on the background worker."""
        try:
            payload = self.client.mine(query)
        except Exception as e:
            self._messages.put(RoundMessage(token=token, query=query, error=e))
            return
        self._messages.put(RoundMessage(token=token, query=query, payload=payload))

    def process_pending(self, timeout: Optional[float] = None) -> int:
        """
        Applies completion messages waiting in the channel.

        Args:
            timeout: If given, block up to this many seconds for the first message.

        Returns:
            int: Number of messages consumed, including discarded ones.
        """
        handled = 0
        block = timeout is not None
        while True:
            try:
                message = self._messages.get(block=block, timeout=timeout)
            except queue.Empty:
                return handled
            block = False
            handled += 1
            self.deliver(message)

    def deliver(self, message: RoundMessage) -> bool:
        """
        Applies one completion message. Returns False if it was discarded as stale.
        """
        if self._closed or message.token != self._token:
            logger.debug(f"Discarding completion of superseded round {message.token}")
            return False

        self._busy = False
        if message.error is not None:
            self._fail(message.error)
            return True

        try:
            mined = decode(message.payload or "", message.query, vocabulary=self.vocabulary)
        except MiningRoundError as e:
            self._fail(e)
            return True

        terms = [self._resolve(t) for t in to_phenotype_terms(mined)]
        if self.review is not None:
            logger.warning(f"Round {message.token} replaces the unfinished review of round {self.review.token}")
        self.review = ReviewRound(message.token, message.query, terms, self._approved)
        logger.info(f"Mining round {message.token} produced {len(terms)} term(s)")
        return True

    def _resolve(self, term: PhenotypeTerm) -> PhenotypeTerm:
        """Prefers the ontology's version of a mined term; unknown ids keep the server label."""
        known = self.graph.term_for_id(term.term.id)
        if known is None:
            logger.debug(f"Mined term {term.term.id} is not in the ontology")
            return term
        return term.model_copy(update={"term": known})

    def _fail(self, error: Exception) -> None:
        self.last_error = error
        logger.error(f"Mining round {self._token} failed: {error}")
        if self.failure_hook is not None:
            self.failure_hook(error)

    def finish(self, signal: Signal) -> TextMiningResult:
        """
        Ends the review round. On DONE the checked terms replace the reviewed
        entries of the approved set; on CANCELLED nothing changes.

        Returns:
            TextMiningResult: The approved set after the round and the session PMID.
        """
        if signal is Signal.DONE and self.review is not None:
            reviewed = self.review.reviewed_keys
            kept = {t for t in self._approved if t.key not in reviewed}
            self._approved = kept | self.review.approved_terms()
        self.review = None
        if self.signal_hook is not None:
            self.signal_hook(signal)
        return self.result()

    def result(self) -> TextMiningResult:
        return TextMiningResult(terms=frozenset(self._approved), pmid=self.pmid)

    def focus_to_term(self, term_id: str) -> bool:
        """Entry point for clicks on highlighted text."""
        return self.bridge.focus_to_term(term_id)

    def _focus(self, term_id: str) -> None:
        if self.navigator.focus_on_id(term_id) and self.focus_hook is not None:
            self.focus_hook(term_id)

    def close(self) -> None:
        """Tears the session down; a late completion is ignored."""
        if self._closed:
            return
        self._closed = True
        self._token += 1
        self._busy = False
        if self._future is not None:
            self._future.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.navigator.clear()
        if self.owns_client:
            self.client.close()
        logger.info("Curation session closed.")

    def __enter__(self) -> "CurationSession":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()
