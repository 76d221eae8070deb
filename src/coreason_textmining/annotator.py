# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import html
import json
import re
from typing import Iterable, List, Set, Tuple

from loguru import logger

from coreason_textmining.interfaces import FocusHook
from coreason_textmining.schemas import PhenotypeTerm, is_valid_concept_id

HTML_HEAD = (
    "<html><head>"
    "<style> .tooltip { position: relative; display: inline-block; border-bottom: 1px dotted black; }"
    ".tooltip .tooltiptext { visibility: hidden; width: 230px; background-color: #555; color: #fff; "
    "text-align: left; border-radius: 6px; padding: 5px 0; position: absolute; z-index: 1; bottom: 125%; "
    "left: 50%; margin-left: -60px; opacity: 0; transition: opacity 1s; }"
    ".tooltip:hover .tooltiptext { visibility: visible; opacity: 1; }"
    "</style>"
    "<script>function focusOnTermJS(obj) {textmining_bridge.focusToTerm(obj);}</script>"
    "</head>"
)

HTML_BODY_BEGIN = "<body><h2>Text-mining analysis terms:</h2><p>"

HTML_BODY_END = "</p></body></html>"

# Placeholders: term id as a JS string literal (click target), highlighted text, tooltip text
HIGHLIGHTED_TEMPLATE = (
    '<span class="tooltip" style="color:red;" onclick="focusOnTermJS({id})">{body}'
    '<span class="tooltiptext">{tooltip}</span></span>'
)

TOOLTIP_TEMPLATE = "{id}\n{name}"

_WHITESPACE_RUN = re.compile(r"\s{2,}")

_HIGHLIGHT = re.compile(
    r'<span class="tooltip"[^>]*onclick="focusOnTermJS\(([^"]*)\)">(.*?)<span class="tooltiptext">',
    re.DOTALL,
)
_TOOLTIP = re.compile(r'<span class="tooltiptext">.*?</span>', re.DOTALL)
_TAG = re.compile(r"<[^>]+>")


def _highlight(term: PhenotypeTerm, body: str) -> str:
    tooltip = TOOLTIP_TEMPLATE.format(id=term.term.id, name=term.term.name)
    return HIGHLIGHTED_TEMPLATE.format(
        id=html.escape(json.dumps(term.term.id)),
        body=html.escape(body, quote=False),
        tooltip=html.escape(tooltip, quote=False),
    )


def render(text: str, concepts: Iterable[PhenotypeTerm]) -> str:
    """
    Renders the query text with one highlighted wrapper per concept span.

    Concepts are processed by ascending span start; ties keep their input order.
    A concept overlapping an earlier one is clamped so that it only highlights the
    part after the previous concept's end. A concept lying entirely inside an
    earlier one is skipped, and concepts without a span are not rendered.
    Runs of whitespace are collapsed to one space and the result is trimmed.
    """
    spanned = [(c, c.span) for c in concepts if c.span is not None]
    spanned.sort(key=lambda pair: pair[1].start)

    parts: List[str] = []
    offset = 0
    for concept, span in spanned:
        if span.end > len(text):
            logger.warning(f"Span {span.start}-{span.end} of {concept.term.id} exceeds text length {len(text)}")
            continue
        if span.end <= offset:
            logger.debug(f"Skipping {concept.term.id}: span {span.start}-{span.end} is covered by a previous term")
            continue

        start = max(span.start, offset)
        parts.append(html.escape(text[offset:start], quote=False))
        parts.append(_highlight(concept, text[start : span.end]))
        offset = span.end

    # process last part of the text, if there is any
    parts.append(html.escape(text[offset:], quote=False))
    return _WHITESPACE_RUN.sub(" ", "".join(parts)).strip()


def render_document(text: str, concepts: Iterable[PhenotypeTerm]) -> str:
    """Wraps the rendered fragment into a standalone page with tooltip styles and the focus script."""
    return HTML_HEAD + HTML_BODY_BEGIN + render(text, concepts) + HTML_BODY_END


def highlighted_segments(markup: str) -> List[Tuple[str, str]]:
    """Returns (term id, highlighted text) for every wrapper in rendered markup, in order."""
    return [(json.loads(html.unescape(m.group(1))), html.unescape(m.group(2))) for m in _HIGHLIGHT.finditer(markup)]


def strip_markup(markup: str) -> str:
    """Recovers the displayed text by dropping tooltips and tags."""
    return html.unescape(_TAG.sub("", _TOOLTIP.sub("", markup)))


def partition_for_review(terms: Iterable[PhenotypeTerm]) -> Tuple[List[PhenotypeTerm], List[PhenotypeTerm]]:
    """
    Splits terms into present and NOT lists for the review panel.

    Both lists are ordered by term name and hold a single entry per term id.
    """
    present: List[PhenotypeTerm] = []
    not_present: List[PhenotypeTerm] = []
    present_added: Set[str] = set()
    not_present_added: Set[str] = set()

    for term in sorted(terms, key=lambda t: t.term.name):
        if term.present:
            if term.term.id not in present_added:
                present_added.add(term.term.id)
                present.append(term)
        elif term.term.id not in not_present_added:
            not_present_added.add(term.term.id)
            not_present.append(term)

    return present, not_present


class FocusBridge:
    """
    Bridge between clicks on highlighted text and the ontology tree.
    """

    def __init__(self, focus_hook: FocusHook):
        self.focus_hook = focus_hook

    def focus_to_term(self, term_id: str) -> bool:
        """
        Forwards the clicked id to the focus hook.

        Args:
            term_id: String like HP:0001324.

        Returns:
            bool: False if the id was malformed and ignored.
        """
        logger.debug(f"Focusing on term with ID {term_id}")
        if not is_valid_concept_id(term_id):
            logger.warning(f"Unable to focus on term with id '{term_id}'")
            return False
        self.focus_hook(term_id)
        return True
