# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining


class TextMiningError(Exception):
    """Base class for all text-mining errors."""


class MiningRoundError(TextMiningError):
    """
    An error that terminates the current mining round.

    No partial annotation set is produced when one of these is raised.
    """


class TransportError(MiningRoundError):
    """The mining server could not be reached or the connection broke mid-request."""


class ProtocolError(MiningRoundError):
    """The mining server answered with an unexpected status or content type."""


class MalformedPayload(MiningRoundError):
    """The mining payload is not valid JSON or not an array of records."""


class PathNotFound(TextMiningError):
    """There is no route from a term up to the ontology root."""

    def __init__(self, term_id: str, root_id: str):
        super().__init__(f"Unable to find the path from {root_id} to {term_id}")
        self.term_id = term_id
        self.root_id = root_id


class UnresolvedId(TextMiningError):
    """A focus or lookup id is not present in the ontology."""

    def __init__(self, term_id: str):
        super().__init__(f"Term '{term_id}' is not present in the ontology")
        self.term_id = term_id
