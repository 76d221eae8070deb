# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

from types import TracebackType
from typing import Optional, Type

import httpx
from loguru import logger

from coreason_textmining.exceptions import ProtocolError, TransportError

REQUEST_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json; charset=UTF-8",
}


class MiningClient:
    """
    Client for a concept-recognition server.

    The query text is POSTed as the raw request body and the server answers with a
    JSON array of hits. One call issues exactly one request; there is no retry.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def mine(self, query: str) -> str:
        """
        Submits the query text and returns the raw payload.

        Raises:
            ValueError: If the query is empty.
            TransportError: On connection or IO failure.
            ProtocolError: If the server does not answer with a JSON success response.
        """
        if not query.strip():
            raise ValueError("query is required")

        logger.info(f"Submitting {len(query)} characters to {self.endpoint}")
        try:
            response = self._client.post(self.endpoint, content=query.encode("utf-8"), headers=REQUEST_HEADERS)
        except httpx.HTTPError as e:
            logger.error(f"Mining request to {self.endpoint} failed: {e}")
            raise TransportError(f"Could not reach mining server at {self.endpoint}: {e}") from e

        if not response.is_success:
            logger.error(f"Mining server answered with status {response.status_code}")
            raise ProtocolError(f"Unexpected status {response.status_code} from {self.endpoint}")

        content_type = response.headers.get("content-type")
        if content_type is not None and "json" not in content_type.lower():
            raise ProtocolError(f"Unexpected content type '{content_type}' from {self.endpoint}")

        return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "MiningClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()
