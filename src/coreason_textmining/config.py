# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import os
from typing import Optional

from pydantic import BaseModel, Field

from coreason_textmining.decoder import DEFAULT_VOCABULARY
from coreason_textmining.schemas import ParentPolicy

DEFAULT_SERVER_URL = "https://scigraph-ontology.monarchinitiative.org/scigraph/annotations/entities"


class TextMiningSettings(BaseModel):
    """
    Runtime settings of a curation session.
    """

    server_url: str = DEFAULT_SERVER_URL
    pack_path: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)
    vocabulary: str = DEFAULT_VOCABULARY
    parent_policy: ParentPolicy = ParentPolicy.FIRST_DECLARED

    @classmethod
    def from_env(cls) -> "TextMiningSettings":
        """Reads TEXTMINING_* environment variables, falling back to the defaults."""
        values = {
            "server_url": os.getenv("TEXTMINING_SERVER_URL"),
            "pack_path": os.getenv("TEXTMINING_PACK_PATH"),
            "timeout": os.getenv("TEXTMINING_TIMEOUT"),
            "vocabulary": os.getenv("TEXTMINING_VOCABULARY"),
            "parent_policy": os.getenv("TEXTMINING_PARENT_POLICY"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})
