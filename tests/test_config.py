# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_textmining

import pytest
from pydantic import ValidationError

from coreason_textmining.config import DEFAULT_SERVER_URL, TextMiningSettings
from coreason_textmining.schemas import ParentPolicy

ENV_VARS = (
    "TEXTMINING_SERVER_URL",
    "TEXTMINING_PACK_PATH",
    "TEXTMINING_TIMEOUT",
    "TEXTMINING_VOCABULARY",
    "TEXTMINING_PARENT_POLICY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = TextMiningSettings.from_env()

    assert settings.server_url == DEFAULT_SERVER_URL
    assert settings.pack_path is None
    assert settings.timeout == 30.0
    assert settings.vocabulary == "HP"
    assert settings.parent_policy is ParentPolicy.FIRST_DECLARED


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEXTMINING_SERVER_URL", "http://localhost:9000/annotate")
    monkeypatch.setenv("TEXTMINING_PACK_PATH", "/data/hp_pack")
    monkeypatch.setenv("TEXTMINING_TIMEOUT", "2.5")
    monkeypatch.setenv("TEXTMINING_VOCABULARY", "MONDO")
    monkeypatch.setenv("TEXTMINING_PARENT_POLICY", "lowest_id")

    settings = TextMiningSettings.from_env()

    assert settings.server_url == "http://localhost:9000/annotate"
    assert settings.pack_path == "/data/hp_pack"
    assert settings.timeout == 2.5
    assert settings.vocabulary == "MONDO"
    assert settings.parent_policy is ParentPolicy.LOWEST_ID


def test_invalid_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEXTMINING_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        TextMiningSettings.from_env()


def test_invalid_parent_policy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEXTMINING_PARENT_POLICY", "shortest")
    with pytest.raises(ValidationError):
        TextMiningSettings.from_env()
