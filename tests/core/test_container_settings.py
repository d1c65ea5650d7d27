from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from skillproof.config import ConfigManager, load_settings, read_settings
from skillproof.container import create_container
from skillproof.pipeline import InMemoryAssessmentStore, JsonDirectoryStore


def test_create_container_with_overrides(stub_client, tmp_path: Path):
    container = create_container(
        settings={
            "research": {"fuzzy_cutoff": 80},
            "generation": {"question_count": 6, "difficulty": "challenging"},
            "scoring": {"concurrency": 2},
            "llm": {"retry_attempts": 5},
            "store_dir": str(tmp_path / "store"),
        },
        client=stub_client,
    )

    assert container.client() is stub_client
    assert container.research()._fuzzy_cutoff == 80
    assert container.compiler()._question_count == 6
    assert container.compiler()._difficulty == "challenging"
    assert container.orchestrator()._concurrency == 2
    assert container.retry_policy().attempts == 5
    assert isinstance(container.store(), JsonDirectoryStore)


def test_create_container_defaults(stub_client):
    container = create_container(client=stub_client)

    assert container.orchestrator()._concurrency == 4
    assert container.compiler()._question_count == 8
    assert isinstance(container.store(), InMemoryAssessmentStore)
    assert container.pipeline() is not container.pipeline()


def test_create_container_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        create_container(settings={"scoring": {"parallelism": 8}})


def test_read_settings_from_yaml(tmp_path: Path):
    path = tmp_path / "skillproof.yaml"
    path.write_text("llm:\n  model: gpt-4o\nscoring:\n  concurrency: 3\n", encoding="utf-8")
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")

    assert read_settings(path) == {"llm": {"model": "gpt-4o"}, "scoring": {"concurrency": 3}}
    assert read_settings(empty) == {}
    with pytest.raises(ValueError):
        read_settings(listing)

    config = load_settings(path)
    assert config.llm.model == "gpt-4o"
    assert config.scoring.concurrency == 3
    assert ConfigManager(tmp_path).load("skillproof") == read_settings(path)
