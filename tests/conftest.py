"""Shared test fixtures."""

import os
from pathlib import Path

import pytest

import kirei.settings as settings_module
from kirei.models import ProviderId, UnifiedIssue


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config file at tmp_path and drop any KIREI_* variables from the real environment."""
    for name in list(os.environ):
        if name.startswith("KIREI_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)  # no stray .env from the working directory
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
    settings_module._load_toml.cache_clear()
    yield config_path
    settings_module._load_toml.cache_clear()


@pytest.fixture
def github_issue() -> UnifiedIssue:
    return UnifiedIssue(
        id="42",
        title="Fix null check",
        state="open",
        url="https://github.com/octo/repo/issues/42",
        provider=ProviderId.GITHUB,
        raw_payload={"number": 42, "title": "Fix null check", "state": "open"},
    )


@pytest.fixture
def trello_issue() -> UnifiedIssue:
    return UnifiedIssue(
        id="card_1",
        title="Write release notes",
        state="open",
        url="https://trello.com/c/abc",
        provider=ProviderId.TRELLO,
        raw_payload={"id": "card_1", "name": "Write release notes", "idList": "list_1"},
        context={"list_name": "To Do"},
    )
