"""Tests for build_client."""

import pytest

from kirei.errors import ProviderNotImplementedError
from kirei.models import ProviderId, ScopeDefaults, UnifiedTaskQuery
from kirei.providers.factory import build_client
from kirei.providers.github import GitHubProvider
from kirei.providers.jira import JiraProvider
from kirei.providers.linear import LinearProvider
from kirei.providers.trello import TrelloProvider


@pytest.mark.parametrize(
    ("provider", "cls"),
    [
        (ProviderId.GITHUB, GitHubProvider),
        (ProviderId.LINEAR, LinearProvider),
        (ProviderId.TRELLO, TrelloProvider),
        (ProviderId.JIRA, JiraProvider),
    ],
)
def test_builds_matching_adapter(provider: ProviderId, cls: type) -> None:
    with build_client(provider, "tok", ScopeDefaults()) as client:
        assert isinstance(client, cls)
        assert client.provider is provider


def test_passes_scope_defaults() -> None:
    defaults = ScopeDefaults(repo="octo/repo", board="board_1", trello_api_key="key")
    with build_client(ProviderId.GITHUB, "tok", defaults) as github:
        assert github._default_repo == "octo/repo"  # type: ignore[attr-defined]
    with build_client(ProviderId.TRELLO, "tok", defaults) as trello:
        assert trello._default_board == "board_1"  # type: ignore[attr-defined]
        assert trello._api_key == "key"  # type: ignore[attr-defined]


def test_unsupported_capability_raises() -> None:
    with build_client(ProviderId.GITHUB, "tok", ScopeDefaults()) as client:
        with pytest.raises(ProviderNotImplementedError, match="list_tasks is not implemented for GitHub"):
            client.list_tasks(UnifiedTaskQuery())
