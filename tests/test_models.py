"""Tests for kirei.models."""

import pytest

from kirei.errors import KireiError, UnknownProviderError
from kirei.models import ProviderId, ScopeDefaults, UnifiedIssue, UnifiedListQuery, matches_search


class TestProviderId:
    @pytest.mark.parametrize("provider", list(ProviderId))
    def test_display_name_round_trips_through_parse(self, provider: ProviderId) -> None:
        assert ProviderId.parse(provider.display_name.lower()) is provider

    @pytest.mark.parametrize("text", ["GitHub", "LINEAR", "trello", "JiRa"])
    def test_parse_is_case_insensitive(self, text: str) -> None:
        assert ProviderId.parse(text).value == text.lower()

    @pytest.mark.parametrize("text", ["gitlab", "", " github", "git hub"])
    def test_parse_unknown_raises(self, text: str) -> None:
        with pytest.raises(UnknownProviderError) as exc_info:
            ProviderId.parse(text)
        assert exc_info.value.text == text
        assert isinstance(exc_info.value, KireiError)
        assert isinstance(exc_info.value, ValueError)

    def test_env_var_names(self) -> None:
        assert ProviderId.GITHUB.env_var == "KIREI_GITHUB_TOKEN"
        assert ProviderId.LINEAR.env_var == "KIREI_LINEAR_TOKEN"
        assert ProviderId.TRELLO.env_var == "KIREI_TRELLO_TOKEN"
        assert ProviderId.JIRA.env_var == "KIREI_JIRA_TOKEN"

    def test_env_vars_and_display_names_unique(self) -> None:
        assert len({p.env_var for p in ProviderId}) == 4
        assert len({p.display_name for p in ProviderId}) == 4

    def test_str_is_display_name(self) -> None:
        assert str(ProviderId.GITHUB) == "GitHub"

    def test_usable_as_dict_key(self) -> None:
        tokens = {ProviderId.GITHUB: "a", ProviderId.JIRA: "b"}
        assert tokens[ProviderId.parse("github")] == "a"


def test_issue_frozen(github_issue: UnifiedIssue) -> None:
    with pytest.raises(Exception):  # ValidationError or TypeError depending on pydantic version
        github_issue.title = "changed"  # type: ignore[misc]


def test_issue_keeps_raw_payload_verbatim() -> None:
    payload = {"number": 1, "title": "x", "labels": [{"name": "bug"}], "extra": None}
    issue = UnifiedIssue(id="1", title="x", state="open", provider=ProviderId.GITHUB, raw_payload=payload)
    assert issue.raw_payload == payload


def test_issue_defaults() -> None:
    issue = UnifiedIssue(id="1", title="t", state="open", provider=ProviderId.LINEAR, raw_payload={})
    assert issue.url is None
    assert issue.context == {}


def test_display_summary(github_issue: UnifiedIssue) -> None:
    assert github_issue.display_summary() == "GitHub [open] Fix null check (https://github.com/octo/repo/issues/42)"


def test_display_summary_without_url() -> None:
    issue = UnifiedIssue(id="1", title="t", state="Todo", provider=ProviderId.LINEAR, raw_payload={})
    assert issue.display_summary() == "Linear [Todo] t (no-url)"


def test_query_equality_by_fields() -> None:
    assert UnifiedListQuery(repo="octo/repo") == UnifiedListQuery(repo="octo/repo")
    assert UnifiedListQuery(repo="octo/repo") != UnifiedListQuery(repo="octo/other")


def test_scope_defaults_all_optional() -> None:
    defaults = ScopeDefaults()
    assert defaults.repo is None
    assert defaults.trello_api_key is None


class TestMatchesSearch:
    def test_no_search_matches_everything(self) -> None:
        assert matches_search("anything", None)
        assert matches_search("anything", "")

    def test_case_insensitive_substring(self) -> None:
        assert matches_search("Fix Null Check", "null")
        assert not matches_search("Fix Null Check", "crash")
