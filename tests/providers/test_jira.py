"""Tests for JiraProvider using pytest-httpx."""

import base64
import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from kirei.errors import ConfigurationError, UnexpectedResponseError
from kirei.models import ProviderId, UnifiedCreateParams, UnifiedListQuery, UnifiedProjectQuery
from kirei.providers.jira import JiraProvider, adf_document, open_issues_jql

SERVER = "https://acme.atlassian.net"
API = f"{SERVER}/rest/api/3"

_ISSUE_NODE = {
    "id": "10042",
    "key": "ENG-42",
    "fields": {"summary": "Fix null check", "status": {"name": "In Progress"}},
}


def _provider(project: str | None = "ENG") -> JiraProvider:
    return JiraProvider("jira_token", f"{SERVER}/", project, "dev@acme.io")


def _search_url(project: str) -> httpx.URL:
    return httpx.URL(f"{API}/search", params={"jql": open_issues_jql(project), "maxResults": "50"})


def test_open_issues_jql() -> None:
    assert open_issues_jql("ENG") == "project = ENG AND status != Done ORDER BY created DESC"


def test_adf_document_wraps_text() -> None:
    doc = adf_document("hello")
    assert doc["type"] == "doc"
    assert doc["version"] == 1
    assert doc["content"][0]["content"][0] == {"type": "text", "text": "hello"}


class TestList:
    def test_returns_issues_with_basic_auth(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_search_url("ENG"), json={"issues": [_ISSUE_NODE]})
        with _provider() as provider:
            issues = provider.list(UnifiedListQuery())

        assert len(issues) == 1
        assert issues[0].id == "ENG-42"
        assert issues[0].state == "In Progress"
        assert issues[0].url == f"{SERVER}/browse/ENG-42"
        assert issues[0].provider is ProviderId.JIRA

        request = httpx_mock.get_requests()[0]
        expected = base64.b64encode(b"dev@acme.io:jira_token").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"

    def test_workspace_selects_project(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_search_url("OPS"), json={"issues": []})
        with _provider() as provider:
            assert provider.list(UnifiedListQuery(workspace="OPS")) == []

    def test_missing_issues_key_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_search_url("ENG"), json={"total": 0})
        with _provider() as provider:
            with pytest.raises(UnexpectedResponseError):
                provider.list(UnifiedListQuery())

    def test_missing_server_raises(self) -> None:
        with JiraProvider("jira_token", None, "ENG") as provider:
            with pytest.raises(ConfigurationError, match="server URL is required"):
                provider.list(UnifiedListQuery())

    def test_missing_project_raises(self) -> None:
        with _provider(project=None) as provider:
            with pytest.raises(ConfigurationError, match="project is required"):
                provider.list(UnifiedListQuery())


class TestCreate:
    def test_creates_then_fetches_issue(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{API}/issue", method="POST", status_code=201, json={"id": "10042", "key": "ENG-42"}
        )
        httpx_mock.add_response(url=f"{API}/issue/ENG-42", method="GET", json=_ISSUE_NODE)
        with _provider() as provider:
            issue = provider.create(UnifiedCreateParams(title="Fix null check", body="Details"))

        assert issue.id == "ENG-42"
        assert issue.raw_payload == _ISSUE_NODE
        fields = json.loads(httpx_mock.get_requests()[0].content)["fields"]
        assert fields["project"] == {"key": "ENG"}
        assert fields["summary"] == "Fix null check"
        assert fields["issuetype"] == {"name": "Task"}
        assert fields["description"] == adf_document("Details")

    def test_omits_description_without_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{API}/issue", method="POST", json={"key": "ENG-43"})
        httpx_mock.add_response(url=f"{API}/issue/ENG-43", method="GET", json={**_ISSUE_NODE, "key": "ENG-43"})
        with _provider() as provider:
            provider.create(UnifiedCreateParams(title="Fix null check"))
        fields = json.loads(httpx_mock.get_requests()[0].content)["fields"]
        assert "description" not in fields

    def test_create_without_key_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{API}/issue", method="POST", json={"errors": {}})
        with _provider() as provider:
            with pytest.raises(UnexpectedResponseError):
                provider.create(UnifiedCreateParams(title="x"))


def test_list_projects(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(
        url=f"{API}/project",
        json=[{"id": "1", "key": "ENG", "name": "Engineering"}, {"id": "2", "key": "OPS", "name": "Operations"}],
    )
    with _provider() as provider:
        projects = provider.list_projects(UnifiedProjectQuery(search="oper"))
    assert [p.id for p in projects] == ["OPS"]


def test_non_object_issue_raises_unexpected_response(httpx_mock: HTTPXMock) -> None:
    httpx_mock.add_response(url=_search_url("ENG"), json={"issues": [_ISSUE_NODE, None]})
    with _provider() as provider:
        with pytest.raises(UnexpectedResponseError) as exc_info:
            provider.list(UnifiedListQuery())
    assert exc_info.value.provider is ProviderId.JIRA
