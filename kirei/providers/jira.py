"""Jira Cloud REST API v3 adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from kirei.errors import ConfigurationError, UnexpectedResponseError
from kirei.models import (
    ProviderId,
    UnifiedCreateParams,
    UnifiedIssue,
    UnifiedListQuery,
    UnifiedProject,
    UnifiedProjectQuery,
    matches_search,
)
from kirei.providers.base import TIMEOUT, ProviderClient

PAGE_SIZE = 50
ISSUE_TYPE = "Task"

logger = logging.getLogger(__name__)


def open_issues_jql(project_key: str) -> str:
    return f"project = {project_key} AND status != Done ORDER BY created DESC"


def adf_document(text: str) -> dict[str, Any]:
    """Wrap plain text in a single-paragraph Atlassian document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


class JiraProvider(ProviderClient):
    """Jira adapter.

    Authentication is HTTP Basic with the account email as user name and the
    API token as password.
    """

    provider = ProviderId.JIRA

    def __init__(
        self,
        token: str,
        server_url: str | None = None,
        default_project: str | None = None,
        email: str | None = None,
    ) -> None:
        self._server_url = server_url.rstrip("/") if server_url else None
        super().__init__(
            httpx.Client(
                base_url=f"{self._server_url}/rest/api/3" if self._server_url else "",
                auth=httpx.BasicAuth(email or "", token),
                headers={"Accept": "application/json", "Content-Type": "application/json"},
                timeout=TIMEOUT,
            )
        )
        self._default_project = default_project

    def _require_server(self) -> str:
        if not self._server_url:
            raise ConfigurationError(
                "server URL is required. Set KIREI_JIRA_SERVER_URL or jira_server_url in your config.",
                ProviderId.JIRA,
            )
        return self._server_url

    def _resolve_project(self, override: str | None) -> str:
        project = override or self._default_project
        if not project:
            raise ConfigurationError(
                "project is required. Pass --workspace or set default_project in your config.",
                ProviderId.JIRA,
            )
        return project

    def _issue_from_node(self, node: dict[str, Any]) -> UnifiedIssue:
        fields = node.get("fields") or {}
        key = node.get("key")
        status = fields.get("status") or {}
        return UnifiedIssue(
            id=key or str(node.get("id", "")),
            title=fields.get("summary") or "untitled",
            state=status.get("name") or "unknown",
            url=f"{self._server_url}/browse/{key}" if key else None,
            provider=ProviderId.JIRA,
            raw_payload=node,
        )

    def list(self, query: UnifiedListQuery) -> list[UnifiedIssue]:
        self._require_server()
        project_key = self._resolve_project(query.workspace)
        response = self._send(
            "GET",
            "/search",
            params={"jql": open_issues_jql(project_key), "maxResults": str(PAGE_SIZE)},
        )
        nodes = self._expect_objects(self._expect_object(response).get("issues"), response.text)
        issues = [self._issue_from_node(node) for node in nodes]
        return [issue for issue in issues if matches_search(issue.title, query.search)]

    def create(self, params: UnifiedCreateParams) -> UnifiedIssue:
        self._require_server()
        project_key = self._resolve_project(params.workspace)
        fields: dict[str, Any] = {
            "project": {"key": project_key},
            "summary": params.title,
            "issuetype": {"name": ISSUE_TYPE},
        }
        if params.body:
            fields["description"] = adf_document(params.body)

        response = self._send("POST", "/issue", json={"fields": fields})
        created = self._expect_object(response)
        key = created.get("key") or created.get("id")
        if not key:
            raise UnexpectedResponseError(response.text, ProviderId.JIRA)
        logger.info("Created Jira issue %s", key)

        # The create response only carries id/key/self; fetch the full issue so
        # it goes through the same projection as list().
        node = self._expect_object(self._send("GET", f"/issue/{key}"))
        return self._issue_from_node(node)

    def list_projects(self, query: UnifiedProjectQuery) -> list[UnifiedProject]:
        self._require_server()
        response = self._send("GET", "/project")
        projects = [
            UnifiedProject(
                id=node.get("key") or str(node.get("id", "")),
                name=node.get("name") or "untitled",
                description=node.get("description") or None,
                provider=ProviderId.JIRA,
                raw=node,
            )
            for node in self._expect_list(response)
        ]
        return [p for p in projects if matches_search(p.name, query.search)]
