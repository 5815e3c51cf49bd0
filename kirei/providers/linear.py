"""Linear GraphQL API adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from kirei.errors import ConfigurationError, UnexpectedResponseError
from kirei.models import (
    ProviderId,
    UnifiedCreateParams,
    UnifiedCreateProjectParams,
    UnifiedIssue,
    UnifiedListQuery,
    UnifiedProject,
    UnifiedProjectQuery,
    matches_search,
)
from kirei.providers.base import TIMEOUT, ProviderClient

ENDPOINT = "https://api.linear.app/graphql"

logger = logging.getLogger(__name__)

_ISSUE_FIELDS = """
    id
    identifier
    title
    description
    url
    state { name type }
"""

_LIST_ISSUES = f"""
query ListIssues {{
  issues(first: 20, filter: {{ state: {{ type: {{ neq: "completed" }} }} }}) {{
    nodes {{ {_ISSUE_FIELDS} }}
  }}
}}
"""

_LIST_TEAM_ISSUES = f"""
query ListTeamIssues($teamId: ID!) {{
  issues(
    first: 20
    filter: {{ state: {{ type: {{ neq: "completed" }} }}, team: {{ id: {{ eq: $teamId }} }} }}
  ) {{
    nodes {{ {_ISSUE_FIELDS} }}
  }}
}}
"""

_CREATE_ISSUE = f"""
mutation IssueCreate($input: IssueCreateInput!) {{
  issueCreate(input: $input) {{
    success
    issue {{ {_ISSUE_FIELDS} }}
  }}
}}
"""

_LIST_PROJECTS = """
query ListProjects {
  projects(first: 50) {
    nodes {
      id
      name
      description
      url
      state
    }
  }
}
"""

_CREATE_PROJECT = """
mutation ProjectCreate($input: ProjectCreateInput!) {
  projectCreate(input: $input) {
    success
    project {
      id
      name
      description
      url
      state
    }
  }
}
"""


def _dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a step is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class LinearProvider(ProviderClient):
    provider = ProviderId.LINEAR

    def __init__(self, token: str, default_workspace: str | None = None, *, endpoint: str = ENDPOINT) -> None:
        super().__init__(
            httpx.Client(
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                timeout=TIMEOUT,
            )
        )
        self._endpoint = endpoint
        self._default_workspace = default_workspace

    def _workspace(self, override: str | None) -> str | None:
        return override or self._default_workspace

    def _gql(self, query: str, variables: dict[str, Any] | None = None) -> tuple[dict[str, Any], str]:
        """POST one GraphQL document; return the decoded body and its raw text.

        A 200 response can still be an application-level failure, so callers
        inspect the structure rather than trusting the status code.
        """
        response = self._send("POST", self._endpoint, json={"query": query, "variables": variables or {}})
        body = self._expect_object(response)
        if body.get("errors"):
            logger.warning("Linear API returned errors: %s", body["errors"])
            raise UnexpectedResponseError(response.text, ProviderId.LINEAR)
        return body, response.text

    def _issue_from_node(self, node: dict[str, Any]) -> UnifiedIssue:
        return UnifiedIssue(
            id=node.get("id") or "",
            title=node.get("title") or "untitled",
            state=_dig(node, "state", "name") or "unknown",
            url=node.get("url"),
            provider=ProviderId.LINEAR,
            raw_payload=node,
        )

    def _project_from_node(self, node: dict[str, Any], team_id: str | None = None) -> UnifiedProject:
        return UnifiedProject(
            id=node.get("id") or "",
            name=node.get("name") or "untitled",
            description=node.get("description") or None,
            provider=ProviderId.LINEAR,
            parent=team_id,
            raw=node,
        )

    def list(self, query: UnifiedListQuery) -> list[UnifiedIssue]:
        team_id = self._workspace(query.workspace)
        if team_id:
            body, raw = self._gql(_LIST_TEAM_ISSUES, {"teamId": team_id})
        else:
            body, raw = self._gql(_LIST_ISSUES)
        nodes = _dig(body, "data", "issues", "nodes")
        nodes = self._expect_objects(nodes, raw)
        issues = [self._issue_from_node(node) for node in nodes]
        return [issue for issue in issues if matches_search(issue.title, query.search)]

    def create(self, params: UnifiedCreateParams) -> UnifiedIssue:
        issue_input: dict[str, Any] = {"title": params.title, "description": params.body}
        team_id = self._workspace(params.workspace)
        if team_id:
            issue_input["teamId"] = team_id
        body, raw = self._gql(_CREATE_ISSUE, {"input": issue_input})
        node = _dig(body, "data", "issueCreate", "issue")
        if not isinstance(node, dict):
            raise UnexpectedResponseError(raw, ProviderId.LINEAR)
        issue = self._issue_from_node(node)
        logger.info("Created Linear issue %s", node.get("identifier") or issue.id)
        return issue

    def list_projects(self, query: UnifiedProjectQuery) -> list[UnifiedProject]:
        body, raw = self._gql(_LIST_PROJECTS)
        nodes = _dig(body, "data", "projects", "nodes")
        nodes = self._expect_objects(nodes, raw)
        projects = [self._project_from_node(node) for node in nodes]
        return [p for p in projects if matches_search(p.name, query.search)]

    def create_project(self, params: UnifiedCreateProjectParams) -> UnifiedProject:
        team_id = self._workspace(params.workspace)
        if not team_id:
            raise ConfigurationError(
                "a team id is required to create a project. Pass --workspace or set default_workspace.",
                ProviderId.LINEAR,
            )
        project_input: dict[str, Any] = {"name": params.name, "teamIds": [team_id]}
        if params.description:
            project_input["description"] = params.description
        body, raw = self._gql(_CREATE_PROJECT, {"input": project_input})
        node = _dig(body, "data", "projectCreate", "project")
        if not isinstance(node, dict):
            raise UnexpectedResponseError(raw, ProviderId.LINEAR)
        return self._project_from_node(node, team_id)
