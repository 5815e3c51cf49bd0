"""GitHub REST API v3 adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from kirei.errors import ConfigurationError
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

BASE_URL = "https://api.github.com"
USER_AGENT = "kirei-cli"
PAGE_SIZE = 20

logger = logging.getLogger(__name__)


class GitHubRepository(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repository(repo: str) -> GitHubRepository:
    """Split ``owner/repo`` on the first slash.

    An empty owner and an empty repo name are reported separately.
    """
    owner, _, name = repo.partition("/")
    if not owner:
        raise ConfigurationError("repository owner missing", ProviderId.GITHUB)
    if not name:
        raise ConfigurationError("repository name missing", ProviderId.GITHUB)
    return GitHubRepository(owner=owner, name=name)


class GitHubProvider(ProviderClient):
    provider = ProviderId.GITHUB

    def __init__(self, token: str, default_repo: str | None = None, *, base_url: str = BASE_URL) -> None:
        super().__init__(
            httpx.Client(
                base_url=base_url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                    "User-Agent": USER_AGENT,
                },
                timeout=TIMEOUT,
            )
        )
        self._default_repo = default_repo

    def _resolve_repo(self, override: str | None) -> GitHubRepository:
        repo = override or self._default_repo
        if not repo:
            raise ConfigurationError(
                "repository is required. Pass --repo or set default_repo in your config.",
                ProviderId.GITHUB,
            )
        return parse_repository(repo)

    def _issue_from_node(self, node: dict[str, Any]) -> UnifiedIssue:
        number = node.get("number")
        if isinstance(number, int):
            issue_id = str(number)
        else:
            fallback = node.get("id")
            issue_id = str(fallback) if fallback is not None else ""
        return UnifiedIssue(
            id=issue_id,
            title=node.get("title") or "untitled",
            state=node.get("state") or "unknown",
            url=node.get("html_url"),
            provider=ProviderId.GITHUB,
            raw_payload=node,
        )

    def _project_from_repo(self, repo: dict[str, Any]) -> UnifiedProject:
        owner = repo.get("owner") or {}
        return UnifiedProject(
            id=repo.get("full_name") or str(repo.get("id", "")),
            name=repo.get("name") or "untitled",
            description=repo.get("description"),
            provider=ProviderId.GITHUB,
            parent=owner.get("login"),
            raw=repo,
        )

    def list(self, query: UnifiedListQuery) -> list[UnifiedIssue]:
        repo = self._resolve_repo(query.repo)
        response = self._send(
            "GET",
            f"/repos/{repo.owner}/{repo.name}/issues",
            params={"state": "open", "per_page": PAGE_SIZE},
        )
        nodes = self._expect_list(response)
        # The issues endpoint also returns pull requests; they carry a pull_request key.
        issues = [self._issue_from_node(node) for node in nodes if "pull_request" not in node]
        logger.info("Fetched %d issues from %s", len(issues), repo.full_name)
        return [issue for issue in issues if matches_search(issue.title, query.search)]

    def create(self, params: UnifiedCreateParams) -> UnifiedIssue:
        repo = self._resolve_repo(params.repo)
        response = self._send(
            "POST",
            f"/repos/{repo.owner}/{repo.name}/issues",
            json={"title": params.title, "body": params.body},
        )
        issue = self._issue_from_node(self._expect_object(response))
        logger.info("Created issue #%s in %s", issue.id, repo.full_name)
        return issue

    def list_projects(self, query: UnifiedProjectQuery) -> list[UnifiedProject]:
        # Repositories play the role of projects on GitHub.
        response = self._send("GET", "/user/repos", params={"per_page": "100", "sort": "updated"})
        projects = [self._project_from_repo(repo) for repo in self._expect_list(response)]
        return [p for p in projects if matches_search(p.name, query.search)]

    def create_project(self, params: UnifiedCreateProjectParams) -> UnifiedProject:
        path = f"/orgs/{params.workspace}/repos" if params.workspace else "/user/repos"
        body: dict[str, Any] = {"name": params.name}
        if params.description:
            body["description"] = params.description
        response = self._send("POST", path, json=body)
        return self._project_from_repo(self._expect_object(response))
