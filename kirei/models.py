"""Shared pydantic models: the contract between provider adapters and their callers."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from kirei.errors import UnknownProviderError


class ProviderId(str, Enum):
    GITHUB = "github"
    LINEAR = "linear"
    TRELLO = "trello"
    JIRA = "jira"

    @classmethod
    def parse(cls, text: str) -> "ProviderId":
        """Case-insensitive exact match on the provider tag."""
        try:
            return cls(text.lower())
        except ValueError:
            raise UnknownProviderError(text) from None

    @property
    def env_var(self) -> str:
        return f"KIREI_{self.name}_TOKEN"

    @property
    def display_name(self) -> str:
        match self:
            case ProviderId.GITHUB:
                return "GitHub"
            case ProviderId.LINEAR:
                return "Linear"
            case ProviderId.TRELLO:
                return "Trello"
            case ProviderId.JIRA:
                return "Jira"

    def __str__(self) -> str:
        return self.display_name


class UnifiedIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # provider-native identifier: GitHub number, Linear id, Trello card id, Jira key
    title: str
    state: str  # provider vocabulary, not normalized
    url: str | None = None
    provider: ProviderId
    raw_payload: Any  # verbatim provider JSON for this entity
    context: dict[str, str] = {}  # auxiliary display data, e.g. Trello list_name

    def display_summary(self) -> str:
        return f"{self.provider.display_name} [{self.state}] {self.title} ({self.url or 'no-url'})"


class UnifiedProject(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    provider: ProviderId
    parent: str | None = None  # owning workspace / org / user, when the provider has one
    raw: Any


class UnifiedTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    status: str
    project_id: str
    provider: ProviderId
    raw: Any


class UnifiedListQuery(BaseModel):
    workspace: str | None = None
    repo: str | None = None
    search: str | None = None


class UnifiedCreateParams(BaseModel):
    workspace: str | None = None
    repo: str | None = None
    title: str
    body: str | None = None


class UnifiedProjectQuery(BaseModel):
    workspace: str | None = None
    repo: str | None = None
    search: str | None = None


class UnifiedCreateProjectParams(BaseModel):
    workspace: str | None = None
    repo: str | None = None
    name: str
    description: str | None = None


class UnifiedTaskQuery(BaseModel):
    project_id: str | None = None
    status: str | None = None


class UnifiedCreateTaskParams(BaseModel):
    project_id: str
    title: str
    description: str | None = None
    status: str | None = None


class ScopeDefaults(BaseModel):
    """Default scoping and connection details handed to the adapter factory."""

    model_config = ConfigDict(frozen=True)

    repo: str | None = None  # GitHub "owner/repo"
    workspace: str | None = None  # Linear team id
    board: str | None = None  # Trello board id
    project: str | None = None  # Jira project key
    jira_server_url: str | None = None
    jira_email: str | None = None
    trello_api_key: str | None = None


def matches_search(text: str, search: str | None) -> bool:
    """Case-insensitive substring filter applied to titles after a list call."""
    if not search:
        return True
    return search.lower() in text.lower()
