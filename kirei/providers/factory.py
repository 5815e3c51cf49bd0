"""Build the adapter for a provider behind the common ProviderClient interface."""

from kirei.models import ProviderId, ScopeDefaults
from kirei.providers.base import ProviderClient
from kirei.providers.github import GitHubProvider
from kirei.providers.jira import JiraProvider
from kirei.providers.linear import LinearProvider
from kirei.providers.trello import TrelloProvider


def build_client(provider: ProviderId, token: str, defaults: ScopeDefaults) -> ProviderClient:
    """Pure construction, no I/O. Resolve the token before calling this.

    A new provider needs one arm here and one adapter module.
    """
    match provider:
        case ProviderId.GITHUB:
            return GitHubProvider(token, defaults.repo)
        case ProviderId.LINEAR:
            return LinearProvider(token, defaults.workspace)
        case ProviderId.TRELLO:
            return TrelloProvider(token, defaults.trello_api_key, defaults.board)
        case ProviderId.JIRA:
            return JiraProvider(token, defaults.jira_server_url, defaults.project, defaults.jira_email)
