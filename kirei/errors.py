"""Error types shared by the provider adapters, the credential resolver and the OAuth flow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kirei.models import ProviderId


class KireiError(Exception):
    """Base exception for every failure surfaced by kirei."""

    pass


class UnknownProviderError(KireiError, ValueError):
    """Free text did not name one of the supported providers."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"unknown provider '{text}'. Valid: github, linear, trello, jira")


class MissingCredentialError(KireiError):
    """No token could be found for a provider."""

    def __init__(self, provider: ProviderId) -> None:
        self.provider = provider
        super().__init__(
            f"Missing credentials for {provider.display_name}. "
            f"Set {provider.env_var} or run: kirei auth token {provider.value}"
        )


class ConfigurationError(KireiError):
    """A required scope (repo, workspace, board, project) or setting is missing or malformed."""

    def __init__(self, detail: str, provider: ProviderId | None = None) -> None:
        self.detail = detail
        self.provider = provider
        prefix = f"{provider.display_name} " if provider else ""
        super().__init__(f"{prefix}configuration error: {detail}")


class UnexpectedResponseError(KireiError):
    """The provider answered, but not with the structure we expected.

    ``raw_body`` keeps the response text verbatim for diagnosing schema drift.
    """

    def __init__(self, raw_body: str, provider: ProviderId | None = None) -> None:
        self.raw_body = raw_body
        self.provider = provider
        name = provider.display_name if provider else "provider"
        super().__init__(f"{name} response is malformed: {raw_body}")


class TransportError(KireiError):
    """Network or HTTP-level failure. The underlying httpx error is chained as ``__cause__``."""

    def __init__(self, provider: ProviderId | None, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        name = provider.display_name if provider else "HTTP"
        super().__init__(f"{name} request failed: {message}")


class ProviderNotImplementedError(KireiError):
    """The provider does not support the requested capability."""

    def __init__(self, provider: ProviderId, operation: str) -> None:
        self.provider = provider
        self.operation = operation
        super().__init__(f"{operation} is not implemented for {provider.display_name}")


class AuthorizationTimedOut(KireiError):
    """No browser redirect reached the loopback listener in time."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"authorization timed out after {timeout:g}s. Run the auth flow again.")


class AuthorizationExchangeFailed(KireiError):
    """The callback or the code-for-token exchange did not produce an access token."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"authorization failed: {detail}")
