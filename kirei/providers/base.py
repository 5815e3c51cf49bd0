"""Abstract base class for tracker adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from kirei.errors import ProviderNotImplementedError, TransportError, UnexpectedResponseError
from kirei.models import (
    ProviderId,
    UnifiedCreateParams,
    UnifiedCreateProjectParams,
    UnifiedCreateTaskParams,
    UnifiedIssue,
    UnifiedListQuery,
    UnifiedProject,
    UnifiedProjectQuery,
    UnifiedTask,
    UnifiedTaskQuery,
)

logger = logging.getLogger(__name__)

TIMEOUT = 30


class ProviderClient(ABC):
    """Capability every tracker adapter implements.

    Callers depend on this interface only. Adapters hold immutable configuration
    (token, default scope) plus one pooled ``httpx.Client``.
    """

    provider: ProviderId

    def __init__(self, http: httpx.Client) -> None:
        self._http = http

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> ProviderClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @abstractmethod
    def list(self, query: UnifiedListQuery) -> list[UnifiedIssue]: ...

    @abstractmethod
    def create(self, params: UnifiedCreateParams) -> UnifiedIssue: ...

    def list_projects(self, query: UnifiedProjectQuery) -> list[UnifiedProject]:
        raise ProviderNotImplementedError(self.provider, "list_projects")

    def create_project(self, params: UnifiedCreateProjectParams) -> UnifiedProject:
        raise ProviderNotImplementedError(self.provider, "create_project")

    def list_tasks(self, query: UnifiedTaskQuery) -> list[UnifiedTask]:
        raise ProviderNotImplementedError(self.provider, "list_tasks")

    def create_task(self, params: UnifiedCreateTaskParams) -> UnifiedTask:
        raise ProviderNotImplementedError(self.provider, "create_task")

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and map transport and status failures to TransportError."""
        logger.debug("%s %s %s", self.provider.display_name, method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(self.provider, str(exc) or type(exc).__name__) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = response.status_code
            if status == 401:
                message = f"API returned 401. Run: kirei auth token {self.provider.value}"
            else:
                message = f"{status} {response.reason_phrase}: {response.text[:200]}"
            raise TransportError(self.provider, message, status_code=status) from exc
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise UnexpectedResponseError(response.text, self.provider) from None

    def _expect_list(self, response: httpx.Response) -> list[dict[str, Any]]:
        """Decode a JSON array whose items are all objects."""
        return self._expect_objects(self._json(response), response.text)

    def _expect_objects(self, data: Any, raw_body: str) -> list[dict[str, Any]]:
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise UnexpectedResponseError(raw_body, self.provider)
        return data

    def _expect_object(self, response: httpx.Response) -> dict[str, Any]:
        data = self._json(response)
        if not isinstance(data, dict):
            raise UnexpectedResponseError(response.text, self.provider)
        return data
