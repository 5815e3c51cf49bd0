"""Trello REST API adapter.

Cards live in lists, and lists live on a board, so both listing and creating
need the board's lists: listing to turn each card's ``idList`` into a list
name, creating to pick the target list.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from kirei.errors import ConfigurationError
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
    matches_search,
)
from kirei.providers.base import TIMEOUT, ProviderClient

BASE_URL = "https://api.trello.com/1"
PAGE_SIZE = 50
UNKNOWN_LIST = "Unknown"

logger = logging.getLogger(__name__)


class TrelloProvider(ProviderClient):
    provider = ProviderId.TRELLO

    def __init__(
        self,
        token: str,
        api_key: str | None = None,
        default_board: str | None = None,
        *,
        base_url: str = BASE_URL,
    ) -> None:
        super().__init__(httpx.Client(base_url=base_url, timeout=TIMEOUT))
        self._token = token
        self._api_key = api_key
        self._default_board = default_board

    def _auth_params(self) -> dict[str, str]:
        if not self._api_key:
            raise ConfigurationError(
                "API key is required. Set KIREI_TRELLO_API_KEY or trello_api_key in your config.",
                ProviderId.TRELLO,
            )
        return {"key": self._api_key, "token": self._token}

    def _resolve_board(self, override: str | None) -> str:
        board = override or self._default_board
        if not board:
            raise ConfigurationError(
                "board is required. Pass --workspace or set default_board in your config.",
                ProviderId.TRELLO,
            )
        return board

    def _get(self, path: str, params: dict[str, str] | None = None) -> list[Any]:
        response = self._send("GET", path, params={**self._auth_params(), **(params or {})})
        return self._expect_list(response)

    def _post(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        # Trello takes create arguments in the query string, alongside key and token.
        response = self._send("POST", path, params={**self._auth_params(), **params})
        return self._expect_object(response)

    def _lists(self, board_id: str) -> list[dict[str, Any]]:
        return self._get(f"/boards/{board_id}/lists")

    def _cards_with_list_names(self, board_id: str) -> list[tuple[dict[str, Any], str]]:
        cards = self._get(f"/boards/{board_id}/cards")
        list_names = {lst.get("id"): lst.get("name") or UNKNOWN_LIST for lst in self._lists(board_id)}
        return [(card, list_names.get(card.get("idList"), UNKNOWN_LIST)) for card in cards]

    def _issue_from_card(self, card: dict[str, Any], list_name: str) -> UnifiedIssue:
        return UnifiedIssue(
            id=card.get("id") or "",
            title=card.get("name") or "untitled",
            state="closed" if card.get("closed") else "open",
            url=card.get("url"),
            provider=ProviderId.TRELLO,
            raw_payload=card,
            context={"list_name": list_name},
        )

    def _task_from_card(self, card: dict[str, Any], board_id: str, list_name: str) -> UnifiedTask:
        return UnifiedTask(
            id=card.get("id") or "",
            title=card.get("name") or "untitled",
            description=card.get("desc") or None,
            status=list_name,
            project_id=card.get("idBoard") or board_id,
            provider=ProviderId.TRELLO,
            raw=card,
        )

    def _create_card(self, list_id: str, name: str, description: str | None) -> dict[str, Any]:
        params = {"name": name, "idList": list_id}
        if description:
            params["desc"] = description
        return self._post("/cards", params)

    def _first_list(self, board_id: str, lists: list[dict[str, Any]]) -> dict[str, Any]:
        if not lists:
            raise ConfigurationError(f"no lists found on board {board_id}", ProviderId.TRELLO)
        return lists[0]

    def list(self, query: UnifiedListQuery) -> list[UnifiedIssue]:
        board_id = self._resolve_board(query.workspace)
        issues = [self._issue_from_card(card, name) for card, name in self._cards_with_list_names(board_id)]
        issues = [issue for issue in issues if matches_search(issue.title, query.search)]
        return issues[:PAGE_SIZE]

    def create(self, params: UnifiedCreateParams) -> UnifiedIssue:
        board_id = self._resolve_board(params.workspace)
        target = self._first_list(board_id, self._lists(board_id))
        card = self._create_card(target["id"], params.title, params.body)
        logger.info("Created Trello card %s in list %s", card.get("id"), target.get("name"))
        return self._issue_from_card(card, target.get("name") or UNKNOWN_LIST)

    def list_projects(self, query: UnifiedProjectQuery) -> list[UnifiedProject]:
        boards = self._get("/members/me/boards")
        projects = [
            UnifiedProject(
                id=board.get("id") or "",
                name=board.get("name") or "untitled",
                description=board.get("desc") or None,
                provider=ProviderId.TRELLO,
                parent=board.get("idOrganization"),
                raw=board,
            )
            for board in boards
        ]
        return [p for p in projects if matches_search(p.name, query.search)]

    def create_project(self, params: UnifiedCreateProjectParams) -> UnifiedProject:
        board_params = {"name": params.name}
        if params.description:
            board_params["desc"] = params.description
        if params.workspace:
            board_params["idOrganization"] = params.workspace
        board = self._post("/boards", board_params)
        return UnifiedProject(
            id=board.get("id") or "",
            name=board.get("name") or params.name,
            description=board.get("desc") or None,
            provider=ProviderId.TRELLO,
            parent=board.get("idOrganization"),
            raw=board,
        )

    def list_tasks(self, query: UnifiedTaskQuery) -> list[UnifiedTask]:
        board_id = self._resolve_board(query.project_id)
        tasks = [self._task_from_card(card, board_id, name) for card, name in self._cards_with_list_names(board_id)]
        if query.status:
            tasks = [t for t in tasks if t.status.lower() == query.status.lower()]
        return tasks

    def create_task(self, params: UnifiedCreateTaskParams) -> UnifiedTask:
        board_id = self._resolve_board(params.project_id)
        lists = self._lists(board_id)
        target = self._first_list(board_id, lists)
        if params.status:
            wanted = params.status.lower()
            target = next((lst for lst in lists if (lst.get("name") or "").lower() == wanted), target)
        card = self._create_card(target["id"], params.title, params.description)
        return self._task_from_card(card, board_id, target.get("name") or UNKNOWN_LIST)
