# app/core/board/client.py
"""
BOARD CLIENT - Read the production board from the monday.com GraphQL API

Purpose:
    1. Send ONE read query per refresh (board name, columns, items)
    2. Never raise: every failure comes back as {"errors": [{"message": ...}]}
    3. No retries here, the dashboard polls again on its own

Data Flow:
    get_board() → execute_query() → BoardResponse → parse_board() → Board
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.core.schemas import Board

logger = logging.getLogger(__name__)


BOARD_QUERY = """
query ($boardId: [ID!], $limit: Int!) {
  boards(ids: $boardId) {
    id
    name
    columns {
      id
      title
      type
    }
    items_page(limit: $limit) {
      items {
        id
        name
        column_values {
          id
          text
          value
          type
        }
      }
    }
  }
}
"""


@dataclass
class BoardResponse:
    """Either `data` or `errors` is set, never both."""

    data: Optional[Dict[str, Any]] = None
    errors: Optional[List[Dict[str, Any]]] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error_message(self) -> str:
        if not self.errors:
            return ""
        return self.errors[0].get("message") or "Unknown error"

    @classmethod
    def failure(cls, message: str, status_code: Optional[int] = None):
        return cls(errors=[{"message": message}], status_code=status_code)


class BoardClient:
    def __init__(
        self,
        token: str,
        api_url: str = "https://api.monday.com/v2",
        api_version: Optional[str] = None,
        timeout: float = 15.0,
        page_size: int = 100,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.api_url = api_url
        self.api_version = api_version
        self.timeout = timeout
        self.page_size = page_size
        # Tests pass a client with a MockTransport
        self.http_client = http_client

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": self.token,
            "Content-Type": "application/json",
        }
        if self.api_version:
            headers["API-Version"] = self.api_version
        return headers

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.post(
                self.api_url, json=payload, headers=self._headers(), timeout=self.timeout
            )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.api_url, json=payload, headers=self._headers())

    async def execute_query(
        self, query: str, variables: Optional[Dict[str, Any]] = None
    ) -> BoardResponse:
        """
        Execute a GraphQL query.

        Returns:
            BoardResponse(data=...) on success
            BoardResponse(errors=[{"message": ...}], status_code=...) otherwise
        """
        payload = {"query": query, "variables": variables or {}}

        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error(f"Board API transport error: {e!r}")
            return BoardResponse.failure(str(e) or "Board API unreachable", 500)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = f"Board API returned status {response.status_code}"
            if isinstance(body, dict) and body.get("errors"):
                message = body["errors"][0].get("message") or message
            elif isinstance(body, dict) and body.get("error_message"):
                message = body["error_message"]
            logger.error(message)
            return BoardResponse.failure(message, response.status_code)

        if not isinstance(body, dict):
            logger.error("Board API returned a non-JSON body")
            return BoardResponse.failure("Invalid response from board API", 500)

        if body.get("errors"):
            logger.error(f"Board API errors: {body['errors']}")
            return BoardResponse(errors=body["errors"], status_code=response.status_code)

        return BoardResponse(data=body.get("data") or {}, status_code=response.status_code)

    async def get_board(self, board_id: str) -> BoardResponse:
        """Fetch board name, columns and the first page of items."""
        variables = {"boardId": [str(board_id)], "limit": self.page_size}
        return await self.execute_query(BOARD_QUERY, variables)


def parse_board(data: Optional[Dict[str, Any]]) -> Optional[Board]:
    """
    Turn the raw `data` of a board query into a Board.

    Returns None when no board came back. Items nested under
    `items_page.items` are lifted to `Board.items`.
    """
    boards = (data or {}).get("boards") or []
    if not boards:
        return None

    raw = boards[0] or {}
    items = (raw.get("items_page") or {}).get("items") or raw.get("items") or []

    # Drop null column entries before validation
    columns = [c for c in raw.get("columns") or [] if c and c.get("id")]

    try:
        return Board(
            id=str(raw["id"]) if raw.get("id") is not None else None,
            name=raw.get("name") or "",
            columns=columns,
            items=items,
        )
    except ValidationError as e:
        logger.error(f"Board payload did not match the expected shape: {e}")
        raise
