"""Client for the event index service (GraphQL subgraph)."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import requests

from lottery_client.errors import IndexUnavailable
from lottery_client.lottery.models import RoundRecord
from lottery_client.utils.common import is_zero_address
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)

# Most recently created round only; status comes from the chain, not from here.
FETCH_LATEST_GAME_QUERY = """
query {
  games(orderBy: id, orderDirection: desc, first: 1) {
    id
    maxPlayers
    entryFee
    winner
    players
  }
}
"""


class IndexClient:
    """Fetches the latest round record from the index service."""

    def __init__(self, config: Dict[str, Any], session: Optional[requests.Session] = None):
        indexer_cfg = config.get("indexer", {})
        self.endpoint: Optional[str] = indexer_cfg.get("endpoint")
        self.timeout = float(indexer_cfg.get("timeout", 10.0))
        self._owns_session = session is None
        self._session = session or requests.Session()

    async def fetch_latest_round(self) -> Optional[RoundRecord]:
        """Return the most recently created round, or None if nothing was indexed yet."""
        if not self.endpoint:
            raise IndexUnavailable("indexer.endpoint is not configured")

        payload = await asyncio.to_thread(self._post, FETCH_LATEST_GAME_QUERY)
        games = payload.get("games")
        if not isinstance(games, list):
            raise IndexUnavailable(f"Unexpected index response: {payload!r}")
        if not games:
            return None
        return self._parse_game(games[0])

    async def close(self) -> None:
        """Release the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()
            logger.debug("Index client session closed")

    def _post(self, query: str) -> Dict[str, Any]:
        try:
            response = self._session.post(self.endpoint, json={"query": query}, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as exc:
            raise IndexUnavailable(f"Index service request failed: {exc}") from exc
        except ValueError as exc:
            raise IndexUnavailable(f"Index service returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise IndexUnavailable(f"Unexpected index response: {body!r}")
        if body.get("errors"):
            messages = "; ".join(str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in body["errors"])
            raise IndexUnavailable(f"Index query failed: {messages}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise IndexUnavailable(f"Index response has no data: {body!r}")
        return data

    @staticmethod
    def _parse_game(game: Dict[str, Any]) -> RoundRecord:
        try:
            winner = game.get("winner")
            return RoundRecord(
                round_id=str(game["id"]),
                entry_fee=int(game["entryFee"]),
                max_players=int(game["maxPlayers"]),
                players=tuple(game.get("players") or ()),
                winner=None if is_zero_address(winner) else winner,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise IndexUnavailable(f"Malformed round record {game!r}: {exc}") from exc
