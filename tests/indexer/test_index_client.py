"""Unit tests for lottery_client/indexer/client.py"""

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from lottery_client.errors import IndexUnavailable
from lottery_client.indexer.client import FETCH_LATEST_GAME_QUERY, IndexClient
from lottery_client.lottery.models import RoundRecord

PLAYER_A = "0x00000000000000000000000000000000000000aa"
PLAYER_B = "0x00000000000000000000000000000000000000bb"


def make_client(config, body=None, error=None) -> tuple:
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value.json.return_value = body
    return IndexClient(config, session=session), session


def test_fetches_latest_round(config) -> None:
    body = {"data": {"games": [{
        "id": "12",
        "maxPlayers": 4,
        "entryFee": "10000000000000000",
        "winner": None,
        "players": [PLAYER_A, PLAYER_B],
    }]}}
    client, session = make_client(config, body)

    record = asyncio.run(client.fetch_latest_round())

    assert record == RoundRecord(round_id="12", entry_fee=10**16, max_players=4, players=(PLAYER_A, PLAYER_B))
    session.post.assert_called_once_with(
        "http://indexer.test/graphql", json={"query": FETCH_LATEST_GAME_QUERY}, timeout=10.0
    )


def test_zero_address_winner_means_no_winner(config) -> None:
    body = {"data": {"games": [{
        "id": "3", "maxPlayers": "2", "entryFee": "0",
        "winner": "0x0000000000000000000000000000000000000000", "players": None,
    }]}}
    client, _ = make_client(config, body)

    record = asyncio.run(client.fetch_latest_round())

    assert record.winner is None
    assert record.players == ()
    assert record.max_players == 2


def test_winner_is_kept(config) -> None:
    body = {"data": {"games": [{"id": "3", "maxPlayers": 2, "entryFee": "5", "winner": PLAYER_B, "players": [PLAYER_A, PLAYER_B]}]}}
    client, _ = make_client(config, body)

    assert asyncio.run(client.fetch_latest_round()).winner == PLAYER_B


def test_no_rounds_indexed_yet(config) -> None:
    client, _ = make_client(config, {"data": {"games": []}})

    assert asyncio.run(client.fetch_latest_round()) is None


@pytest.mark.parametrize(
    "body",
    [
        {"errors": [{"message": "indexing_error"}]},
        {"data": None},
        {"data": {"games": None}},
        {"data": {"games": [{"id": "1"}]}},
        {"data": {"games": [{"id": "1", "maxPlayers": "x", "entryFee": "1", "players": []}]}},
        ["not", "an", "object"],
    ],
)
def test_bad_payloads_raise_index_unavailable(config, body) -> None:
    client, _ = make_client(config, body)

    with pytest.raises(IndexUnavailable):
        asyncio.run(client.fetch_latest_round())


def test_transport_error_raises_index_unavailable(config) -> None:
    client, _ = make_client(config, error=requests.exceptions.ConnectionError("connection refused"))

    with pytest.raises(IndexUnavailable):
        asyncio.run(client.fetch_latest_round())


def test_http_error_raises_index_unavailable(config) -> None:
    client, session = make_client(config, {})
    session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("502 Server Error")

    with pytest.raises(IndexUnavailable):
        asyncio.run(client.fetch_latest_round())


def test_invalid_json_raises_index_unavailable(config) -> None:
    client, session = make_client(config)
    session.post.return_value.json.side_effect = ValueError("Expecting value")

    with pytest.raises(IndexUnavailable):
        asyncio.run(client.fetch_latest_round())


def test_missing_endpoint_raises_index_unavailable() -> None:
    with pytest.raises(IndexUnavailable):
        asyncio.run(IndexClient({}).fetch_latest_round())


# --- CLOSE ----
def test_close_releases_the_session_it_created(config, monkeypatch) -> None:
    owned = MagicMock()
    monkeypatch.setattr(requests, "Session", lambda: owned)
    client = IndexClient(config)

    asyncio.run(client.close())

    owned.close.assert_called_once_with()


def test_close_leaves_an_injected_session_open(config) -> None:
    client, session = make_client(config)

    asyncio.run(client.close())

    session.close.assert_not_called()
