"""Unit tests for lottery_client/lottery/state_machine.py"""

import itertools

import pytest

from lottery_client.lottery.models import ConnectionState, GameView, PendingAction, RoundRecord
from lottery_client.lottery.state_machine import Affordance, AffordanceKind, derive_affordance

OPEN = GameView(
    started=True,
    round=RoundRecord(round_id="1", entry_fee=1000, max_players=3, players=("0xA",)),
    logs=("Game has started with ID: 1",),
    is_full=False,
)
FULL = GameView(
    started=True,
    round=RoundRecord(round_id="1", entry_fee=1000, max_players=1, players=("0xA",)),
    is_full=True,
)
CLOSED = GameView()


@pytest.mark.parametrize(
    "connection,is_owner,view,pending,expected",
    [
        (ConnectionState.DISCONNECTED, False, CLOSED, PendingAction.NONE, AffordanceKind.CONNECT),
        (ConnectionState.DISCONNECTED, True, OPEN, PendingAction.NONE, AffordanceKind.CONNECT),
        (ConnectionState.CONNECTING, False, CLOSED, PendingAction.NONE, AffordanceKind.BUSY),
        (ConnectionState.CONNECTED, True, CLOSED, PendingAction.STARTING_GAME, AffordanceKind.BUSY),
        (ConnectionState.CONNECTED, False, OPEN, PendingAction.JOINING_GAME, AffordanceKind.BUSY),
        (ConnectionState.CONNECTED, False, FULL, PendingAction.NONE, AffordanceKind.CHOOSING_WINNER),
        (ConnectionState.CONNECTED, True, FULL, PendingAction.NONE, AffordanceKind.CHOOSING_WINNER),
        (ConnectionState.CONNECTED, False, OPEN, PendingAction.NONE, AffordanceKind.JOIN),
        (ConnectionState.CONNECTED, True, OPEN, PendingAction.NONE, AffordanceKind.JOIN),
        (ConnectionState.CONNECTED, True, CLOSED, PendingAction.NONE, AffordanceKind.START_GAME_FORM),
        (ConnectionState.CONNECTED, False, CLOSED, PendingAction.NONE, AffordanceKind.VIEW_LOGS),
    ],
)
def test_affordance_table(connection, is_owner, view, pending, expected) -> None:
    assert derive_affordance(connection, is_owner, view, pending).kind is expected


def test_join_carries_the_indexed_entry_fee() -> None:
    affordance = derive_affordance(ConnectionState.CONNECTED, False, OPEN, PendingAction.NONE)

    assert affordance == Affordance(AffordanceKind.JOIN, entry_fee=1000)
    assert affordance.accepts_input
    assert affordance.label == "Join Game"


def test_busy_and_choosing_winner_accept_no_input() -> None:
    assert not Affordance(AffordanceKind.BUSY).accepts_input
    assert not Affordance(AffordanceKind.CHOOSING_WINNER).accepts_input
    assert Affordance(AffordanceKind.CHOOSING_WINNER).label == "Choosing winner..."


def test_every_combination_maps_to_exactly_one_affordance() -> None:
    seen = set()
    for connection, is_owner, view, pending in itertools.product(
        ConnectionState, (True, False), (OPEN, FULL, CLOSED), PendingAction
    ):
        affordance = derive_affordance(connection, is_owner, view, pending)
        assert isinstance(affordance.kind, AffordanceKind)
        seen.add(affordance.kind)

    assert seen == set(AffordanceKind)


def test_stale_round_offers_join_without_fee_or_occupancy() -> None:
    stale_full = GameView(started=True, round=FULL.round, is_full=True, round_is_stale=True)
    stale_open = GameView(started=True, round=OPEN.round, round_is_stale=True)

    assert derive_affordance(ConnectionState.CONNECTED, False, stale_full) == Affordance(AffordanceKind.JOIN)
    assert derive_affordance(ConnectionState.CONNECTED, True, stale_open) == Affordance(AffordanceKind.JOIN)
