"""Maps session state and the merged view to the single action on offer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lottery_client.lottery.models import ConnectionState, GameView, PendingAction


class AffordanceKind(Enum):
    CONNECT = "connect"
    BUSY = "busy"
    CHOOSING_WINNER = "choosing_winner"
    JOIN = "join"
    START_GAME_FORM = "start_game_form"
    VIEW_LOGS = "view_logs"


_LABELS = {
    AffordanceKind.CONNECT: "Connect your wallet",
    AffordanceKind.BUSY: "Loading...",
    AffordanceKind.CHOOSING_WINNER: "Choosing winner...",
    AffordanceKind.JOIN: "Join Game",
    AffordanceKind.START_GAME_FORM: "Start the game",
    AffordanceKind.VIEW_LOGS: "",
}

_ACCEPTS_INPUT = {
    AffordanceKind.CONNECT: True,
    AffordanceKind.BUSY: False,
    AffordanceKind.CHOOSING_WINNER: False,
    AffordanceKind.JOIN: True,
    AffordanceKind.START_GAME_FORM: True,
    AffordanceKind.VIEW_LOGS: False,
}


@dataclass(frozen=True)
class Affordance:
    """The one thing the presentation layer may offer right now."""

    kind: AffordanceKind
    entry_fee: Optional[int] = None  # set for JOIN when the indexed round is current

    @property
    def label(self) -> str:
        return _LABELS[self.kind]

    @property
    def accepts_input(self) -> bool:
        return _ACCEPTS_INPUT[self.kind]


def derive_affordance(
    connection: ConnectionState,
    is_owner: bool,
    view: GameView,
    pending: PendingAction = PendingAction.NONE,
) -> Affordance:
    """Total function over (connection, pending, started, is_full, is_owner)."""
    if connection is ConnectionState.DISCONNECTED:
        return Affordance(AffordanceKind.CONNECT)
    if connection is ConnectionState.CONNECTING:
        return Affordance(AffordanceKind.BUSY)
    if pending is not PendingAction.NONE:
        return Affordance(AffordanceKind.BUSY)
    if view.started:
        if view.round_is_stale:
            # occupancy and fee of a retained round are not current
            return Affordance(AffordanceKind.JOIN)
        if view.is_full:
            return Affordance(AffordanceKind.CHOOSING_WINNER)
        return Affordance(AffordanceKind.JOIN, entry_fee=view.entry_fee)
    if is_owner:
        return Affordance(AffordanceKind.START_GAME_FORM)
    return Affordance(AffordanceKind.VIEW_LOGS)
