"""Core data models for the lottery game client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ConnectionState(Enum):
    """Wallet connection lifecycle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class PendingAction(Enum):
    """Write operation currently awaiting inclusion, if any."""

    NONE = "none"
    STARTING_GAME = "starting_game"
    JOINING_GAME = "joining_game"


@dataclass(frozen=True)
class WalletSession:
    """Connected wallet; replaced wholesale on disconnect or chain switch."""

    address: str
    chain_id: int
    can_sign: bool
    wallet: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class RoundRecord:
    """Most recently created round as reported by the index service."""

    round_id: str
    entry_fee: int
    max_players: int
    players: Tuple[str, ...] = ()
    winner: Optional[str] = None


@dataclass(frozen=True)
class ChainFacts:
    """Values read straight from the contract on every tick."""

    game_started: bool
    owner: str


@dataclass(frozen=True)
class GameView:
    """Merged view of chain facts and the indexed round.

    Rebuilt by the reconciler on every tick, never mutated.
    """

    started: bool = False
    round: Optional[RoundRecord] = None
    logs: Tuple[str, ...] = ()
    is_full: bool = False
    # round was kept from an earlier tick after an index failure; display only
    round_is_stale: bool = False

    @property
    def entry_fee(self) -> Optional[int]:
        return self.round.entry_fee if self.round else None

    @property
    def max_players(self) -> Optional[int]:
        return self.round.max_players if self.round else None

    @property
    def winner(self) -> Optional[str]:
        return self.round.winner if self.round else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started": self.started,
            "isFull": self.is_full,
            "roundIsStale": self.round_is_stale,
            "logs": list(self.logs),
            "round": None if self.round is None else {
                "id": self.round.round_id,
                "entryFeeWei": self.round.entry_fee,
                "maxPlayers": self.round.max_players,
                "players": list(self.round.players),
                "winner": self.round.winner,
            },
        }
