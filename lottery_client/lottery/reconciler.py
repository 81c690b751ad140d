"""Merges chain facts with the indexed round record into a GameView."""

from __future__ import annotations

from typing import List, Optional

from lottery_client.lottery.models import ChainFacts, GameView, RoundRecord
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)


def round_logs(started: bool, round_record: Optional[RoundRecord]) -> List[str]:
    """Human-readable status lines for a round; depends only on its arguments."""
    if round_record is None:
        return []
    if started:
        logs = [f"Game has started with ID: {round_record.round_id}"]
        if round_record.players:
            logs.append(f"{len(round_record.players)} / {round_record.max_players} already joined")
            logs.extend(f"{player} joined" for player in round_record.players)
        return logs
    if round_record.winner:
        return [
            f"Last game has ended with ID: {round_record.round_id}",
            f"Winner is: {round_record.winner}",
            "Waiting for host to start a new game...",
        ]
    return []


def is_round_full(started: bool, round_record: Optional[RoundRecord]) -> bool:
    return bool(started and round_record is not None and len(round_record.players) == round_record.max_players)


def build_view(facts: ChainFacts, round_record: Optional[RoundRecord]) -> GameView:
    """Pure merge of one (ChainFacts, RoundRecord) pair.

    The chain decides started versus not started; the record only describes.
    A record without a winner while the chain reports no open round is the
    "never started / awaiting a new round" view.
    """
    started = facts.game_started
    if not started and (round_record is None or not round_record.winner):
        return GameView()
    return GameView(
        started=started,
        round=round_record,
        logs=tuple(round_logs(started, round_record)),
        is_full=is_round_full(started, round_record),
    )


class Reconciler:
    """Produces one GameView per tick.

    Remembers the last successfully fetched round so that a failed index
    fetch keeps the descriptive fields on screen with empty logs. Such a
    view is flagged `round_is_stale`; its fee and occupancy are never used
    to gate or price a write.
    """

    def __init__(self) -> None:
        self._last_round: Optional[RoundRecord] = None

    @property
    def last_round(self) -> Optional[RoundRecord]:
        return self._last_round

    def reconcile(self, facts: ChainFacts, round_record: Optional[RoundRecord], index_error: Optional[BaseException] = None) -> GameView:
        if index_error is not None:
            logger.warning("Index fetch failed, keeping last round for display: %s", index_error)
            retained = self._last_round
            return GameView(
                started=facts.game_started,
                round=retained,
                logs=(),
                is_full=is_round_full(facts.game_started, retained),
                round_is_stale=retained is not None,
            )

        self._last_round = round_record
        return build_view(facts, round_record)

    def remember(self, round_record: Optional[RoundRecord]) -> None:
        """Record a successful index fetch from a tick whose chain read failed."""
        self._last_round = round_record

    def reset(self) -> None:
        self._last_round = None
