"""Lottery game engine: session lifecycle, reconciliation ticks and writes."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from lottery_client.blockchain.client import ChainClient, TransactionHandle
from lottery_client.blockchain.network import NetworkGate
from lottery_client.blockchain.wallet import SigningHandle, Wallet
from lottery_client.errors import LotteryClientError, NetworkMismatch, NoSignerAvailable
from lottery_client.indexer.client import IndexClient
from lottery_client.lottery.models import ConnectionState, GameView, PendingAction, WalletSession
from lottery_client.lottery.poller import Poller
from lottery_client.lottery.reconciler import Reconciler
from lottery_client.lottery.state_machine import Affordance, derive_affordance
from lottery_client.utils.common import same_address, shorten_eth_address
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)


class LotteryGameEngine:
    """Keeps a consistent GameView for one wallet session at a time.

    Listeners registered with `add_listener` receive plain dict payloads for
    these event types:

    - ``session_update``: connection state and address
    - ``view_update``: the merged GameView
    - ``affordance_update``: the action the presentation layer may offer
    - ``notice``: a user-visible message (wrong network, failed transaction)

    Every connect and disconnect bumps a generation counter. A tick started
    under an older generation is discarded instead of published, so a torn
    down session can never overwrite the view of a newer one.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        wallet: Wallet,
        chain: Optional[ChainClient] = None,
        indexer: Optional[IndexClient] = None,
    ) -> None:
        self.config = config
        self.gate = NetworkGate(config, wallet, notify=self._notice)
        self.chain = chain or ChainClient(config)
        self.indexer = indexer or IndexClient(config)
        self.reconciler = Reconciler()
        self.poll_interval = float(config.get("poller", {}).get("interval_sec", 2.0))

        self._listeners: Dict[str, List[Callable[[dict | None], None]]] = defaultdict(list)
        self._chain_ready = False
        self._generation = 0
        self._connection = ConnectionState.DISCONNECTED
        self._session: Optional[WalletSession] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._poller: Optional[Poller] = None
        self._reconciling: Optional[int] = None  # generation of the tick in flight
        self._view = GameView()
        self._pending = PendingAction.NONE
        self._is_owner = False
        self._affordance = self.affordance()

    # ------------------------------------------------------------------
    # Listener management
    # ------------------------------------------------------------------
    def add_listener(self, event_type: str, callback: Callable[[dict | None], None]) -> None:
        self._listeners[event_type].append(callback)
        logger.debug("Adding listener for event_type=%s, callback=%s", event_type, callback)

    def _emit(self, event_type: str, payload: dict | None) -> None:
        for callback in list(self._listeners.get(event_type, [])):
            try:
                callback(payload)
            except Exception as exc:  # pragma: no cover
                logger.error("Listener for %s failed: %s", event_type, exc)

    def _notice(self, message: str) -> None:
        logger.warning("Notice: %s", message)
        self._emit("notice", {"message": message})

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def session(self) -> Optional[WalletSession]:
        return self._session

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection

    @property
    def view(self) -> GameView:
        return self._view

    @property
    def pending_action(self) -> PendingAction:
        return self._pending

    @property
    def is_owner(self) -> bool:
        return self._is_owner

    @property
    def generation(self) -> int:
        return self._generation

    def affordance(self) -> Affordance:
        return derive_affordance(self._connection, self._is_owner, self._view, self._pending)

    def get_status(self) -> Dict[str, Any]:
        return {
            "connection": self._connection.value,
            "address": self._session.address if self._session else None,
            "isOwner": self._is_owner,
            "pendingAction": self._pending.value,
            "generation": self._generation,
            "polling": bool(self._poller and self._poller.running),
            "affordance": self._affordance.kind.value,
            "view": self._view.to_dict(),
            "chain": self.chain.get_client_status(),
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> WalletSession:
        """Connect the wallet, then start polling for this session."""
        if self._connection is ConnectionState.CONNECTED and self._session:
            return self._session
        if self._connection is ConnectionState.CONNECTING:
            raise RuntimeError("A wallet connection is already in progress")

        if not self._chain_ready:
            await self.chain.initialize()
            self._chain_ready = True

        self._generation += 1
        generation = self._generation
        self._set_connection(ConnectionState.CONNECTING)

        self._connect_task = asyncio.get_running_loop().create_task(self.gate.connect())
        try:
            session = await self._connect_task
        except BaseException:
            if generation == self._generation:
                self._connect_task = None
                self._set_connection(ConnectionState.DISCONNECTED)
            raise

        self._connect_task = None
        self._session = session
        self._set_connection(ConnectionState.CONNECTED)

        self._poller = Poller(lambda: self.refresh(generation), interval=self.poll_interval,
                              name=f"poller[{generation}]")
        await self._poller.start()
        return session

    async def disconnect(self) -> None:
        """Tear down the session: cancel connect/polling, drop view and pending action."""
        self._generation += 1
        if self._connect_task is not None:
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.debug("Abandoned connect attempt ended with: %s", exc)
            self._connect_task = None
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

        if self._session:
            logger.info("Session %s torn down", shorten_eth_address(self._session.address))
        self._session = None
        self._is_owner = False
        self._pending = PendingAction.NONE
        self.reconciler.reset()
        self._view = GameView()
        self._set_connection(ConnectionState.DISCONNECTED)
        self._emit("view_update", self._view.to_dict())

    async def close(self) -> None:
        await self.disconnect()
        await self.chain.close()
        await self.indexer.close()
        self._chain_ready = False

    def _set_connection(self, state: ConnectionState) -> None:
        self._connection = state
        self._emit("session_update", {
            "connection": state.value,
            "address": self._session.address if self._session else None,
        })
        self._publish_affordance()

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    async def refresh(self, generation: Optional[int] = None) -> Optional[GameView]:
        """Run one reconciliation tick and publish the merged view.

        Returns None when nothing was published: no session, a superseded
        generation, a failed chain read, or another tick still in flight.
        Poller ticks and explicit refreshes share the in-flight guard.
        """
        if generation is None:
            generation = self._generation
        session = self._session
        if session is None or generation != self._generation:
            return None
        if self._reconciling == generation:
            logger.debug("Reconciliation already in flight, skipping refresh")
            return None

        self._reconciling = generation
        try:
            return await self._reconcile(session, generation)
        finally:
            if self._reconciling == generation:
                self._reconciling = None

    async def _reconcile(self, session: WalletSession, generation: int) -> Optional[GameView]:
        facts, record = await asyncio.gather(
            self.chain.read_facts(),
            self.indexer.fetch_latest_round(),
            return_exceptions=True,
        )
        for result in (facts, record):
            if isinstance(result, asyncio.CancelledError):
                raise result

        if generation != self._generation:
            logger.debug("Discarding tick from superseded generation %s", generation)
            return None

        if isinstance(facts, BaseException):
            logger.error("Chain read failed, keeping previous view: %s", facts)
            if not isinstance(record, BaseException):
                self.reconciler.remember(record)
            return None

        index_error = record if isinstance(record, BaseException) else None
        view = self.reconciler.reconcile(facts, None if index_error else record, index_error)
        self._is_owner = same_address(facts.owner, session.address)
        self._publish_view(view)
        return view

    def _publish_view(self, view: GameView) -> None:
        if view != self._view:
            self._view = view
            logger.debug("View updated: started=%s full=%s logs=%d", view.started, view.is_full, len(view.logs))
            self._emit("view_update", view.to_dict())
        self._publish_affordance()

    def _publish_affordance(self) -> None:
        affordance = self.affordance()
        if affordance != self._affordance:
            self._affordance = affordance
            self._emit("affordance_update", {
                "kind": affordance.kind.value,
                "label": affordance.label,
                "acceptsInput": affordance.accepts_input,
                "entryFeeWei": affordance.entry_fee,
            })

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def start_game(self, max_players: int, entry_fee: int) -> Dict[str, Any]:
        """Start a round (owner only, enforced by the contract); returns the receipt."""
        return await self._perform_write(
            PendingAction.STARTING_GAME,
            lambda signer: self.chain.start_game(signer, max_players, entry_fee),
        )

    async def join_game(self, value: Optional[int] = None) -> Dict[str, Any]:
        """Join the open round, paying `value` wei or the indexed entry fee."""
        if value is None:
            value = None if self._view.round_is_stale else self._view.entry_fee
            if value is None:
                raise ValueError("Entry fee unknown until the round is indexed; pass value explicitly")
        return await self._perform_write(
            PendingAction.JOINING_GAME,
            lambda signer: self.chain.join_game(signer, value),
        )

    async def _perform_write(
        self,
        action: PendingAction,
        submit: Callable[[SigningHandle], Awaitable[TransactionHandle]],
    ) -> Dict[str, Any]:
        if self._pending is not PendingAction.NONE:
            raise RuntimeError(f"Another transaction is pending ({self._pending.value})")

        session = self._session
        try:
            if session is None or self._connection is not ConnectionState.CONNECTED:
                raise NoSignerAvailable("No wallet connected")
            signer = self.gate.require_signer(session)
        except LotteryClientError as exc:
            self._notice(str(exc))
            raise

        generation = self._generation
        self._set_pending(action)
        try:
            await self.gate.ensure_chain(session)
            handle = await submit(signer)
            receipt = await handle.wait()
        except NetworkMismatch:
            # the gate already asked the user to switch back; the session is void
            if generation == self._generation:
                await self.disconnect()
            raise
        except LotteryClientError as exc:
            self._notice(str(exc))
            raise
        finally:
            if generation == self._generation:
                self._set_pending(PendingAction.NONE)
        logger.info("%s settled: %s", action.value, receipt.get("transactionHash"))
        return receipt

    def _set_pending(self, action: PendingAction) -> None:
        self._pending = action
        self._publish_affordance()
