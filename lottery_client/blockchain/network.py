"""Wallet session acquisition and network validation."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from web3 import Web3

from lottery_client.blockchain.wallet import SigningHandle, Wallet
from lottery_client.errors import ConnectionRejected, NetworkMismatch, NoSignerAvailable
from lottery_client.lottery.models import WalletSession
from lottery_client.utils.common import shorten_eth_address
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)


class NetworkGate:
    """Turns a wallet into a validated WalletSession.

    `connect()` awaits the wallet, which may prompt the user and never answer;
    callers that tear down a session cancel the awaiting task. A chain id other
    than the configured one is a hard stop: the notice callback is told to ask
    the user to switch networks and NetworkMismatch is raised.
    """

    def __init__(self, config: Dict[str, Any], wallet: Wallet, notify: Optional[Callable[[str], None]] = None):
        blockchain_cfg = config.get("blockchain", {})
        self.chain_id: int = int(blockchain_cfg.get("chain_id", 80001))
        self.network_name: str = blockchain_cfg.get("network_name", "")
        self.wallet = wallet
        self._notify = notify

    async def connect(self) -> WalletSession:
        accounts = await self.wallet.request_accounts()
        if not accounts:
            raise ConnectionRejected("Wallet did not expose any account")

        actual_chain_id = await self.wallet.get_chain_id()
        if actual_chain_id != self.chain_id:
            error = NetworkMismatch(self.chain_id, actual_chain_id, self.network_name)
            logger.warning("Chain ID mismatch: expected %s, got %s", self.chain_id, actual_chain_id)
            if self._notify:
                self._notify(str(error))
            raise error

        address = Web3.to_checksum_address(accounts[0])
        session = WalletSession(
            address=address,
            chain_id=actual_chain_id,
            can_sign=self.wallet.can_sign(),
            wallet=self.wallet,
        )
        logger.info("Wallet %s connected on chain %s (signer: %s)",
                    shorten_eth_address(address), actual_chain_id, session.can_sign)
        return session

    def require_signer(self, session: Optional[WalletSession]) -> SigningHandle:
        if session is None or not session.can_sign:
            raise NoSignerAvailable("Connected wallet cannot sign transactions")
        if session.chain_id != self.chain_id:
            raise NetworkMismatch(self.chain_id, session.chain_id, self.network_name)
        return SigningHandle(address=session.address, chain_id=session.chain_id, wallet=session.wallet)

    async def ensure_chain(self, session: WalletSession) -> None:
        """Re-check the wallet's current chain before a write.

        Wallets can switch networks after connecting; the session's chain id
        only records what was true at connect time.
        """
        actual_chain_id = await self.wallet.get_chain_id()
        if actual_chain_id != self.chain_id or actual_chain_id != session.chain_id:
            error = NetworkMismatch(self.chain_id, actual_chain_id, self.network_name)
            logger.warning("Wallet switched to chain %s after connect", actual_chain_id)
            if self._notify:
                self._notify(str(error))
            raise error
