"""Wallet capabilities used by the network gate and the chain client."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from eth_account import Account
from web3 import Web3

from lottery_client.errors import ConnectionRejected, NoSignerAvailable, TransactionRejected
from lottery_client.utils.common import shorten_eth_address
from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)

# Called with ("connect", details) or ("transaction", tx); False means the user declined.
ApprovalHook = Callable[[str, Dict[str, Any]], Awaitable[bool]]


class Wallet(Protocol):
    """What the client needs from a wallet, injected or local."""

    async def request_accounts(self) -> List[str]:
        ...

    async def get_chain_id(self) -> int:
        ...

    def can_sign(self) -> bool:
        ...

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        ...


@dataclass(frozen=True)
class SigningHandle:
    """Write capability for one session; obtained from NetworkGate.require_signer."""

    address: str
    chain_id: int
    wallet: Wallet

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        return await self.wallet.send_transaction(tx)


class LocalAccountWallet:
    """Wallet backed by a web3.py HTTP provider and an optional local key.

    Without a private key the wallet is watch-only: it reports the configured
    address and cannot sign. The optional approval hook stands in for the
    wallet prompt and may take arbitrarily long to answer.
    """

    def __init__(self, config: Dict[str, Any], w3: Optional[Web3] = None, approve: Optional[ApprovalHook] = None):
        blockchain_cfg = config.get("blockchain", {})
        wallet_cfg = config.get("wallet", {})

        self.rpc_url: str = blockchain_cfg.get("rpc_url", "")
        self.rpc_timeout = float(blockchain_cfg.get("rpc_timeout", 10.0))
        self._w3 = w3
        self._approve = approve

        private_key = wallet_cfg.get("private_key")
        self.account = Account.from_key(private_key) if private_key else None
        if self.account:
            self.address: Optional[str] = self.account.address
            logger.info("Wallet account loaded: %s", shorten_eth_address(self.address))
        else:
            self.address = wallet_cfg.get("address")
            logger.info("Watch-only wallet for %s", shorten_eth_address(self.address or ""))

    @property
    def w3(self) -> Web3:
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": self.rpc_timeout}))
        return self._w3

    def can_sign(self) -> bool:
        return self.account is not None

    async def request_accounts(self) -> List[str]:
        if not self.address:
            return []
        if self._approve and not await self._approve("connect", {"address": self.address}):
            raise ConnectionRejected("User declined the wallet connection")
        return [self.address]

    async def get_chain_id(self) -> int:
        return await asyncio.to_thread(lambda: int(self.w3.eth.chain_id))

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        if not self.account:
            raise NoSignerAvailable("Wallet has no signing key")
        if self._approve and not await self._approve("transaction", dict(tx)):
            raise TransactionRejected("User denied transaction signature")

        account = self.account
        w3 = self.w3

        def _send() -> str:
            signed = account.sign_transaction(tx)
            # eth-account renamed rawTransaction to raw_transaction in 0.13
            raw = getattr(signed, "raw_transaction", None)
            if raw is None:
                raw = signed.rawTransaction
            tx_hash = w3.eth.send_raw_transaction(raw)
            return w3.to_hex(tx_hash)

        tx_hash = await asyncio.to_thread(_send)
        logger.info("Sent transaction %s from %s", tx_hash, shorten_eth_address(account.address))
        return tx_hash
